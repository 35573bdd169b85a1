"""Stage 3: Validation"""

from .editor import EditSession
from . import rules

__all__ = ["EditSession", "rules"]
