"""Stage 1: Detection"""

from .detector import HeaderDetector, detect_layout, propagate_merges

__all__ = ["HeaderDetector", "detect_layout", "propagate_merges"]
