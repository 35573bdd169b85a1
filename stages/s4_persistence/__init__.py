"""Stage 4: Persistence"""

from .adapter import ReportPersistence, build_bundle, apply_address_flags, request_from_draft

__all__ = ["ReportPersistence", "build_bundle", "apply_address_flags", "request_from_draft"]
