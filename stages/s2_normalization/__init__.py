"""Stage 2: Normalization"""

from .normalizer import SheetNormalizer, normalize_sheet, remove_trailing_empty_columns, assemble_draft

__all__ = ["SheetNormalizer", "normalize_sheet", "remove_trailing_empty_columns", "assemble_draft"]
