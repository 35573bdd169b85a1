"""Core abstractions for the elderly report pipeline"""

from .models import *
from .enums import *
from .exceptions import *
from .interfaces import *

__all__ = [
    # Models
    "CellValue",
    "ROW_ID_KEY",
    "UploadedFile",
    "MergeRange",
    "RawSheet",
    "RawWorkbook",
    "MetaPair",
    "HeaderBlock",
    "SheetLayout",
    "CanonicalColumn",
    "WorksheetPayload",
    "WorkbookDraft",
    "ValidationSummary",
    "CellIssue",
    "WorksheetValidation",
    "ReportBundle",
    "CreateReportRequest",
    "CreateReportResponse",
    "ReportSummary",
    "GenderCounts",
    "TierCount",
    "MetricsResult",
    # Enums
    "FileType",
    "ColumnRole",
    "RowStatus",
    "Gender",
    "ReportStatus",
    # Exceptions
    "LansiaReportError",
    "StageError",
    "IntakeError",
    "FileTooLargeError",
    "ValidationError",
    "PayloadError",
    "NotFoundError",
    "DatabaseError",
    "ReportGenerationError",
    # Interfaces
    "Stage",
    "SheetParser",
    "ReportRepository",
]
