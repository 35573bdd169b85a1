"""Core enumerations for the elderly report service"""

from enum import Enum


class FileType(str, Enum):
    """Supported upload formats"""
    EXCEL_XLSX = "xlsx"
    EXCEL_XLS = "xls"
    CSV = "csv"


class ColumnRole(str, Enum):
    """Semantic role of a worksheet column, resolved from its key/label"""
    NAME = "name"
    IDENTIFIER = "identifier"
    AGE = "age"
    GENDER = "gender"
    DATE = "date"
    BIRTH_DATE = "birth_date"
    ADDRESS = "address"
    SCREENING = "screening"
    TREATMENT = "treatment"
    COUNSELING = "counseling"
    EMPOWERMENT = "empowerment"
    TIER_A = "tier_a"
    TIER_B = "tier_b"
    TIER_C = "tier_c"
    OTHER = "other"


class RowStatus(str, Enum):
    """Validation status of a row. There is no warning tier."""
    VALID = "valid"
    ERROR = "error"


class Gender(str, Enum):
    """Resolved gender token"""
    MALE = "L"
    FEMALE = "P"


class ReportStatus(str, Enum):
    """Lifecycle of a stored bundle"""
    DRAFT = "draft"
    IMPORTED = "imported"
    GENERATED = "generated"
