"""Core data models for the elderly report pipeline"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from typing import Optional, Any, Union
from datetime import datetime
from .enums import FileType, ReportStatus, RowStatus


CellValue = Union[bool, int, float, str, None]

# Synthetic row identifier key inside row_data
ROW_ID_KEY = "id"


class CamelModel(BaseModel):
    """Models exchanged with the browser client use camelCase keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─────────────────────────────────────────────────────────────
# Stage 0: Reception
# ─────────────────────────────────────────────────────────────

class MergeRange(CamelModel):
    """Inclusive rectangle of cells sharing the top-left value (0-based)"""
    start_row: int
    start_col: int
    end_row: int
    end_col: int


class UploadedFile(BaseModel):
    """Upload as received from the client or read from disk"""
    file_name: str
    content: bytes

    @property
    def extension(self) -> str:
        dot = self.file_name.rfind(".")
        return self.file_name[dot:].lower() if dot >= 0 else ""


class RawSheet(BaseModel):
    """One physical sheet as read from the workbook"""
    name: str
    grid: list[list[CellValue]] = []
    merges: list[MergeRange] = []


class RawWorkbook(BaseModel):
    """Complete Stage 0 output"""
    file_name: str
    file_type: FileType
    file_size_bytes: int = 0
    sheets: list[RawSheet] = []


# ─────────────────────────────────────────────────────────────
# Stage 1: Detection
# ─────────────────────────────────────────────────────────────

class MetaPair(CamelModel):
    """Label/value pair from the metadata block"""
    key: str
    value: str


class HeaderBlock(CamelModel):
    """Physical rows forming the column header, merges relative to the block"""
    start_row: int
    end_row: int
    rows: list[list[CellValue]] = []
    merges: list[MergeRange] = []

    @model_validator(mode="after")
    def _check_height(self):
        if self.rows and self.end_row - self.start_row + 1 != len(self.rows):
            raise ValueError("header block height does not match its rows")
        return self


class SheetLayout(BaseModel):
    """Boundaries found by the detector for one sheet"""
    meta_pairs: list[MetaPair] = []
    kabupaten: str = ""
    puskesmas: str = ""
    bulan_tahun: str = ""
    header_block: HeaderBlock
    first_col: int = 0
    data_start: int
    data_end: int  # exclusive (stop marker row or end of grid)
    data_rows: list[int] = []  # retained grid row indices


# ─────────────────────────────────────────────────────────────
# Stage 2: Normalization
# ─────────────────────────────────────────────────────────────

class CanonicalColumn(BaseModel):
    """Machine key, display label and position of one column"""
    key: str
    label: str
    index: int


class WorksheetPayload(CamelModel):
    """Normalized worksheet, in the shape stored and exchanged with the client"""
    worksheet_name: str = ""
    kabupaten: str = ""
    puskesmas: str = ""
    bulan_tahun: str = ""
    meta_pairs: list[MetaPair] = []
    header_keys: list[str] = []
    header_labels: list[str] = []
    header_order: list[str] = []
    row_data: list[dict[str, Any]] = []
    header_block: Optional[HeaderBlock] = None
    file_name: Optional[str] = None
    source_sheet_name: Optional[str] = None

    @model_validator(mode="after")
    def _fill_labels(self):
        if not self.header_order:
            self.header_order = list(self.header_keys)
        if len(self.header_labels) != len(self.header_keys):
            labels = list(self.header_labels[: len(self.header_keys)])
            labels += [k.upper() for k in self.header_keys[len(labels):]]
            self.header_labels = labels
        return self

    @property
    def columns(self) -> list[CanonicalColumn]:
        return [
            CanonicalColumn(key=key, label=label or key.upper(), index=i)
            for i, (key, label) in enumerate(zip(self.header_keys, self.header_labels))
        ]

    @property
    def is_usable(self) -> bool:
        return bool(self.header_keys) and bool(self.row_data)


class WorkbookDraft(CamelModel):
    """Normalized upload awaiting review and confirmation"""
    draft_id: str
    file_name: str = ""
    kabupaten: str = ""
    bulan_tahun: str = ""
    worksheets: list[WorksheetPayload] = []
    active_worksheet_index: int = 0
    usable_sheet_count: int = 0


# ─────────────────────────────────────────────────────────────
# Stage 3: Validation
# ─────────────────────────────────────────────────────────────

class ValidationSummary(CamelModel):
    total: int = 0
    valid: int = 0
    error: int = 0


class CellIssue(CamelModel):
    """Single failing cell"""
    row_id: str
    column: str
    message: str
    blocking: bool = True


class WorksheetValidation(CamelModel):
    """Validation state of one worksheet including pending edits"""
    worksheet_name: str
    summary: ValidationSummary
    issues: list[CellIssue] = []
    row_status: dict[str, RowStatus] = {}
    pending_edits: int = 0
    display: dict[str, dict[str, str]] = {}


# ─────────────────────────────────────────────────────────────
# Stage 4: Persistence
# ─────────────────────────────────────────────────────────────

class ReportBundle(CamelModel):
    """Unit persisted per import"""
    id: Optional[str] = None
    file_name: str = ""
    kabupaten: str
    bulan_tahun: str
    worksheets: list[WorksheetPayload] = []
    status: ReportStatus = ReportStatus.IMPORTED
    created_by: Optional[str] = None
    generated_report_path: Optional[str] = None
    created_at: Optional[datetime] = None


class CreateReportRequest(CamelModel):
    """Create-report body; the top-level sheet fields carry the legacy shape"""
    file_name: Optional[str] = None
    kabupaten: str = ""
    bulan_tahun: str = ""
    worksheets: Optional[list[WorksheetPayload]] = None

    puskesmas: Optional[str] = None
    meta_pairs: list[MetaPair] = []
    header_keys: Optional[list[str]] = None
    header_labels: Optional[list[str]] = None
    header_order: Optional[list[str]] = None
    row_data: Optional[list[dict[str, Any]]] = None
    source_sheet_name: Optional[str] = None
    status: Optional[ReportStatus] = None


class CreateReportResponse(CamelModel):
    report_id: str
    worksheet_count: int
    excel_path: Optional[str] = None


class ReportSummary(CamelModel):
    """Dashboard figures for the most recent bundle"""
    total_measured_this_month: int = 0
    interventions_this_month: int = 0
    urgent_cases_this_month: int = 0
    health_improvement_pct: Optional[float] = None
    latest_bulan_tahun: Optional[str] = None


# ─────────────────────────────────────────────────────────────
# Stage 5: Metrics
# ─────────────────────────────────────────────────────────────

class GenderCounts(BaseModel):
    """Distinct identifiers per gender with combined total"""
    L: int = 0
    P: int = 0
    T: int = 0


class TierCount(BaseModel):
    absolute: int = 0
    percent: float = Field(default=0.0, ge=0)


class MetricsResult(BaseModel):
    """Aggregates for one worksheet, recomputed on every report generation"""
    pre_senior: GenderCounts = Field(default_factory=GenderCounts)
    senior: GenderCounts = Field(default_factory=GenderCounts)
    high_risk_senior: GenderCounts = Field(default_factory=GenderCounts)
    served: GenderCounts = Field(default_factory=GenderCounts)
    screened_pre_senior: GenderCounts = Field(default_factory=GenderCounts)
    screened_senior: GenderCounts = Field(default_factory=GenderCounts)
    screened_high_risk_senior: GenderCounts = Field(default_factory=GenderCounts)
    tier_a: TierCount = Field(default_factory=TierCount)
    tier_b_mild: TierCount = Field(default_factory=TierCount)
    tier_b_moderate: TierCount = Field(default_factory=TierCount)
    tier_c_severe: TierCount = Field(default_factory=TierCount)
    tier_c_total: TierCount = Field(default_factory=TierCount)
    empowered: TierCount = Field(default_factory=TierCount)
    rows_total: int = 0
    rows_counted: int = 0
