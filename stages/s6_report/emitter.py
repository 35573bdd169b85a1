"""Stage 6: Report - Fixed-layout monthly workbook"""

import asyncio
import io
import logging
from datetime import date
from typing import List, NamedTuple, Sequence, Set, Tuple

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter
from openpyxl.workbook.child import INVALID_TITLE_REGEX

from core.interfaces import Stage
from core.models import ReportBundle, MetricsResult, GenderCounts
from core.exceptions import ReportGenerationError
from stages.s1_detection.detector import clean_meta_value
from stages.s5_metrics.aggregator import compute_metrics
from config import settings
from . import layout


logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 31

HEADER_ALIGNMENT = Alignment(horizontal="center", vertical="center", wrap_text=True)
HEADER_FONT = Font(bold=True)


class ReportSheet(NamedTuple):
    """One facility sheet to emit"""
    name: str
    facility: str
    metrics: MetricsResult


def parse_month_year(bulan_tahun: str, today: date = None) -> Tuple[str, str]:
    """First two tokens of the month-year string, uppercased"""
    parts = (bulan_tahun or "").strip().upper().split()
    month = parts[0] if parts else "BULAN"
    year = parts[1] if len(parts) > 1 else str((today or date.today()).year)
    return month, year


def sheet_title(name: str, used: Set[str]) -> str:
    """Legal, unique sheet title of at most 31 characters"""
    base = INVALID_TITLE_REGEX.sub("_", (name or "").strip()) or "Data"
    base = base[:MAX_TITLE_LENGTH]

    title, n = base, 1
    while title.lower() in used:
        n += 1
        suffix = f" ({n})"
        title = base[: MAX_TITLE_LENGTH - len(suffix)] + suffix

    used.add(title.lower())
    return title


def _gender_cells(counts: GenderCounts) -> List[int]:
    return [counts.L, counts.P, counts.T]


def data_vector(facility: str, metrics: MetricsResult) -> list:
    """
    Values of the facility row, one per report column

    Manual fields stay blank; previous-month columns are 0 since no earlier
    report feeds them.
    """
    row = [1, facility, None, None]

    for counts in (metrics.pre_senior, metrics.senior, metrics.high_risk_senior, metrics.served):
        row += _gender_cells(counts)

    for counts in (metrics.screened_pre_senior, metrics.screened_senior, metrics.screened_high_risk_senior):
        row += [0, 0, 0] + _gender_cells(counts) + _gender_cells(counts)

    for tier in (
        metrics.tier_a, metrics.tier_b_mild, metrics.tier_b_moderate,
        metrics.tier_c_severe, metrics.tier_c_total, metrics.empowered,
    ):
        row += [tier.absolute, tier.percent]

    row += [None] * (layout.DATA_COLUMNS - len(row))
    return row


def write_sheet(ws, region: str, month: str, year: str, sheet: ReportSheet, numbered_columns: int) -> None:
    """Lay out one facility sheet"""
    for r, (label, value) in enumerate(zip(layout.META_ROWS, (region, year, month)), start=1):
        ws.cell(row=r, column=1, value=label)
        ws.cell(row=r, column=2, value=":")
        ws.cell(row=r, column=3, value=value)

    for cell in layout.HEADER_CELLS:
        target = ws.cell(row=cell.row, column=cell.col, value=cell.label)
        target.alignment = HEADER_ALIGNMENT
        target.font = HEADER_FONT
        if cell.is_merged:
            ws.merge_cells(
                start_row=cell.row, start_column=cell.col,
                end_row=cell.end_row, end_column=cell.end_col
            )

    for col in range(1, numbered_columns + 1):
        ws.cell(row=layout.NUMBER_ROW, column=col, value=col).alignment = HEADER_ALIGNMENT

    for col, value in enumerate(data_vector(sheet.facility, sheet.metrics), start=1):
        if value is not None:
            ws.cell(row=layout.DATA_ROW, column=col, value=value)

    for col in range(1, max(numbered_columns, layout.DATA_COLUMNS) + 1):
        width = layout.COLUMN_WIDTHS.get(col, layout.DEFAULT_WIDTH)
        ws.column_dimensions[get_column_letter(col)].width = width


def render_report(
    kabupaten: str,
    bulan_tahun: str,
    sheets: Sequence[ReportSheet],
    numbered_columns: int = None,
    today: date = None
) -> bytes:
    """Serialize the report workbook to .xlsx bytes"""
    numbered_columns = numbered_columns or settings.REPORT_NUMBERED_COLUMNS
    region = clean_meta_value(kabupaten)
    month, year = parse_month_year(bulan_tahun, today)

    wb = Workbook()
    wb.remove(wb.active)
    used: Set[str] = set()

    for sheet in sheets:
        ws = wb.create_sheet(title=sheet_title(sheet.name, used))
        write_sheet(ws, region, month, year, sheet, numbered_columns)

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def bundle_sheets(bundle: ReportBundle, today: date = None) -> List[ReportSheet]:
    """Recompute metrics for every stored worksheet"""
    sheets = []
    for ws in bundle.worksheets:
        facility = clean_meta_value(ws.puskesmas)
        sheets.append(ReportSheet(
            name=ws.worksheet_name or facility or "Data",
            facility=facility,
            metrics=compute_metrics(ws, today),
        ))
    return sheets


def render_bundle(bundle: ReportBundle, today: date = None) -> bytes:
    """Regenerate the report of a stored bundle from its rows alone"""
    if not bundle.worksheets:
        raise ReportGenerationError("Laporan tidak memiliki worksheet")
    try:
        return render_report(bundle.kabupaten, bundle.bulan_tahun, bundle_sheets(bundle, today), today=today)
    except ReportGenerationError:
        raise
    except Exception as e:
        raise ReportGenerationError(f"Gagal membuat laporan Excel: {e}") from e


class ReportEmitter(Stage[ReportBundle, bytes]):
    """Stage 6: Report - Emit the fixed-layout workbook"""

    @property
    def name(self) -> str:
        return "Report"

    @property
    def stage_number(self) -> int:
        return 6

    def __init__(self, today: date = None):
        self.today = today

    def validate_input(self, input_data: ReportBundle) -> bool:
        return isinstance(input_data, ReportBundle) and bool(input_data.worksheets)

    async def execute(self, input_data: ReportBundle) -> bytes:
        content = await asyncio.to_thread(render_bundle, input_data, self.today)
        logger.info(
            "Rendered report for %s %s (%d sheet(s), %d bytes)",
            input_data.kabupaten, input_data.bulan_tahun, len(input_data.worksheets), len(content)
        )
        return content
