"""Stage 2: Normalization - Canonical columns and rows per worksheet"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from core.interfaces import Stage
from core.models import (
    RawSheet, RawWorkbook, SheetLayout, WorksheetPayload, WorkbookDraft, CellValue, ROW_ID_KEY
)
from core.exceptions import IntakeError
from utils.keys import unique_header_keys, cell_text, is_blank
from stages.s1_detection.detector import propagate_merges
from config import settings


logger = logging.getLogger(__name__)


def clean_value(value: CellValue) -> CellValue:
    """Trim strings; numbers and booleans pass through unchanged"""
    if isinstance(value, str):
        return value.strip()
    return value


def new_row_id() -> str:
    return uuid.uuid4().hex


def materialize_rows(
    grid: Sequence[Sequence[CellValue]],
    row_indices: Sequence[int],
    keys: Sequence[str],
    first_col: int
) -> List[Dict[str, Any]]:
    """One dict per data row keyed by column key, plus a synthetic id"""
    rows = []
    for r in row_indices:
        source = grid[r]
        row = {ROW_ID_KEY: new_row_id()}
        for offset, key in enumerate(keys):
            c = first_col + offset
            row[key] = clean_value(source[c]) if c < len(source) else None
        rows.append(row)
    return rows


def remove_trailing_empty_columns(payload: WorksheetPayload) -> WorksheetPayload:
    """
    Drop columns from the right until the first one holding data in some row

    Idempotent. A worksheet whose columns are all empty is returned unchanged.
    """
    keys = payload.header_order or payload.header_keys
    if not payload.row_data or not keys:
        return payload

    last = -1
    for i in range(len(keys) - 1, -1, -1):
        if any(not is_blank(row.get(keys[i])) for row in payload.row_data):
            last = i
            break

    if last == -1 or last == len(keys) - 1:
        return payload

    kept = list(keys[: last + 1])
    labels = list(payload.header_labels[: last + 1])
    rows = [
        {ROW_ID_KEY: row.get(ROW_ID_KEY), **{key: row.get(key) for key in kept}}
        for row in payload.row_data
    ]

    return payload.model_copy(update={
        "header_keys": kept,
        "header_labels": labels,
        "header_order": kept,
        "row_data": rows,
    })


def normalize_sheet(
    sheet: RawSheet,
    layout: SheetLayout,
    file_name: Optional[str] = None,
    max_rows: int = None
) -> Optional[WorksheetPayload]:
    """
    Build the canonical worksheet from a raw sheet and its detected layout

    Keys come from the bottom header row after merge propagation, so a
    label merged across several physical header rows still names its column.

    Returns:
        WorksheetPayload, or None when no row survives
    """
    max_rows = max_rows or settings.MAX_ROWS_PER_SHEET
    if len(layout.data_rows) > max_rows:
        raise IntakeError(
            f"Sheet {sheet.name} memiliki {len(layout.data_rows)} baris data, "
            f"melebihi batas {max_rows} baris.",
            file_name
        )

    grid = propagate_merges(sheet.grid, sheet.merges)
    first_col = layout.first_col

    header_row = grid[layout.header_block.end_row][first_col:]
    width = max(
        [len(header_row)] + [max(len(grid[r]) - first_col, 0) for r in layout.data_rows]
    )
    labels = [cell_text(header_row[i]) if i < len(header_row) else "" for i in range(width)]
    keys = unique_header_keys(labels, reserved=[ROW_ID_KEY])

    rows = materialize_rows(grid, layout.data_rows, keys, first_col)
    if not rows:
        return None

    payload = WorksheetPayload(
        worksheet_name=sheet.name,
        kabupaten=layout.kabupaten,
        puskesmas=layout.puskesmas,
        bulan_tahun=layout.bulan_tahun,
        meta_pairs=layout.meta_pairs,
        header_keys=keys,
        header_labels=[label or key.upper() for key, label in zip(keys, labels)],
        header_order=keys,
        row_data=rows,
        header_block=layout.header_block,
        file_name=file_name,
        source_sheet_name=sheet.name,
    )
    return remove_trailing_empty_columns(payload)


def assemble_draft(file_name: str, worksheets: Sequence[WorksheetPayload]) -> WorkbookDraft:
    """Collect usable worksheets; draft-level region and month come from the first sheet carrying them"""
    usable = [ws for ws in worksheets if ws.is_usable]
    kabupaten = next((ws.kabupaten for ws in usable if ws.kabupaten), "")
    bulan_tahun = next((ws.bulan_tahun for ws in usable if ws.bulan_tahun), "")

    return WorkbookDraft(
        draft_id=uuid.uuid4().hex,
        file_name=file_name,
        kabupaten=kabupaten,
        bulan_tahun=bulan_tahun,
        worksheets=usable,
        active_worksheet_index=0,
        usable_sheet_count=len(usable),
    )


class SheetNormalizer(Stage[Dict[str, Any], WorkbookDraft]):
    """Stage 2: Normalization - Turn detected sheets into a workbook draft"""

    @property
    def name(self) -> str:
        return "Normalization"

    @property
    def stage_number(self) -> int:
        return 2

    def validate_input(self, input_data: Dict[str, Any]) -> bool:
        workbook = input_data.get("workbook")
        layouts = input_data.get("layouts")
        return isinstance(workbook, RawWorkbook) and len(layouts or []) == len(workbook.sheets)

    async def execute(self, input_data: Dict[str, Any]) -> WorkbookDraft:
        return self.normalize(input_data["workbook"], input_data["layouts"])

    def normalize(self, workbook: RawWorkbook, layouts: Sequence[Optional[SheetLayout]]) -> WorkbookDraft:
        worksheets = []
        for sheet, layout in zip(workbook.sheets, layouts):
            if layout is None:
                continue
            payload = normalize_sheet(sheet, layout, workbook.file_name)
            if payload is None:
                logger.info("Sheet %r produced no rows, skipped", sheet.name)
                continue
            worksheets.append(payload)

        if not worksheets:
            raise IntakeError("Tidak ada data yang dapat dibaca dari file.", workbook.file_name)

        draft = assemble_draft(workbook.file_name, worksheets)
        logger.info(
            "Normalized %s: %d of %d sheet(s) usable",
            workbook.file_name, draft.usable_sheet_count, len(workbook.sheets)
        )
        return draft
