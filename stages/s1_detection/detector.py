"""Stage 1: Detection - Metadata block, header block and data window"""

import logging
import re
from typing import List, Optional, Sequence, Tuple

from core.interfaces import Stage
from core.models import RawSheet, SheetLayout, MetaPair, HeaderBlock, MergeRange, CellValue
from utils.keys import is_blank, cell_text
from config import settings


logger = logging.getLogger(__name__)

Grid = List[List[CellValue]]

_LEADING_COLON = re.compile(r"^[\s:]+")
_SPACES = re.compile(r"\s+")


def propagate_merges(grid: Sequence[Sequence[CellValue]], merges: Sequence[MergeRange]) -> Grid:
    """
    Copy the top-left value of every merge rectangle into all of its cells

    Returns a new grid; rows are padded as needed so every merged cell exists.
    """
    out = [list(row) for row in grid]

    for merge in merges:
        if merge.start_row >= len(out):
            continue
        top = out[merge.start_row]
        value = top[merge.start_col] if merge.start_col < len(top) else None

        for r in range(merge.start_row, min(merge.end_row, len(out) - 1) + 1):
            row = out[r]
            if len(row) <= merge.end_col:
                row.extend([None] * (merge.end_col + 1 - len(row)))
            for c in range(merge.start_col, merge.end_col + 1):
                row[c] = value

    return out


def _cell(grid: Sequence[Sequence[CellValue]], row: int, col: int) -> CellValue:
    if row < 0 or row >= len(grid) or col < 0 or col >= len(grid[row]):
        return None
    return grid[row][col]


def clean_meta_value(value: str) -> str:
    """Strip the leading colon separator some templates keep inside the value cell"""
    return _LEADING_COLON.sub("", value or "").strip()


def clean_month_year(value: str) -> str:
    """Month-year with slash separators and repeated spaces collapsed to single spaces"""
    text = clean_meta_value(value).replace("/", " ")
    return _SPACES.sub(" ", text).strip()


def extract_meta_pairs(
    grid: Sequence[Sequence[CellValue]],
    cells: Sequence[Tuple[int, int, int]]
) -> List[MetaPair]:
    """Read (row, key_col, value_col) triples, dropping pairs with an empty side"""
    pairs = []
    for row, key_col, value_col in cells:
        key = cell_text(_cell(grid, row, key_col))
        value = cell_text(_cell(grid, row, value_col))
        if key and value:
            pairs.append(MetaPair(key=key, value=value))
    return pairs


def classify_meta(pairs: Sequence[MetaPair]) -> Tuple[str, str, str]:
    """
    Map metadata pairs to (kabupaten, puskesmas, bulan_tahun)

    Keys are matched case-insensitively by substring; the first match for
    each field wins.
    """
    kabupaten = puskesmas = bulan_tahun = ""

    for pair in pairs:
        key = pair.key.lower()
        if "kabupaten" in key and not kabupaten:
            kabupaten = clean_meta_value(pair.value)
        elif "puskesmas" in key and not puskesmas:
            puskesmas = clean_meta_value(pair.value)
        elif ("bulan" in key or "tahun" in key) and not bulan_tahun:
            bulan_tahun = clean_month_year(pair.value)

    return kabupaten, puskesmas, bulan_tahun


def find_stop_row(
    grid: Sequence[Sequence[CellValue]],
    visible_start: int,
    marker: str,
    column: int
) -> int:
    """Index of the first row whose marker column starts with the sentinel word"""
    marker = marker.lower()
    for r in range(visible_start, len(grid)):
        if cell_text(_cell(grid, r, column)).lower().startswith(marker):
            return r
    return len(grid)


def _non_empty_count(row: Sequence[CellValue]) -> int:
    return sum(1 for value in row if not is_blank(value))


def guess_header_row(
    grid: Sequence[Sequence[CellValue]],
    visible_start: int,
    stop_row: int,
    scan_rows: int,
    min_cells: int
) -> int:
    """Single-row fallback: the densest row among the first scanned rows"""
    best_row, best_score = visible_start, -1

    for r in range(visible_start, min(visible_start + scan_rows, stop_row)):
        score = _non_empty_count(grid[r])
        if score > best_score:
            best_row, best_score = r, score

    if best_score < min_cells:
        return visible_start
    return best_row


def header_window(
    grid: Sequence[Sequence[CellValue]],
    merges: Sequence[MergeRange],
    visible_start: int,
    stop_row: int,
    scan_rows: int = None,
    min_cells: int = None
) -> Tuple[int, int]:
    """
    Determine the (start, end) rows of the header block

    Merges starting inside the visible region define a multi-row block,
    clamped to that region. Without such merges a single row is chosen by
    density.
    """
    scan_rows = scan_rows or settings.HEADER_SCAN_ROWS
    min_cells = settings.HEADER_MIN_CELLS if min_cells is None else min_cells

    inside = [m for m in merges if visible_start <= m.start_row < stop_row]
    if inside:
        start = max(min(m.start_row for m in inside), visible_start)
        end = min(max(m.end_row for m in inside), stop_row - 1)
        return start, end

    row = guess_header_row(grid, visible_start, stop_row, scan_rows, min_cells)
    return row, row


def first_content_column(row: Sequence[CellValue]) -> int:
    for c, value in enumerate(row):
        if not is_blank(value):
            return c
    return 0


def relative_merges(
    merges: Sequence[MergeRange],
    start_row: int,
    end_row: int,
    first_col: int
) -> List[MergeRange]:
    """Merges of the header rows, shifted to the block origin and clipped to it"""
    relative = []
    for m in merges:
        if m.start_row > end_row or m.end_row < start_row or m.end_col < first_col:
            continue
        top = max(m.start_row, start_row)
        relative.append(MergeRange(
            start_row=top - start_row,
            start_col=max(m.start_col, first_col) - first_col,
            end_row=min(m.end_row, end_row) - start_row,
            end_col=m.end_col - first_col
        ))
    return relative


def detect_layout(
    grid: Sequence[Sequence[CellValue]],
    merges: Sequence[MergeRange] = (),
    visible_start: int = None,
    meta_cells: Sequence[Tuple[int, int, int]] = None,
    stop_marker: str = None,
    stop_column: int = None
) -> Optional[SheetLayout]:
    """
    Locate metadata, header block and data rows of one sheet

    Args:
        grid: Raw sheet cells
        merges: Sheet-level merged ranges (0-based, inclusive)
        visible_start: First row that may hold the header; rows above are metadata

    Returns:
        SheetLayout, or None when no data row remains
    """
    visible_start = settings.VISIBLE_START_ROW if visible_start is None else visible_start
    meta_cells = settings.get_meta_cells() if meta_cells is None else meta_cells
    stop_marker = stop_marker or settings.STOP_MARKER
    stop_column = settings.STOP_MARKER_COLUMN if stop_column is None else stop_column

    filled = propagate_merges(grid, merges)

    meta_pairs = extract_meta_pairs(filled, meta_cells)
    kabupaten, puskesmas, bulan_tahun = classify_meta(meta_pairs)

    stop_row = find_stop_row(filled, visible_start, stop_marker, stop_column)
    if visible_start >= stop_row:
        return None

    start, end = header_window(filled, merges, visible_start, stop_row)
    first_col = first_content_column(filled[end])

    data_rows = [
        r for r in range(end + 1, stop_row)
        if _non_empty_count(filled[r][first_col:]) > 0
    ]
    if not data_rows:
        return None

    header_rows = [list(grid[r][first_col:]) if r < len(grid) else [] for r in range(start, end + 1)]

    return SheetLayout(
        meta_pairs=meta_pairs,
        kabupaten=kabupaten,
        puskesmas=puskesmas,
        bulan_tahun=bulan_tahun,
        header_block=HeaderBlock(
            start_row=start,
            end_row=end,
            rows=header_rows,
            merges=relative_merges(merges, start, end, first_col)
        ),
        first_col=first_col,
        data_start=end + 1,
        data_end=stop_row,
        data_rows=data_rows
    )


class HeaderDetector(Stage[RawSheet, Optional[SheetLayout]]):
    """Stage 1: Detection - Find the metadata block, header and data rows"""

    @property
    def name(self) -> str:
        return "Detection"

    @property
    def stage_number(self) -> int:
        return 1

    def validate_input(self, input_data: RawSheet) -> bool:
        return isinstance(input_data, RawSheet)

    async def execute(self, input_data: RawSheet) -> Optional[SheetLayout]:
        return self.detect(input_data)

    def detect(self, sheet: RawSheet) -> Optional[SheetLayout]:
        layout = detect_layout(sheet.grid, sheet.merges)
        if layout is None:
            logger.info("Sheet %r has no data rows, skipped", sheet.name)
        return layout
