"""Fixed geometry of the monthly elderly report sheet

All positions are 1-based worksheet coordinates. Every header cell is a
rectangle (row, col, end_row, end_col) carrying one label; single cells have
end_row == row and end_col == col.
"""

from typing import List, NamedTuple


class HeaderCell(NamedTuple):
    row: int
    col: int
    end_row: int
    end_col: int
    label: str

    @property
    def is_merged(self) -> bool:
        return self.end_row > self.row or self.end_col > self.col


META_ROWS = ("KABUPATEN", "TAHUN", "BULAN")

HEADER_FIRST_ROW = 5
HEADER_LAST_ROW = 10
NUMBER_ROW = 11
DATA_ROW = 12

DATA_COLUMNS = 74

DEFAULT_WIDTH = 12
COLUMN_WIDTHS = {1: 5, 2: 20, 3: 15, 4: 15}

# Column blocks of the data vector
SASARAN_FIRST = 5
SCREENING_FIRST = 17
SCREENING_BAND_WIDTH = 9
TIERS_FIRST = 44
EMPOWERED_FIRST = 54
MANUAL_FIRST = 56

TIER_LABELS = (
    "TINGKAT KEMANDIRIAN A (MANDIRI)",
    "TINGKAT KEMANDIRIAN B (KETERGANTUNGAN RINGAN)",
    "TINGKAT KEMANDIRIAN KETERGANTUNGAN B (SEDANG)",
    "TINGKAT KEMANDIRIAN C (KETERGANTUNGAN BERAT)",
    "TINGKAT KEMANDIRIAN C (KETERGANTUNGAN TOTAL)",
)

SCREENING_BANDS = (
    "PRA LANSIA\n(45-59 TAHUN)",
    "LANSIA\n(≥ 60 TAHUN)",
    "LANSIA RISTI\n(≥ 70 TAHUN)",
)

PERIODS = ("BULAN LALU", "BULAN INI", "TOTAL")
GENDERS = ("L", "P", "T")


def _span(row, col, end_row, end_col, label) -> HeaderCell:
    return HeaderCell(row, col, end_row, end_col, label)


def _cell(row, col, label) -> HeaderCell:
    return HeaderCell(row, col, row, col, label)


def _level_1() -> List[HeaderCell]:
    return [
        _span(5, 1, 10, 1, "NO."),
        _span(5, 2, 10, 2, "PUSKESMAS"),
        _span(5, 3, 10, 3, "JUMLAH DESA / KELURAHAN"),
        _span(5, 4, 10, 4, "JUMLAH POSYANDU LANSIA"),
        _span(5, 5, 5, 16, "SASARAN"),
        _span(5, 17, 5, 61, "PELAYANAN KESEHATAN"),
        _span(5, 62, 5, 70, "SARANA"),
        _span(5, 71, 5, 74, "SDM"),
    ]


def _level_2() -> List[HeaderCell]:
    return [
        _span(6, 5, 7, 7, "JUMLAH\nPRA LANSIA\n(45-59 TAHUN)"),
        _span(6, 8, 7, 10, "JUMLAH LANSIA\n( ≥ 60 TAHUN)"),
        _span(6, 11, 7, 13, "JUMLAH LANSIA RISTI (≥ 70 TAHUN)"),
        _span(6, 14, 7, 16, "JUMLAH  YANG DIBINA/ YANG MENDAPAT PELAYANAN KESEHATAN"),
        _span(6, 17, 6, 43, "LANSIA (≥ 60 TAHUN) YANG DISKRINING KESEHATAN SESUAI STANDAR"),
        _span(6, 44, 6, 53, "JUMLAH LANSIA DENGAN TINGKAT KEMANDIRIAN"),
        _span(6, 54, 7, 55, "JUMLAH LANSIA YANG DIBERDAYAKAN"),
        _span(6, 56, 6, 60, "JUMLAH KELOMPOK LANSIA/ POSYANDU LANSIA/ POSBINDU"),
        _span(6, 61, 10, 61, "JUMLAH PANTI WERDHA YANG DIBINA"),
        _span(6, 62, 6, 70, "PUSKESMAS"),
        _span(6, 71, 6, 74, "JUMLAH TENAGA YANG MENDAPATKAN PELATIHAN LANSIA GERIATRI"),
    ]


def _level_3() -> List[HeaderCell]:
    cells = []
    for i, band in enumerate(SCREENING_BANDS):
        first = SCREENING_FIRST + i * SCREENING_BAND_WIDTH
        cells.append(_span(7, first, 7, first + SCREENING_BAND_WIDTH - 1, band))
    for i, label in enumerate(TIER_LABELS):
        first = TIERS_FIRST + i * 2
        cells.append(_span(7, first, 7, first + 1, label))
    for i, label in enumerate(("PRATAMA", "MADYA", "PURNAMA", "MANDIRI", "TOTAL")):
        cells.append(_span(7, MANUAL_FIRST + i, 10, MANUAL_FIRST + i, label))
    cells += [
        _span(7, 62, 7, 64, "JUMLAH PUSKESMAS"),
        _span(7, 65, 8, 66, "PUSKESMAS YANG MELAKSANAKAN PELAYANAN KESEHATAN SANTUN LANSIA"),
        _span(7, 67, 8, 68, "PUSKESMAS DENGAN POSYANDU LANSIA AKTIF"),
        _span(7, 69, 8, 70, "PUSKESMAS YANG MELAKSANAKAN LONG TERM CARE"),
        _span(7, 71, 7, 72, "DOKTER"),
        _span(7, 73, 7, 74, "PERAWAT"),
    ]
    return cells


def _level_4() -> List[HeaderCell]:
    cells = []
    for i in range(12):
        cells.append(_span(8, SASARAN_FIRST + i, 9, SASARAN_FIRST + i, GENDERS[i % 3]))
    for band in range(len(SCREENING_BANDS)):
        for p, period in enumerate(PERIODS):
            first = SCREENING_FIRST + band * SCREENING_BAND_WIDTH + p * 3
            cells.append(_span(8, first, 8, first + 2, period))
    for i in range(len(TIER_LABELS)):
        first = TIERS_FIRST + i * 2
        cells.append(_span(8, first, 10, first, "ABSOLUT"))
        cells.append(_span(8, first + 1, 10, first + 1, "%"))
    cells += [
        _span(8, 54, 10, 54, "ABSOLUT"),
        _span(8, 55, 10, 55, "%"),
    ]
    for i, period in enumerate(PERIODS):
        cells.append(_span(8, 62 + i, 10, 62 + i, period))
    for col in (71, 73):
        cells.append(_span(8, col, 10, col, "Abs."))
        cells.append(_span(8, col + 1, 10, col + 1, "%"))
    return cells


def _level_5() -> List[HeaderCell]:
    cells = []
    for i in range(len(SCREENING_BANDS) * SCREENING_BAND_WIDTH):
        cells.append(_cell(9, SCREENING_FIRST + i, GENDERS[i % 3]))
    for col in (65, 67, 69):
        cells.append(_span(9, col, 10, col, "Abs."))
        cells.append(_span(9, col + 1, 10, col + 1, "%"))
    return cells


def _level_6() -> List[HeaderCell]:
    return [_cell(10, col, "Abs.") for col in range(SASARAN_FIRST, TIERS_FIRST)]


HEADER_CELLS: List[HeaderCell] = (
    _level_1() + _level_2() + _level_3() + _level_4() + _level_5() + _level_6()
)
