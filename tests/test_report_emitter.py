import io
from datetime import date

import pytest
from openpyxl import load_workbook

from core.exceptions import ReportGenerationError
from core.models import ReportBundle, MetricsResult, GenderCounts, TierCount
from stages.s6_report import ReportEmitter, render_bundle, render_report
from stages.s6_report import layout
from stages.s6_report.emitter import ReportSheet, data_vector, parse_month_year, sheet_title
from tests.helpers import make_payload


TODAY = date(2025, 6, 1)


def sample_metrics():
    return MetricsResult(
        pre_senior=GenderCounts(L=1, P=2, T=3),
        senior=GenderCounts(L=4, P=5, T=9),
        high_risk_senior=GenderCounts(L=1, P=1, T=2),
        served=GenderCounts(L=2, P=3, T=5),
        screened_senior=GenderCounts(L=3, P=4, T=7),
        tier_a=TierCount(absolute=6, percent=66.67),
        empowered=TierCount(absolute=2, percent=22.22),
    )


def load(content: bytes):
    return load_workbook(io.BytesIO(content))


def test_parse_month_year():
    assert parse_month_year("januari 2025") == ("JANUARI", "2025")
    assert parse_month_year("", TODAY) == ("BULAN", "2025")
    assert parse_month_year("Maret", TODAY) == ("MARET", "2025")


def test_sheet_titles_are_legal_and_unique():
    used = set()
    assert sheet_title("Puskesmas/Depok", used) == "Puskesmas_Depok"
    assert sheet_title("puskesmas/depok", used) == "puskesmas_depok (2)"
    long_title = sheet_title("P" * 40, used)
    assert len(long_title) == 31
    assert sheet_title("", used) == "Data"


def test_data_vector_layout():
    row = data_vector("Depok I", sample_metrics())

    assert len(row) == layout.DATA_COLUMNS
    assert row[:4] == [1, "Depok I", None, None]
    assert row[4:16] == [1, 2, 3, 4, 5, 9, 1, 1, 2, 2, 3, 5]

    senior_band = layout.SCREENING_FIRST - 1 + layout.SCREENING_BAND_WIDTH
    assert row[senior_band:senior_band + 9] == [0, 0, 0, 3, 4, 7, 3, 4, 7]

    tiers = layout.TIERS_FIRST - 1
    assert row[tiers:tiers + 2] == [6, 66.67]
    empowered = layout.EMPOWERED_FIRST - 1
    assert row[empowered:empowered + 2] == [2, 22.22]
    assert row[layout.MANUAL_FIRST - 1:] == [None] * (layout.DATA_COLUMNS - layout.MANUAL_FIRST + 1)


def test_header_cells_do_not_overlap():
    seen = set()
    for cell in layout.HEADER_CELLS:
        for r in range(cell.row, cell.end_row + 1):
            for c in range(cell.col, cell.end_col + 1):
                assert (r, c) not in seen
                seen.add((r, c))
                assert layout.HEADER_FIRST_ROW <= r <= layout.HEADER_LAST_ROW
                assert 1 <= c <= layout.DATA_COLUMNS


def test_rendered_sheet_layout():
    content = render_report(
        ": Kab. Example", "Januari 2025",
        [ReportSheet(name="Depok I", facility="Depok I", metrics=sample_metrics())],
    )
    ws = load(content)["Depok I"]

    assert [ws.cell(row=r, column=1).value for r in (1, 2, 3)] == ["KABUPATEN", "TAHUN", "BULAN"]
    assert ws["C1"].value == "Kab. Example"
    assert ws["C2"].value == "2025"
    assert ws["C3"].value == "JANUARI"

    assert ws["A5"].value == "NO."
    assert ws["E5"].value == "SASARAN"
    merged = {str(rng) for rng in ws.merged_cells.ranges}
    assert "A5:A10" in merged
    assert "E5:P5" in merged

    assert ws.cell(row=layout.NUMBER_ROW, column=1).value == 1
    assert ws.cell(row=layout.NUMBER_ROW, column=107).value == 107

    assert ws.cell(row=layout.DATA_ROW, column=2).value == "Depok I"
    assert ws.cell(row=layout.DATA_ROW, column=8).value == 4
    assert ws.cell(row=layout.DATA_ROW, column=3).value is None

    assert ws.column_dimensions["A"].width == 5
    assert ws.column_dimensions["B"].width == 20
    assert ws.column_dimensions["E"].width == 12


def test_render_bundle_recomputes_from_rows():
    bundle = ReportBundle(
        kabupaten="Sleman",
        bulan_tahun="Maret 2025",
        worksheets=[
            make_payload(["nik", "umur", "jenis_kelamin", "skrining"], [
                {"nik": "1", "umur": 65, "jenis_kelamin": "L", "skrining": "ya"},
                {"nik": "1", "umur": 65, "jenis_kelamin": "L", "skrining": "ya"},
                {"nik": "2", "umur": 61, "jenis_kelamin": "P"},
            ], worksheet_name="Depok", puskesmas=": Depok"),
            make_payload(["nik"], [{"nik": "9"}], worksheet_name="Depok"),
        ],
    )
    wb = load(render_bundle(bundle, TODAY))

    assert wb.sheetnames == ["Depok", "Depok (2)"]
    ws = wb["Depok"]
    assert ws.cell(row=layout.DATA_ROW, column=2).value == "Depok"
    assert [ws.cell(row=layout.DATA_ROW, column=c).value for c in (8, 9, 10)] == [1, 1, 2]
    assert [ws.cell(row=layout.DATA_ROW, column=c).value for c in (29, 30, 31)] == [1, 0, 1]


def test_render_bundle_without_worksheets():
    with pytest.raises(ReportGenerationError):
        render_bundle(ReportBundle(kabupaten="Sleman", bulan_tahun="Maret 2025"))


@pytest.mark.asyncio
async def test_emitter_stage_returns_xlsx_bytes():
    bundle = ReportBundle(
        kabupaten="Sleman",
        bulan_tahun="Maret 2025",
        worksheets=[make_payload(["nik"], [{"nik": "1"}], worksheet_name="Depok")],
    )
    emitter = ReportEmitter(today=TODAY)

    assert emitter.validate_input(bundle)
    content = await emitter.execute(bundle)
    assert content[:2] == b"PK"
