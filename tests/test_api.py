import io

from openpyxl import load_workbook
from starlette.datastructures import UploadFile as StarletteUploadFile

from config import settings
from stages.s6_report import layout
from tests.helpers import facility_sheet, meta_rows, workbook_bytes, HEADER


XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def upload(client, content: bytes, name: str = "laporan.xlsx"):
    return client.post("/api/uploads", files={"file": (name, content, XLSX)})


def scenario_a_workbook() -> bytes:
    rows = [
        ["LAPORAN BULANAN"],
        ["KABUPATEN", "", ":", "Kab. Example"],
        ["PUSKESMAS", "", ":", "Puskesmas A"],
        ["BULAN/TAHUN", "", ":", "Januari 2025"],
        HEADER,
        [1, "Budi", "1234567890123456", 65, "L", "Yes"],
    ]
    return workbook_bytes([("Puskesmas A", rows)])


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "storage": "memory"}


def test_scenario_a_upload_confirm_download(client):
    response = upload(client, scenario_a_workbook())
    assert response.status_code == 200
    view = response.json()

    draft = view["draft"]
    assert draft["kabupaten"] == "Kab. Example"
    assert draft["bulanTahun"] == "Januari 2025"
    assert draft["usableSheetCount"] == 1
    worksheet = draft["worksheets"][0]
    assert worksheet["headerKeys"] == ["no", "nama", "nik", "umur", "jenis_kelamin", "skrining"]
    assert view["validation"]["summary"] == {"total": 1, "valid": 1, "error": 0}

    confirmed = client.post(f"/api/drafts/{draft['draftId']}/confirm", headers={"X-User-Id": "petugas-1"})
    assert confirmed.status_code == 201
    report_id = confirmed.json()["reportId"]
    assert confirmed.json()["worksheetCount"] == 1

    assert client.get(f"/api/drafts/{draft['draftId']}").status_code == 404

    download = client.get(f"/api/elderly-reports/{report_id}/download")
    assert download.status_code == 200
    assert download.headers["content-type"] == XLSX
    assert "laporan_lansia_Kab_Example_Januari_2025.xlsx" in download.headers["content-disposition"]

    ws = load_workbook(io.BytesIO(download.content))["Puskesmas A"]
    senior = [ws.cell(row=layout.DATA_ROW, column=c).value for c in (8, 9, 10)]
    screened = [ws.cell(row=layout.DATA_ROW, column=c).value for c in (29, 30, 31)]
    assert senior == [1, 0, 1]
    assert screened == [1, 0, 1]
    assert ws.cell(row=layout.DATA_ROW, column=2).value == "Puskesmas A"


def test_scenario_b_duplicate_identifier_blocks_confirm(client):
    content = workbook_bytes([("Depok", facility_sheet([
        [1, "Siti", "111", 65, "P", ""],
        [2, "Budi", "111", 70, "L", "ya"],
    ]))])
    view = upload(client, content).json()
    draft_id = view["draft"]["draftId"]

    validation = view["validation"]
    assert set(validation["rowStatus"].values()) == {"error"}
    assert [i["message"] for i in validation["issues"]] == ["NIK duplikat", "NIK duplikat"]

    refused = client.post(f"/api/drafts/{draft_id}/confirm")
    assert refused.status_code == 400
    assert refused.json()["message"] == (
        "Beberapa record memiliki kesalahan wajib. Perbaiki sebelum konfirmasi."
    )

    second_row = view["draft"]["worksheets"][0]["rowData"][1]["id"]
    edited = client.patch(
        f"/api/drafts/{draft_id}/cells",
        json={"rowId": second_row, "column": "nik", "value": "112"},
    )
    assert edited.status_code == 200
    assert edited.json()["summary"]["error"] == 0
    assert edited.json()["pendingEdits"] == 1

    confirmed = client.post(f"/api/drafts/{draft_id}/confirm")
    assert confirmed.status_code == 201

    stored = client.get(f"/api/elderly-reports/{confirmed.json()['reportId']}").json()["item"]
    assert [row["nik"] for row in stored["worksheets"][0]["rowData"]] == ["111", "112"]


def test_scenario_c_only_usable_sheets_count(client):
    content = workbook_bytes([
        ("Depok", facility_sheet([[1, "Siti", "111", 65, "P", "ya"]])),
        ("Kosong", meta_rows() + [HEADER]),
        ("Mlati", facility_sheet([[1, "Budi", "222", 61, "L", ""]], puskesmas="Mlati")),
    ])
    view = upload(client, content).json()

    assert view["draft"]["usableSheetCount"] == 2
    assert [ws["worksheetName"] for ws in view["draft"]["worksheets"]] == ["Depok", "Mlati"]
    assert len(view["summaries"]) == 2


def test_switch_worksheet_commit_and_discard(client):
    content = workbook_bytes([
        ("Depok", facility_sheet([[1, "Siti", "111", 65, "P", "ya"]])),
        ("Mlati", facility_sheet([[1, "Budi", "222", 61, "L", ""]])),
    ])
    draft_id = upload(client, content).json()["draft"]["draftId"]

    switched = client.put(f"/api/drafts/{draft_id}/active", json={"index": 1})
    assert switched.status_code == 200
    assert switched.json()["validation"]["worksheetName"] == "Mlati"
    row_id = switched.json()["draft"]["worksheets"][1]["rowData"][0]["id"]

    client.patch(f"/api/drafts/{draft_id}/cells", json={"rowId": row_id, "column": "umur", "value": 200})
    discarded = client.post(f"/api/drafts/{draft_id}/discard").json()
    assert discarded["validation"]["pendingEdits"] == 0
    assert discarded["draft"]["worksheets"][1]["rowData"][0]["umur"] == 61

    client.patch(f"/api/drafts/{draft_id}/cells", json={"rowId": row_id, "column": "umur", "value": 62})
    committed = client.post(f"/api/drafts/{draft_id}/commit").json()
    assert committed["draft"]["worksheets"][1]["rowData"][0]["umur"] == 62

    assert client.put(f"/api/drafts/{draft_id}/active", json={"index": 5}).status_code == 400


def test_cancel_draft(client):
    draft_id = upload(client, scenario_a_workbook()).json()["draft"]["draftId"]

    response = client.delete(f"/api/drafts/{draft_id}")
    assert response.status_code == 200
    assert response.json() == {"message": "Import dibatalkan."}
    assert client.delete(f"/api/drafts/{draft_id}").status_code == 404


def test_upload_too_large(client, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 1024 * 1024)
    response = upload(client, b"0" * (1024 * 1024 + 1))

    assert response.status_code == 413
    assert response.json()["message"] == "File terlalu besar. Maksimum 1MB."


def test_upload_reads_at_most_one_byte_past_limit(client, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 1024 * 1024)
    sizes = []
    original_read = StarletteUploadFile.read

    async def recording_read(self, size=-1):
        sizes.append(size)
        return await original_read(self, size)

    monkeypatch.setattr(StarletteUploadFile, "read", recording_read)
    response = upload(client, b"0" * (3 * 1024 * 1024))

    assert response.status_code == 413
    assert sizes == [1024 * 1024 + 1]


def test_upload_unreadable_or_unsupported(client):
    assert upload(client, b"not a workbook").status_code == 400
    assert upload(client, b"hello", name="catatan.txt").status_code == 400


def test_upload_without_data_rows(client):
    response = upload(client, workbook_bytes([("Kosong", meta_rows() + [HEADER])]))
    assert response.status_code == 400
    assert response.json()["message"] == "Tidak ada data yang dapat dibaca dari file."


def test_create_list_get_and_summary(client):
    body = {
        "kabupaten": "Sleman",
        "bulanTahun": "Maret 2025",
        "fileName": "laporan.xlsx",
        "worksheets": [{
            "worksheetName": "Depok",
            "puskesmas": "Depok",
            "headerKeys": ["nik", "umur", "jenis_kelamin"],
            "rowData": [
                {"id": "a", "nik": "1", "umur": 65, "jenis_kelamin": "L"},
                {"id": "b", "nik": "2", "umur": 50, "jenis_kelamin": "P"},
            ],
        }],
    }
    created = client.post("/api/elderly-reports", json=body)
    assert created.status_code == 201
    report_id = created.json()["reportId"]
    assert created.json()["excelPath"].endswith(".xlsx")

    items = client.get("/api/elderly-reports").json()["items"]
    assert [item["id"] for item in items] == [report_id]

    item = client.get(f"/api/elderly-reports/{report_id}").json()["item"]
    assert item["kabupaten"] == "Sleman"
    assert item["status"] == "generated"

    summary = client.get("/api/elderly-reports/summary").json()["summary"]
    assert summary["totalMeasuredThisMonth"] == 2
    assert summary["latestBulanTahun"] == "Maret 2025"


def test_persist_then_download_uses_stored_rows_only(client):
    body = {
        "kabupaten": "Sleman",
        "puskesmas": "Depok",
        "bulanTahun": "Maret 2025",
        "headerKeys": ["nik", "umur", "jenis_kelamin", "skrining"],
        "rowData": [
            {"nik": "1", "umur": 65, "jenis_kelamin": "L", "skrining": "ya"},
            {"nik": "1", "umur": 65, "jenis_kelamin": "L", "skrining": "ya"},
            {"nik": "2", "umur": 72, "jenis_kelamin": "P", "skrining": ""},
        ],
    }
    report_id = client.post("/api/elderly-reports", json=body).json()["reportId"]

    first = load_workbook(io.BytesIO(client.get(f"/api/elderly-reports/{report_id}/download").content))
    second = load_workbook(io.BytesIO(client.get(f"/api/elderly-reports/{report_id}/download").content))

    for wb in (first, second):
        ws = wb.worksheets[0]
        assert [ws.cell(row=layout.DATA_ROW, column=c).value for c in (8, 9, 10)] == [1, 1, 2]
        assert [ws.cell(row=layout.DATA_ROW, column=c).value for c in (11, 12, 13)] == [0, 1, 1]


def test_create_report_errors(client):
    missing = client.post("/api/elderly-reports", json={"kabupaten": "", "bulanTahun": "Maret 2025"})
    assert missing.status_code == 400
    assert missing.json()["message"] == "kabupaten dan bulanTahun wajib diisi."

    empty = client.post("/api/elderly-reports", json={
        "kabupaten": "Sleman", "puskesmas": "Depok", "bulanTahun": "Maret 2025",
        "headerKeys": ["nik"], "rowData": [],
    })
    assert empty.json()["message"] == "rowData kosong. Tidak ada data untuk disimpan."

    malformed = client.post("/api/elderly-reports", json={"kabupaten": "Sleman", "worksheets": "x"})
    assert malformed.status_code == 400
    assert malformed.json()["message"] == "Payload tidak valid."


def test_unknown_report(client):
    response = client.get("/api/elderly-reports/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"message": "Not found."}
    assert client.get("/api/elderly-reports/does-not-exist/download").status_code == 404


def test_summary_without_reports(client):
    summary = client.get("/api/elderly-reports/summary").json()["summary"]
    assert summary["totalMeasuredThisMonth"] == 0
    assert summary["latestBulanTahun"] is None
