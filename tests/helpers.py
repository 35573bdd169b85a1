"""Workbook and worksheet builders shared by the tests"""

import io
from typing import List, Optional, Sequence

from openpyxl import Workbook

from core.models import WorksheetPayload


HEADER = ["NO", "NAMA", "NIK", "UMUR", "JENIS KELAMIN", "SKRINING"]


def meta_rows(kabupaten: str = "Kab. Example", puskesmas: str = "Puskesmas A",
              bulan_tahun: str = "Januari/2025") -> List[list]:
    """Title row plus the three metadata rows, labels in A and values in D"""
    return [
        ["LAPORAN BULANAN KESEHATAN LANSIA"],
        ["KABUPATEN", "", ":", kabupaten],
        ["PUSKESMAS", "", ":", puskesmas],
        ["BULAN/TAHUN", "", ":", bulan_tahun],
    ]


def facility_sheet(data: Sequence[Sequence], header: Optional[Sequence[str]] = None, **meta) -> List[list]:
    return meta_rows(**meta) + [list(header or HEADER)] + [list(row) for row in data]


def workbook_bytes(sheets: Sequence[tuple]) -> bytes:
    """Serialize (title, rows) pairs to .xlsx bytes"""
    wb = Workbook()
    wb.remove(wb.active)
    for title, rows in sheets:
        ws = wb.create_sheet(title=title)
        for row in rows:
            ws.append(list(row))
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def make_payload(keys: Sequence[str], rows: Sequence[dict], **fields) -> WorksheetPayload:
    """Worksheet with generated row ids"""
    row_data = [{"id": f"r{i + 1}", **row} for i, row in enumerate(rows)]
    return WorksheetPayload(
        worksheet_name=fields.pop("worksheet_name", "Sheet1"),
        header_keys=list(keys),
        row_data=row_data,
        **fields,
    )
