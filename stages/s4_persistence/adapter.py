"""Stage 4: Persistence - Bundle assembly, address flags and storage"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from core.interfaces import Stage, ReportRepository
from core.models import (
    CreateReportRequest, CreateReportResponse, ReportBundle, WorksheetPayload, WorkbookDraft
)
from core.enums import ReportStatus
from core.exceptions import PayloadError
from utils.columns import classify_columns
from utils.keys import is_blank
from stages.s6_report.emitter import render_bundle
from config import settings


logger = logging.getLogger(__name__)


def apply_address_flags(
    payload: WorksheetPayload,
    present: str = None,
    absent: str = None
) -> WorksheetPayload:
    """
    Replace free-text address details with presence markers

    Only columns right of the "alamat" column that carry no other role are
    rewritten; identifier, age, gender, name, date, service and tier columns
    keep their values.
    """
    present = present or settings.ADDRESS_PRESENT_MARKER
    absent = absent or settings.ADDRESS_ABSENT_MARKER

    roles = classify_columns(payload.header_keys, payload.header_labels)
    targets = roles.address_detail_keys()
    if not targets:
        return payload

    rows = []
    for row in payload.row_data:
        updated = dict(row)
        for key in targets:
            updated[key] = absent if is_blank(row.get(key)) else present
        rows.append(updated)

    return payload.model_copy(update={"row_data": rows})


def _legacy_worksheet(request: CreateReportRequest) -> WorksheetPayload:
    """Single-sheet body with the sheet fields at the top level"""
    if is_blank(request.puskesmas):
        raise PayloadError("kabupaten, puskesmas, bulanTahun wajib.")
    if not request.header_keys:
        raise PayloadError("headerKeys wajib dan tidak boleh kosong.")
    if not request.row_data:
        raise PayloadError("rowData kosong. Tidak ada data untuk disimpan.")

    return WorksheetPayload(
        worksheet_name=(request.source_sheet_name or request.puskesmas or "").strip(),
        kabupaten=request.kabupaten.strip(),
        puskesmas=request.puskesmas.strip(),
        bulan_tahun=request.bulan_tahun.strip(),
        meta_pairs=request.meta_pairs,
        header_keys=request.header_keys,
        header_labels=request.header_labels or list(request.header_keys),
        header_order=request.header_order or list(request.header_keys),
        row_data=request.row_data,
        file_name=(request.file_name or "").strip() or None,
        source_sheet_name=(request.source_sheet_name or "").strip() or None,
    )


def request_worksheets(request: CreateReportRequest) -> List[WorksheetPayload]:
    """Worksheets of a create-report body, modern or legacy shape"""
    if request.worksheets is not None:
        return list(request.worksheets)
    return [_legacy_worksheet(request)]


def build_bundle(request: CreateReportRequest, created_by: Optional[str] = None) -> ReportBundle:
    """
    Validate a create-report body and assemble the bundle to store

    Raises:
        PayloadError: blank region or month-year, incomplete legacy body,
            or no worksheet with both columns and rows
    """
    kabupaten = (request.kabupaten or "").strip()
    bulan_tahun = (request.bulan_tahun or "").strip()
    if not kabupaten or not bulan_tahun:
        raise PayloadError("kabupaten dan bulanTahun wajib diisi.")

    worksheets = [
        apply_address_flags(ws)
        for ws in request_worksheets(request)
        if ws.header_keys and ws.row_data
    ]
    if not worksheets:
        raise PayloadError("Tidak ada worksheet dengan data untuk disimpan.")

    status = request.status if request.status == ReportStatus.DRAFT else ReportStatus.IMPORTED

    return ReportBundle(
        file_name=(request.file_name or "").strip(),
        kabupaten=kabupaten,
        bulan_tahun=bulan_tahun,
        worksheets=worksheets,
        status=status,
        created_by=created_by,
    )


def request_from_draft(draft: WorkbookDraft) -> CreateReportRequest:
    return CreateReportRequest(
        file_name=draft.file_name,
        kabupaten=draft.kabupaten,
        bulan_tahun=draft.bulan_tahun,
        worksheets=draft.worksheets,
    )


def report_cache_path(output_dir: Optional[str] = None) -> Path:
    """Timestamped location for a cached report file"""
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    directory = Path(output_dir) / "reports" if output_dir else settings.get_output_path("reports")
    directory.mkdir(parents=True, exist_ok=True)
    return directory / f"laporan_lansia_{stamp}.xlsx"


class ReportPersistence(Stage[CreateReportRequest, CreateReportResponse]):
    """Stage 4: Persistence - Store a bundle and cache its report"""

    @property
    def name(self) -> str:
        return "Persistence"

    @property
    def stage_number(self) -> int:
        return 4

    def __init__(self, repository: ReportRepository, output_dir: Optional[str] = None):
        self.repository = repository
        self.output_dir = output_dir

    def validate_input(self, input_data: CreateReportRequest) -> bool:
        return isinstance(input_data, CreateReportRequest)

    async def execute(self, input_data: CreateReportRequest) -> CreateReportResponse:
        return await self.persist(input_data)

    async def persist(self, request: CreateReportRequest, created_by: Optional[str] = None) -> CreateReportResponse:
        bundle = build_bundle(request, created_by)
        stored = await self.repository.create(bundle)
        logger.info(
            "Stored report %s: %s %s, %d worksheet(s)",
            stored.id, stored.kabupaten, stored.bulan_tahun, len(stored.worksheets)
        )

        excel_path = await self._cache_report(stored)

        return CreateReportResponse(
            report_id=stored.id,
            worksheet_count=len(stored.worksheets),
            excel_path=excel_path,
        )

    async def _cache_report(self, bundle: ReportBundle) -> Optional[str]:
        """Best effort: the stored rows stay authoritative if this fails"""
        try:
            content = await asyncio.to_thread(render_bundle, bundle)
            path = report_cache_path(self.output_dir)
            path.write_bytes(content)
            await self.repository.set_generated_report(bundle.id, str(path))
        except Exception:
            logger.exception("Report generation failed for %s", bundle.id)
            return None

        logger.info("Cached report %s at %s", bundle.id, path)
        return str(path)
