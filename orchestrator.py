"""Pipeline orchestrator"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from core.models import (
    UploadedFile, RawWorkbook, SheetLayout, WorkbookDraft, WorksheetValidation,
    CreateReportRequest, CreateReportResponse, ReportBundle, ReportSummary
)
from core.interfaces import ReportRepository
from core.exceptions import LansiaReportError, StageError, NotFoundError, ValidationError
from stages import (
    Receiver, HeaderDetector, SheetNormalizer, EditSession,
    ReportPersistence, ReportEmitter
)
from stages.s4_persistence import request_from_draft
from config import settings


logger = logging.getLogger(__name__)


@dataclass
class IngestContext:
    """State passed through the intake stages"""
    upload: UploadedFile
    workbook: Optional[RawWorkbook] = None
    layouts: List[Optional[SheetLayout]] = field(default_factory=list)
    draft: Optional[WorkbookDraft] = None


class Orchestrator:
    """Pipeline coordinator"""

    def __init__(self, repository: ReportRepository, output_dir: Optional[str] = None):
        self.repository = repository

        self.receiver = Receiver()
        self.detector = HeaderDetector()
        self.normalizer = SheetNormalizer()
        self.persistence = ReportPersistence(repository, output_dir)
        self.emitter = ReportEmitter()

    # ── intake ────────────────────────────────────────────────

    def build_draft(self, upload: UploadedFile) -> IngestContext:
        """Stages 0-2, synchronously; parsing is CPU bound"""
        ctx = IngestContext(upload=upload)
        try:
            ctx.workbook = self.receiver.receive(upload)
            ctx.layouts = [self.detector.detect(sheet) for sheet in ctx.workbook.sheets]
            ctx.draft = self.normalizer.normalize(ctx.workbook, ctx.layouts)
        except LansiaReportError:
            raise
        except Exception as e:
            raise StageError(self._failed_stage(ctx), f"Unexpected error: {e}") from e
        return ctx

    @staticmethod
    def _failed_stage(ctx: IngestContext) -> int:
        if ctx.workbook is None:
            return 0
        if not ctx.layouts:
            return 1
        return 2

    async def ingest(self, upload: UploadedFile) -> WorkbookDraft:
        """Parse an upload into a draft without blocking the event loop"""
        ctx = await asyncio.to_thread(self.build_draft, upload)
        return ctx.draft

    @staticmethod
    def validate_draft(draft: WorkbookDraft) -> List[WorksheetValidation]:
        """Validation of every worksheet as stored in the draft"""
        return [EditSession(ws).validate() for ws in draft.worksheets]

    # ── persistence ───────────────────────────────────────────

    async def create_report(
        self,
        request: CreateReportRequest,
        created_by: Optional[str] = None
    ) -> CreateReportResponse:
        return await self.persistence.persist(request, created_by)

    async def confirm_draft(
        self,
        draft: WorkbookDraft,
        created_by: Optional[str] = None
    ) -> CreateReportResponse:
        """Persist a draft, refused while any worksheet has a row in error"""
        if not any(ws.row_data for ws in draft.worksheets):
            raise ValidationError("Tidak ada data untuk diimpor.")

        for validation in self.validate_draft(draft):
            if validation.summary.error > 0:
                first = next((i for i in validation.issues if i.blocking), None)
                raise ValidationError(
                    "Beberapa record memiliki kesalahan wajib. Perbaiki sebelum konfirmasi.",
                    row_id=first.row_id if first else None,
                    column=first.column if first else None,
                )

        return await self.create_report(request_from_draft(draft), created_by)

    # ── reports ───────────────────────────────────────────────

    async def get_report(self, report_id: str) -> ReportBundle:
        bundle = await self.repository.get(report_id)
        if bundle is None:
            raise NotFoundError("Not found.")
        return bundle

    async def list_reports(self, limit: int = None) -> List[ReportBundle]:
        return await self.repository.list_recent(limit or settings.REPORT_LIST_LIMIT)

    async def summary(self) -> ReportSummary:
        """Figures for the most recently stored bundle"""
        latest = await self.repository.list_recent(1)
        if not latest:
            return ReportSummary()
        bundle = latest[0]
        return ReportSummary(
            total_measured_this_month=sum(len(ws.row_data) for ws in bundle.worksheets),
            latest_bulan_tahun=bundle.bulan_tahun or None,
        )

    async def render_report(self, report_id: str) -> Tuple[ReportBundle, bytes]:
        """Regenerate the workbook of a stored bundle"""
        bundle = await self.get_report(report_id)
        content = await self.emitter.execute(bundle)
        logger.info("Regenerated report %s for download", report_id)
        return bundle, content
