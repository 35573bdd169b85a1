"""FastAPI application"""

import io
import logging
import re
from typing import List, Optional

from fastapi import FastAPI, UploadFile, File, Depends, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from core.models import (
    CamelModel, CellValue, UploadedFile, WorkbookDraft, WorksheetValidation,
    ValidationSummary, CreateReportRequest
)
from core.interfaces import ReportRepository
from core.exceptions import (
    LansiaReportError, FileTooLargeError, IntakeError, PayloadError, ValidationError, NotFoundError
)
from db.repository import create_repository
from orchestrator import Orchestrator
from stages.s3_validation import EditSession
from utils.log import setup_logging
from config import settings
from .drafts import DraftStore, DraftEntry


setup_logging()
logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

app = FastAPI(
    title="Laporan Lansia API",
    description="Elderly health record intake and monthly report regeneration",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─────────────────────────────────────────────────────────────
# Dependencies
# ─────────────────────────────────────────────────────────────

_repository: Optional[ReportRepository] = None
_draft_store = DraftStore()


def get_repository() -> ReportRepository:
    global _repository
    if _repository is None:
        _repository = create_repository()
    return _repository


def get_draft_store() -> DraftStore:
    return _draft_store


def get_orchestrator(repository: ReportRepository = Depends(get_repository)) -> Orchestrator:
    return Orchestrator(repository)


# ─────────────────────────────────────────────────────────────
# Request / response bodies
# ─────────────────────────────────────────────────────────────

class DraftView(CamelModel):
    """Draft with validation of every worksheet and of the active one"""
    draft: WorkbookDraft
    summaries: List[ValidationSummary]
    validation: WorksheetValidation


class CellEdit(CamelModel):
    row_id: str
    column: str
    value: CellValue = None


class ActiveWorksheet(CamelModel):
    index: int


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


def _draft_view(entry: DraftEntry) -> dict:
    summaries = []
    for i, ws in enumerate(entry.draft.worksheets):
        if i == entry.draft.active_worksheet_index:
            summaries.append(entry.session.summary())
        else:
            summaries.append(EditSession(ws).summary())
    return _dump(DraftView(draft=entry.draft, summaries=summaries, validation=entry.validation()))


def _download_name(kabupaten: str, bulan_tahun: str) -> str:
    def part(text: str) -> str:
        return re.sub(r"[^A-Za-z0-9]+", "_", text or "").strip("_")
    stem = "_".join(p for p in ("laporan_lansia", part(kabupaten), part(bulan_tahun)) if p)
    return f"{stem}.xlsx"


# ─────────────────────────────────────────────────────────────
# Error mapping
# ─────────────────────────────────────────────────────────────

def _status_for(exc: LansiaReportError) -> int:
    if isinstance(exc, FileTooLargeError):
        return 413
    if isinstance(exc, (IntakeError, PayloadError, ValidationError)):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    return 500


@app.exception_handler(LansiaReportError)
async def service_error_handler(request: Request, exc: LansiaReportError):
    status = _status_for(exc)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content={"message": str(exc)})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Payload tidak valid.", "errors": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]


# ─────────────────────────────────────────────────────────────
# Routes
# ─────────────────────────────────────────────────────────────

@app.get("/api/health")
async def health(repository: ReportRepository = Depends(get_repository)):
    return {"status": "ok", "storage": repository.backend}


@app.post("/api/uploads")
async def upload_workbook(
    file: UploadFile = File(...),
    orchestrator: Orchestrator = Depends(get_orchestrator),
    store: DraftStore = Depends(get_draft_store),
):
    """Parse an uploaded workbook into a draft for review"""
    # One byte past the cap is enough for the size check to reject
    content = await file.read(orchestrator.receiver.max_bytes + 1)
    upload = UploadedFile(file_name=file.filename or "upload", content=content)

    try:
        draft = await orchestrator.ingest(upload)
    except IntakeError as e:
        logger.info("Upload %s rejected: %s", upload.file_name, e)
        raise

    entry = store.add(draft)
    logger.info(
        "Draft %s created from %s (%d worksheet(s))",
        draft.draft_id, upload.file_name, draft.usable_sheet_count
    )
    return _draft_view(entry)


@app.get("/api/drafts/{draft_id}")
async def get_draft(draft_id: str, store: DraftStore = Depends(get_draft_store)):
    return _draft_view(store.get(draft_id))


@app.put("/api/drafts/{draft_id}/active")
async def set_active_worksheet(
    draft_id: str,
    body: ActiveWorksheet,
    store: DraftStore = Depends(get_draft_store),
):
    entry = store.get(draft_id)
    entry.set_active(body.index)
    return _draft_view(entry)


@app.patch("/api/drafts/{draft_id}/cells")
async def edit_cell(draft_id: str, body: CellEdit, store: DraftStore = Depends(get_draft_store)):
    validation = store.get(draft_id).set_cell(body.row_id, body.column, body.value)
    return _dump(validation)


@app.post("/api/drafts/{draft_id}/commit")
async def commit_edits(draft_id: str, store: DraftStore = Depends(get_draft_store)):
    entry = store.get(draft_id)
    entry.commit()
    return _draft_view(entry)


@app.post("/api/drafts/{draft_id}/discard")
async def discard_edits(draft_id: str, store: DraftStore = Depends(get_draft_store)):
    entry = store.get(draft_id)
    entry.discard()
    return _draft_view(entry)


@app.post("/api/drafts/{draft_id}/confirm", status_code=201)
async def confirm_draft(
    draft_id: str,
    x_user_id: Optional[str] = Header(None),
    orchestrator: Orchestrator = Depends(get_orchestrator),
    store: DraftStore = Depends(get_draft_store),
):
    """Store the draft as a report; refused while any row is in error"""
    entry = store.get(draft_id)
    if entry.session.pending_edits:
        entry.commit()
    response = await orchestrator.confirm_draft(entry.draft, created_by=x_user_id)
    store.remove(draft_id)
    return _dump(response)


@app.delete("/api/drafts/{draft_id}")
async def cancel_draft(draft_id: str, store: DraftStore = Depends(get_draft_store)):
    store.remove(draft_id)
    return {"message": "Import dibatalkan."}


@app.post("/api/elderly-reports", status_code=201)
async def create_report(
    body: CreateReportRequest,
    x_user_id: Optional[str] = Header(None),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    response = await orchestrator.create_report(body, created_by=x_user_id)
    return _dump(response)


@app.get("/api/elderly-reports")
async def list_reports(orchestrator: Orchestrator = Depends(get_orchestrator)):
    items = await orchestrator.list_reports()
    return {"items": [_dump(item) for item in items]}


@app.get("/api/elderly-reports/summary")
async def report_summary(orchestrator: Orchestrator = Depends(get_orchestrator)):
    return {"summary": _dump(await orchestrator.summary())}


@app.get("/api/elderly-reports/{report_id}")
async def get_report(report_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)):
    return {"item": _dump(await orchestrator.get_report(report_id))}


@app.get("/api/elderly-reports/{report_id}/download")
async def download_report(report_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Regenerate the workbook from stored rows; never served from the cache"""
    bundle, content = await orchestrator.render_report(report_id)
    filename = _download_name(bundle.kabupaten, bundle.bulan_tahun)
    return StreamingResponse(
        io.BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
