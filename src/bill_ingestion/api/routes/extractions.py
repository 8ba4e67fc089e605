"""Bill upload and extraction routes."""
from __future__ import annotations
from uuid import UUID
import structlog
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from starlette.concurrency import run_in_threadpool
from ...config import Settings
from ...pipeline import BillExtractionPipeline, DocumentResult, build_ingest_requests
from ...storage.database import get_session
from ...storage.models import BillUpload
from ...storage.repositories import BillUploadRepo
from ..dependencies import get_settings

router = APIRouter()
logger = structlog.get_logger(__name__)


def _result_json(result: DocumentResult) -> dict:
    return {
        "vendor": result.vendor.value,
        "method": result.method,
        "page_count": result.page_count,
        "document_total": result.document_total,
        "scores": result.scores,
        "hints": result.hints,
        "processing_time_ms": result.processing_time_ms,
        "items": [item.model_dump(mode="json") for item in result.items],
    }


def _serialize_upload(upload: BillUpload) -> dict:
    return {
        "id": str(upload.id),
        "filename": upload.filename,
        "file_hash": upload.file_hash,
        "vendor": upload.vendor,
        "classification_method": upload.classification_method,
        "item_count": upload.item_count,
        "created_at": upload.created_at.isoformat() if upload.created_at else None,
        "result": upload.result_json,
    }


@router.post("")
async def upload_bill(
    file: UploadFile = File(...),
    org_id: UUID | None = Query(None),
    approved: list[int] | None = Query(None),
    session=Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """Extract bill items from an uploaded PDF.

    The extraction is stored as a bill upload. When ``org_id`` is given the
    response also carries ready-to-submit ingestion requests for the
    auto-approved items, or for the item indexes listed in ``approved``.
    """
    if not file.filename or not file.filename.lower().endswith(".pdf"):
        raise HTTPException(status_code=400, detail="Only PDF files are accepted")

    file_bytes = await file.read()
    if len(file_bytes) == 0:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(file_bytes) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File too large (max {settings.max_upload_bytes // (1024 * 1024)}MB)",
        )

    pipeline = BillExtractionPipeline(settings)
    try:
        result = await run_in_threadpool(pipeline.process, file_bytes, file.filename)
    except ValueError as e:
        logger.warning("extraction_rejected", filename=file.filename, error=str(e))
        raise HTTPException(status_code=400, detail=str(e))

    repo = BillUploadRepo(session)
    upload = await repo.create(BillUpload(
        file_hash=result.file_hash,
        filename=file.filename,
        vendor=result.vendor.value,
        classification_method=result.method,
        item_count=len(result.items),
        result_json=_result_json(result),
    ))
    await session.commit()
    logger.info("bill_upload_stored", upload_id=str(upload.id), filename=file.filename, items=len(result.items))

    body = _serialize_upload(upload)
    if org_id is not None:
        requests = build_ingest_requests(
            org_id, result.items, bill_upload_id=upload.id,
            approved=set(approved) if approved is not None else None,
        )
        body["ingest_requests"] = [r.model_dump(mode="json") for r in requests]
    return body


@router.get("")
async def list_uploads(
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    session=Depends(get_session),
):
    """List stored bill uploads, newest first."""
    repo = BillUploadRepo(session)
    uploads = await repo.list_uploads(offset=offset, limit=limit)
    return {
        "items": [_serialize_upload(u) for u in uploads],
        "offset": offset,
        "limit": limit,
    }


@router.get("/{upload_id}")
async def get_upload(upload_id: UUID, session=Depends(get_session)):
    repo = BillUploadRepo(session)
    upload = await repo.get_by_id(upload_id)
    if not upload:
        raise HTTPException(status_code=404, detail="Bill upload not found")
    return _serialize_upload(upload)
