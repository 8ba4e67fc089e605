"""Batch ingestion route."""
from __future__ import annotations
import structlog
from fastapi import APIRouter, Depends, HTTPException
from ...config import Settings
from ...ingestion.service import BatchIngestionService
from ...models.ingest import IngestRequest, IngestResponse
from ...storage.database import get_session
from ..dependencies import get_settings

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.post("/ingest-bills", response_model=IngestResponse)
async def ingest_bills(
    request: IngestRequest,
    session=Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """Store a batch of approved bills for one organisation and utility.

    Failures are reported per item; the rest of the batch is still written.
    """
    if not request.items:
        logger.warning("ingest_request_empty", org_id=str(request.org_id), utility=request.utility.value)
        raise HTTPException(status_code=400, detail="No items to ingest")

    service = BatchIngestionService(session, settings)
    response = await service.ingest(request)
    await session.commit()
    logger.info("ingest_committed", org_id=str(request.org_id), failed=response.summary.failed)
    return response
