"""Health check endpoint."""
from __future__ import annotations
import structlog
from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from ...storage.database import get_engine

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get("/health")
async def health_check():
    """Liveness plus a ``SELECT 1`` round trip to the database."""
    database = "not_initialized"
    engine = get_engine()
    if engine is not None:
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            database = "ok"
        except SQLAlchemyError as e:
            logger.warning("health_database_unavailable", error=str(e))
            database = "unavailable"
    return {
        "status": "ok" if database == "ok" else "degraded",
        "service": "bill-ingestion-api",
        "database": database,
    }
