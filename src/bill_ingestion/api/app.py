"""FastAPI application factory."""
from __future__ import annotations
from contextlib import asynccontextmanager
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from ..config import Settings
from ..registry.client import RegistryError
from ..storage.database import close_db, create_all, init_db
from ..utils.logging import setup_logging
from .middleware import RequestLoggingMiddleware
from .routes import extractions, health, ingest, registry

logger = structlog.get_logger(__name__)


async def registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
    logger.error("registry_unavailable", path=request.url.path, status_code=exc.status_code, error=str(exc))
    return JSONResponse(status_code=502, content={"detail": f"Registry unavailable: {exc}"})


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    With ``create_schema`` set, tables are created at startup; otherwise the
    schema is expected to be managed by Alembic.
    """
    if settings is None:
        settings = Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level, settings.log_json)
        init_db(settings.database_url.get_secret_value())
        if settings.create_schema:
            await create_all()
        logger.info("api_started", create_schema=settings.create_schema)
        yield
        await close_db()
        logger.info("api_stopped")

    app = FastAPI(
        title="Bill Ingestion API",
        description="Utility bill extraction, building resolution, ingestion and registry sync",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_exception_handler(RegistryError, registry_error_handler)

    app.include_router(health.router, tags=["health"])
    app.include_router(extractions.router, prefix="/extractions", tags=["extractions"])
    app.include_router(ingest.router, tags=["ingest"])
    app.include_router(registry.router, prefix="/registry", tags=["registry"])

    return app
