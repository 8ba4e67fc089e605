"""Request logging middleware with a per-request id bound into structlog context."""
from __future__ import annotations
import time
from uuid import uuid4
import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
QUIET_PATHS = frozenset({"/health"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request once, and turn unhandled errors into a JSON 500.

    The caller's ``X-Request-ID`` (or a fresh one) is bound into structlog's
    context for the duration of the request, so every log line emitted while
    handling it carries ``request_id``. The id is echoed on the response.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start = time.monotonic()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_error",
                method=request.method,
                path=request.url.path,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=int((time.monotonic() - start) * 1000),
            )
            response = JSONResponse(status_code=500, content={"detail": "Internal server error"})
        else:
            log = logger.debug if request.url.path in QUIET_PATHS else logger.info
            log(
                "request",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=int((time.monotonic() - start) * 1000),
            )
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
