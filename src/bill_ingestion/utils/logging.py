"""Structured logging setup using structlog."""

from __future__ import annotations

import logging
import sys

import structlog

# Libraries that log through the stdlib and are too chatty at INFO.
NOISY_LOGGERS = ("pdfminer", "httpx", "httpcore", "sqlalchemy.engine")


def setup_logging(log_level: str = "INFO", json_logs: bool = True):
    """Configure structlog for the process.

    JSON lines go to stdout by default; ``json_logs=False`` switches to the
    coloured console renderer for local runs. Stdlib loggers (uvicorn,
    pdfplumber's pdfminer, httpx) are routed to the same stream at the same
    level. Call once at process startup (API lifespan or CLI entry).
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
    )

    logging.basicConfig(level=level, stream=sys.stdout, format="%(levelname)s %(name)s %(message)s", force=True)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
