"""SQLAlchemy async engine and session factory."""

from __future__ import annotations

from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

_engine = None
_session_factory = None


def get_engine():
    """Return the global engine, or None if not initialized."""
    return _engine


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy
    # emit BEGIN itself.
    sync_engine = engine.sync_engine

    @event.listens_for(sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_engine(database_url: str) -> AsyncEngine:
    """Build an async engine; SQLite URLs get a shared in-process connection."""
    if database_url.startswith("sqlite"):
        engine = create_async_engine(
            database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        _enable_sqlite_savepoints(engine)
        return engine
    return create_async_engine(database_url, pool_size=10, max_overflow=20)


def init_db(database_url: str):
    """Initialise the async engine and session factory.

    Must be called once at application startup before any database access.
    """
    global _engine, _session_factory
    _engine = create_engine(database_url)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)


async def create_all():
    """Create every table on the current engine (local development and tests)."""
    from .models import Base

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncSession:
    """FastAPI-compatible dependency that yields an ``AsyncSession``."""
    async with _session_factory() as session:
        yield session


@asynccontextmanager
async def AsyncSessionLocal():
    """Create a new async session, initializing engine from settings if needed.

    Usage:
        async with AsyncSessionLocal() as session:
            # use session
    """
    if _session_factory is None:
        from ..config import Settings
        init_db(Settings().database_url.get_secret_value())

    async with _session_factory() as session:
        yield session


async def close_db():
    """Dispose of the engine connection pool.  Call at shutdown."""
    if _engine:
        await _engine.dispose()
