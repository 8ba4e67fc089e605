"""Shared test fixtures."""
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker
from bill_ingestion.config import Settings
from bill_ingestion.storage.database import create_engine
from bill_ingestion.storage.models import Base

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def settings():
    """Test settings backed by an in-memory SQLite database."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        registry_base_url="https://registry.test/ws",
        registry_username="tester",
        registry_password="secret",
        registry_account_id="",
        registry_min_interval=0.0,
        registry_max_attempts=4,
    )


@pytest_asyncio.fixture
async def engine():
    engine = create_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session
