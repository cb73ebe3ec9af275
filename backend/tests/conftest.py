"""
Magic Movers Backend — Test Configuration (conftest.py)
=========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── store: In-memory movers/items (tests/fakes.py)
    ├── mover_service / item_service: Services wired to the in-memory store
    ├── mock_db_session: Mock AsyncSession for repository tests
    └── test_client: HTTPX AsyncClient against the app on a temporary SQLite file
"""

import os
import tempfile

# Override settings BEFORE any app imports so the engine never points at
# a real PostgreSQL instance
_TEST_DIR = tempfile.mkdtemp(prefix="magicmovers_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/health.db"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LOG_TO_FILE"] = "false"
os.environ["CAS_RETRY_MIN_WAIT"] = "0"
os.environ["CAS_RETRY_MAX_WAIT"] = "0"

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from fakes import FakeItemRepository, FakeMoverRepository, InMemoryStore  # noqa: E402


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def mover_service(store):
    from app.services.mover_service import MoverService
    return MoverService(FakeMoverRepository(store), FakeItemRepository(store), top_limit=3)


@pytest.fixture
def item_service(store):
    from app.services.item_service import ItemService
    return ItemService(FakeItemRepository(store), FakeMoverRepository(store))


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_cas(mock_db_session):
            mock_db_session.execute.return_value = MagicMock(rowcount=1)
            assert await SqlMoverRepository(mock_db_session).update_if_version(1, 1)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.get = AsyncMock()
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def test_client(tmp_path):
    """
    Provides an async HTTP test client for endpoint testing.

    Each test gets its own SQLite database file with the schema created from
    the ORM metadata. The request session dependency is overridden to use
    it, keeping the commit/rollback-per-request behaviour of get_db_session.
    """
    from app.database import Base, get_db_session
    from app.main import app
    from app.models import item, mover  # noqa: F401

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/movers.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    await engine.dispose()
