"""
Shared test fixtures for the attendance kiosk test suite.

Each test gets its own in-memory aiosqlite database and a pinned clock.
"""

import os
import sys
from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["TIMEZONE_OFFSET"] = "+00:00"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from kiosk.api.v1.deps import get_db, get_now
from kiosk.db.base import Base
from kiosk.main import app
from kiosk.services.scan import EmployeeLocks

# Monday 2024-03-04, ten past eight: inside the grace period.
MONDAY_0810 = datetime(2024, 3, 4, 8, 10, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def set(self, *args: int) -> datetime:
        """Move to ``datetime(*args)`` in UTC."""
        self.now = datetime(*args, tzinfo=timezone.utc)
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock(MONDAY_0810)


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def async_client(session_factory, clock) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_now] = lambda: clock.now
    app.state.scan_locks = EmployeeLocks()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def employee(async_client: AsyncClient) -> dict:
    """An active employee without a work schedule."""
    resp = await async_client.post(
        "/api/employees",
        json={"unique_id": "EMP-001", "firstname": "Maria", "lastname": "Santos"},
    )
    assert resp.status_code == 201
    return resp.json()
