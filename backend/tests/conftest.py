from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from absence_coverage.config import get_settings
from absence_coverage.db import get_session
from absence_coverage.main import app
from absence_coverage.models import SQLModel
from absence_coverage.ports.backfill import InMemoryBackfillManagement, get_backfill_port
from absence_coverage.ports.holidays import InMemoryHolidayCalendar, get_holiday_calendar
from absence_coverage.ports.pto import InMemoryPtoManagement, get_pto_port
from absence_coverage.ports.training import InMemoryTrainingManagement, get_training_port

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


@pytest.fixture
def pto_port() -> InMemoryPtoManagement:
    return InMemoryPtoManagement()


@pytest.fixture
def training_port() -> InMemoryTrainingManagement:
    return InMemoryTrainingManagement()


@pytest.fixture
def backfill_port() -> InMemoryBackfillManagement:
    return InMemoryBackfillManagement()


@pytest.fixture
def holiday_calendar() -> InMemoryHolidayCalendar:
    return InMemoryHolidayCalendar()


@pytest.fixture
async def async_client(
    pto_port: InMemoryPtoManagement,
    training_port: InMemoryTrainingManagement,
    backfill_port: InMemoryBackfillManagement,
    holiday_calendar: InMemoryHolidayCalendar,
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to fresh in-memory ports and a stub database session."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield AsyncMock(spec=AsyncSession)

    app.dependency_overrides[get_session] = _override_get_session
    app.dependency_overrides[get_pto_port] = lambda: pto_port
    app.dependency_overrides[get_training_port] = lambda: training_port
    app.dependency_overrides[get_backfill_port] = lambda: backfill_port
    app.dependency_overrides[get_holiday_calendar] = lambda: holiday_calendar
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
async def session_factory() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Session factory on a freshly created schema; skips when Postgres is unreachable.

    In CI, Alembic migrations run before tests so create_all is a no-op.
    """
    settings = get_settings()
    engine = create_async_engine(settings.database_url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.drop_all)
            await conn.run_sync(SQLModel.metadata.create_all)
    except (OSError, OperationalError, DBAPIError) as exc:
        await engine.dispose()
        pytest.skip(f"PostgreSQL not available: {exc}")

    yield async_sessionmaker(engine, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()
