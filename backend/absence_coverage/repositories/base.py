from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError

from absence_coverage.exceptions import PersistenceError
from absence_coverage.services.intervals import day_window

if TYPE_CHECKING:
    import uuid
    from collections.abc import AsyncIterator
    from datetime import date

    from pydantic import BaseModel
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

_BIGINT_MASK = 0x7FFF_FFFF_FFFF_FFFF


@asynccontextmanager
async def storage_session(factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Yield a session; driver and SQL failures surface as ``PersistenceError`` after rollback."""
    async with factory() as session:
        try:
            yield session
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.exception("Storage operation failed")
            raise PersistenceError from exc


def overlaps_window(start_column: Any, end_column: Any, start: date, end: date) -> sa.ColumnElement[bool]:
    """SQL rendition of ``spans_overlap`` between stored date columns and a date span.

    A stored single-day span (end not after start) is widened to one day.
    """
    window_start, window_end = day_window(start, end)
    return sa.and_(start_column < window_end, sa.func.greatest(end_column, start_column + 1) > window_start)


def inclusive_overlaps_window(start_column: Any, end_column: Any, start: date, end: date) -> sa.ColumnElement[bool]:
    """SQL rendition of ``inclusive_overlaps``: stored spans and ``start``..``end`` all include their end date."""
    return sa.and_(start_column <= end, end_column >= start)


async def lock_employee_bookings(session: AsyncSession, employee_id: uuid.UUID) -> None:
    """Serialize booking writes for one employee until the transaction ends."""
    await session.execute(sa.select(sa.func.pg_advisory_xact_lock(employee_id.int & _BIGINT_MASK)))


def flatten_employee(data: dict[str, Any], prefix: str, employee: BaseModel) -> None:
    """Replace the nested ``prefix`` employee dict in ``data`` by ``prefix_id/_name/_role`` columns."""
    data.pop(prefix, None)
    dumped = employee.model_dump()
    for key in ("id", "name", "role"):
        data[f"{prefix}_{key}"] = dumped[key]


def nest_employee(data: dict[str, Any], prefix: str) -> None:
    """Inverse of ``flatten_employee``."""
    data[prefix] = {key: data.pop(f"{prefix}_{key}") for key in ("id", "name", "role")}
