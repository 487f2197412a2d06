"""PostgreSQL-backed port tests. Skipped when no database is reachable."""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

import pytest

from absence_coverage.exceptions import ConflictError
from absence_coverage.models.enums import AbsenceType, BackfillStatus, PtoType
from absence_coverage.repositories.backfill import SqlBackfillManagement
from absence_coverage.repositories.pto import SqlPtoManagement
from absence_coverage.repositories.training import SqlTrainingManagement
from absence_coverage.schemas.backfill import BackfillAssignment
from absence_coverage.schemas.common import EmployeeRef
from absence_coverage.services import backfill_assignment, pto_request
from absence_coverage.services.policy import (
    create_default_pto_policy,
    create_default_training_policy,
    supersede_pto_policy,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

FUNERAL_HOME_ID = uuid.uuid4()
ACTOR_ID = uuid.uuid4()
ABSENT = EmployeeRef(id=uuid.uuid4(), name="Ada Lovelace", role="embalmer")
BACKFILL = EmployeeRef(id=uuid.uuid4(), name="Bo Backfill", role="embalmer")


def _assignment(start: date, end: date, absence_id: uuid.UUID | None = None) -> BackfillAssignment:
    return backfill_assignment.create_backfill_assignment(
        funeral_home_id=FUNERAL_HOME_ID,
        absence_id=absence_id or uuid.uuid4(),
        absence_type=AbsenceType.PTO,
        absence_start_date=start,
        absence_end_date=end,
        absent_employee=ABSENT,
        backfill_employee=BACKFILL,
        assigned_by=ACTOR_ID,
        estimated_hours=40,
    )


async def test_pto_policy_versions(session_factory: async_sessionmaker[AsyncSession]) -> None:
    port = SqlPtoManagement(session_factory)
    v1 = await port.create_pto_policy(create_default_pto_policy(FUNERAL_HOME_ID, ACTOR_ID), ACTOR_ID)

    with pytest.raises(ConflictError):
        await port.create_pto_policy(create_default_pto_policy(FUNERAL_HOME_ID, ACTOR_ID), ACTOR_ID)

    superseded, v2 = supersede_pto_policy(v1, v1.settings, ACTOR_ID)
    await port.update_pto_policy(superseded, v2, ACTOR_ID)

    current = await port.get_pto_policy_for_funeral_home(FUNERAL_HOME_ID)
    assert current is not None
    assert current.version == 2
    history = await port.get_pto_policy_history(FUNERAL_HOME_ID)
    assert [p.version for p in history] == [2, 1]

    # The stale v1 can no longer be superseded.
    with pytest.raises(ConflictError):
        await port.update_pto_policy(*supersede_pto_policy(v1, v1.settings, ACTOR_ID), ACTOR_ID)


async def test_pto_request_roundtrip(session_factory: async_sessionmaker[AsyncSession]) -> None:
    port = SqlPtoManagement(session_factory)
    request = pto_request.create_pto_request(
        FUNERAL_HOME_ID, ABSENT, PtoType.VACATION, date(2025, 3, 3), date(2025, 3, 7), ACTOR_ID
    )
    await port.create_pto_request(request, ACTOR_ID)
    submitted = await port.update_pto_request(pto_request.submit_pto_request(request), ACTOR_ID)

    stored = await port.get_pto_request(request.id)
    assert stored is not None
    assert stored.status == submitted.status
    assert stored.employee == ABSENT
    concurrent = await port.get_concurrent_pto_requests(FUNERAL_HOME_ID, date(2025, 3, 5), date(2025, 3, 6), "embalmer")
    assert [r.id for r in concurrent] == [request.id]
    last_day = await port.get_concurrent_pto_requests(FUNERAL_HOME_ID, date(2025, 3, 7), date(2025, 3, 7))
    assert [r.id for r in last_day] == [request.id]
    assert [r.id for r in await port.get_pending_pto_requests(FUNERAL_HOME_ID)] == [request.id]


async def test_overlapping_booking_is_refused(session_factory: async_sessionmaker[AsyncSession]) -> None:
    port = SqlBackfillManagement(session_factory)
    first = _assignment(date(2025, 1, 10), date(2025, 1, 15))
    await port.create_backfill_assignment(backfill_assignment.send_for_confirmation(first), ACTOR_ID)

    with pytest.raises(ConflictError):
        await port.create_backfill_assignment(_assignment(date(2025, 1, 12), date(2025, 1, 20)), ACTOR_ID)

    adjacent = await port.create_backfill_assignment(_assignment(date(2025, 1, 15), date(2025, 1, 18)), ACTOR_ID)
    assert adjacent.status == BackfillStatus.SUGGESTED
    assert await port.has_conflicting_backfills(FUNERAL_HOME_ID, BACKFILL.id, date(2025, 1, 14), date(2025, 1, 16))


async def test_release_backfills_for_window(session_factory: async_sessionmaker[AsyncSession]) -> None:
    port = SqlBackfillManagement(session_factory)
    training_id = uuid.uuid4()
    confirmed = backfill_assignment.confirm_backfill_assignment(
        _assignment(date(2025, 2, 1), date(2025, 2, 3), absence_id=training_id), ACTOR_ID
    )
    await port.create_backfill_assignment(confirmed, ACTOR_ID)

    released = await port.release_backfills_for_window(
        FUNERAL_HOME_ID, date(2025, 2, 1), date(2025, 2, 4), training_id, ACTOR_ID
    )
    assert [a.status for a in released] == [BackfillStatus.COMPLETED]
    stored = await port.get_backfill_assignment(confirmed.id)
    assert stored is not None
    assert stored.status == BackfillStatus.COMPLETED


async def test_training_policy_is_unique_per_home(session_factory: async_sessionmaker[AsyncSession]) -> None:
    port = SqlTrainingManagement(session_factory)
    await port.create_training_policy(create_default_training_policy(FUNERAL_HOME_ID, ACTOR_ID), ACTOR_ID)
    with pytest.raises(ConflictError):
        await port.create_training_policy(create_default_training_policy(FUNERAL_HOME_ID, ACTOR_ID), ACTOR_ID)
