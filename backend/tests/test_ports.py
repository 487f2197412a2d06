"""Contract tests for the in-memory storage ports."""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

import pytest

from absence_coverage.exceptions import ConflictError, InvalidStateTransition, NotFoundError
from absence_coverage.models.enums import AbsenceType, BackfillStatus, PtoType, TrainingStatus, TrainingType
from absence_coverage.ports.backfill import BackfillManagementPort, InMemoryBackfillManagement
from absence_coverage.ports.holidays import HolidayCalendar
from absence_coverage.ports.pto import PtoManagementPort
from absence_coverage.ports.training import TrainingManagementPort
from absence_coverage.schemas.common import EmployeeRef
from absence_coverage.schemas.training import TrainingRecord
from absence_coverage.services import backfill_assignment, pto_request, training_record
from absence_coverage.services.policy import create_default_pto_policy

if TYPE_CHECKING:
    from absence_coverage.ports.holidays import InMemoryHolidayCalendar
    from absence_coverage.ports.pto import InMemoryPtoManagement
    from absence_coverage.ports.training import InMemoryTrainingManagement
    from absence_coverage.schemas.backfill import BackfillAssignment
    from absence_coverage.schemas.pto import PtoRequest

FUNERAL_HOME_ID = uuid.uuid4()
USER_ID = uuid.uuid4()
EMPLOYEE = EmployeeRef(id=uuid.uuid4(), name="Ada Lovelace", role="embalmer")
BACKFILL = EmployeeRef(id=uuid.uuid4(), name="Bo Backfill", role="embalmer")


def _draft(start: date = date(2025, 2, 3), end: date = date(2025, 2, 7)) -> PtoRequest:
    return pto_request.create_pto_request(FUNERAL_HOME_ID, EMPLOYEE, PtoType.VACATION, start, end, USER_ID)


def _assignment(
    start: date = date(2025, 1, 10),
    end: date = date(2025, 1, 15),
    status: BackfillStatus = BackfillStatus.SUGGESTED,
    absence_id: uuid.UUID | None = None,
) -> BackfillAssignment:
    return backfill_assignment.create_backfill_assignment(
        funeral_home_id=FUNERAL_HOME_ID,
        absence_id=absence_id or uuid.uuid4(),
        absence_type=AbsenceType.PTO,
        absence_start_date=start,
        absence_end_date=end,
        absent_employee=EMPLOYEE,
        backfill_employee=BACKFILL,
        assigned_by=USER_ID,
        estimated_hours=40,
    ).model_copy(update={"status": status})


def test_in_memory_ports_satisfy_protocols(
    pto_port: InMemoryPtoManagement,
    training_port: InMemoryTrainingManagement,
    backfill_port: InMemoryBackfillManagement,
    holiday_calendar: InMemoryHolidayCalendar,
) -> None:
    assert isinstance(pto_port, PtoManagementPort)
    assert isinstance(training_port, TrainingManagementPort)
    assert isinstance(backfill_port, BackfillManagementPort)
    assert isinstance(holiday_calendar, HolidayCalendar)


# ---------------------------------------------------------------------------
# PTO port
# ---------------------------------------------------------------------------


async def test_pto_policy_create_twice_conflicts(pto_port: InMemoryPtoManagement) -> None:
    await pto_port.create_pto_policy(create_default_pto_policy(FUNERAL_HOME_ID, USER_ID), USER_ID)
    with pytest.raises(ConflictError):
        await pto_port.create_pto_policy(create_default_pto_policy(FUNERAL_HOME_ID, USER_ID), USER_ID)


async def test_balance_is_none_without_policy(pto_port: InMemoryPtoManagement) -> None:
    assert await pto_port.get_employee_pto_balance(FUNERAL_HOME_ID, EMPLOYEE.id, 2025) is None


async def test_balance_with_policy(pto_port: InMemoryPtoManagement) -> None:
    await pto_port.create_pto_policy(create_default_pto_policy(FUNERAL_HOME_ID, USER_ID), USER_ID)
    approved = pto_request.approve_pto_request(pto_request.submit_pto_request(_draft()), USER_ID)
    await pto_port.create_pto_request(approved, USER_ID)

    balance = await pto_port.get_employee_pto_balance(FUNERAL_HOME_ID, EMPLOYEE.id, 2025)
    assert balance is not None
    assert balance.annual_allowance == 20
    assert balance.days_used == 5
    assert balance.days_remaining == 15


async def test_concurrent_requests_filter_status_role_and_window(pto_port: InMemoryPtoManagement) -> None:
    pending = pto_request.submit_pto_request(_draft())
    draft = _draft()
    outside = pto_request.submit_pto_request(_draft(date(2025, 3, 3), date(2025, 3, 4)))
    for request in (pending, draft, outside):
        await pto_port.create_pto_request(request, USER_ID)

    found = await pto_port.get_concurrent_pto_requests(FUNERAL_HOME_ID, date(2025, 2, 4), date(2025, 2, 5))
    assert [r.id for r in found] == [pending.id]
    assert await pto_port.get_concurrent_pto_requests(
        FUNERAL_HOME_ID, date(2025, 2, 4), date(2025, 2, 5), role="staff"
    ) == []


async def test_pending_requests_awaiting_decision(pto_port: InMemoryPtoManagement) -> None:
    later = pto_request.submit_pto_request(_draft(date(2025, 3, 3), date(2025, 3, 4)))
    earlier = pto_request.submit_pto_request(_draft())
    draft = _draft()
    approved = pto_request.approve_pto_request(pto_request.submit_pto_request(_draft()), USER_ID)
    foreign = pto_request.create_pto_request(
        uuid.uuid4(), EMPLOYEE, PtoType.VACATION, date(2025, 2, 3), date(2025, 2, 4), USER_ID
    )
    elsewhere = pto_request.submit_pto_request(foreign)
    for request in (later, earlier, draft, approved, elsewhere):
        await pto_port.create_pto_request(request, USER_ID)

    pending = await pto_port.get_pending_pto_requests(FUNERAL_HOME_ID)
    assert [r.id for r in pending] == [earlier.id, later.id]


async def test_update_missing_request_raises(pto_port: InMemoryPtoManagement) -> None:
    with pytest.raises(NotFoundError):
        await pto_port.update_pto_request(_draft(), USER_ID)


async def test_delete_only_drafts(pto_port: InMemoryPtoManagement) -> None:
    draft = await pto_port.create_pto_request(_draft(), USER_ID)
    pending = await pto_port.create_pto_request(pto_request.submit_pto_request(_draft()), USER_ID)

    assert await pto_port.delete_pto_request(draft.id) is True
    assert await pto_port.get_pto_request(draft.id) is None
    assert await pto_port.delete_pto_request(uuid.uuid4()) is False
    with pytest.raises(InvalidStateTransition):
        await pto_port.delete_pto_request(pending.id)


# ---------------------------------------------------------------------------
# Backfill port
# ---------------------------------------------------------------------------


async def test_create_overlapping_booking_conflicts(backfill_port: InMemoryBackfillManagement) -> None:
    await backfill_port.create_backfill_assignment(_assignment(status=BackfillStatus.CONFIRMED), USER_ID)
    assert await backfill_port.has_conflicting_backfills(
        FUNERAL_HOME_ID, BACKFILL.id, date(2025, 1, 12), date(2025, 1, 20)
    )
    with pytest.raises(ConflictError, match="Bo Backfill already has a pending or confirmed backfill assignment"):
        await backfill_port.create_backfill_assignment(
            _assignment(date(2025, 1, 12), date(2025, 1, 20), BackfillStatus.PENDING_CONFIRMATION), USER_ID
        )


async def test_update_does_not_conflict_with_itself(backfill_port: InMemoryBackfillManagement) -> None:
    pending = _assignment(status=BackfillStatus.PENDING_CONFIRMATION)
    stored = await backfill_port.create_backfill_assignment(pending, USER_ID)
    confirmed = backfill_assignment.confirm_backfill_assignment(stored, USER_ID)
    assert await backfill_port.update_backfill_assignment(confirmed, USER_ID) == confirmed


async def test_update_missing_assignment_raises(backfill_port: InMemoryBackfillManagement) -> None:
    with pytest.raises(NotFoundError):
        await backfill_port.update_backfill_assignment(_assignment(), USER_ID)


@pytest.mark.parametrize(
    ("status", "deletable"),
    [
        (BackfillStatus.SUGGESTED, True),
        (BackfillStatus.PENDING_CONFIRMATION, True),
        (BackfillStatus.REJECTED, True),
        (BackfillStatus.CONFIRMED, False),
        (BackfillStatus.COMPLETED, False),
    ],
)
async def test_delete_assignment_by_status(
    backfill_port: InMemoryBackfillManagement, status: BackfillStatus, deletable: bool
) -> None:
    assignment = _assignment(status=status)
    backfill_port.seed(assignment)
    if deletable:
        assert await backfill_port.delete_backfill_assignment(assignment.id) is True
        assert await backfill_port.get_backfill_assignment(assignment.id) is None
    else:
        with pytest.raises(InvalidStateTransition):
            await backfill_port.delete_backfill_assignment(assignment.id)


async def test_delete_missing_assignment(backfill_port: InMemoryBackfillManagement) -> None:
    assert await backfill_port.delete_backfill_assignment(uuid.uuid4()) is False


async def test_release_backfills_for_window(backfill_port: InMemoryBackfillManagement) -> None:
    training_id = uuid.uuid4()
    confirmed = _assignment(date(2025, 2, 1), date(2025, 2, 3), BackfillStatus.CONFIRMED, absence_id=training_id)
    suggested = _assignment(date(2025, 2, 1), date(2025, 2, 3), BackfillStatus.SUGGESTED, absence_id=training_id)
    vacation = _assignment(date(2025, 2, 3), date(2025, 2, 10), BackfillStatus.CONFIRMED)
    for assignment in (confirmed, suggested, vacation):
        backfill_port.seed(assignment)

    released = await backfill_port.release_backfills_for_window(
        FUNERAL_HOME_ID, date(2025, 2, 1), date(2025, 2, 4), training_id, USER_ID
    )
    assert [a.id for a in released] == [confirmed.id]
    assert released[0].status == BackfillStatus.COMPLETED
    assert released[0].actual_hours == 40
    untouched = await backfill_port.get_backfill_assignment(suggested.id)
    assert untouched is not None
    assert untouched.status == BackfillStatus.SUGGESTED
    kept = await backfill_port.get_backfill_assignment(vacation.id)
    assert kept is not None
    assert kept.status == BackfillStatus.CONFIRMED


async def test_coverage_summary_uses_configured_need() -> None:
    port = InMemoryBackfillManagement(hourly_rate=20.0, total_needed=2)
    assignment = _assignment(status=BackfillStatus.CONFIRMED)
    port.seed(assignment)
    summary = await port.get_backfill_coverage_summary(assignment.absence_id)
    assert summary.total_needed == 2
    assert summary.coverage_complete is False
    assert summary.estimated_cost == 800.0


# ---------------------------------------------------------------------------
# Training port
# ---------------------------------------------------------------------------


async def test_multi_day_trainings_scheduled(training_port: InMemoryTrainingManagement) -> None:
    def _record(start: date, end: date) -> TrainingRecord:
        return training_record.create_training_record(
            funeral_home_id=FUNERAL_HOME_ID,
            employee=EMPLOYEE,
            training_type=TrainingType.SAFETY,
            training_name="Safety",
            hours=8,
            cost=0,
            created_by=USER_ID,
            start_date=start,
            end_date=end,
        )

    multi = _record(date(2025, 2, 1), date(2025, 2, 3))
    single = _record(date(2025, 2, 2), date(2025, 2, 2))
    cancelled = training_record.cancel_training(_record(date(2025, 2, 1), date(2025, 2, 5)))
    for record in (multi, single, cancelled):
        training_port.seed_record(record)

    found = await training_port.get_multi_day_trainings_scheduled(FUNERAL_HOME_ID, date(2025, 2, 2), date(2025, 2, 3))
    assert [r.id for r in found] == [multi.id]
    assert found[0].status == TrainingStatus.SCHEDULED


async def test_certified_training_records(training_port: InMemoryTrainingManagement) -> None:
    def _record() -> TrainingRecord:
        return training_record.create_training_record(
            funeral_home_id=FUNERAL_HOME_ID,
            employee=EMPLOYEE,
            training_type=TrainingType.SAFETY,
            training_name="Safety",
            hours=8,
            cost=0,
            created_by=USER_ID,
        )

    certified = training_record.complete_training(_record(), hours=8, expires_at=date(2026, 1, 1))
    uncertified = training_record.complete_training(_record(), hours=8)
    scheduled = _record()
    for record in (certified, uncertified, scheduled):
        training_port.seed_record(record)

    found = await training_port.get_certified_training_records(FUNERAL_HOME_ID)
    assert [r.id for r in found] == [certified.id]


async def test_update_missing_training_raises(training_port: InMemoryTrainingManagement) -> None:
    record = training_record.create_training_record(
        FUNERAL_HOME_ID, EMPLOYEE, TrainingType.SAFETY, "Safety", hours=8, cost=0, created_by=USER_ID
    )
    with pytest.raises(NotFoundError):
        await training_port.update_training_record(record, USER_ID)


# ---------------------------------------------------------------------------
# Holiday calendar
# ---------------------------------------------------------------------------


async def test_holiday_lookup_is_inclusive_and_scoped(holiday_calendar: InMemoryHolidayCalendar) -> None:
    holiday_calendar.seed(FUNERAL_HOME_ID, date(2025, 12, 25))
    holiday_calendar.seed(FUNERAL_HOME_ID, date(2026, 1, 1))

    assert await holiday_calendar.get_holidays(FUNERAL_HOME_ID, date(2025, 12, 25), date(2025, 12, 31)) == [
        date(2025, 12, 25)
    ]
    assert await holiday_calendar.get_holidays(FUNERAL_HOME_ID, date(2025, 12, 20), date(2026, 1, 1)) == [
        date(2025, 12, 25),
        date(2026, 1, 1),
    ]
    assert await holiday_calendar.get_holidays(uuid.uuid4(), date(2025, 12, 1), date(2026, 1, 31)) == []
