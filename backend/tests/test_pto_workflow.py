"""Tests for the PTO use cases against the in-memory ports."""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING, Any

from absence_coverage.models.enums import AbsenceType, BackfillStatus, ErrorType, PtoRequestStatus, PtoType
from absence_coverage.schemas.common import EmployeeRef
from absence_coverage.schemas.policy import BlackoutDate
from absence_coverage.schemas.pto import (
    ApprovePtoCommand,
    CancelPtoCommand,
    PtoRequest,
    RejectPtoCommand,
    RequestPtoCommand,
)
from absence_coverage.services import backfill_assignment, pto_request
from absence_coverage.services.policy import create_default_pto_policy, default_pto_settings
from absence_coverage.services.pto_workflow import (
    approve_pto_request,
    cancel_pto_request,
    reject_pto_request,
    request_pto,
)

if TYPE_CHECKING:
    from absence_coverage.ports.backfill import InMemoryBackfillManagement
    from absence_coverage.ports.holidays import InMemoryHolidayCalendar
    from absence_coverage.ports.pto import InMemoryPtoManagement
    from absence_coverage.schemas.backfill import BackfillAssignment

FUNERAL_HOME_ID = uuid.uuid4()
DIRECTOR_ID = uuid.uuid4()
TODAY = date(2025, 1, 1)


def _employee(role: str | None = "staff", name: str = "Ada Lovelace") -> EmployeeRef:
    return EmployeeRef(id=uuid.uuid4(), name=name, role=role)


async def _install_policy(port: InMemoryPtoManagement, **overrides: Any) -> None:
    settings = default_pto_settings().model_copy(update=overrides)
    policy = create_default_pto_policy(FUNERAL_HOME_ID, DIRECTOR_ID, settings=settings)
    await port.create_pto_policy(policy, DIRECTOR_ID)


def _command(
    employee: EmployeeRef,
    start: date = date(2025, 2, 3),
    end: date = date(2025, 2, 7),
    pto_type: PtoType = PtoType.VACATION,
) -> RequestPtoCommand:
    return RequestPtoCommand(
        funeral_home_id=FUNERAL_HOME_ID,
        employee=employee,
        pto_type=pto_type,
        start_date=start,
        end_date=end,
        requested_by=employee.id,
    )


def _seed_pending(
    port: InMemoryPtoManagement,
    employee: EmployeeRef,
    start: date = date(2025, 2, 3),
    end: date = date(2025, 2, 7),
) -> PtoRequest:
    draft = pto_request.create_pto_request(FUNERAL_HOME_ID, employee, PtoType.VACATION, start, end, employee.id)
    request = pto_request.submit_pto_request(draft)
    port.seed_request(request)
    return request


def _seed_backfill(
    port: InMemoryBackfillManagement,
    request: PtoRequest,
    status: BackfillStatus,
) -> BackfillAssignment:
    assignment = backfill_assignment.create_backfill_assignment(
        funeral_home_id=FUNERAL_HOME_ID,
        absence_id=request.id,
        absence_type=AbsenceType.PTO,
        absence_start_date=request.start_date,
        absence_end_date=request.end_date,
        absent_employee=request.employee,
        backfill_employee=_employee(name="Bo Backfill"),
        assigned_by=DIRECTOR_ID,
        estimated_hours=32,
    )
    assignment = assignment.model_copy(update={"status": status})
    port.seed(assignment)
    return assignment


# ---------------------------------------------------------------------------
# RequestPto
# ---------------------------------------------------------------------------


async def test_request_pto_submits_and_pins_policy(pto_port: InMemoryPtoManagement) -> None:
    await _install_policy(pto_port)
    result = await request_pto(_command(_employee()), pto_port, today=TODAY)

    assert result.success is True
    assert result.errors == []
    assert result.request is not None
    assert result.request.status == PtoRequestStatus.PENDING
    assert result.request.requested_days == 5
    assert result.request.policy_version == 1
    assert result.requires_backfill is False
    assert await pto_port.get_pto_request(result.request.id) == result.request


async def test_request_pto_flags_backfill_for_embalmer(pto_port: InMemoryPtoManagement) -> None:
    await _install_policy(pto_port)
    result = await request_pto(_command(_employee(role="embalmer")), pto_port, today=TODAY)
    assert result.success is True
    assert result.requires_backfill is True


async def test_request_pto_without_policy(pto_port: InMemoryPtoManagement) -> None:
    result = await request_pto(_command(_employee()), pto_port, today=TODAY)
    assert result.success is False
    assert result.error_type == ErrorType.NOT_FOUND
    assert result.errors == ["No PTO policy found for this funeral home"]


async def test_request_pto_short_notice_is_blocked(pto_port: InMemoryPtoManagement) -> None:
    await _install_policy(pto_port, min_advance_notice_days=7)
    employee = _employee()
    result = await request_pto(_command(employee, date(2025, 1, 4), date(2025, 1, 5)), pto_port, today=TODAY)

    assert result.success is False
    assert result.error_type == ErrorType.VALIDATION
    assert result.validation_errors == ["PTO requests require at least 7 days advance notice"]
    assert result.request is None
    assert await pto_port.get_pto_requests_by_employee(FUNERAL_HOME_ID, employee.id) == []


async def test_request_pto_over_holiday_needs_holiday_notice(
    pto_port: InMemoryPtoManagement,
    holiday_calendar: InMemoryHolidayCalendar,
) -> None:
    await _install_policy(pto_port)
    holiday_calendar.seed(FUNERAL_HOME_ID, date(2025, 1, 24))
    command = _command(_employee(), date(2025, 1, 21), date(2025, 1, 24))

    result = await request_pto(command, pto_port, holidays=holiday_calendar, today=TODAY)
    assert result.success is False
    assert result.validation_errors == ["PTO requests require at least 30 days advance notice"]


async def test_request_pto_in_blackout(pto_port: InMemoryPtoManagement) -> None:
    blackout = BlackoutDate(name="Inventory", start_date=date(2025, 2, 5), end_date=date(2025, 2, 10))
    await _install_policy(pto_port, blackout_dates=(blackout,))
    result = await request_pto(_command(_employee()), pto_port, today=TODAY)
    assert result.success is False
    assert result.validation_errors == [
        "Requested dates overlap blackout period 'Inventory' (2025-02-05 to 2025-02-10)"
    ]


async def test_request_pto_too_many_consecutive_days(pto_port: InMemoryPtoManagement) -> None:
    await _install_policy(pto_port)
    result = await request_pto(_command(_employee(), date(2025, 3, 1), date(2025, 3, 11)), pto_port, today=TODAY)
    assert result.success is False
    assert result.validation_errors == ["Request of 11 days exceeds the maximum of 10 consecutive PTO days"]


async def test_request_pto_overlapping_own_request(pto_port: InMemoryPtoManagement) -> None:
    await _install_policy(pto_port)
    employee = _employee()
    _seed_pending(pto_port, employee, date(2025, 1, 10), date(2025, 1, 15))

    result = await request_pto(
        _command(employee, date(2025, 1, 12), date(2025, 1, 20)), pto_port, today=date(2024, 12, 1)
    )
    assert result.success is False
    assert result.validation_errors == ["Requested dates overlap another PTO request for this employee"]


async def test_request_pto_sharing_last_day_of_own_request(pto_port: InMemoryPtoManagement) -> None:
    await _install_policy(pto_port)
    employee = _employee()
    _seed_pending(pto_port, employee, date(2025, 1, 10), date(2025, 1, 12))

    result = await request_pto(
        _command(employee, date(2025, 1, 12), date(2025, 1, 12)), pto_port, today=date(2024, 12, 1)
    )
    assert result.success is False
    assert result.validation_errors == ["Requested dates overlap another PTO request for this employee"]


async def test_request_pto_with_blackout_on_last_day(pto_port: InMemoryPtoManagement) -> None:
    blackout = BlackoutDate(name="Inventory", start_date=date(2025, 2, 7), end_date=date(2025, 2, 7))
    await _install_policy(pto_port, blackout_dates=(blackout,))
    result = await request_pto(_command(_employee()), pto_port, today=TODAY)
    assert result.success is False
    assert result.validation_errors == [
        "Requested dates overlap blackout period 'Inventory' (2025-02-07 to 2025-02-07)"
    ]


async def test_request_pto_collects_every_violation(pto_port: InMemoryPtoManagement) -> None:
    blackout = BlackoutDate(name="Audit", start_date=date(2025, 1, 2), end_date=date(2025, 1, 31))
    await _install_policy(pto_port, blackout_dates=(blackout,))
    result = await request_pto(_command(_employee(), date(2025, 1, 3), date(2025, 1, 20)), pto_port, today=TODAY)
    assert result.success is False
    assert len(result.validation_errors) == 3
    assert result.errors == result.validation_errors


async def test_request_pto_concurrency_is_a_warning(pto_port: InMemoryPtoManagement) -> None:
    await _install_policy(pto_port)
    for name in ("A", "B", "C"):
        _seed_pending(pto_port, _employee(name=name))

    result = await request_pto(_command(_employee()), pto_port, today=TODAY)
    assert result.success is True
    assert result.warnings == ["3 other staff employees already have PTO during this period (maximum 3)"]


async def test_request_pto_concurrency_without_role_policy(pto_port: InMemoryPtoManagement) -> None:
    await _install_policy(pto_port)
    _seed_pending(pto_port, _employee(role="director"))
    _seed_pending(pto_port, _employee(role="staff"))

    result = await request_pto(_command(_employee(role=None)), pto_port, today=TODAY)
    assert result.success is True
    assert result.warnings == ["2 other employees already have PTO during this period (maximum 2)"]


async def test_request_pto_insufficient_balance_is_a_warning(pto_port: InMemoryPtoManagement) -> None:
    await _install_policy(pto_port, annual_pto_days_per_employee=3)
    result = await request_pto(_command(_employee()), pto_port, today=TODAY)
    assert result.success is True
    assert result.warnings == ["Insufficient PTO balance: 3 days remaining, 5 requested"]


async def test_unpaid_leave_skips_balance_check(pto_port: InMemoryPtoManagement) -> None:
    await _install_policy(pto_port, annual_pto_days_per_employee=3)
    result = await request_pto(_command(_employee(), pto_type=PtoType.UNPAID), pto_port, today=TODAY)
    assert result.success is True
    assert result.warnings == []


# ---------------------------------------------------------------------------
# ApprovePtoRequest
# ---------------------------------------------------------------------------


async def test_approve_pending_request(
    pto_port: InMemoryPtoManagement, backfill_port: InMemoryBackfillManagement
) -> None:
    request = _seed_pending(pto_port, _employee())
    result = await approve_pto_request(
        ApprovePtoCommand(request_id=request.id, approved_by=DIRECTOR_ID), pto_port, backfill_port
    )
    assert result.success is True
    assert result.request is not None
    assert result.request.status == PtoRequestStatus.APPROVED
    assert result.request.approved_by == DIRECTOR_ID


async def test_approve_missing_request(
    pto_port: InMemoryPtoManagement, backfill_port: InMemoryBackfillManagement
) -> None:
    result = await approve_pto_request(
        ApprovePtoCommand(request_id=uuid.uuid4(), approved_by=DIRECTOR_ID), pto_port, backfill_port
    )
    assert result.success is False
    assert result.error_type == ErrorType.NOT_FOUND
    assert result.errors == ["PTO request not found"]


async def test_approve_with_incomplete_coverage_is_blocked(
    pto_port: InMemoryPtoManagement, backfill_port: InMemoryBackfillManagement
) -> None:
    request = _seed_pending(pto_port, _employee(role="embalmer"))
    _seed_backfill(backfill_port, request, BackfillStatus.PENDING_CONFIRMATION)
    _seed_backfill(backfill_port, request, BackfillStatus.REJECTED)

    result = await approve_pto_request(
        ApprovePtoCommand(request_id=request.id, approved_by=DIRECTOR_ID, backfill_verified=True),
        pto_port,
        backfill_port,
    )
    assert result.success is False
    assert result.error_type == ErrorType.VALIDATION
    assert result.errors == ["Backfill coverage is incomplete: 0 of 1 confirmed, 1 pending, 1 rejected"]
    stored = await pto_port.get_pto_request(request.id)
    assert stored is not None
    assert stored.status == PtoRequestStatus.PENDING


async def test_approve_with_confirmed_coverage(
    pto_port: InMemoryPtoManagement, backfill_port: InMemoryBackfillManagement
) -> None:
    request = _seed_pending(pto_port, _employee(role="embalmer"))
    _seed_backfill(backfill_port, request, BackfillStatus.CONFIRMED)

    result = await approve_pto_request(
        ApprovePtoCommand(request_id=request.id, approved_by=DIRECTOR_ID, backfill_verified=True),
        pto_port,
        backfill_port,
    )
    assert result.success is True


async def test_approve_twice_reports_invalid_state(
    pto_port: InMemoryPtoManagement, backfill_port: InMemoryBackfillManagement
) -> None:
    request = _seed_pending(pto_port, _employee())
    command = ApprovePtoCommand(request_id=request.id, approved_by=DIRECTOR_ID)
    await approve_pto_request(command, pto_port, backfill_port)

    again = await approve_pto_request(command, pto_port, backfill_port)
    assert again.success is False
    assert again.error_type == ErrorType.INVALID_STATE
    assert again.errors == ["Cannot approve PTO request in approved status"]


# ---------------------------------------------------------------------------
# RejectPtoRequest / CancelPtoRequest
# ---------------------------------------------------------------------------


async def test_reject_cancels_live_backfills(
    pto_port: InMemoryPtoManagement, backfill_port: InMemoryBackfillManagement
) -> None:
    request = _seed_pending(pto_port, _employee(role="embalmer"))
    suggested = _seed_backfill(backfill_port, request, BackfillStatus.SUGGESTED)
    confirmed = _seed_backfill(backfill_port, request, BackfillStatus.CONFIRMED)
    completed = _seed_backfill(backfill_port, request, BackfillStatus.COMPLETED)

    result = await reject_pto_request(
        RejectPtoCommand(request_id=request.id, rejected_by=DIRECTOR_ID, rejection_reason="Short staffed"),
        pto_port,
        backfill_port,
    )
    assert result.success is True
    assert result.backfills_cancelled == 2
    assert result.request is not None
    assert result.request.status == PtoRequestStatus.REJECTED
    assert result.request.rejection_reason == "Short staffed"

    for assignment_id in (suggested.id, confirmed.id):
        stored = await backfill_port.get_backfill_assignment(assignment_id)
        assert stored is not None
        assert stored.status == BackfillStatus.CANCELLED
        assert stored.notes == "PTO request rejected: Short staffed"
    untouched = await backfill_port.get_backfill_assignment(completed.id)
    assert untouched is not None
    assert untouched.status == BackfillStatus.COMPLETED


async def test_reject_approved_request_changes_nothing(
    pto_port: InMemoryPtoManagement, backfill_port: InMemoryBackfillManagement
) -> None:
    request = _seed_pending(pto_port, _employee())
    command = ApprovePtoCommand(request_id=request.id, approved_by=DIRECTOR_ID)
    await approve_pto_request(command, pto_port, backfill_port)
    assignment = _seed_backfill(backfill_port, request, BackfillStatus.CONFIRMED)

    result = await reject_pto_request(
        RejectPtoCommand(request_id=request.id, rejected_by=DIRECTOR_ID, rejection_reason="Changed mind"),
        pto_port,
        backfill_port,
    )
    assert result.success is False
    assert result.error_type == ErrorType.INVALID_STATE
    assert result.errors == ["Cannot reject PTO request in approved status"]

    stored = await pto_port.get_pto_request(request.id)
    assert stored is not None
    assert stored.status == PtoRequestStatus.APPROVED
    kept = await backfill_port.get_backfill_assignment(assignment.id)
    assert kept is not None
    assert kept.status == BackfillStatus.CONFIRMED


async def test_cancel_pending_request_with_reason(
    pto_port: InMemoryPtoManagement, backfill_port: InMemoryBackfillManagement
) -> None:
    request = _seed_pending(pto_port, _employee(role="embalmer"))
    assignment = _seed_backfill(backfill_port, request, BackfillStatus.PENDING_CONFIRMATION)

    result = await cancel_pto_request(
        CancelPtoCommand(request_id=request.id, cancelled_by=request.employee.id, reason="Plans changed"),
        pto_port,
        backfill_port,
    )
    assert result.success is True
    assert result.backfills_cancelled == 1
    assert result.request is not None
    assert result.request.status == PtoRequestStatus.CANCELLED
    stored = await backfill_port.get_backfill_assignment(assignment.id)
    assert stored is not None
    assert stored.notes == "PTO request cancelled: Plans changed"


async def test_cancel_twice_reports_invalid_state(
    pto_port: InMemoryPtoManagement, backfill_port: InMemoryBackfillManagement
) -> None:
    request = _seed_pending(pto_port, _employee())
    command = CancelPtoCommand(request_id=request.id, cancelled_by=request.employee.id)
    first = await cancel_pto_request(command, pto_port, backfill_port)
    assert first.success is True
    assert first.backfills_cancelled == 0

    second = await cancel_pto_request(command, pto_port, backfill_port)
    assert second.success is False
    assert second.error_type == ErrorType.INVALID_STATE


async def test_cancel_missing_request(
    pto_port: InMemoryPtoManagement, backfill_port: InMemoryBackfillManagement
) -> None:
    result = await cancel_pto_request(
        CancelPtoCommand(request_id=uuid.uuid4(), cancelled_by=DIRECTOR_ID), pto_port, backfill_port
    )
    assert result.error_type == ErrorType.NOT_FOUND
