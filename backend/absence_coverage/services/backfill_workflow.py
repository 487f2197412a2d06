# ruff: noqa: TC003
"""Backfill use cases: assign coverage for an absence and record the backfill employee's answer."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from absence_coverage.exceptions import ConflictError, InvalidStateTransition
from absence_coverage.models.enums import ErrorType, PremiumType
from absence_coverage.ports.backfill import conflict_message
from absence_coverage.schemas.backfill import AssignBackfillResult, BackfillDecisionResult
from absence_coverage.schemas.common import utc_now
from absence_coverage.services import backfill_assignment as lifecycle
from absence_coverage.services.coverage import (
    DEFAULT_HOURLY_RATE,
    DEFAULT_HOURS_PER_DAY,
    estimated_coverage_hours,
    estimated_premium_pay,
    months_spanned,
)

if TYPE_CHECKING:
    import uuid

    from absence_coverage.ports.backfill import BackfillManagementPort
    from absence_coverage.ports.holidays import HolidayCalendar
    from absence_coverage.schemas.backfill import (
        AssignBackfillCommand,
        BackfillAssignment,
        CompleteBackfillCommand,
        ConfirmBackfillCommand,
        DeclineBackfillCommand,
    )

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Backfill assignment not found"


async def assign_pto_backfill(
    command: AssignBackfillCommand,
    backfill_port: BackfillManagementPort,
    holidays: HolidayCalendar | None = None,
    default_hourly_rate: float = DEFAULT_HOURLY_RATE,
    hours_per_day: int = DEFAULT_HOURS_PER_DAY,
    now: datetime | None = None,
) -> AssignBackfillResult:
    """Assign a backfill employee to an absence.

    A pending or confirmed overlapping assignment for the same employee blocks
    the assignment, whether found by the pre-check or by storage at write time.
    Hours and cost are reported even when the assignment is refused.
    """
    now = now or utc_now()
    start, end = command.absence_start_date, command.absence_end_date
    backfill_employee = command.backfill_employee

    hours = estimated_coverage_hours(start, end, hours_per_day)
    # TODO: replace the flat default with the backfill employee's payroll rate once a rate source exists.
    rate = command.hourly_rate or default_hourly_rate
    cost = round(estimated_premium_pay(hours, rate, command.premium_multiplier), 2)

    refused = AssignBackfillResult(
        success=False,
        errors=[conflict_message(backfill_employee.name)],
        error_type=ErrorType.CONFLICT,
        estimated_hours=hours,
        estimated_cost=cost,
    )

    if await backfill_port.has_conflicting_backfills(command.funeral_home_id, backfill_employee.id, start, end):
        logger.info("Backfill for absence %s refused: %s is already booked", command.absence_id, backfill_employee.id)
        return refused

    warnings: list[str] = []
    for month_of in months_spanned(start, end):
        workload = await backfill_port.get_backfill_employee_workload(
            command.funeral_home_id, backfill_employee.id, month_of
        )
        if workload.max_capacity_reached or workload.scheduled_hours + hours > workload.capacity_hours:
            warnings.append(
                f"{backfill_employee.name} would exceed monthly backfill capacity in {month_of:%Y-%m}: "
                f"{workload.scheduled_hours:g} of {workload.capacity_hours:g} hours already scheduled"
            )

    premium_type = command.premium_type
    if premium_type == PremiumType.NONE:
        is_holiday = bool(holidays and await holidays.get_holidays(command.funeral_home_id, start, end))
        premium_type = lifecycle.suggest_premium_type(command.absence_type, is_holiday)

    assignment = lifecycle.create_backfill_assignment(
        funeral_home_id=command.funeral_home_id,
        absence_id=command.absence_id,
        absence_type=command.absence_type,
        absence_start_date=start,
        absence_end_date=end,
        absent_employee=command.absent_employee,
        backfill_employee=backfill_employee,
        assigned_by=command.assigned_by,
        estimated_hours=hours,
        premium_type=premium_type,
        premium_multiplier=command.premium_multiplier,
        now=now,
    )
    if command.send_for_confirmation:
        assignment = lifecycle.send_for_confirmation(assignment, now=now)

    try:
        stored = await backfill_port.create_backfill_assignment(assignment, command.assigned_by)
    except ConflictError:
        # Another booking landed between the check and the write.
        logger.info("Backfill for absence %s refused at write time: %s", command.absence_id, backfill_employee.id)
        return refused.model_copy(update={"warnings": warnings})

    logger.info(
        "Backfill %s assigned: %s covers absence %s (%g hours, %s)",
        stored.id,
        backfill_employee.id,
        command.absence_id,
        hours,
        stored.status,
    )
    return AssignBackfillResult(
        success=True,
        assignment=stored,
        warnings=warnings,
        estimated_hours=hours,
        estimated_cost=cost,
    )


async def _decide(
    backfill_port: BackfillManagementPort,
    assignment_id: uuid.UUID,
    actor_id: uuid.UUID,
    transition: Callable[[BackfillAssignment], BackfillAssignment],
    action: str,
) -> BackfillDecisionResult:
    assignment = await backfill_port.get_backfill_assignment(assignment_id)
    if assignment is None:
        return BackfillDecisionResult(success=False, errors=[NOT_FOUND_MESSAGE], error_type=ErrorType.NOT_FOUND)

    try:
        updated = transition(assignment)
    except InvalidStateTransition as exc:
        return BackfillDecisionResult(
            success=False, assignment=assignment, errors=[exc.message], error_type=ErrorType.INVALID_STATE
        )

    try:
        stored = await backfill_port.update_backfill_assignment(updated, actor_id)
    except ConflictError as exc:
        return BackfillDecisionResult(
            success=False, assignment=assignment, errors=[exc.message], error_type=ErrorType.CONFLICT
        )

    logger.info("Backfill assignment %s %s", stored.id, action)
    return BackfillDecisionResult(success=True, assignment=stored)


async def confirm_backfill(
    command: ConfirmBackfillCommand,
    backfill_port: BackfillManagementPort,
    now: datetime | None = None,
) -> BackfillDecisionResult:
    return await _decide(
        backfill_port,
        command.assignment_id,
        command.confirmed_by,
        lambda a: lifecycle.confirm_backfill_assignment(a, command.confirmed_by, command.actual_hours, now=now),
        "confirmed",
    )


async def decline_backfill(
    command: DeclineBackfillCommand,
    backfill_port: BackfillManagementPort,
    now: datetime | None = None,
) -> BackfillDecisionResult:
    return await _decide(
        backfill_port,
        command.assignment_id,
        command.declined_by,
        lambda a: lifecycle.reject_backfill_assignment(a, command.reason, now=now),
        "declined",
    )


async def complete_backfill(
    command: CompleteBackfillCommand,
    backfill_port: BackfillManagementPort,
    now: datetime | None = None,
) -> BackfillDecisionResult:
    return await _decide(
        backfill_port,
        command.assignment_id,
        command.completed_by,
        lambda a: lifecycle.complete_backfill_assignment(a, command.actual_hours, now=now),
        "completed",
    )


async def cancel_backfills_for_absence(
    backfill_port: BackfillManagementPort,
    absence_id: uuid.UUID,
    actor_id: uuid.UUID,
    reason: str,
    now: datetime | None = None,
) -> int:
    """Cancel every live assignment covering the absence and return how many were cancelled.

    Completed assignments are left alone.
    """
    now = now or utc_now()
    cancelled = 0
    for assignment in await backfill_port.get_backfill_assignments_by_absence(absence_id):
        if assignment.status not in lifecycle.CANCELLABLE_STATUSES:
            continue
        await backfill_port.update_backfill_assignment(
            lifecycle.cancel_backfill_assignment(assignment, reason=reason, now=now), actor_id
        )
        cancelled += 1
    return cancelled
