# ruff: noqa: TC003
"""Training use cases: request, approve, complete and cancel a training session.

Also records no-shows and lists the certifications that are due for renewal.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from absence_coverage.exceptions import InvalidStateTransition
from absence_coverage.models.enums import ErrorType
from absence_coverage.schemas.common import utc_now
from absence_coverage.schemas.training import (
    ApproveTrainingResult,
    CancelTrainingResult,
    CompleteTrainingResult,
    RequestTrainingResult,
    TrainingNoShowResult,
)
from absence_coverage.services import training_record as lifecycle
from absence_coverage.services.backfill_workflow import cancel_backfills_for_absence
from absence_coverage.services.intervals import is_multi_day_training

if TYPE_CHECKING:
    import uuid

    from absence_coverage.ports.backfill import BackfillManagementPort
    from absence_coverage.ports.training import TrainingManagementPort
    from absence_coverage.schemas.training import (
        ApproveTrainingCommand,
        CancelTrainingCommand,
        CertificationStatus,
        CompleteTrainingCommand,
        RequestTrainingCommand,
        TrainingNoShowCommand,
        TrainingRecord,
    )

logger = logging.getLogger(__name__)

NO_POLICY_MESSAGE = "No training policy found for this funeral home"
NOT_FOUND_MESSAGE = "Training record not found"
DEFAULT_RENEWAL_NOTICE_DAYS = 60


async def _requires_backfill(training_port: TrainingManagementPort, record: TrainingRecord) -> bool:
    if not is_multi_day_training(record.start_date, record.end_date):
        return False
    policy = await training_port.get_training_policy_for_funeral_home(record.funeral_home_id)
    return policy is None or policy.settings.enable_training_backfill


async def request_training(
    command: RequestTrainingCommand,
    training_port: TrainingManagementPort,
    today: date | None = None,
    now: datetime | None = None,
) -> RequestTrainingResult:
    """Check a training request against the role's annual allowance and store it.

    Running over the hours or spend allowance blocks the request. A role
    without requirements in the policy is only a warning.
    """
    now = now or utc_now()
    today = today or now.date()

    policy = await training_port.get_training_policy_for_funeral_home(command.funeral_home_id)
    if policy is None:
        return RequestTrainingResult(success=False, errors=[NO_POLICY_MESSAGE], error_type=ErrorType.NOT_FOUND)
    settings = policy.settings

    start = command.start_date or command.scheduled_date
    end = command.end_date or command.scheduled_date
    requires_backfill = settings.enable_training_backfill and is_multi_day_training(start, end)

    threshold = settings.approval_required_above_cost
    requires_approval = threshold > 0 and command.cost > threshold

    validation_errors: list[str] = []
    warnings: list[str] = []

    role = command.employee.role or ""
    requirement = settings.role_requirements.get(role)
    if requirement is None:
        warnings.append(f"No training requirements found for role: {role}")
    else:
        requires_approval = requires_approval or requirement.requires_director_approval_for_training
        year = (start or today).year
        summary = await training_port.get_employee_training_summary(
            command.funeral_home_id, command.employee.id, year
        )
        hours_remaining = requirement.annual_training_hours_budget - summary.total_hours_used
        if command.hours > hours_remaining:
            validation_errors.append(
                f"Insufficient training hours budget. Remaining: {hours_remaining:g}, Required: {command.hours:g}"
            )
        budget_remaining = requirement.annual_training_budget - summary.total_budget_used
        if command.cost > budget_remaining:
            validation_errors.append(
                f"Insufficient training budget. Remaining: ${budget_remaining:.2f}, Required: ${command.cost:.2f}"
            )

    if validation_errors:
        logger.info(
            "Training request for employee %s rejected by validation: %s",
            command.employee.id,
            "; ".join(validation_errors),
        )
        return RequestTrainingResult(
            success=False,
            errors=list(validation_errors),
            validation_errors=validation_errors,
            warnings=warnings,
            error_type=ErrorType.VALIDATION,
            requires_approval=requires_approval,
            requires_backfill=requires_backfill,
        )

    record = lifecycle.create_training_record(
        funeral_home_id=command.funeral_home_id,
        employee=command.employee,
        training_type=command.training_type,
        training_name=command.training_name,
        hours=command.hours,
        cost=command.cost,
        created_by=command.requested_by,
        scheduled_date=command.scheduled_date,
        start_date=start,
        end_date=end,
        required_for_role=command.required_for_role,
        instructor=command.instructor,
        location=command.location,
        now=now,
    )
    stored = await training_port.create_training_record(record, command.requested_by)
    logger.info("Training %s requested for employee %s", stored.id, stored.employee.id)
    return RequestTrainingResult(
        success=True,
        training_record=stored,
        warnings=warnings,
        requires_approval=requires_approval,
        requires_backfill=requires_backfill,
    )


async def approve_training(
    command: ApproveTrainingCommand,
    training_port: TrainingManagementPort,
    now: datetime | None = None,
) -> ApproveTrainingResult:
    """Approve a scheduled session, starting it when ``schedule_training`` gives a start date.

    Backfill is never assigned here; when the session needs coverage the
    caller follows up with an AssignPtoBackfill call.
    """
    record = await training_port.get_training_record(command.record_id)
    if record is None:
        return ApproveTrainingResult(success=False, errors=[NOT_FOUND_MESSAGE], error_type=ErrorType.NOT_FOUND)

    try:
        approved = lifecycle.approve_training(record, command.approved_by, now=now)
        if command.schedule_training and command.start_date is not None:
            approved = lifecycle.start_training(approved, command.start_date, command.end_date, now=now)
    except InvalidStateTransition as exc:
        return ApproveTrainingResult(
            success=False, training_record=record, errors=[exc.message], error_type=ErrorType.INVALID_STATE
        )

    requires_backfill = await _requires_backfill(training_port, approved)
    warnings: list[str] = []
    if command.assign_backfill_if_multi_day and requires_backfill:
        warnings.append("Backfill coverage for this multi-day training must be assigned separately")

    stored = await training_port.update_training_record(approved, command.approved_by)
    logger.info("Training %s approved by %s (status %s)", stored.id, command.approved_by, stored.status)
    return ApproveTrainingResult(
        success=True,
        training_record=stored,
        warnings=warnings,
        requires_backfill=requires_backfill,
        backfill_assigned=False,
    )


async def complete_training(
    command: CompleteTrainingCommand,
    training_port: TrainingManagementPort,
    backfill_port: BackfillManagementPort,
    now: datetime | None = None,
) -> CompleteTrainingResult:
    """Complete a session, record its certification and release the backfills that covered it."""
    record = await training_port.get_training_record(command.record_id)
    if record is None:
        return CompleteTrainingResult(success=False, errors=[NOT_FOUND_MESSAGE], error_type=ErrorType.NOT_FOUND)

    try:
        completed = lifecycle.complete_training(
            record,
            hours=command.hours,
            certification_number=command.certification_number,
            expires_at=command.expires_at,
            end_date=command.end_date,
            now=now,
        )
    except InvalidStateTransition as exc:
        return CompleteTrainingResult(
            success=False, training_record=record, errors=[exc.message], error_type=ErrorType.INVALID_STATE
        )

    released = 0
    if completed.start_date is not None and completed.end_date is not None:
        # Training dates are inclusive; the release window is half-open.
        released_assignments = await backfill_port.release_backfills_for_window(
            completed.funeral_home_id,
            completed.start_date,
            completed.end_date + timedelta(days=1),
            completed.id,
            command.completed_by,
        )
        released = len(released_assignments)

    stored = await training_port.update_training_record(completed, command.completed_by)
    logger.info("Training %s completed; %d backfill assignment(s) released", stored.id, released)
    return CompleteTrainingResult(success=True, training_record=stored, backfills_released=released)


async def cancel_training(
    command: CancelTrainingCommand,
    training_port: TrainingManagementPort,
    backfill_port: BackfillManagementPort,
    now: datetime | None = None,
) -> CancelTrainingResult:
    """Cancel a scheduled session and the backfill assignments covering it."""
    now = now or utc_now()
    record = await training_port.get_training_record(command.record_id)
    if record is None:
        return CancelTrainingResult(success=False, errors=[NOT_FOUND_MESSAGE], error_type=ErrorType.NOT_FOUND)

    try:
        cancelled_record = lifecycle.cancel_training(record, notes=command.reason, now=now)
    except InvalidStateTransition as exc:
        return CancelTrainingResult(
            success=False, training_record=record, errors=[exc.message], error_type=ErrorType.INVALID_STATE
        )

    reason = f"Training cancelled: {command.reason}" if command.reason else "Training cancelled"
    cancelled = await cancel_backfills_for_absence(backfill_port, record.id, command.cancelled_by, reason, now)
    stored = await training_port.update_training_record(cancelled_record, command.cancelled_by)
    logger.info("Training %s cancelled; %d backfill assignment(s) cancelled", stored.id, cancelled)
    return CancelTrainingResult(success=True, training_record=stored, backfills_cancelled=cancelled)


async def record_training_no_show(
    command: TrainingNoShowCommand,
    training_port: TrainingManagementPort,
    now: datetime | None = None,
) -> TrainingNoShowResult:
    """Mark a scheduled or running session as not attended.

    The employee was not away, so backfill assignments are left for the
    manager to complete or cancel one by one.
    """
    record = await training_port.get_training_record(command.record_id)
    if record is None:
        return TrainingNoShowResult(success=False, errors=[NOT_FOUND_MESSAGE], error_type=ErrorType.NOT_FOUND)

    try:
        no_show = lifecycle.mark_no_show(record, notes=command.notes, now=now)
    except InvalidStateTransition as exc:
        return TrainingNoShowResult(
            success=False, training_record=record, errors=[exc.message], error_type=ErrorType.INVALID_STATE
        )

    stored = await training_port.update_training_record(no_show, command.recorded_by)
    logger.info("Training %s marked as no-show by %s", stored.id, command.recorded_by)
    return TrainingNoShowResult(success=True, training_record=stored)


async def list_expiring_certifications(
    training_port: TrainingManagementPort,
    funeral_home_id: uuid.UUID,
    within_days: int | None = None,
    include_expired: bool = False,
    today: date | None = None,
) -> list[CertificationStatus]:
    """Certifications due for renewal, soonest first.

    ``within_days`` defaults to the training policy's renewal notice.
    """
    today = today or utc_now().date()
    if within_days is None:
        policy = await training_port.get_training_policy_for_funeral_home(funeral_home_id)
        within_days = policy.settings.default_renewal_notice_days if policy else DEFAULT_RENEWAL_NOTICE_DAYS
    records = await training_port.get_certified_training_records(funeral_home_id)
    return lifecycle.certification_statuses(records, within_days, today, include_expired=include_expired)
