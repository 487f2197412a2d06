# ruff: noqa: TC003
"""PTO use cases: request, approve, reject and cancel.

Business-rule failures come back as unsuccessful results; only storage
failures raised by the ports propagate.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import TYPE_CHECKING

from absence_coverage.exceptions import InvalidStateTransition
from absence_coverage.models.enums import ErrorType, PtoType
from absence_coverage.schemas.common import utc_now
from absence_coverage.schemas.pto import ApprovePtoResult, CancelPtoResult, RejectPtoResult, RequestPtoResult
from absence_coverage.services import pto_request as lifecycle
from absence_coverage.services.backfill_workflow import cancel_backfills_for_absence
from absence_coverage.services.intervals import (
    blackout_overlaps,
    count_concurrent,
    exceeds_consecutive_days,
    has_schedule_conflict,
    meets_advance_notice,
)

if TYPE_CHECKING:
    from absence_coverage.ports.backfill import BackfillManagementPort
    from absence_coverage.ports.holidays import HolidayCalendar
    from absence_coverage.ports.pto import PtoManagementPort
    from absence_coverage.schemas.policy import PtoPolicySettings
    from absence_coverage.schemas.pto import (
        ApprovePtoCommand,
        CancelPtoCommand,
        PtoRequest,
        RejectPtoCommand,
        RequestPtoCommand,
    )

logger = logging.getLogger(__name__)

NO_POLICY_MESSAGE = "No PTO policy found for this funeral home"
NOT_FOUND_MESSAGE = "PTO request not found"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


async def _required_notice_days(
    settings: PtoPolicySettings,
    request: PtoRequest,
    holidays: HolidayCalendar | None,
) -> int:
    """Regular notice, or the holiday notice when the window contains a holiday."""
    if holidays is None:
        return settings.min_advance_notice_days
    if await holidays.get_holidays(request.funeral_home_id, request.start_date, request.end_date):
        return max(settings.min_advance_notice_days, settings.min_advance_notice_holidays_days)
    return settings.min_advance_notice_days


# ---------------------------------------------------------------------------
# Use cases
# ---------------------------------------------------------------------------


async def request_pto(
    command: RequestPtoCommand,
    pto_port: PtoManagementPort,
    holidays: HolidayCalendar | None = None,
    today: date | None = None,
    now: datetime | None = None,
) -> RequestPtoResult:
    """Validate a new request against the current policy and submit it.

    Every rule check runs and its message is collected; concurrency and
    balance shortfalls are warnings only. Nothing is stored when any
    validation error was found.
    """
    now = now or utc_now()
    today = today or now.date()

    draft = lifecycle.create_pto_request(
        funeral_home_id=command.funeral_home_id,
        employee=command.employee,
        pto_type=command.pto_type,
        start_date=command.start_date,
        end_date=command.end_date,
        created_by=command.requested_by,
        reason=command.reason,
        now=now,
    )

    policy = await pto_port.get_pto_policy_for_funeral_home(command.funeral_home_id)
    if policy is None:
        return RequestPtoResult(success=False, errors=[NO_POLICY_MESSAGE], error_type=ErrorType.NOT_FOUND)
    settings = policy.settings

    validation_errors: list[str] = []
    warnings: list[str] = []

    notice_days = await _required_notice_days(settings, draft, holidays)
    if not meets_advance_notice(draft, notice_days, today):
        validation_errors.append(f"PTO requests require at least {notice_days} days advance notice")

    for blackout in blackout_overlaps(draft, settings.blackout_dates):
        validation_errors.append(
            f"Requested dates overlap blackout period '{blackout.name}' "
            f"({blackout.start_date.isoformat()} to {blackout.end_date.isoformat()})"
        )

    if exceeds_consecutive_days(draft, settings.max_consecutive_pto_days):
        validation_errors.append(
            f"Request of {draft.requested_days} days exceeds the maximum of "
            f"{settings.max_consecutive_pto_days} consecutive PTO days"
        )

    existing = await pto_port.get_pto_requests_by_employee(command.funeral_home_id, command.employee.id)
    if has_schedule_conflict(draft, existing):
        validation_errors.append("Requested dates overlap another PTO request for this employee")

    role = command.employee.role
    role_policy = settings.role_policies.get(role) if role else None
    if role_policy is not None:
        max_concurrent = role_policy.max_concurrent_employees
        concurrent = await pto_port.get_concurrent_pto_requests(
            command.funeral_home_id, draft.start_date, draft.end_date, role=role
        )
    else:
        max_concurrent = settings.max_concurrent_employees_on_pto
        concurrent = await pto_port.get_concurrent_pto_requests(
            command.funeral_home_id, draft.start_date, draft.end_date
        )
    already_off = count_concurrent(concurrent, draft.start_date, draft.end_date, exclude_employee_id=draft.employee.id)
    if already_off >= max_concurrent:
        scope = f"{role} employees" if role_policy is not None else "employees"
        warnings.append(
            f"{already_off} other {scope} already have PTO during this period (maximum {max_concurrent})"
        )

    if draft.pto_type != PtoType.UNPAID:
        balance = await pto_port.get_employee_pto_balance(
            command.funeral_home_id, command.employee.id, draft.start_date.year
        )
        if balance is not None and draft.requested_days > balance.days_remaining:
            warnings.append(
                f"Insufficient PTO balance: {balance.days_remaining} days remaining, {draft.requested_days} requested"
            )

    requires_backfill = role_policy.requires_backfill if role_policy is not None else False

    if validation_errors:
        logger.info(
            "PTO request for employee %s rejected by validation: %s",
            command.employee.id,
            "; ".join(validation_errors),
        )
        return RequestPtoResult(
            success=False,
            errors=list(validation_errors),
            validation_errors=validation_errors,
            warnings=warnings,
            error_type=ErrorType.VALIDATION,
            requires_backfill=requires_backfill,
        )

    submitted = lifecycle.submit_pto_request(draft, policy=policy, now=now)
    stored = await pto_port.create_pto_request(submitted, command.requested_by)
    logger.info(
        "PTO request %s submitted for employee %s under policy v%d",
        stored.id,
        stored.employee.id,
        policy.version,
    )
    return RequestPtoResult(success=True, request=stored, warnings=warnings, requires_backfill=requires_backfill)


async def approve_pto_request(
    command: ApprovePtoCommand,
    pto_port: PtoManagementPort,
    backfill_port: BackfillManagementPort,
    now: datetime | None = None,
) -> ApprovePtoResult:
    """Approve a pending request, optionally requiring complete backfill coverage first."""
    request = await pto_port.get_pto_request(command.request_id)
    if request is None:
        return ApprovePtoResult(success=False, errors=[NOT_FOUND_MESSAGE], error_type=ErrorType.NOT_FOUND)

    try:
        approved = lifecycle.approve_pto_request(request, command.approved_by, now=now)
    except InvalidStateTransition as exc:
        return ApprovePtoResult(
            success=False, request=request, errors=[exc.message], error_type=ErrorType.INVALID_STATE
        )

    if command.backfill_verified:
        coverage = await backfill_port.get_backfill_coverage_summary(request.id)
        if not coverage.coverage_complete:
            message = (
                f"Backfill coverage is incomplete: {coverage.confirmed_count} of {coverage.total_needed} confirmed, "
                f"{coverage.pending_count} pending, {coverage.rejected_count} rejected"
            )
            return ApprovePtoResult(success=False, request=request, errors=[message], error_type=ErrorType.VALIDATION)

    stored = await pto_port.update_pto_request(approved, command.approved_by)
    logger.info("PTO request %s approved by %s", stored.id, command.approved_by)
    return ApprovePtoResult(success=True, request=stored)


async def reject_pto_request(
    command: RejectPtoCommand,
    pto_port: PtoManagementPort,
    backfill_port: BackfillManagementPort,
    now: datetime | None = None,
) -> RejectPtoResult:
    """Reject a pending request and cancel the backfill assignments covering it."""
    now = now or utc_now()
    request = await pto_port.get_pto_request(command.request_id)
    if request is None:
        return RejectPtoResult(success=False, errors=[NOT_FOUND_MESSAGE], error_type=ErrorType.NOT_FOUND)

    try:
        rejected = lifecycle.reject_pto_request(request, command.rejection_reason, command.rejected_by, now=now)
    except InvalidStateTransition as exc:
        return RejectPtoResult(success=False, request=request, errors=[exc.message], error_type=ErrorType.INVALID_STATE)

    cancelled = await cancel_backfills_for_absence(
        backfill_port, request.id, command.rejected_by, f"PTO request rejected: {command.rejection_reason}", now
    )
    stored = await pto_port.update_pto_request(rejected, command.rejected_by)
    logger.info("PTO request %s rejected; %d backfill assignment(s) cancelled", stored.id, cancelled)
    return RejectPtoResult(success=True, request=stored, backfills_cancelled=cancelled)


async def cancel_pto_request(
    command: CancelPtoCommand,
    pto_port: PtoManagementPort,
    backfill_port: BackfillManagementPort,
    now: datetime | None = None,
) -> CancelPtoResult:
    """Cancel a draft or pending request and the backfill assignments covering it."""
    now = now or utc_now()
    request = await pto_port.get_pto_request(command.request_id)
    if request is None:
        return CancelPtoResult(success=False, errors=[NOT_FOUND_MESSAGE], error_type=ErrorType.NOT_FOUND)

    try:
        cancelled_request = lifecycle.cancel_pto_request(request, now=now)
    except InvalidStateTransition as exc:
        return CancelPtoResult(success=False, request=request, errors=[exc.message], error_type=ErrorType.INVALID_STATE)

    reason = f"PTO request cancelled: {command.reason}" if command.reason else "PTO request cancelled"
    cancelled = await cancel_backfills_for_absence(backfill_port, request.id, command.cancelled_by, reason, now)
    stored = await pto_port.update_pto_request(cancelled_request, command.cancelled_by)
    logger.info("PTO request %s cancelled; %d backfill assignment(s) cancelled", stored.id, cancelled)
    return CancelPtoResult(success=True, request=stored, backfills_cancelled=cancelled)
