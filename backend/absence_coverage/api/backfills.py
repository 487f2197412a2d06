# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, Response, status

from absence_coverage.api.deps import (
    AuthDep,
    BackfillPortDep,
    HolidayCalendarDep,
    ManagerDep,
    apply_result_status,
    validate_funeral_home_scope,
)
from absence_coverage.config import get_settings
from absence_coverage.exceptions import NotFoundError
from absence_coverage.ports.backfill import BackfillManagementPort
from absence_coverage.schemas.backfill import (
    AssignBackfillCommand,
    AssignBackfillPayload,
    AssignBackfillResult,
    BackfillAssignment,
    BackfillDecisionResult,
    BackfillWorkload,
    CompleteBackfillCommand,
    CompleteBackfillPayload,
    ConfirmBackfillCommand,
    ConfirmBackfillPayload,
    CoverageSummary,
    DeclineBackfillCommand,
    DeclineBackfillPayload,
)
from absence_coverage.schemas.common import utc_now
from absence_coverage.services import backfill_workflow

backfills_router = APIRouter(
    prefix="/funeral-homes/{funeral_home_id}/backfills",
    tags=["backfills"],
    dependencies=[Depends(validate_funeral_home_scope)],
)

absence_coverage_router = APIRouter(
    prefix="/funeral-homes/{funeral_home_id}/absences/{absence_id}/coverage",
    tags=["backfills"],
    dependencies=[Depends(validate_funeral_home_scope)],
)

employee_workload_router = APIRouter(
    prefix="/funeral-homes/{funeral_home_id}/employees/{employee_id}/backfill-workload",
    tags=["backfills"],
    dependencies=[Depends(validate_funeral_home_scope)],
)


async def _get_scoped_assignment(
    port: BackfillManagementPort,
    funeral_home_id: uuid.UUID,
    assignment_id: uuid.UUID,
) -> BackfillAssignment:
    assignment = await port.get_backfill_assignment(assignment_id)
    if assignment is None or assignment.funeral_home_id != funeral_home_id:
        raise NotFoundError(backfill_workflow.NOT_FOUND_MESSAGE)
    return assignment


@backfills_router.post("", response_model=AssignBackfillResult, status_code=status.HTTP_201_CREATED)
async def assign_backfill(
    payload: AssignBackfillPayload,
    response: Response,
    port: BackfillPortDep,
    holidays: HolidayCalendarDep,
    auth: ManagerDep,
) -> AssignBackfillResult:
    """Assign a backfill employee to cover a PTO or training absence (manager only)."""
    settings = get_settings()
    command = AssignBackfillCommand(
        **payload.model_dump(),
        funeral_home_id=auth.funeral_home_id,
        assigned_by=auth.user_id,
    )
    result = await backfill_workflow.assign_pto_backfill(
        command,
        port,
        holidays=holidays,
        default_hourly_rate=settings.default_backfill_hourly_rate,
        hours_per_day=settings.hours_per_day,
    )
    return apply_result_status(response, result, status.HTTP_201_CREATED)


@backfills_router.get("/{assignment_id}", response_model=BackfillAssignment)
async def get_backfill_assignment(
    assignment_id: uuid.UUID,
    port: BackfillPortDep,
    auth: AuthDep,
) -> BackfillAssignment:
    return await _get_scoped_assignment(port, auth.funeral_home_id, assignment_id)


@backfills_router.post("/{assignment_id}/confirm", response_model=BackfillDecisionResult)
async def confirm_backfill(
    assignment_id: uuid.UUID,
    response: Response,
    port: BackfillPortDep,
    auth: AuthDep,
    payload: ConfirmBackfillPayload | None = None,
) -> BackfillDecisionResult:
    """Confirm a suggested or pending assignment."""
    await _get_scoped_assignment(port, auth.funeral_home_id, assignment_id)
    payload = payload or ConfirmBackfillPayload()
    command = ConfirmBackfillCommand(**payload.model_dump(), assignment_id=assignment_id, confirmed_by=auth.user_id)
    result = await backfill_workflow.confirm_backfill(command, port)
    return apply_result_status(response, result)


@backfills_router.post("/{assignment_id}/decline", response_model=BackfillDecisionResult)
async def decline_backfill(
    assignment_id: uuid.UUID,
    payload: DeclineBackfillPayload,
    response: Response,
    port: BackfillPortDep,
    auth: AuthDep,
) -> BackfillDecisionResult:
    """Decline a suggested or pending assignment."""
    await _get_scoped_assignment(port, auth.funeral_home_id, assignment_id)
    command = DeclineBackfillCommand(**payload.model_dump(), assignment_id=assignment_id, declined_by=auth.user_id)
    result = await backfill_workflow.decline_backfill(command, port)
    return apply_result_status(response, result)


@backfills_router.post("/{assignment_id}/complete", response_model=BackfillDecisionResult)
async def complete_backfill(
    assignment_id: uuid.UUID,
    payload: CompleteBackfillPayload,
    response: Response,
    port: BackfillPortDep,
    auth: ManagerDep,
) -> BackfillDecisionResult:
    """Mark a confirmed assignment as worked (manager only)."""
    await _get_scoped_assignment(port, auth.funeral_home_id, assignment_id)
    command = CompleteBackfillCommand(**payload.model_dump(), assignment_id=assignment_id, completed_by=auth.user_id)
    result = await backfill_workflow.complete_backfill(command, port)
    return apply_result_status(response, result)


@absence_coverage_router.get("", response_model=CoverageSummary)
async def get_coverage_summary(
    absence_id: uuid.UUID,
    port: BackfillPortDep,
    auth: AuthDep,
) -> CoverageSummary:
    """Coverage counts and estimated cost for one absence."""
    assignments = await port.get_backfill_assignments_by_absence(absence_id)
    if any(a.funeral_home_id != auth.funeral_home_id for a in assignments):
        raise NotFoundError("Absence not found")
    return await port.get_backfill_coverage_summary(absence_id)


@employee_workload_router.get("", response_model=BackfillWorkload)
async def get_backfill_workload(
    employee_id: uuid.UUID,
    port: BackfillPortDep,
    auth: AuthDep,
    month_of: date | None = Query(default=None),
) -> BackfillWorkload:
    """Backfill hours booked for an employee in the month containing ``month_of`` (defaults to today)."""
    return await port.get_backfill_employee_workload(
        auth.funeral_home_id, employee_id, month_of or utc_now().date()
    )
