# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, Response, status

from absence_coverage.api.deps import (
    AuthDep,
    BackfillPortDep,
    ManagerDep,
    TrainingPortDep,
    apply_result_status,
    validate_funeral_home_scope,
)
from absence_coverage.exceptions import AppError, NotFoundError
from absence_coverage.ports.training import TrainingManagementPort
from absence_coverage.schemas.common import utc_now
from absence_coverage.schemas.training import (
    ApproveTrainingCommand,
    ApproveTrainingPayload,
    ApproveTrainingResult,
    CancelTrainingCommand,
    CancelTrainingPayload,
    CancelTrainingResult,
    CertificationStatus,
    CompleteTrainingCommand,
    CompleteTrainingPayload,
    CompleteTrainingResult,
    EmployeeTrainingSummary,
    RequestTrainingCommand,
    RequestTrainingPayload,
    RequestTrainingResult,
    TrainingRecord,
    TrainingNoShowCommand,
    TrainingNoShowPayload,
    TrainingNoShowResult,
)
from absence_coverage.services import training_workflow

trainings_router = APIRouter(
    prefix="/funeral-homes/{funeral_home_id}/trainings",
    tags=["trainings"],
    dependencies=[Depends(validate_funeral_home_scope)],
)

employee_training_router = APIRouter(
    prefix="/funeral-homes/{funeral_home_id}/employees/{employee_id}/training-summary",
    tags=["trainings"],
    dependencies=[Depends(validate_funeral_home_scope)],
)


async def _get_scoped_record(
    port: TrainingManagementPort,
    funeral_home_id: uuid.UUID,
    record_id: uuid.UUID,
) -> TrainingRecord:
    record = await port.get_training_record(record_id)
    if record is None or record.funeral_home_id != funeral_home_id:
        raise NotFoundError(training_workflow.NOT_FOUND_MESSAGE)
    return record


@trainings_router.post("", response_model=RequestTrainingResult, status_code=status.HTTP_201_CREATED)
async def request_training(
    payload: RequestTrainingPayload,
    response: Response,
    port: TrainingPortDep,
    auth: AuthDep,
) -> RequestTrainingResult:
    """Request a training session within the role's annual allowance."""
    command = RequestTrainingCommand(
        **payload.model_dump(),
        funeral_home_id=auth.funeral_home_id,
        requested_by=auth.user_id,
    )
    result = await training_workflow.request_training(command, port)
    return apply_result_status(response, result, status.HTTP_201_CREATED)


@trainings_router.get("/certifications/expiring", response_model=list[CertificationStatus])
async def list_expiring_certifications(
    port: TrainingPortDep,
    auth: ManagerDep,
    within_days: int | None = Query(default=None, ge=0, le=3650),
    include_expired: bool = Query(default=False),
) -> list[CertificationStatus]:
    """Certifications due for renewal, soonest first (manager only).

    ``within_days`` defaults to the training policy's renewal notice.
    """
    return await training_workflow.list_expiring_certifications(
        port, auth.funeral_home_id, within_days=within_days, include_expired=include_expired
    )


@trainings_router.get("/multi-day", response_model=list[TrainingRecord])
async def list_multi_day_trainings(
    port: TrainingPortDep,
    auth: ManagerDep,
    start_date: date = Query(),
    end_date: date = Query(),
) -> list[TrainingRecord]:
    """Scheduled or running multi-day sessions taking any day from ``start_date`` through ``end_date``."""
    if end_date < start_date:
        raise AppError("end_date must not precede start_date", status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)
    return await port.get_multi_day_trainings_scheduled(auth.funeral_home_id, start_date, end_date)


@trainings_router.get("/{record_id}", response_model=TrainingRecord)
async def get_training_record(
    record_id: uuid.UUID,
    port: TrainingPortDep,
    auth: AuthDep,
) -> TrainingRecord:
    return await _get_scoped_record(port, auth.funeral_home_id, record_id)


@trainings_router.post("/{record_id}/approve", response_model=ApproveTrainingResult)
async def approve_training(
    record_id: uuid.UUID,
    response: Response,
    port: TrainingPortDep,
    auth: ManagerDep,
    payload: ApproveTrainingPayload | None = None,
) -> ApproveTrainingResult:
    """Approve a scheduled training session (manager only)."""
    await _get_scoped_record(port, auth.funeral_home_id, record_id)
    payload = payload or ApproveTrainingPayload()
    command = ApproveTrainingCommand(**payload.model_dump(), record_id=record_id, approved_by=auth.user_id)
    result = await training_workflow.approve_training(command, port)
    return apply_result_status(response, result)


@trainings_router.post("/{record_id}/complete", response_model=CompleteTrainingResult)
async def complete_training(
    record_id: uuid.UUID,
    payload: CompleteTrainingPayload,
    response: Response,
    port: TrainingPortDep,
    backfill_port: BackfillPortDep,
    auth: ManagerDep,
) -> CompleteTrainingResult:
    """Complete a session and release the backfill assignments that covered it (manager only)."""
    await _get_scoped_record(port, auth.funeral_home_id, record_id)
    command = CompleteTrainingCommand(**payload.model_dump(), record_id=record_id, completed_by=auth.user_id)
    result = await training_workflow.complete_training(command, port, backfill_port)
    return apply_result_status(response, result)


@trainings_router.post("/{record_id}/cancel", response_model=CancelTrainingResult)
async def cancel_training(
    record_id: uuid.UUID,
    response: Response,
    port: TrainingPortDep,
    backfill_port: BackfillPortDep,
    auth: AuthDep,
    payload: CancelTrainingPayload | None = None,
) -> CancelTrainingResult:
    """Cancel a scheduled session and its backfill assignments."""
    await _get_scoped_record(port, auth.funeral_home_id, record_id)
    payload = payload or CancelTrainingPayload()
    command = CancelTrainingCommand(**payload.model_dump(), record_id=record_id, cancelled_by=auth.user_id)
    result = await training_workflow.cancel_training(command, port, backfill_port)
    return apply_result_status(response, result)


@trainings_router.post("/{record_id}/no-show", response_model=TrainingNoShowResult)
async def record_training_no_show(
    record_id: uuid.UUID,
    response: Response,
    port: TrainingPortDep,
    auth: ManagerDep,
    payload: TrainingNoShowPayload | None = None,
) -> TrainingNoShowResult:
    """Record that the employee did not attend the session (manager only)."""
    await _get_scoped_record(port, auth.funeral_home_id, record_id)
    payload = payload or TrainingNoShowPayload()
    command = TrainingNoShowCommand(**payload.model_dump(), record_id=record_id, recorded_by=auth.user_id)
    result = await training_workflow.record_training_no_show(command, port)
    return apply_result_status(response, result)


@employee_training_router.get("", response_model=EmployeeTrainingSummary)
async def get_employee_training_summary(
    employee_id: uuid.UUID,
    port: TrainingPortDep,
    auth: AuthDep,
    year: int | None = Query(default=None, ge=2000, le=2100),
) -> EmployeeTrainingSummary:
    """Training hours and spend used by an employee in a calendar year."""
    return await port.get_employee_training_summary(auth.funeral_home_id, employee_id, year or utc_now().year)
