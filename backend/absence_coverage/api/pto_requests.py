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
    PtoPortDep,
    apply_result_status,
    validate_funeral_home_scope,
)
from absence_coverage.exceptions import AppError, NotFoundError
from absence_coverage.ports.pto import PtoManagementPort
from absence_coverage.schemas.common import utc_now
from absence_coverage.schemas.pto import (
    ApprovePtoCommand,
    ApprovePtoPayload,
    ApprovePtoResult,
    CancelPtoCommand,
    CancelPtoPayload,
    CancelPtoResult,
    PtoBalance,
    PtoRequest,
    RejectPtoCommand,
    RejectPtoPayload,
    RejectPtoResult,
    RequestPtoCommand,
    RequestPtoResult,
    SubmitPtoPayload,
)
from absence_coverage.services import pto_workflow

pto_requests_router = APIRouter(
    prefix="/funeral-homes/{funeral_home_id}/pto-requests",
    tags=["pto-requests"],
    dependencies=[Depends(validate_funeral_home_scope)],
)

employee_pto_router = APIRouter(
    prefix="/funeral-homes/{funeral_home_id}/employees/{employee_id}/pto-balance",
    tags=["pto-requests"],
    dependencies=[Depends(validate_funeral_home_scope)],
)


async def _get_scoped_request(port: PtoManagementPort, funeral_home_id: uuid.UUID, request_id: uuid.UUID) -> PtoRequest:
    """Requests of other funeral homes are reported as missing."""
    request = await port.get_pto_request(request_id)
    if request is None or request.funeral_home_id != funeral_home_id:
        raise NotFoundError(pto_workflow.NOT_FOUND_MESSAGE)
    return request


@pto_requests_router.post("", response_model=RequestPtoResult, status_code=status.HTTP_201_CREATED)
async def request_pto(
    payload: SubmitPtoPayload,
    response: Response,
    port: PtoPortDep,
    holidays: HolidayCalendarDep,
    auth: AuthDep,
) -> RequestPtoResult:
    """Validate and submit a PTO request."""
    command = RequestPtoCommand(
        **payload.model_dump(),
        funeral_home_id=auth.funeral_home_id,
        requested_by=auth.user_id,
    )
    result = await pto_workflow.request_pto(command, port, holidays=holidays)
    return apply_result_status(response, result, status.HTTP_201_CREATED)


@pto_requests_router.get("/pending", response_model=list[PtoRequest])
async def list_pending_pto_requests(port: PtoPortDep, auth: ManagerDep) -> list[PtoRequest]:
    """List the PTO requests awaiting approval (manager only)."""
    return await port.get_pending_pto_requests(auth.funeral_home_id)


@pto_requests_router.get("/concurrent", response_model=list[PtoRequest])
async def list_concurrent_pto_requests(
    port: PtoPortDep,
    auth: ManagerDep,
    start_date: date = Query(),
    end_date: date = Query(),
    role: str | None = Query(default=None),
) -> list[PtoRequest]:
    """List pending or approved requests taking any day from ``start_date`` through ``end_date``."""
    if end_date < start_date:
        raise AppError("end_date must not precede start_date", status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)
    return await port.get_concurrent_pto_requests(auth.funeral_home_id, start_date, end_date, role)


@pto_requests_router.get("/{request_id}", response_model=PtoRequest)
async def get_pto_request(
    request_id: uuid.UUID,
    port: PtoPortDep,
    auth: AuthDep,
) -> PtoRequest:
    return await _get_scoped_request(port, auth.funeral_home_id, request_id)


@pto_requests_router.post("/{request_id}/approve", response_model=ApprovePtoResult)
async def approve_pto_request(
    request_id: uuid.UUID,
    response: Response,
    port: PtoPortDep,
    backfill_port: BackfillPortDep,
    auth: ManagerDep,
    payload: ApprovePtoPayload | None = None,
) -> ApprovePtoResult:
    """Approve a pending PTO request (manager only)."""
    await _get_scoped_request(port, auth.funeral_home_id, request_id)
    payload = payload or ApprovePtoPayload()
    command = ApprovePtoCommand(**payload.model_dump(), request_id=request_id, approved_by=auth.user_id)
    result = await pto_workflow.approve_pto_request(command, port, backfill_port)
    return apply_result_status(response, result)


@pto_requests_router.post("/{request_id}/reject", response_model=RejectPtoResult)
async def reject_pto_request(
    request_id: uuid.UUID,
    payload: RejectPtoPayload,
    response: Response,
    port: PtoPortDep,
    backfill_port: BackfillPortDep,
    auth: ManagerDep,
) -> RejectPtoResult:
    """Reject a pending PTO request and cancel its backfill assignments (manager only)."""
    await _get_scoped_request(port, auth.funeral_home_id, request_id)
    command = RejectPtoCommand(**payload.model_dump(), request_id=request_id, rejected_by=auth.user_id)
    result = await pto_workflow.reject_pto_request(command, port, backfill_port)
    return apply_result_status(response, result)


@pto_requests_router.post("/{request_id}/cancel", response_model=CancelPtoResult)
async def cancel_pto_request(
    request_id: uuid.UUID,
    response: Response,
    port: PtoPortDep,
    backfill_port: BackfillPortDep,
    auth: AuthDep,
    payload: CancelPtoPayload | None = None,
) -> CancelPtoResult:
    """Cancel a draft or pending PTO request and its backfill assignments."""
    await _get_scoped_request(port, auth.funeral_home_id, request_id)
    payload = payload or CancelPtoPayload()
    command = CancelPtoCommand(**payload.model_dump(), request_id=request_id, cancelled_by=auth.user_id)
    result = await pto_workflow.cancel_pto_request(command, port, backfill_port)
    return apply_result_status(response, result)


@employee_pto_router.get("", response_model=PtoBalance)
async def get_employee_pto_balance(
    employee_id: uuid.UUID,
    port: PtoPortDep,
    auth: AuthDep,
    year: int | None = Query(default=None, ge=2000, le=2100),
) -> PtoBalance:
    """Get an employee's PTO balance for a calendar year (defaults to the current year)."""
    year = year or utc_now().year
    balance = await port.get_employee_pto_balance(auth.funeral_home_id, employee_id, year)
    if balance is None:
        raise NotFoundError(pto_workflow.NO_POLICY_MESSAGE)
    return balance
