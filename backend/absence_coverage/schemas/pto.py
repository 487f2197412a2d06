# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Self

from pydantic import BaseModel, Field, model_validator

from absence_coverage.models.enums import PtoRequestStatus, PtoType
from absence_coverage.schemas.common import DomainModel, EmployeeRef, WorkflowResult

# ---------------------------------------------------------------------------
# Domain values
# ---------------------------------------------------------------------------


class PtoRequest(DomainModel):
    """An employee's PTO request. ``requested_days`` is derived from the date span."""

    id: uuid.UUID
    funeral_home_id: uuid.UUID
    employee: EmployeeRef
    pto_type: PtoType
    start_date: date
    end_date: date
    requested_days: int
    reason: str | None = None
    status: PtoRequestStatus = PtoRequestStatus.DRAFT
    policy_id: uuid.UUID | None = None
    policy_version: int | None = None
    created_by: uuid.UUID
    submitted_at: datetime | None = None
    approved_by: uuid.UUID | None = None
    rejected_by: uuid.UUID | None = None
    rejection_reason: str | None = None
    decided_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _validate_dates(self) -> Self:
        if self.end_date < self.start_date:
            msg = "end_date must not precede start_date"
            raise ValueError(msg)
        return self


class PtoBalance(BaseModel):
    """Employee PTO balance for the current year, in days."""

    employee_id: uuid.UUID
    annual_allowance: int
    days_used: int
    days_remaining: int
    pending_requests: int


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class SubmitPtoPayload(BaseModel):
    """Request body for submitting a PTO request."""

    employee: EmployeeRef
    pto_type: PtoType
    start_date: date
    end_date: date
    reason: str | None = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def _validate_dates(self) -> Self:
        if self.end_date < self.start_date:
            msg = "end_date must not precede start_date"
            raise ValueError(msg)
        return self


class RequestPtoCommand(SubmitPtoPayload):
    """Input for submitting a new PTO request."""

    funeral_home_id: uuid.UUID
    requested_by: uuid.UUID


class ApprovePtoPayload(BaseModel):
    """Request body for approving a PTO request."""

    backfill_verified: bool = False


class ApprovePtoCommand(ApprovePtoPayload):
    """Input for approving a pending PTO request."""

    request_id: uuid.UUID
    approved_by: uuid.UUID


class RejectPtoPayload(BaseModel):
    rejection_reason: str = Field(min_length=1, max_length=1000)


class RejectPtoCommand(RejectPtoPayload):
    """Input for rejecting a pending PTO request."""

    request_id: uuid.UUID
    rejected_by: uuid.UUID


class CancelPtoPayload(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


class CancelPtoCommand(CancelPtoPayload):
    """Input for cancelling a draft or pending PTO request."""

    request_id: uuid.UUID
    cancelled_by: uuid.UUID


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class RequestPtoResult(WorkflowResult):
    """Outcome of RequestPto. Nothing is persisted when ``validation_errors`` is non-empty."""

    request: PtoRequest | None = None
    validation_errors: list[str] = []
    requires_backfill: bool = False


class ApprovePtoResult(WorkflowResult):
    """Outcome of ApprovePtoRequest."""

    request: PtoRequest | None = None


class RejectPtoResult(WorkflowResult):
    """Outcome of RejectPtoRequest, with the number of backfills cancelled."""

    request: PtoRequest | None = None
    backfills_cancelled: int = 0


class CancelPtoResult(WorkflowResult):
    """Outcome of CancelPtoRequest, with the number of backfills cancelled."""

    request: PtoRequest | None = None
    backfills_cancelled: int = 0
