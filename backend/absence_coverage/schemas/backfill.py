# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Self

from pydantic import BaseModel, Field, model_validator

from absence_coverage.models.enums import AbsenceType, BackfillStatus, PremiumType
from absence_coverage.schemas.common import DomainModel, EmployeeRef, WorkflowResult

# ---------------------------------------------------------------------------
# Domain values
# ---------------------------------------------------------------------------


class BackfillAssignment(DomainModel):
    """Temporary staff assignment covering one absence.

    The absence is referenced by id only; the PTO request or training record
    is never embedded.
    """

    id: uuid.UUID
    funeral_home_id: uuid.UUID
    absence_id: uuid.UUID
    absence_type: AbsenceType
    absence_start_date: date
    absence_end_date: date
    absent_employee: EmployeeRef
    backfill_employee: EmployeeRef
    status: BackfillStatus = BackfillStatus.SUGGESTED
    premium_type: PremiumType = PremiumType.NONE
    premium_multiplier: float = 1.0
    estimated_hours: float
    actual_hours: float | None = None
    notes: str | None = None
    rejection_reason: str | None = None
    assigned_by: uuid.UUID
    suggested_at: datetime
    confirmed_at: datetime | None = None
    confirmed_by: uuid.UUID | None = None
    rejected_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _validate_dates(self) -> Self:
        if self.absence_end_date < self.absence_start_date:
            msg = "absence_end_date must not precede absence_start_date"
            raise ValueError(msg)
        return self


class CoverageSummary(BaseModel):
    """How well an absence is covered by backfill assignments."""

    absence_id: uuid.UUID
    total_needed: int
    confirmed_count: int
    pending_count: int
    rejected_count: int
    coverage_complete: bool
    estimated_cost: float


class BackfillWorkload(BaseModel):
    """A backfill employee's booked coverage within one month."""

    employee_id: uuid.UUID
    window_start: date
    window_end: date
    confirmed_count: int
    pending_count: int
    confirmed_hours: float
    pending_hours: float
    scheduled_hours: float
    estimated_cost: float
    capacity_hours: float
    max_capacity_reached: bool


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class AssignBackfillPayload(BaseModel):
    """Request body for assigning a backfill employee to cover an absence."""

    absence_id: uuid.UUID
    absence_type: AbsenceType = AbsenceType.PTO
    absence_start_date: date
    absence_end_date: date
    absent_employee: EmployeeRef
    backfill_employee: EmployeeRef
    premium_type: PremiumType = PremiumType.NONE
    premium_multiplier: float = Field(default=1.0, ge=1.0)
    hourly_rate: float | None = Field(default=None, gt=0)
    send_for_confirmation: bool = False

    @model_validator(mode="after")
    def _validate_dates(self) -> Self:
        if self.absence_end_date < self.absence_start_date:
            msg = "absence_end_date must not precede absence_start_date"
            raise ValueError(msg)
        if self.absent_employee.id == self.backfill_employee.id:
            msg = "An employee cannot cover their own absence"
            raise ValueError(msg)
        return self


class AssignBackfillCommand(AssignBackfillPayload):
    """Input for assigning a backfill employee to cover an absence."""

    funeral_home_id: uuid.UUID
    assigned_by: uuid.UUID


class ConfirmBackfillPayload(BaseModel):
    actual_hours: float | None = Field(default=None, ge=0)


class ConfirmBackfillCommand(ConfirmBackfillPayload):
    """Input for confirming a suggested or pending backfill assignment."""

    assignment_id: uuid.UUID
    confirmed_by: uuid.UUID


class DeclineBackfillPayload(BaseModel):
    reason: str = Field(min_length=1, max_length=1000)


class DeclineBackfillCommand(DeclineBackfillPayload):
    """Input for declining a suggested or pending backfill assignment."""

    assignment_id: uuid.UUID
    declined_by: uuid.UUID


class CompleteBackfillPayload(BaseModel):
    actual_hours: float = Field(ge=0)


class CompleteBackfillCommand(CompleteBackfillPayload):
    """Input for completing a confirmed backfill assignment."""

    assignment_id: uuid.UUID
    completed_by: uuid.UUID


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class AssignBackfillResult(WorkflowResult):
    """Outcome of AssignPtoBackfill. Estimates are reported even on failure."""

    assignment: BackfillAssignment | None = None
    estimated_hours: float = 0
    estimated_cost: float = 0


class BackfillDecisionResult(WorkflowResult):
    """Outcome of confirming, declining or completing a backfill assignment."""

    assignment: BackfillAssignment | None = None
