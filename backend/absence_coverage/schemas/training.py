# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Self

from pydantic import BaseModel, Field, model_validator

from absence_coverage.models.enums import TrainingStatus, TrainingType
from absence_coverage.schemas.common import DomainModel, EmployeeRef, WorkflowResult

# ---------------------------------------------------------------------------
# Domain values
# ---------------------------------------------------------------------------


class TrainingRecord(DomainModel):
    """An employee's training session and, once completed, its certification."""

    id: uuid.UUID
    funeral_home_id: uuid.UUID
    employee: EmployeeRef
    training_type: TrainingType
    training_name: str
    required_for_role: bool = False
    status: TrainingStatus = TrainingStatus.SCHEDULED
    scheduled_date: date | None = None
    start_date: date | None = None
    end_date: date | None = None
    completed_at: datetime | None = None
    hours: float
    cost: float = 0
    instructor: str | None = None
    location: str | None = None
    certification_number: str | None = None
    expires_at: date | None = None
    approved_by: uuid.UUID | None = None
    approved_at: datetime | None = None
    notes: str | None = None
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime


class EmployeeTrainingSummary(BaseModel):
    """Completed training hours and spend for one employee in one year."""

    employee_id: uuid.UUID
    year: int
    total_hours_used: float
    total_budget_used: float


class CertificationStatus(BaseModel):
    """A completed training's certification and how long it remains valid."""

    record_id: uuid.UUID
    employee: EmployeeRef
    training_type: TrainingType
    training_name: str
    certification_number: str | None = None
    expires_at: date
    days_until_expiration: int | None = None
    expired: bool = False


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class RequestTrainingPayload(BaseModel):
    """Request body for a training session.

    ``start_date``/``end_date`` carry the real span of multi-day training;
    without them the session is treated as occurring on ``scheduled_date``.
    """

    employee: EmployeeRef
    training_type: TrainingType
    training_name: str = Field(min_length=1, max_length=255)
    required_for_role: bool = False
    scheduled_date: date | None = None
    start_date: date | None = None
    end_date: date | None = None
    hours: float = Field(default=8, gt=0)
    cost: float = Field(default=0, ge=0)
    instructor: str | None = None
    location: str | None = None

    @model_validator(mode="after")
    def _validate_command(self) -> Self:
        if not self.employee.role:
            msg = "employee.role is required for training requests"
            raise ValueError(msg)
        if (self.start_date is None) != (self.end_date is None):
            msg = "start_date and end_date must be provided together"
            raise ValueError(msg)
        if self.start_date is not None and self.end_date is not None and self.end_date < self.start_date:
            msg = "end_date must not precede start_date"
            raise ValueError(msg)
        return self


class RequestTrainingCommand(RequestTrainingPayload):
    """Input for requesting a training session."""

    funeral_home_id: uuid.UUID
    requested_by: uuid.UUID


class ApproveTrainingPayload(BaseModel):
    schedule_training: bool = False
    start_date: date | None = None
    end_date: date | None = None
    assign_backfill_if_multi_day: bool = False


class ApproveTrainingCommand(ApproveTrainingPayload):
    """Input for approving a scheduled training session."""

    record_id: uuid.UUID
    approved_by: uuid.UUID


class CompleteTrainingPayload(BaseModel):
    """Request body for completing a training session with its certification data."""

    hours: float = Field(gt=0)
    certification_number: str | None = Field(default=None, max_length=255)
    expires_at: date | None = None
    end_date: date | None = None


class CompleteTrainingCommand(CompleteTrainingPayload):
    record_id: uuid.UUID
    completed_by: uuid.UUID


class CancelTrainingPayload(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


class CancelTrainingCommand(CancelTrainingPayload):
    """Input for cancelling a scheduled training session."""

    record_id: uuid.UUID
    cancelled_by: uuid.UUID


class TrainingNoShowPayload(BaseModel):
    notes: str | None = Field(default=None, max_length=1000)


class TrainingNoShowCommand(TrainingNoShowPayload):
    """Input for recording that the employee did not attend a session."""

    record_id: uuid.UUID
    recorded_by: uuid.UUID


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class RequestTrainingResult(WorkflowResult):
    """Outcome of RequestTraining."""

    training_record: TrainingRecord | None = None
    requires_approval: bool = False
    requires_backfill: bool = False
    validation_errors: list[str] = []


class ApproveTrainingResult(WorkflowResult):
    """Outcome of ApproveTraining.

    ``backfill_assigned`` is always False: arranging coverage is a separate
    AssignPtoBackfill call made by the caller when ``requires_backfill`` is set.
    """

    training_record: TrainingRecord | None = None
    requires_backfill: bool = False
    backfill_assigned: bool = False


class CompleteTrainingResult(WorkflowResult):
    """Outcome of CompleteTraining, with the number of backfills released."""

    training_record: TrainingRecord | None = None
    backfills_released: int = 0


class CancelTrainingResult(WorkflowResult):
    """Outcome of CancelTraining, with the number of backfills cancelled."""

    training_record: TrainingRecord | None = None
    backfills_cancelled: int = 0


class TrainingNoShowResult(WorkflowResult):
    training_record: TrainingRecord | None = None

