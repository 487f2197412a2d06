# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from absence_coverage.models.base import TimestampMixin, UUIDBase, timestamp_field
from absence_coverage.models.enums import TrainingStatus


class TrainingRecordModel(UUIDBase, TimestampMixin, table=True):
    """An employee's training session and the certification it produced."""

    __tablename__ = "training_record"
    __table_args__ = (sa.Index("ix_training_record_home_employee", "funeral_home_id", "employee_id"),)

    funeral_home_id: uuid.UUID = Field(index=True)
    employee_id: uuid.UUID
    employee_name: str = Field(max_length=255)
    employee_role: str | None = Field(default=None, max_length=50)
    training_type: str = Field(max_length=50)
    training_name: str = Field(max_length=255)
    required_for_role: bool = False
    status: str = Field(
        default=TrainingStatus.SCHEDULED, max_length=50, index=True, sa_column_kwargs={"server_default": "scheduled"}
    )
    scheduled_date: date | None = None
    start_date: date | None = None
    end_date: date | None = None
    completed_at: datetime | None = timestamp_field(nullable=True)
    hours: float
    cost: float = 0
    instructor: str | None = Field(default=None, max_length=255)
    location: str | None = Field(default=None, max_length=255)
    certification_number: str | None = Field(default=None, max_length=255)
    expires_at: date | None = None
    notes: str | None = None
    approved_by: uuid.UUID | None = None
    approved_at: datetime | None = timestamp_field(nullable=True)
    created_by: uuid.UUID
    updated_at: datetime = timestamp_field()
