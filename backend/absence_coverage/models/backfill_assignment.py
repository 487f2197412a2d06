# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from absence_coverage.models.base import TimestampMixin, UUIDBase, timestamp_field
from absence_coverage.models.enums import BackfillStatus, PremiumType


class BackfillAssignmentModel(UUIDBase, TimestampMixin, table=True):
    """Temporary staff assignment covering one absence, referenced by ``absence_id`` only."""

    __tablename__ = "backfill_assignment"
    __table_args__ = (
        sa.Index("ix_backfill_home_employee_status", "funeral_home_id", "backfill_employee_id", "status"),
        sa.Index("ix_backfill_home_absent_employee", "funeral_home_id", "absent_employee_id"),
    )

    funeral_home_id: uuid.UUID = Field(index=True)
    absence_id: uuid.UUID = Field(index=True)
    absence_type: str = Field(max_length=50)
    absence_start_date: date
    absence_end_date: date
    absent_employee_id: uuid.UUID
    absent_employee_name: str = Field(max_length=255)
    absent_employee_role: str | None = Field(default=None, max_length=50)
    backfill_employee_id: uuid.UUID
    backfill_employee_name: str = Field(max_length=255)
    backfill_employee_role: str | None = Field(default=None, max_length=50)
    status: str = Field(
        default=BackfillStatus.SUGGESTED, max_length=50, sa_column_kwargs={"server_default": "suggested"}
    )
    premium_type: str = Field(default=PremiumType.NONE, max_length=50)
    premium_multiplier: float = 1.0
    estimated_hours: float
    actual_hours: float | None = None
    notes: str | None = None
    rejection_reason: str | None = None
    assigned_by: uuid.UUID
    suggested_at: datetime = timestamp_field()
    confirmed_at: datetime | None = timestamp_field(nullable=True)
    confirmed_by: uuid.UUID | None = None
    rejected_at: datetime | None = timestamp_field(nullable=True)
    completed_at: datetime | None = timestamp_field(nullable=True)
    cancelled_at: datetime | None = timestamp_field(nullable=True)
    updated_at: datetime = timestamp_field()
