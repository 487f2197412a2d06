# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from absence_coverage.models.base import TimestampMixin, UUIDBase, timestamp_field
from absence_coverage.models.enums import PtoRequestStatus


class PtoRequestModel(UUIDBase, TimestampMixin, table=True):
    """An employee's PTO request with its approval workflow state."""

    __tablename__ = "pto_request"
    __table_args__ = (
        sa.Index("ix_pto_request_home_status", "funeral_home_id", "status"),
        sa.Index("ix_pto_request_home_employee", "funeral_home_id", "employee_id"),
    )

    funeral_home_id: uuid.UUID = Field(index=True)
    employee_id: uuid.UUID
    employee_name: str = Field(max_length=255)
    employee_role: str | None = Field(default=None, max_length=50)
    pto_type: str = Field(max_length=50)
    start_date: date
    end_date: date
    requested_days: int
    reason: str | None = None
    status: str = Field(default=PtoRequestStatus.DRAFT, max_length=50, sa_column_kwargs={"server_default": "draft"})
    policy_id: uuid.UUID | None = Field(
        default=None,
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("pto_policy.id", ondelete="SET NULL"), nullable=True),
    )
    policy_version: int | None = None
    created_by: uuid.UUID
    submitted_at: datetime | None = timestamp_field(nullable=True)
    approved_by: uuid.UUID | None = None
    rejected_by: uuid.UUID | None = None
    rejection_reason: str | None = None
    decided_at: datetime | None = timestamp_field(nullable=True)
    cancelled_at: datetime | None = timestamp_field(nullable=True)
    updated_at: datetime = timestamp_field()
