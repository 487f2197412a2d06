# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from absence_coverage.models.base import TimestampMixin, UUIDBase, timestamp_field


class PtoPolicyModel(UUIDBase, TimestampMixin, table=True):
    """One SCD2 version of an organization's PTO policy.

    At most one row per organization has ``is_current`` set; superseded rows
    keep their settings and get ``valid_to``.
    """

    __tablename__ = "pto_policy"
    __table_args__ = (
        sa.UniqueConstraint("funeral_home_id", "version", name="uq_pto_policy_version"),
        sa.Index(
            "uq_pto_policy_current",
            "funeral_home_id",
            unique=True,
            postgresql_where=sa.text("is_current"),
        ),
    )

    funeral_home_id: uuid.UUID = Field(index=True)
    business_key: str = Field(max_length=255)
    version: int
    valid_from: datetime = timestamp_field()
    valid_to: datetime | None = timestamp_field(nullable=True)
    is_current: bool = Field(default=True)
    settings_json: dict[str, Any] = Field(default_factory=dict, sa_type=sa.JSON)
    created_by: uuid.UUID
    notes: str | None = None


class TrainingPolicyModel(UUIDBase, TimestampMixin, table=True):
    """One SCD2 version of an organization's training policy."""

    __tablename__ = "training_policy"
    __table_args__ = (
        sa.UniqueConstraint("funeral_home_id", "version", name="uq_training_policy_version"),
        sa.Index(
            "uq_training_policy_current",
            "funeral_home_id",
            unique=True,
            postgresql_where=sa.text("is_current"),
        ),
    )

    funeral_home_id: uuid.UUID = Field(index=True)
    business_key: str = Field(max_length=255)
    version: int
    valid_from: datetime = timestamp_field()
    valid_to: datetime | None = timestamp_field(nullable=True)
    is_current: bool = Field(default=True)
    settings_json: dict[str, Any] = Field(default_factory=dict, sa_type=sa.JSON)
    created_by: uuid.UUID
    notes: str | None = None
