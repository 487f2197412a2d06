# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from absence_coverage.models.base import UUIDBase, now_utc, timestamp_field


class AuditLog(UUIDBase, table=True):
    """Immutable before/after snapshot of one write to a policy, request, record or assignment."""

    __tablename__ = "audit_log"
    __table_args__ = (sa.Index("ix_audit_entity", "entity_type", "entity_id"),)

    funeral_home_id: uuid.UUID = Field(index=True)
    actor_id: uuid.UUID
    entity_type: str = Field(max_length=50)
    entity_id: uuid.UUID
    action: str = Field(max_length=50)
    before_json: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    after_json: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    created_at: datetime = timestamp_field(
        default_factory=now_utc,
        index=True,
        sa_column_kwargs={"server_default": sa.func.now()},
    )
