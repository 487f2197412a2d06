from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def now_utc() -> datetime:
    return datetime.now(UTC)


def timestamp_field(*, nullable: bool = False, **kwargs: Any) -> Any:
    """Timezone-aware timestamp column; nullable columns default to NULL."""
    if nullable:
        kwargs.setdefault("default", None)
    return Field(sa_type=sa.DateTime(timezone=True), **kwargs)  # ty: ignore[invalid-argument-type]


class UUIDBase(SQLModel):
    """Base model with a client-generated UUID primary key."""

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        sa_type=sa.Uuid,
    )


class TimestampMixin(SQLModel):
    """Mixin that adds a created_at timestamp."""

    created_at: datetime = timestamp_field(
        default_factory=now_utc,
        sa_column_kwargs={"server_default": sa.func.now()},
    )
