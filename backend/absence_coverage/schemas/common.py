# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from absence_coverage.models.enums import ErrorType


def utc_now() -> datetime:
    """Return the current UTC time."""
    return datetime.now(UTC)


class DomainModel(BaseModel):
    """Immutable domain value. Transitions produce copies, never mutate."""

    model_config = ConfigDict(frozen=True)


class EmployeeRef(DomainModel):
    """Denormalized employee reference carried on requests and assignments."""

    id: uuid.UUID
    name: str = Field(min_length=1)
    role: str | None = None


class WorkflowResult(BaseModel):
    """Common shape of every workflow outcome.

    ``errors`` holds blocking failures (not found, invalid state, conflict),
    ``warnings`` holds soft rule violations that did not block the operation.
    """

    success: bool
    errors: list[str] = []
    warnings: list[str] = []
    error_type: ErrorType | None = None
