# ruff: noqa: TC003
from __future__ import annotations

import asyncio
import uuid
from datetime import date
from typing import Protocol, runtime_checkable

from absence_coverage.exceptions import ConflictError, NotFoundError
from absence_coverage.models.enums import TrainingStatus
from absence_coverage.schemas.policy import TrainingPolicy
from absence_coverage.schemas.training import EmployeeTrainingSummary, TrainingRecord
from absence_coverage.services.intervals import inclusive_overlaps, is_multi_day_training
from absence_coverage.services.training_record import summarize_training

# Records that still occupy the employee's calendar.
UPCOMING_TRAINING_STATUSES = frozenset({TrainingStatus.SCHEDULED, TrainingStatus.IN_PROGRESS})


@runtime_checkable
class TrainingManagementPort(Protocol):
    """Storage operations for training policies and training records."""

    async def get_training_policy_for_funeral_home(self, funeral_home_id: uuid.UUID) -> TrainingPolicy | None:
        """Return the current training policy version, or None if the organization has none."""
        ...

    async def get_training_policy_history(self, funeral_home_id: uuid.UUID) -> list[TrainingPolicy]:
        """Return every training policy version, newest first."""
        ...

    async def create_training_policy(self, policy: TrainingPolicy, actor_id: uuid.UUID) -> TrainingPolicy: ...

    async def update_training_policy(
        self,
        superseded: TrainingPolicy,
        current: TrainingPolicy,
        actor_id: uuid.UUID,
    ) -> TrainingPolicy:
        """Atomically end-date ``superseded`` and store ``current``. Raises ConflictError on a stale update."""
        ...

    async def create_training_record(self, record: TrainingRecord, actor_id: uuid.UUID) -> TrainingRecord: ...

    async def get_training_record(self, record_id: uuid.UUID) -> TrainingRecord | None: ...

    async def get_employee_training_summary(
        self,
        funeral_home_id: uuid.UUID,
        employee_id: uuid.UUID,
        year: int,
    ) -> EmployeeTrainingSummary:
        """Hours and spend of training the employee completed in ``year``."""
        ...

    async def update_training_record(self, record: TrainingRecord, actor_id: uuid.UUID) -> TrainingRecord:
        """Replace the stored record. Raises NotFoundError if it does not exist."""
        ...

    async def get_multi_day_trainings_scheduled(
        self,
        funeral_home_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> list[TrainingRecord]:
        """Scheduled or in-progress multi-day trainings overlapping the window."""
        ...

    async def get_certified_training_records(self, funeral_home_id: uuid.UUID) -> list[TrainingRecord]:
        """Completed records carrying a certification expiry date."""
        ...


class InMemoryTrainingManagement:
    """In-memory implementation for development and tests."""

    def __init__(self) -> None:
        self._policies: dict[uuid.UUID, TrainingPolicy] = {}
        self._current_policy: dict[uuid.UUID, uuid.UUID] = {}
        self._records: dict[uuid.UUID, TrainingRecord] = {}
        self._lock = asyncio.Lock()

    def seed_record(self, record: TrainingRecord) -> None:
        """Seed a training record for testing."""
        self._records[record.id] = record

    async def get_training_policy_for_funeral_home(self, funeral_home_id: uuid.UUID) -> TrainingPolicy | None:
        policy_id = self._current_policy.get(funeral_home_id)
        return self._policies[policy_id] if policy_id is not None else None

    async def get_training_policy_history(self, funeral_home_id: uuid.UUID) -> list[TrainingPolicy]:
        versions = [p for p in self._policies.values() if p.funeral_home_id == funeral_home_id]
        return sorted(versions, key=lambda p: p.version, reverse=True)

    async def create_training_policy(self, policy: TrainingPolicy, actor_id: uuid.UUID) -> TrainingPolicy:
        async with self._lock:
            if policy.funeral_home_id in self._current_policy:
                raise ConflictError("A training policy already exists for this funeral home")
            self._policies[policy.id] = policy
            self._current_policy[policy.funeral_home_id] = policy.id
        return policy

    async def update_training_policy(
        self,
        superseded: TrainingPolicy,
        current: TrainingPolicy,
        actor_id: uuid.UUID,
    ) -> TrainingPolicy:
        async with self._lock:
            if self._current_policy.get(superseded.funeral_home_id) != superseded.id:
                raise ConflictError("Training policy was changed by another update")
            self._policies[superseded.id] = superseded
            self._policies[current.id] = current
            self._current_policy[current.funeral_home_id] = current.id
        return current

    async def create_training_record(self, record: TrainingRecord, actor_id: uuid.UUID) -> TrainingRecord:
        self._records[record.id] = record
        return record

    async def get_training_record(self, record_id: uuid.UUID) -> TrainingRecord | None:
        return self._records.get(record_id)

    async def get_employee_training_summary(
        self,
        funeral_home_id: uuid.UUID,
        employee_id: uuid.UUID,
        year: int,
    ) -> EmployeeTrainingSummary:
        records = [r for r in self._records.values() if r.funeral_home_id == funeral_home_id]
        return summarize_training(employee_id, records, year)

    async def update_training_record(self, record: TrainingRecord, actor_id: uuid.UUID) -> TrainingRecord:
        if record.id not in self._records:
            raise NotFoundError("Training record not found")
        self._records[record.id] = record
        return record

    async def get_multi_day_trainings_scheduled(
        self,
        funeral_home_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> list[TrainingRecord]:
        return [
            r
            for r in self._records.values()
            if r.funeral_home_id == funeral_home_id
            and r.status in UPCOMING_TRAINING_STATUSES
            and r.start_date is not None
            and r.end_date is not None
            and is_multi_day_training(r.start_date, r.end_date)
            and inclusive_overlaps(start_date, end_date, r.start_date, r.end_date)
        ]

    async def get_certified_training_records(self, funeral_home_id: uuid.UUID) -> list[TrainingRecord]:
        return [
            r
            for r in self._records.values()
            if r.funeral_home_id == funeral_home_id
            and r.status == TrainingStatus.COMPLETED
            and r.expires_at is not None
        ]


_training_port: TrainingManagementPort = InMemoryTrainingManagement()


def get_training_port() -> TrainingManagementPort:
    """FastAPI dependency for the training management port."""
    return _training_port


def set_training_port(port: TrainingManagementPort) -> None:
    """Override the port (for testing or production wiring)."""
    global _training_port
    _training_port = port
