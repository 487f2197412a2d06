# ruff: noqa: TC003
from __future__ import annotations

import asyncio
import uuid
from datetime import date
from typing import Protocol, runtime_checkable

from absence_coverage.exceptions import ConflictError, InvalidStateTransition, NotFoundError
from absence_coverage.models.enums import BOOKED_BACKFILL_STATUSES, BackfillStatus
from absence_coverage.schemas.backfill import BackfillAssignment, BackfillWorkload, CoverageSummary
from absence_coverage.services.backfill_assignment import release_backfill_assignment
from absence_coverage.services.coverage import (
    DEFAULT_HOURLY_RATE,
    DEFAULT_MONTHLY_CAPACITY_HOURS,
    coverage_summary,
    employee_workload,
)
from absence_coverage.services.intervals import find_booked_overlaps, find_releasable_backfills

# Assignments that may be deleted outright instead of cancelled.
DELETABLE_STATUSES = frozenset({BackfillStatus.SUGGESTED, BackfillStatus.PENDING_CONFIRMATION, BackfillStatus.REJECTED})


def conflict_message(backfill_employee_name: str) -> str:
    return f"{backfill_employee_name} already has a pending or confirmed backfill assignment overlapping this period"


@runtime_checkable
class BackfillManagementPort(Protocol):
    """Storage operations for backfill assignments.

    ``create_backfill_assignment`` and ``update_backfill_assignment`` are the
    atomic guard against double-booking: they raise ``ConflictError`` when the
    backfill employee already holds a pending or confirmed assignment that
    overlaps the window.
    """

    async def has_conflicting_backfills(
        self,
        funeral_home_id: uuid.UUID,
        employee_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> bool: ...

    async def get_backfill_employee_workload(
        self,
        funeral_home_id: uuid.UUID,
        employee_id: uuid.UUID,
        month_of: date,
    ) -> BackfillWorkload:
        """Workload in the calendar month containing ``month_of``."""
        ...

    async def create_backfill_assignment(
        self, assignment: BackfillAssignment, actor_id: uuid.UUID
    ) -> BackfillAssignment:
        """Store a new assignment. Raises ConflictError on an overlapping booking."""
        ...

    async def get_backfill_assignment(self, assignment_id: uuid.UUID) -> BackfillAssignment | None: ...

    async def get_backfill_assignments_by_absence(self, absence_id: uuid.UUID) -> list[BackfillAssignment]: ...

    async def get_backfill_coverage_summary(self, absence_id: uuid.UUID) -> CoverageSummary: ...

    async def update_backfill_assignment(
        self, assignment: BackfillAssignment, actor_id: uuid.UUID
    ) -> BackfillAssignment:
        """Replace the stored assignment.

        Raises NotFoundError if it does not exist and ConflictError if the new
        state books the employee over an overlapping assignment.
        """
        ...

    async def delete_backfill_assignment(self, assignment_id: uuid.UUID) -> bool:
        """Delete an assignment that was never confirmed. Returns False if missing."""
        ...

    async def release_backfills_for_window(
        self,
        funeral_home_id: uuid.UUID,
        start_date: date,
        end_date: date,
        absence_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> list[BackfillAssignment]:
        """Release the pending or confirmed assignments covering ``absence_id`` in the window.

        Confirmed assignments are completed and pending ones cancelled. Returns
        the released assignments in their new state.
        """
        ...


class InMemoryBackfillManagement:
    """In-memory implementation for development and tests."""

    def __init__(
        self,
        hourly_rate: float = DEFAULT_HOURLY_RATE,
        capacity_hours: float = DEFAULT_MONTHLY_CAPACITY_HOURS,
        total_needed: int = 1,
    ) -> None:
        self._assignments: dict[uuid.UUID, BackfillAssignment] = {}
        self._lock = asyncio.Lock()
        self._hourly_rate = hourly_rate
        self._capacity_hours = capacity_hours
        self._total_needed = total_needed

    def seed(self, assignment: BackfillAssignment) -> None:
        """Seed an assignment for testing, bypassing the conflict guard."""
        self._assignments[assignment.id] = assignment

    def _overlapping(self, assignment: BackfillAssignment) -> list[BackfillAssignment]:
        return find_booked_overlaps(
            self._assignments.values(),
            assignment.funeral_home_id,
            assignment.backfill_employee.id,
            assignment.absence_start_date,
            assignment.absence_end_date,
            exclude_assignment_id=assignment.id,
        )

    async def has_conflicting_backfills(
        self,
        funeral_home_id: uuid.UUID,
        employee_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> bool:
        overlaps = find_booked_overlaps(self._assignments.values(), funeral_home_id, employee_id, start_date, end_date)
        return bool(overlaps)

    async def get_backfill_employee_workload(
        self,
        funeral_home_id: uuid.UUID,
        employee_id: uuid.UUID,
        month_of: date,
    ) -> BackfillWorkload:
        assignments = [a for a in self._assignments.values() if a.funeral_home_id == funeral_home_id]
        return employee_workload(
            employee_id,
            assignments,
            month_of,
            hourly_rate=self._hourly_rate,
            capacity_hours=self._capacity_hours,
        )

    async def create_backfill_assignment(
        self, assignment: BackfillAssignment, actor_id: uuid.UUID
    ) -> BackfillAssignment:
        async with self._lock:
            if self._overlapping(assignment):
                raise ConflictError(conflict_message(assignment.backfill_employee.name))
            self._assignments[assignment.id] = assignment
        return assignment

    async def get_backfill_assignment(self, assignment_id: uuid.UUID) -> BackfillAssignment | None:
        return self._assignments.get(assignment_id)

    async def get_backfill_assignments_by_absence(self, absence_id: uuid.UUID) -> list[BackfillAssignment]:
        return [a for a in self._assignments.values() if a.absence_id == absence_id]

    async def get_backfill_coverage_summary(self, absence_id: uuid.UUID) -> CoverageSummary:
        assignments = await self.get_backfill_assignments_by_absence(absence_id)
        return coverage_summary(absence_id, assignments, total_needed=self._total_needed, hourly_rate=self._hourly_rate)

    async def update_backfill_assignment(
        self, assignment: BackfillAssignment, actor_id: uuid.UUID
    ) -> BackfillAssignment:
        async with self._lock:
            if assignment.id not in self._assignments:
                raise NotFoundError("Backfill assignment not found")
            if assignment.status in BOOKED_BACKFILL_STATUSES and self._overlapping(assignment):
                raise ConflictError(conflict_message(assignment.backfill_employee.name))
            self._assignments[assignment.id] = assignment
        return assignment

    async def delete_backfill_assignment(self, assignment_id: uuid.UUID) -> bool:
        assignment = self._assignments.get(assignment_id)
        if assignment is None:
            return False
        if assignment.status not in DELETABLE_STATUSES:
            raise InvalidStateTransition("backfill assignment", "delete", assignment.status)
        del self._assignments[assignment_id]
        return True

    async def release_backfills_for_window(
        self,
        funeral_home_id: uuid.UUID,
        start_date: date,
        end_date: date,
        absence_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> list[BackfillAssignment]:
        released: list[BackfillAssignment] = []
        async with self._lock:
            candidates = find_releasable_backfills(
                self._assignments.values(), funeral_home_id, absence_id, start_date, end_date
            )
            for assignment in candidates:
                updated = release_backfill_assignment(assignment)
                self._assignments[updated.id] = updated
                released.append(updated)
        return released


_backfill_port: BackfillManagementPort = InMemoryBackfillManagement()


def get_backfill_port() -> BackfillManagementPort:
    """FastAPI dependency for the backfill management port."""
    return _backfill_port


def set_backfill_port(port: BackfillManagementPort) -> None:
    """Override the port (for testing or production wiring)."""
    global _backfill_port
    _backfill_port = port
