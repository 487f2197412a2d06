# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlmodel import col

from absence_coverage.exceptions import ConflictError, InvalidStateTransition, NotFoundError
from absence_coverage.models.backfill_assignment import BackfillAssignmentModel
from absence_coverage.models.enums import BOOKED_BACKFILL_STATUSES, AuditAction, AuditEntityType
from absence_coverage.ports.backfill import DELETABLE_STATUSES, conflict_message
from absence_coverage.repositories.base import (
    flatten_employee,
    lock_employee_bookings,
    nest_employee,
    overlaps_window,
    storage_session,
)
from absence_coverage.schemas.backfill import BackfillAssignment, BackfillWorkload, CoverageSummary
from absence_coverage.services.audit import model_to_audit_dict, write_audit_log
from absence_coverage.services.backfill_assignment import release_backfill_assignment
from absence_coverage.services.coverage import (
    DEFAULT_HOURLY_RATE,
    DEFAULT_MONTHLY_CAPACITY_HOURS,
    coverage_summary,
    employee_workload,
    month_window,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

_BOOKED = [s.value for s in BOOKED_BACKFILL_STATUSES]


def _assignment_columns(assignment: BackfillAssignment) -> dict[str, Any]:
    data = assignment.model_dump()
    flatten_employee(data, "absent_employee", assignment.absent_employee)
    flatten_employee(data, "backfill_employee", assignment.backfill_employee)
    return data


def _assignment_to_domain(row: BackfillAssignmentModel) -> BackfillAssignment:
    data = row.model_dump()
    nest_employee(data, "absent_employee")
    nest_employee(data, "backfill_employee")
    return BackfillAssignment.model_validate(data)


class SqlBackfillManagement:
    """Backfill management port backed by PostgreSQL.

    Booking writes take a transaction-scoped advisory lock on the backfill
    employee, so the overlap check and the insert or update are atomic.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        hourly_rate: float = DEFAULT_HOURLY_RATE,
        capacity_hours: float = DEFAULT_MONTHLY_CAPACITY_HOURS,
        total_needed: int = 1,
    ) -> None:
        self._session_factory = session_factory
        self._hourly_rate = hourly_rate
        self._capacity_hours = capacity_hours
        self._total_needed = total_needed

    @staticmethod
    async def _find_booked_overlaps(
        session: AsyncSession,
        funeral_home_id: uuid.UUID,
        employee_id: uuid.UUID,
        start_date: date,
        end_date: date,
        exclude_assignment_id: uuid.UUID | None = None,
    ) -> list[BackfillAssignmentModel]:
        query = select(BackfillAssignmentModel).where(
            col(BackfillAssignmentModel.funeral_home_id) == funeral_home_id,
            col(BackfillAssignmentModel.backfill_employee_id) == employee_id,
            col(BackfillAssignmentModel.status).in_(_BOOKED),
            overlaps_window(
                col(BackfillAssignmentModel.absence_start_date),
                col(BackfillAssignmentModel.absence_end_date),
                start_date,
                end_date,
            ),
        )
        if exclude_assignment_id is not None:
            query = query.where(col(BackfillAssignmentModel.id) != exclude_assignment_id)
        result = await session.execute(query)
        return list(result.scalars().all())

    async def has_conflicting_backfills(
        self,
        funeral_home_id: uuid.UUID,
        employee_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> bool:
        async with storage_session(self._session_factory) as session:
            return bool(await self._find_booked_overlaps(session, funeral_home_id, employee_id, start_date, end_date))

    async def get_backfill_employee_workload(
        self,
        funeral_home_id: uuid.UUID,
        employee_id: uuid.UUID,
        month_of: date,
    ) -> BackfillWorkload:
        window_start, window_end = month_window(month_of)
        async with storage_session(self._session_factory) as session:
            result = await session.execute(
                select(BackfillAssignmentModel).where(
                    col(BackfillAssignmentModel.funeral_home_id) == funeral_home_id,
                    col(BackfillAssignmentModel.backfill_employee_id) == employee_id,
                    overlaps_window(
                        col(BackfillAssignmentModel.absence_start_date),
                        col(BackfillAssignmentModel.absence_end_date),
                        window_start,
                        window_end,
                    ),
                )
            )
            assignments = [_assignment_to_domain(row) for row in result.scalars().all()]
        return employee_workload(
            employee_id, assignments, month_of, hourly_rate=self._hourly_rate, capacity_hours=self._capacity_hours
        )

    async def create_backfill_assignment(
        self, assignment: BackfillAssignment, actor_id: uuid.UUID
    ) -> BackfillAssignment:
        async with storage_session(self._session_factory) as session:
            await lock_employee_bookings(session, assignment.backfill_employee.id)
            if await self._find_booked_overlaps(
                session,
                assignment.funeral_home_id,
                assignment.backfill_employee.id,
                assignment.absence_start_date,
                assignment.absence_end_date,
            ):
                raise ConflictError(conflict_message(assignment.backfill_employee.name))

            session.add(BackfillAssignmentModel(**_assignment_columns(assignment)))
            await write_audit_log(
                session,
                funeral_home_id=assignment.funeral_home_id,
                actor_id=actor_id,
                entity_type=AuditEntityType.BACKFILL_ASSIGNMENT,
                entity_id=assignment.id,
                action=AuditAction.CREATE,
                after_json=model_to_audit_dict(assignment),
            )
            await session.commit()
            return assignment

    async def get_backfill_assignment(self, assignment_id: uuid.UUID) -> BackfillAssignment | None:
        async with storage_session(self._session_factory) as session:
            row = await session.get(BackfillAssignmentModel, assignment_id)
            return _assignment_to_domain(row) if row is not None else None

    async def get_backfill_assignments_by_absence(self, absence_id: uuid.UUID) -> list[BackfillAssignment]:
        async with storage_session(self._session_factory) as session:
            result = await session.execute(
                select(BackfillAssignmentModel)
                .where(col(BackfillAssignmentModel.absence_id) == absence_id)
                .order_by(col(BackfillAssignmentModel.created_at))
            )
            return [_assignment_to_domain(row) for row in result.scalars().all()]

    async def get_backfill_coverage_summary(self, absence_id: uuid.UUID) -> CoverageSummary:
        assignments = await self.get_backfill_assignments_by_absence(absence_id)
        return coverage_summary(absence_id, assignments, total_needed=self._total_needed, hourly_rate=self._hourly_rate)

    async def _apply_update(
        self,
        session: AsyncSession,
        row: BackfillAssignmentModel,
        assignment: BackfillAssignment,
        actor_id: uuid.UUID,
    ) -> None:
        before = model_to_audit_dict(_assignment_to_domain(row))
        for key, value in _assignment_columns(assignment).items():
            setattr(row, key, value)
        await write_audit_log(
            session,
            funeral_home_id=assignment.funeral_home_id,
            actor_id=actor_id,
            entity_type=AuditEntityType.BACKFILL_ASSIGNMENT,
            entity_id=assignment.id,
            action=AuditAction.UPDATE,
            before_json=before,
            after_json=model_to_audit_dict(assignment),
        )

    async def update_backfill_assignment(
        self, assignment: BackfillAssignment, actor_id: uuid.UUID
    ) -> BackfillAssignment:
        async with storage_session(self._session_factory) as session:
            if assignment.status in BOOKED_BACKFILL_STATUSES:
                await lock_employee_bookings(session, assignment.backfill_employee.id)
            row = await session.get(BackfillAssignmentModel, assignment.id, with_for_update=True)
            if row is None:
                raise NotFoundError("Backfill assignment not found")
            if assignment.status in BOOKED_BACKFILL_STATUSES and await self._find_booked_overlaps(
                session,
                assignment.funeral_home_id,
                assignment.backfill_employee.id,
                assignment.absence_start_date,
                assignment.absence_end_date,
                exclude_assignment_id=assignment.id,
            ):
                raise ConflictError(conflict_message(assignment.backfill_employee.name))

            await self._apply_update(session, row, assignment, actor_id)
            await session.commit()
            return assignment

    async def delete_backfill_assignment(self, assignment_id: uuid.UUID) -> bool:
        async with storage_session(self._session_factory) as session:
            row = await session.get(BackfillAssignmentModel, assignment_id, with_for_update=True)
            if row is None:
                return False
            if row.status not in DELETABLE_STATUSES:
                raise InvalidStateTransition("backfill assignment", "delete", row.status)
            await write_audit_log(
                session,
                funeral_home_id=row.funeral_home_id,
                actor_id=row.assigned_by,
                entity_type=AuditEntityType.BACKFILL_ASSIGNMENT,
                entity_id=row.id,
                action=AuditAction.DELETE,
                before_json=model_to_audit_dict(_assignment_to_domain(row)),
            )
            await session.delete(row)
            await session.commit()
            return True

    async def release_backfills_for_window(
        self,
        funeral_home_id: uuid.UUID,
        start_date: date,
        end_date: date,
        absence_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> list[BackfillAssignment]:
        async with storage_session(self._session_factory) as session:
            result = await session.execute(
                select(BackfillAssignmentModel)
                .where(
                    col(BackfillAssignmentModel.funeral_home_id) == funeral_home_id,
                    col(BackfillAssignmentModel.absence_id) == absence_id,
                    col(BackfillAssignmentModel.status).in_(_BOOKED),
                    overlaps_window(
                        col(BackfillAssignmentModel.absence_start_date),
                        col(BackfillAssignmentModel.absence_end_date),
                        start_date,
                        end_date,
                    ),
                )
                .with_for_update()
            )
            released: list[BackfillAssignment] = []
            for row in result.scalars().all():
                updated = release_backfill_assignment(_assignment_to_domain(row))
                await self._apply_update(session, row, updated, actor_id)
                released.append(updated)
            await session.commit()
            return released
