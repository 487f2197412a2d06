# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from absence_coverage.exceptions import ConflictError, NotFoundError
from absence_coverage.models.enums import AuditAction, AuditEntityType, TrainingStatus
from absence_coverage.models.policy import TrainingPolicyModel
from absence_coverage.models.training_record import TrainingRecordModel
from absence_coverage.ports.training import UPCOMING_TRAINING_STATUSES
from absence_coverage.repositories.base import (
    flatten_employee,
    inclusive_overlaps_window,
    nest_employee,
    storage_session,
)
from absence_coverage.schemas.policy import TrainingPolicy, TrainingPolicySettings
from absence_coverage.schemas.training import EmployeeTrainingSummary, TrainingRecord
from absence_coverage.services.audit import model_to_audit_dict, write_audit_log
from absence_coverage.services.intervals import is_multi_day_training
from absence_coverage.services.training_record import summarize_training

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


def _policy_to_domain(row: TrainingPolicyModel) -> TrainingPolicy:
    return TrainingPolicy(
        id=row.id,
        funeral_home_id=row.funeral_home_id,
        business_key=row.business_key,
        version=row.version,
        valid_from=row.valid_from,
        valid_to=row.valid_to,
        is_current=row.is_current,
        settings=TrainingPolicySettings.model_validate(row.settings_json),
        created_by=row.created_by,
        created_at=row.created_at,
        notes=row.notes,
    )


def _policy_to_row(policy: TrainingPolicy) -> TrainingPolicyModel:
    return TrainingPolicyModel(
        id=policy.id,
        funeral_home_id=policy.funeral_home_id,
        business_key=policy.business_key,
        version=policy.version,
        valid_from=policy.valid_from,
        valid_to=policy.valid_to,
        is_current=policy.is_current,
        settings_json=policy.settings.model_dump(mode="json"),
        created_by=policy.created_by,
        created_at=policy.created_at,
        notes=policy.notes,
    )


def _record_columns(record: TrainingRecord) -> dict[str, Any]:
    data = record.model_dump()
    flatten_employee(data, "employee", record.employee)
    return data


def _record_to_domain(row: TrainingRecordModel) -> TrainingRecord:
    data = row.model_dump()
    nest_employee(data, "employee")
    return TrainingRecord.model_validate(data)


class SqlTrainingManagement:
    """Training management port backed by PostgreSQL."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _current_policy_row(
        self,
        session: AsyncSession,
        funeral_home_id: uuid.UUID,
        for_update: bool = False,
    ) -> TrainingPolicyModel | None:
        query = select(TrainingPolicyModel).where(
            col(TrainingPolicyModel.funeral_home_id) == funeral_home_id,
            col(TrainingPolicyModel.is_current).is_(True),
        )
        if for_update:
            query = query.with_for_update()
        result = await session.execute(query)
        return result.scalar_one_or_none()

    async def get_training_policy_for_funeral_home(self, funeral_home_id: uuid.UUID) -> TrainingPolicy | None:
        async with storage_session(self._session_factory) as session:
            row = await self._current_policy_row(session, funeral_home_id)
            return _policy_to_domain(row) if row is not None else None

    async def get_training_policy_history(self, funeral_home_id: uuid.UUID) -> list[TrainingPolicy]:
        async with storage_session(self._session_factory) as session:
            result = await session.execute(
                select(TrainingPolicyModel)
                .where(col(TrainingPolicyModel.funeral_home_id) == funeral_home_id)
                .order_by(col(TrainingPolicyModel.version).desc())
            )
            return [_policy_to_domain(row) for row in result.scalars().all()]

    async def create_training_policy(self, policy: TrainingPolicy, actor_id: uuid.UUID) -> TrainingPolicy:
        async with storage_session(self._session_factory) as session:
            session.add(_policy_to_row(policy))
            await write_audit_log(
                session,
                funeral_home_id=policy.funeral_home_id,
                actor_id=actor_id,
                entity_type=AuditEntityType.TRAINING_POLICY,
                entity_id=policy.id,
                action=AuditAction.CREATE,
                after_json=model_to_audit_dict(policy),
            )
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ConflictError("A training policy already exists for this funeral home") from exc
            return policy

    async def update_training_policy(
        self,
        superseded: TrainingPolicy,
        current: TrainingPolicy,
        actor_id: uuid.UUID,
    ) -> TrainingPolicy:
        async with storage_session(self._session_factory) as session:
            row = await self._current_policy_row(session, superseded.funeral_home_id, for_update=True)
            if row is None or row.id != superseded.id:
                raise ConflictError("Training policy was changed by another update")

            before = model_to_audit_dict(_policy_to_domain(row))
            row.is_current = False
            row.valid_to = superseded.valid_to
            await session.flush()

            session.add(_policy_to_row(current))
            await write_audit_log(
                session,
                funeral_home_id=superseded.funeral_home_id,
                actor_id=actor_id,
                entity_type=AuditEntityType.TRAINING_POLICY,
                entity_id=superseded.id,
                action=AuditAction.UPDATE,
                before_json=before,
                after_json=model_to_audit_dict(superseded),
            )
            await write_audit_log(
                session,
                funeral_home_id=current.funeral_home_id,
                actor_id=actor_id,
                entity_type=AuditEntityType.TRAINING_POLICY,
                entity_id=current.id,
                action=AuditAction.CREATE,
                after_json=model_to_audit_dict(current),
            )
            await session.commit()
            return current

    async def create_training_record(self, record: TrainingRecord, actor_id: uuid.UUID) -> TrainingRecord:
        async with storage_session(self._session_factory) as session:
            session.add(TrainingRecordModel(**_record_columns(record)))
            await write_audit_log(
                session,
                funeral_home_id=record.funeral_home_id,
                actor_id=actor_id,
                entity_type=AuditEntityType.TRAINING_RECORD,
                entity_id=record.id,
                action=AuditAction.CREATE,
                after_json=model_to_audit_dict(record),
            )
            await session.commit()
            return record

    async def get_training_record(self, record_id: uuid.UUID) -> TrainingRecord | None:
        async with storage_session(self._session_factory) as session:
            row = await session.get(TrainingRecordModel, record_id)
            return _record_to_domain(row) if row is not None else None

    async def get_employee_training_summary(
        self,
        funeral_home_id: uuid.UUID,
        employee_id: uuid.UUID,
        year: int,
    ) -> EmployeeTrainingSummary:
        async with storage_session(self._session_factory) as session:
            result = await session.execute(
                select(TrainingRecordModel).where(
                    col(TrainingRecordModel.funeral_home_id) == funeral_home_id,
                    col(TrainingRecordModel.employee_id) == employee_id,
                    col(TrainingRecordModel.completed_at).is_not(None),
                )
            )
            records = [_record_to_domain(row) for row in result.scalars().all()]
        return summarize_training(employee_id, records, year)

    async def update_training_record(self, record: TrainingRecord, actor_id: uuid.UUID) -> TrainingRecord:
        async with storage_session(self._session_factory) as session:
            row = await session.get(TrainingRecordModel, record.id, with_for_update=True)
            if row is None:
                raise NotFoundError("Training record not found")
            before = model_to_audit_dict(_record_to_domain(row))
            for key, value in _record_columns(record).items():
                setattr(row, key, value)
            await write_audit_log(
                session,
                funeral_home_id=record.funeral_home_id,
                actor_id=actor_id,
                entity_type=AuditEntityType.TRAINING_RECORD,
                entity_id=record.id,
                action=AuditAction.UPDATE,
                before_json=before,
                after_json=model_to_audit_dict(record),
            )
            await session.commit()
            return record

    async def get_multi_day_trainings_scheduled(
        self,
        funeral_home_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> list[TrainingRecord]:
        async with storage_session(self._session_factory) as session:
            result = await session.execute(
                select(TrainingRecordModel).where(
                    col(TrainingRecordModel.funeral_home_id) == funeral_home_id,
                    col(TrainingRecordModel.status).in_([s.value for s in UPCOMING_TRAINING_STATUSES]),
                    col(TrainingRecordModel.start_date).is_not(None),
                    col(TrainingRecordModel.end_date).is_not(None),
                    col(TrainingRecordModel.end_date) > col(TrainingRecordModel.start_date),
                    inclusive_overlaps_window(
                        col(TrainingRecordModel.start_date), col(TrainingRecordModel.end_date), start_date, end_date
                    ),
                )
            )
            records = [_record_to_domain(row) for row in result.scalars().all()]
        return [r for r in records if is_multi_day_training(r.start_date, r.end_date)]

    async def get_certified_training_records(self, funeral_home_id: uuid.UUID) -> list[TrainingRecord]:
        async with storage_session(self._session_factory) as session:
            result = await session.execute(
                select(TrainingRecordModel)
                .where(
                    col(TrainingRecordModel.funeral_home_id) == funeral_home_id,
                    col(TrainingRecordModel.status) == TrainingStatus.COMPLETED,
                    col(TrainingRecordModel.expires_at).is_not(None),
                )
                .order_by(col(TrainingRecordModel.expires_at))
            )
            return [_record_to_domain(row) for row in result.scalars().all()]
