# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from absence_coverage.exceptions import ConflictError, InvalidStateTransition, NotFoundError
from absence_coverage.models.enums import AuditAction, AuditEntityType, PtoRequestStatus
from absence_coverage.models.policy import PtoPolicyModel
from absence_coverage.models.pto_request import PtoRequestModel
from absence_coverage.repositories.base import (
    flatten_employee,
    inclusive_overlaps_window,
    nest_employee,
    storage_session,
)
from absence_coverage.schemas.policy import PtoPolicy, PtoPolicySettings
from absence_coverage.schemas.pto import PtoBalance, PtoRequest
from absence_coverage.services.audit import model_to_audit_dict, write_audit_log
from absence_coverage.services.intervals import CONCURRENT_STATUSES
from absence_coverage.services.pto_request import calculate_pto_balance

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------


def _policy_to_domain(row: PtoPolicyModel) -> PtoPolicy:
    return PtoPolicy(
        id=row.id,
        funeral_home_id=row.funeral_home_id,
        business_key=row.business_key,
        version=row.version,
        valid_from=row.valid_from,
        valid_to=row.valid_to,
        is_current=row.is_current,
        settings=PtoPolicySettings.model_validate(row.settings_json),
        created_by=row.created_by,
        created_at=row.created_at,
        notes=row.notes,
    )


def _policy_to_row(policy: PtoPolicy) -> PtoPolicyModel:
    return PtoPolicyModel(
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


def _request_columns(request: PtoRequest) -> dict[str, Any]:
    data = request.model_dump()
    flatten_employee(data, "employee", request.employee)
    return data


def _request_to_domain(row: PtoRequestModel) -> PtoRequest:
    data = row.model_dump()
    nest_employee(data, "employee")
    return PtoRequest.model_validate(data)


# ---------------------------------------------------------------------------
# Port implementation
# ---------------------------------------------------------------------------


class SqlPtoManagement:
    """PTO management port backed by PostgreSQL. Every write records an audit log entry."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _current_policy_row(
        self,
        session: AsyncSession,
        funeral_home_id: uuid.UUID,
        for_update: bool = False,
    ) -> PtoPolicyModel | None:
        query = select(PtoPolicyModel).where(
            col(PtoPolicyModel.funeral_home_id) == funeral_home_id,
            col(PtoPolicyModel.is_current).is_(True),
        )
        if for_update:
            query = query.with_for_update()
        result = await session.execute(query)
        return result.scalar_one_or_none()

    async def get_pto_policy_for_funeral_home(self, funeral_home_id: uuid.UUID) -> PtoPolicy | None:
        async with storage_session(self._session_factory) as session:
            row = await self._current_policy_row(session, funeral_home_id)
            return _policy_to_domain(row) if row is not None else None

    async def get_pto_policy_history(self, funeral_home_id: uuid.UUID) -> list[PtoPolicy]:
        async with storage_session(self._session_factory) as session:
            result = await session.execute(
                select(PtoPolicyModel)
                .where(col(PtoPolicyModel.funeral_home_id) == funeral_home_id)
                .order_by(col(PtoPolicyModel.version).desc())
            )
            return [_policy_to_domain(row) for row in result.scalars().all()]

    async def create_pto_policy(self, policy: PtoPolicy, actor_id: uuid.UUID) -> PtoPolicy:
        async with storage_session(self._session_factory) as session:
            row = _policy_to_row(policy)
            session.add(row)
            await write_audit_log(
                session,
                funeral_home_id=policy.funeral_home_id,
                actor_id=actor_id,
                entity_type=AuditEntityType.PTO_POLICY,
                entity_id=policy.id,
                action=AuditAction.CREATE,
                after_json=model_to_audit_dict(policy),
            )
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ConflictError("A PTO policy already exists for this funeral home") from exc
            return policy

    async def update_pto_policy(self, superseded: PtoPolicy, current: PtoPolicy, actor_id: uuid.UUID) -> PtoPolicy:
        async with storage_session(self._session_factory) as session:
            row = await self._current_policy_row(session, superseded.funeral_home_id, for_update=True)
            if row is None or row.id != superseded.id:
                raise ConflictError("PTO policy was changed by another update")

            before = model_to_audit_dict(_policy_to_domain(row))
            row.is_current = False
            row.valid_to = superseded.valid_to
            # The current-version index allows one current row; end-date before inserting.
            await session.flush()

            session.add(_policy_to_row(current))
            await write_audit_log(
                session,
                funeral_home_id=superseded.funeral_home_id,
                actor_id=actor_id,
                entity_type=AuditEntityType.PTO_POLICY,
                entity_id=superseded.id,
                action=AuditAction.UPDATE,
                before_json=before,
                after_json=model_to_audit_dict(superseded),
            )
            await write_audit_log(
                session,
                funeral_home_id=current.funeral_home_id,
                actor_id=actor_id,
                entity_type=AuditEntityType.PTO_POLICY,
                entity_id=current.id,
                action=AuditAction.CREATE,
                after_json=model_to_audit_dict(current),
            )
            await session.commit()
            return current

    async def create_pto_request(self, request: PtoRequest, actor_id: uuid.UUID) -> PtoRequest:
        async with storage_session(self._session_factory) as session:
            session.add(PtoRequestModel(**_request_columns(request)))
            await write_audit_log(
                session,
                funeral_home_id=request.funeral_home_id,
                actor_id=actor_id,
                entity_type=AuditEntityType.PTO_REQUEST,
                entity_id=request.id,
                action=AuditAction.CREATE,
                after_json=model_to_audit_dict(request),
            )
            await session.commit()
            return request

    async def get_pto_request(self, request_id: uuid.UUID) -> PtoRequest | None:
        async with storage_session(self._session_factory) as session:
            row = await session.get(PtoRequestModel, request_id)
            return _request_to_domain(row) if row is not None else None

    async def get_pto_requests_by_employee(
        self, funeral_home_id: uuid.UUID, employee_id: uuid.UUID
    ) -> list[PtoRequest]:
        async with storage_session(self._session_factory) as session:
            result = await session.execute(
                select(PtoRequestModel)
                .where(
                    col(PtoRequestModel.funeral_home_id) == funeral_home_id,
                    col(PtoRequestModel.employee_id) == employee_id,
                )
                .order_by(col(PtoRequestModel.start_date))
            )
            return [_request_to_domain(row) for row in result.scalars().all()]

    async def get_pending_pto_requests(self, funeral_home_id: uuid.UUID) -> list[PtoRequest]:
        async with storage_session(self._session_factory) as session:
            result = await session.execute(
                select(PtoRequestModel)
                .where(
                    col(PtoRequestModel.funeral_home_id) == funeral_home_id,
                    col(PtoRequestModel.status) == PtoRequestStatus.PENDING,
                )
                .order_by(col(PtoRequestModel.start_date), col(PtoRequestModel.employee_name))
            )
            return [_request_to_domain(row) for row in result.scalars().all()]

    async def get_concurrent_pto_requests(
        self,
        funeral_home_id: uuid.UUID,
        start_date: date,
        end_date: date,
        role: str | None = None,
    ) -> list[PtoRequest]:
        query = select(PtoRequestModel).where(
            col(PtoRequestModel.funeral_home_id) == funeral_home_id,
            col(PtoRequestModel.status).in_([s.value for s in CONCURRENT_STATUSES]),
            inclusive_overlaps_window(
                col(PtoRequestModel.start_date), col(PtoRequestModel.end_date), start_date, end_date
            ),
        )
        if role is not None:
            query = query.where(col(PtoRequestModel.employee_role) == role)
        async with storage_session(self._session_factory) as session:
            result = await session.execute(query)
            return [_request_to_domain(row) for row in result.scalars().all()]

    async def get_employee_pto_balance(
        self,
        funeral_home_id: uuid.UUID,
        employee_id: uuid.UUID,
        year: int,
    ) -> PtoBalance | None:
        policy = await self.get_pto_policy_for_funeral_home(funeral_home_id)
        if policy is None:
            return None
        requests = await self.get_pto_requests_by_employee(funeral_home_id, employee_id)
        return calculate_pto_balance(employee_id, policy.settings.annual_pto_days_per_employee, requests, year)

    async def update_pto_request(self, request: PtoRequest, actor_id: uuid.UUID) -> PtoRequest:
        async with storage_session(self._session_factory) as session:
            row = await session.get(PtoRequestModel, request.id, with_for_update=True)
            if row is None:
                raise NotFoundError("PTO request not found")
            before = model_to_audit_dict(_request_to_domain(row))
            for key, value in _request_columns(request).items():
                setattr(row, key, value)
            await write_audit_log(
                session,
                funeral_home_id=request.funeral_home_id,
                actor_id=actor_id,
                entity_type=AuditEntityType.PTO_REQUEST,
                entity_id=request.id,
                action=AuditAction.UPDATE,
                before_json=before,
                after_json=model_to_audit_dict(request),
            )
            await session.commit()
            return request

    async def delete_pto_request(self, request_id: uuid.UUID) -> bool:
        async with storage_session(self._session_factory) as session:
            row = await session.get(PtoRequestModel, request_id, with_for_update=True)
            if row is None:
                return False
            if row.status != PtoRequestStatus.DRAFT:
                raise InvalidStateTransition("PTO request", "delete", row.status)
            await write_audit_log(
                session,
                funeral_home_id=row.funeral_home_id,
                actor_id=row.created_by,
                entity_type=AuditEntityType.PTO_REQUEST,
                entity_id=row.id,
                action=AuditAction.DELETE,
                before_json=model_to_audit_dict(_request_to_domain(row)),
            )
            await session.delete(row)
            await session.commit()
            return True
