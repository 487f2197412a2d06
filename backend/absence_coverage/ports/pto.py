# ruff: noqa: TC003
from __future__ import annotations

import asyncio
import uuid
from datetime import date
from typing import Protocol, runtime_checkable

from absence_coverage.exceptions import ConflictError, InvalidStateTransition, NotFoundError
from absence_coverage.models.enums import PtoRequestStatus
from absence_coverage.schemas.policy import PtoPolicy
from absence_coverage.schemas.pto import PtoBalance, PtoRequest
from absence_coverage.services.intervals import CONCURRENT_STATUSES, inclusive_overlaps
from absence_coverage.services.pto_request import calculate_pto_balance


@runtime_checkable
class PtoManagementPort(Protocol):
    """Storage operations for PTO policies and PTO requests.

    Reads return ``None`` or an empty list when nothing matches. Any other
    storage failure propagates to the caller.
    """

    async def get_pto_policy_for_funeral_home(self, funeral_home_id: uuid.UUID) -> PtoPolicy | None:
        """Return the current PTO policy version, or None if the organization has none."""
        ...

    async def get_pto_policy_history(self, funeral_home_id: uuid.UUID) -> list[PtoPolicy]:
        """Return every PTO policy version, newest first."""
        ...

    async def create_pto_policy(self, policy: PtoPolicy, actor_id: uuid.UUID) -> PtoPolicy:
        """Store version 1. Raises ConflictError if a current version already exists."""
        ...

    async def update_pto_policy(self, superseded: PtoPolicy, current: PtoPolicy, actor_id: uuid.UUID) -> PtoPolicy:
        """Atomically end-date ``superseded`` and store ``current`` as the new version.

        Raises ConflictError if ``superseded`` is no longer the current version.
        """
        ...

    async def create_pto_request(self, request: PtoRequest, actor_id: uuid.UUID) -> PtoRequest: ...

    async def get_pto_request(self, request_id: uuid.UUID) -> PtoRequest | None: ...

    async def get_pto_requests_by_employee(
        self, funeral_home_id: uuid.UUID, employee_id: uuid.UUID
    ) -> list[PtoRequest]:
        """Return all of an employee's requests, any status."""
        ...

    async def get_pending_pto_requests(self, funeral_home_id: uuid.UUID) -> list[PtoRequest]:
        """Return the requests awaiting a decision, earliest start first."""
        ...

    async def get_concurrent_pto_requests(
        self,
        funeral_home_id: uuid.UUID,
        start_date: date,
        end_date: date,
        role: str | None = None,
    ) -> list[PtoRequest]:
        """Return pending or approved requests overlapping the window, optionally for one role."""
        ...

    async def get_employee_pto_balance(
        self,
        funeral_home_id: uuid.UUID,
        employee_id: uuid.UUID,
        year: int,
    ) -> PtoBalance | None:
        """Return the employee's balance for ``year``, or None if there is no PTO policy."""
        ...

    async def update_pto_request(self, request: PtoRequest, actor_id: uuid.UUID) -> PtoRequest:
        """Replace the stored request. Raises NotFoundError if it does not exist."""
        ...

    async def delete_pto_request(self, request_id: uuid.UUID) -> bool:
        """Delete a draft request. Returns False if missing; raises InvalidStateTransition if not a draft."""
        ...


class InMemoryPtoManagement:
    """In-memory implementation for development and tests.

    Policy versions live in an append-only arena keyed by id, with a separate
    map from organization to the id of its current version.
    """

    def __init__(self) -> None:
        self._policies: dict[uuid.UUID, PtoPolicy] = {}
        self._current_policy: dict[uuid.UUID, uuid.UUID] = {}
        self._requests: dict[uuid.UUID, PtoRequest] = {}
        self._lock = asyncio.Lock()

    def seed_request(self, request: PtoRequest) -> None:
        """Seed a request for testing."""
        self._requests[request.id] = request

    async def get_pto_policy_for_funeral_home(self, funeral_home_id: uuid.UUID) -> PtoPolicy | None:
        policy_id = self._current_policy.get(funeral_home_id)
        return self._policies[policy_id] if policy_id is not None else None

    async def get_pto_policy_history(self, funeral_home_id: uuid.UUID) -> list[PtoPolicy]:
        versions = [p for p in self._policies.values() if p.funeral_home_id == funeral_home_id]
        return sorted(versions, key=lambda p: p.version, reverse=True)

    async def create_pto_policy(self, policy: PtoPolicy, actor_id: uuid.UUID) -> PtoPolicy:
        async with self._lock:
            if policy.funeral_home_id in self._current_policy:
                raise ConflictError("A PTO policy already exists for this funeral home")
            self._policies[policy.id] = policy
            self._current_policy[policy.funeral_home_id] = policy.id
        return policy

    async def update_pto_policy(self, superseded: PtoPolicy, current: PtoPolicy, actor_id: uuid.UUID) -> PtoPolicy:
        async with self._lock:
            if self._current_policy.get(superseded.funeral_home_id) != superseded.id:
                raise ConflictError("PTO policy was changed by another update")
            self._policies[superseded.id] = superseded
            self._policies[current.id] = current
            self._current_policy[current.funeral_home_id] = current.id
        return current

    async def create_pto_request(self, request: PtoRequest, actor_id: uuid.UUID) -> PtoRequest:
        self._requests[request.id] = request
        return request

    async def get_pto_request(self, request_id: uuid.UUID) -> PtoRequest | None:
        return self._requests.get(request_id)

    async def get_pto_requests_by_employee(
        self, funeral_home_id: uuid.UUID, employee_id: uuid.UUID
    ) -> list[PtoRequest]:
        return [
            r for r in self._requests.values() if r.funeral_home_id == funeral_home_id and r.employee.id == employee_id
        ]

    async def get_pending_pto_requests(self, funeral_home_id: uuid.UUID) -> list[PtoRequest]:
        pending = [
            r
            for r in self._requests.values()
            if r.funeral_home_id == funeral_home_id and r.status == PtoRequestStatus.PENDING
        ]
        return sorted(pending, key=lambda r: (r.start_date, r.employee.name))

    async def get_concurrent_pto_requests(
        self,
        funeral_home_id: uuid.UUID,
        start_date: date,
        end_date: date,
        role: str | None = None,
    ) -> list[PtoRequest]:
        return [
            r
            for r in self._requests.values()
            if r.funeral_home_id == funeral_home_id
            and r.status in CONCURRENT_STATUSES
            and (role is None or r.employee.role == role)
            and inclusive_overlaps(start_date, end_date, r.start_date, r.end_date)
        ]

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
        if request.id not in self._requests:
            raise NotFoundError("PTO request not found")
        self._requests[request.id] = request
        return request

    async def delete_pto_request(self, request_id: uuid.UUID) -> bool:
        request = self._requests.get(request_id)
        if request is None:
            return False
        if request.status != PtoRequestStatus.DRAFT:
            raise InvalidStateTransition("PTO request", "delete", request.status)
        del self._requests[request_id]
        return True


_pto_port: PtoManagementPort = InMemoryPtoManagement()


def get_pto_port() -> PtoManagementPort:
    """FastAPI dependency for the PTO management port."""
    return _pto_port


def set_pto_port(port: PtoManagementPort) -> None:
    """Override the port (for testing or production wiring)."""
    global _pto_port
    _pto_port = port
