"""Pure state transitions for PTO requests.

Each function checks only the local state-machine rule and returns a new
``PtoRequest``; illegal transitions raise ``InvalidStateTransition``.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import date, datetime
from typing import TYPE_CHECKING

from absence_coverage.exceptions import InvalidStateTransition
from absence_coverage.models.enums import PtoRequestStatus, PtoType
from absence_coverage.schemas.common import utc_now
from absence_coverage.schemas.pto import PtoBalance, PtoRequest
from absence_coverage.services.intervals import inclusive_day_count

if TYPE_CHECKING:
    from absence_coverage.schemas.common import EmployeeRef
    from absence_coverage.schemas.policy import PtoPolicy

_ENTITY = "PTO request"

def _require_status(request: PtoRequest, action: str, *allowed: PtoRequestStatus) -> None:
    if request.status not in allowed:
        raise InvalidStateTransition(_ENTITY, action, request.status)


def create_pto_request(
    funeral_home_id: uuid.UUID,
    employee: EmployeeRef,
    pto_type: PtoType,
    start_date: date,
    end_date: date,
    created_by: uuid.UUID,
    reason: str | None = None,
    now: datetime | None = None,
) -> PtoRequest:
    """Build a new draft request. Raises ``ValueError`` if ``end_date`` precedes ``start_date``."""
    now = now or utc_now()
    return PtoRequest(
        id=uuid.uuid4(),
        funeral_home_id=funeral_home_id,
        employee=employee,
        pto_type=pto_type,
        start_date=start_date,
        end_date=end_date,
        requested_days=inclusive_day_count(start_date, end_date),
        reason=reason,
        status=PtoRequestStatus.DRAFT,
        created_by=created_by,
        created_at=now,
        updated_at=now,
    )


def submit_pto_request(request: PtoRequest, policy: PtoPolicy | None = None, now: datetime | None = None) -> PtoRequest:
    """draft -> pending, pinning the policy version the request was validated against."""
    _require_status(request, "submit", PtoRequestStatus.DRAFT)
    now = now or utc_now()
    return request.model_copy(
        update={
            "status": PtoRequestStatus.PENDING,
            "submitted_at": now,
            "policy_id": policy.id if policy else request.policy_id,
            "policy_version": policy.version if policy else request.policy_version,
            "updated_at": now,
        }
    )


def approve_pto_request(request: PtoRequest, approved_by: uuid.UUID, now: datetime | None = None) -> PtoRequest:
    """pending -> approved."""
    _require_status(request, "approve", PtoRequestStatus.PENDING)
    now = now or utc_now()
    return request.model_copy(
        update={
            "status": PtoRequestStatus.APPROVED,
            "approved_by": approved_by,
            "decided_at": now,
            "updated_at": now,
        }
    )


def reject_pto_request(
    request: PtoRequest,
    rejection_reason: str,
    rejected_by: uuid.UUID,
    now: datetime | None = None,
) -> PtoRequest:
    """pending -> rejected."""
    _require_status(request, "reject", PtoRequestStatus.PENDING)
    now = now or utc_now()
    return request.model_copy(
        update={
            "status": PtoRequestStatus.REJECTED,
            "rejected_by": rejected_by,
            "rejection_reason": rejection_reason,
            "decided_at": now,
            "updated_at": now,
        }
    )


def cancel_pto_request(request: PtoRequest, now: datetime | None = None) -> PtoRequest:
    """draft or pending -> cancelled."""
    _require_status(request, "cancel", PtoRequestStatus.DRAFT, PtoRequestStatus.PENDING)
    now = now or utc_now()
    return request.model_copy(
        update={
            "status": PtoRequestStatus.CANCELLED,
            "cancelled_at": now,
            "updated_at": now,
        }
    )


def calculate_pto_balance(
    employee_id: uuid.UUID,
    annual_allowance: int,
    requests: Iterable[PtoRequest],
    year: int,
) -> PtoBalance:
    """Approved days taken and pending requests of one employee in ``year``."""
    days_used = 0
    pending = 0
    for request in requests:
        if request.employee.id != employee_id or request.start_date.year != year:
            continue
        if request.status == PtoRequestStatus.APPROVED:
            days_used += request.requested_days
        elif request.status == PtoRequestStatus.PENDING:
            pending += 1
    return PtoBalance(
        employee_id=employee_id,
        annual_allowance=annual_allowance,
        days_used=days_used,
        days_remaining=annual_allowance - days_used,
        pending_requests=pending,
    )
