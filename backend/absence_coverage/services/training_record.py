"""Pure state transitions and certification helpers for training records."""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import date, datetime
from typing import TYPE_CHECKING

from absence_coverage.exceptions import InvalidStateTransition
from absence_coverage.models.enums import TrainingStatus, TrainingType
from absence_coverage.schemas.common import utc_now
from absence_coverage.schemas.training import CertificationStatus, EmployeeTrainingSummary, TrainingRecord

if TYPE_CHECKING:
    from absence_coverage.schemas.common import EmployeeRef

_ENTITY = "training"


def _require_status(record: TrainingRecord, action: str, *allowed: TrainingStatus) -> None:
    if record.status not in allowed:
        raise InvalidStateTransition(_ENTITY, action, record.status)


def create_training_record(
    funeral_home_id: uuid.UUID,
    employee: EmployeeRef,
    training_type: TrainingType,
    training_name: str,
    hours: float,
    cost: float,
    created_by: uuid.UUID,
    scheduled_date: date | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    required_for_role: bool = False,
    instructor: str | None = None,
    location: str | None = None,
    now: datetime | None = None,
) -> TrainingRecord:
    """Build a new record in ``scheduled`` status."""
    now = now or utc_now()
    return TrainingRecord(
        id=uuid.uuid4(),
        funeral_home_id=funeral_home_id,
        employee=employee,
        training_type=training_type,
        training_name=training_name,
        required_for_role=required_for_role,
        status=TrainingStatus.SCHEDULED,
        scheduled_date=scheduled_date or start_date,
        start_date=start_date,
        end_date=end_date,
        hours=hours,
        cost=cost,
        instructor=instructor,
        location=location,
        created_by=created_by,
        created_at=now,
        updated_at=now,
    )


def approve_training(record: TrainingRecord, approved_by: uuid.UUID, now: datetime | None = None) -> TrainingRecord:
    """Record approval of a scheduled session. The status stays ``scheduled``."""
    _require_status(record, "approve", TrainingStatus.SCHEDULED)
    now = now or utc_now()
    return record.model_copy(update={"approved_by": approved_by, "approved_at": now, "updated_at": now})


def start_training(
    record: TrainingRecord,
    start_date: date,
    end_date: date | None = None,
    now: datetime | None = None,
) -> TrainingRecord:
    """scheduled -> in_progress."""
    _require_status(record, "start", TrainingStatus.SCHEDULED)
    return record.model_copy(
        update={
            "status": TrainingStatus.IN_PROGRESS,
            "start_date": start_date,
            "end_date": end_date if end_date is not None else record.end_date,
            "updated_at": now or utc_now(),
        }
    )


def complete_training(
    record: TrainingRecord,
    hours: float,
    certification_number: str | None = None,
    expires_at: date | None = None,
    end_date: date | None = None,
    now: datetime | None = None,
) -> TrainingRecord:
    """in_progress or scheduled -> completed.

    Completing straight from ``scheduled`` covers single-day sessions that
    were never started explicitly.
    """
    _require_status(record, "complete", TrainingStatus.IN_PROGRESS, TrainingStatus.SCHEDULED)
    now = now or utc_now()
    return record.model_copy(
        update={
            "status": TrainingStatus.COMPLETED,
            "hours": hours,
            "certification_number": certification_number,
            "expires_at": expires_at,
            "end_date": end_date or record.end_date or now.date(),
            "completed_at": now,
            "updated_at": now,
        }
    )


def cancel_training(record: TrainingRecord, notes: str | None = None, now: datetime | None = None) -> TrainingRecord:
    """scheduled -> cancelled."""
    _require_status(record, "cancel", TrainingStatus.SCHEDULED)
    return record.model_copy(
        update={"status": TrainingStatus.CANCELLED, "notes": notes, "updated_at": now or utc_now()}
    )


def mark_no_show(record: TrainingRecord, notes: str | None = None, now: datetime | None = None) -> TrainingRecord:
    """scheduled or in_progress -> no_show."""
    _require_status(record, "mark no-show for", TrainingStatus.SCHEDULED, TrainingStatus.IN_PROGRESS)
    return record.model_copy(
        update={"status": TrainingStatus.NO_SHOW, "notes": notes, "updated_at": now or utc_now()}
    )


# ---------------------------------------------------------------------------
# Certification helpers
# ---------------------------------------------------------------------------


def is_certification_expired(record: TrainingRecord, today: date) -> bool:
    if record.expires_at is None or record.status != TrainingStatus.COMPLETED:
        return False
    return today > record.expires_at


def is_certification_expiring_within_days(record: TrainingRecord, days: int, today: date) -> bool:
    if record.expires_at is None or record.status != TrainingStatus.COMPLETED:
        return False
    return 0 <= (record.expires_at - today).days <= days


def days_until_expiration(record: TrainingRecord, today: date) -> int | None:
    """Days left on a completed record's certification; None if absent or already expired."""
    if record.expires_at is None or record.status != TrainingStatus.COMPLETED:
        return None
    if is_certification_expired(record, today):
        return None
    return (record.expires_at - today).days


def certification_statuses(
    records: Iterable[TrainingRecord],
    within_days: int,
    today: date,
    include_expired: bool = False,
) -> list[CertificationStatus]:
    """Certifications expiring within ``within_days`` of ``today``, soonest first.

    Already expired certifications are listed only with ``include_expired``.
    """
    statuses: list[CertificationStatus] = []
    for record in records:
        if record.expires_at is None:
            continue
        expired = is_certification_expired(record, today)
        if expired and not include_expired:
            continue
        if not expired and not is_certification_expiring_within_days(record, within_days, today):
            continue
        statuses.append(
            CertificationStatus(
                record_id=record.id,
                employee=record.employee,
                training_type=record.training_type,
                training_name=record.training_name,
                certification_number=record.certification_number,
                expires_at=record.expires_at,
                days_until_expiration=days_until_expiration(record, today),
                expired=expired,
            )
        )
    return sorted(statuses, key=lambda s: s.expires_at)


def summarize_training(employee_id: uuid.UUID, records: Iterable[TrainingRecord], year: int) -> EmployeeTrainingSummary:
    """Hours and spend of the employee's training completed in ``year``."""
    hours = cost = 0.0
    for record in records:
        if record.employee.id != employee_id or record.completed_at is None:
            continue
        if record.completed_at.year != year:
            continue
        hours += record.hours
        cost += record.cost
    return EmployeeTrainingSummary(employee_id=employee_id, year=year, total_hours_used=hours, total_budget_used=cost)
