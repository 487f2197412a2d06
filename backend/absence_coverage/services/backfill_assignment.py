"""Pure state transitions for backfill assignments.

suggested -> pending_confirmation -> confirmed -> completed, with rejection
from suggested/pending_confirmation and cancellation from anything that is
not already completed or cancelled.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING

from absence_coverage.exceptions import InvalidStateTransition
from absence_coverage.models.enums import AbsenceType, BackfillStatus, PremiumType
from absence_coverage.schemas.backfill import BackfillAssignment
from absence_coverage.schemas.common import utc_now

if TYPE_CHECKING:
    from absence_coverage.schemas.common import EmployeeRef

_ENTITY = "backfill assignment"

# Statuses from which an assignment may still be cancelled.
CANCELLABLE_STATUSES = frozenset(
    {
        BackfillStatus.SUGGESTED,
        BackfillStatus.PENDING_CONFIRMATION,
        BackfillStatus.CONFIRMED,
        BackfillStatus.REJECTED,
    }
)


def _require_status(assignment: BackfillAssignment, action: str, *allowed: BackfillStatus) -> None:
    if assignment.status not in allowed:
        raise InvalidStateTransition(_ENTITY, action, assignment.status)


def create_backfill_assignment(
    funeral_home_id: uuid.UUID,
    absence_id: uuid.UUID,
    absence_type: AbsenceType,
    absence_start_date: date,
    absence_end_date: date,
    absent_employee: EmployeeRef,
    backfill_employee: EmployeeRef,
    assigned_by: uuid.UUID,
    estimated_hours: float,
    premium_type: PremiumType = PremiumType.NONE,
    premium_multiplier: float = 1.0,
    now: datetime | None = None,
) -> BackfillAssignment:
    """Build a new assignment in ``suggested`` status."""
    now = now or utc_now()
    return BackfillAssignment(
        id=uuid.uuid4(),
        funeral_home_id=funeral_home_id,
        absence_id=absence_id,
        absence_type=absence_type,
        absence_start_date=absence_start_date,
        absence_end_date=absence_end_date,
        absent_employee=absent_employee,
        backfill_employee=backfill_employee,
        status=BackfillStatus.SUGGESTED,
        premium_type=premium_type,
        premium_multiplier=premium_multiplier,
        estimated_hours=estimated_hours,
        assigned_by=assigned_by,
        suggested_at=now,
        created_at=now,
        updated_at=now,
    )


def send_for_confirmation(assignment: BackfillAssignment, now: datetime | None = None) -> BackfillAssignment:
    """suggested -> pending_confirmation."""
    _require_status(assignment, "send for confirmation", BackfillStatus.SUGGESTED)
    return assignment.model_copy(
        update={"status": BackfillStatus.PENDING_CONFIRMATION, "updated_at": now or utc_now()}
    )


def confirm_backfill_assignment(
    assignment: BackfillAssignment,
    confirmed_by: uuid.UUID,
    actual_hours: float | None = None,
    now: datetime | None = None,
) -> BackfillAssignment:
    """suggested or pending_confirmation -> confirmed."""
    _require_status(assignment, "confirm", BackfillStatus.SUGGESTED, BackfillStatus.PENDING_CONFIRMATION)
    now = now or utc_now()
    return assignment.model_copy(
        update={
            "status": BackfillStatus.CONFIRMED,
            "confirmed_at": now,
            "confirmed_by": confirmed_by,
            "actual_hours": actual_hours,
            "updated_at": now,
        }
    )


def reject_backfill_assignment(
    assignment: BackfillAssignment,
    rejection_reason: str,
    now: datetime | None = None,
) -> BackfillAssignment:
    """suggested or pending_confirmation -> rejected."""
    _require_status(assignment, "reject", BackfillStatus.SUGGESTED, BackfillStatus.PENDING_CONFIRMATION)
    now = now or utc_now()
    return assignment.model_copy(
        update={
            "status": BackfillStatus.REJECTED,
            "rejected_at": now,
            "rejection_reason": rejection_reason,
            "updated_at": now,
        }
    )


def cancel_backfill_assignment(
    assignment: BackfillAssignment,
    reason: str | None = None,
    now: datetime | None = None,
) -> BackfillAssignment:
    """Any status except completed or cancelled -> cancelled.

    ``reason`` is appended to the existing notes on its own line.
    """
    _require_status(assignment, "cancel", *CANCELLABLE_STATUSES)
    now = now or utc_now()
    notes = assignment.notes
    if reason:
        notes = f"{notes}\n{reason}" if notes else reason
    return assignment.model_copy(
        update={
            "status": BackfillStatus.CANCELLED,
            "notes": notes,
            "cancelled_at": now,
            "updated_at": now,
        }
    )


def complete_backfill_assignment(
    assignment: BackfillAssignment,
    actual_hours: float,
    now: datetime | None = None,
) -> BackfillAssignment:
    """confirmed -> completed."""
    _require_status(assignment, "complete", BackfillStatus.CONFIRMED)
    now = now or utc_now()
    return assignment.model_copy(
        update={
            "status": BackfillStatus.COMPLETED,
            "actual_hours": actual_hours,
            "completed_at": now,
            "updated_at": now,
        }
    )


def release_backfill_assignment(assignment: BackfillAssignment, now: datetime | None = None) -> BackfillAssignment:
    """Release coverage once the absence has ended.

    A confirmed assignment is completed with its actual (or estimated) hours;
    one still pending confirmation is cancelled because it is no longer needed.
    """
    if assignment.status == BackfillStatus.CONFIRMED:
        hours = assignment.actual_hours if assignment.actual_hours is not None else assignment.estimated_hours
        return complete_backfill_assignment(assignment, hours, now=now)
    if assignment.status == BackfillStatus.PENDING_CONFIRMATION:
        return cancel_backfill_assignment(assignment, reason="Released: absence ended", now=now)
    raise InvalidStateTransition(_ENTITY, "release", assignment.status)


def suggest_premium_type(absence_type: AbsenceType, is_holiday: bool) -> PremiumType:
    """Classify the premium for an absence. The multiplier is chosen separately."""
    if is_holiday:
        return PremiumType.HOLIDAY
    if absence_type == AbsenceType.TRAINING:
        return PremiumType.TRAINING_COVERAGE
    return PremiumType.NONE
