"""Pure date-interval predicates used by the PTO, training and backfill workflows.

Every function here is total: it answers with a boolean, a count or a list and
never raises.

PTO requests, blackout periods and training sessions name their last day
off as ``end_date``, so they occupy ``[start, end + 1 day)`` and are compared
with ``inclusive_overlaps``. Backfill absence windows are half-open
``[start, end)``; a window whose end does not come after its start is widened
to ``[start, start + 1 day)`` so that it still occupies its day.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import date, timedelta
from typing import TYPE_CHECKING

from absence_coverage.models.enums import ACTIVE_PTO_STATUSES, BOOKED_BACKFILL_STATUSES, PtoRequestStatus

if TYPE_CHECKING:
    from absence_coverage.schemas.backfill import BackfillAssignment
    from absence_coverage.schemas.policy import BlackoutDate
    from absence_coverage.schemas.pto import PtoRequest

_ONE_DAY = timedelta(days=1)

# Requests that still claim the employee's calendar.
SCHEDULE_BLOCKING_STATUSES = frozenset({PtoRequestStatus.DRAFT, PtoRequestStatus.PENDING, PtoRequestStatus.APPROVED})

# Requests that count towards the concurrent-absence threshold.
CONCURRENT_STATUSES = ACTIVE_PTO_STATUSES


def overlaps(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Half-open interval overlap: ``a_start < b_end and b_start < a_end``."""
    return a_start < b_end and b_start < a_end


def day_window(start: date, end: date) -> tuple[date, date]:
    """Return the half-open window a date span occupies."""
    if end <= start:
        return start, start + _ONE_DAY
    return start, end


def spans_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Overlap of two date spans after widening degenerate single-day spans."""
    return overlaps(*day_window(a_start, a_end), *day_window(b_start, b_end))


def inclusive_overlaps(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Overlap of two spans that both include their end date."""
    return a_start <= b_end and b_start <= a_end


def inclusive_day_count(start: date, end: date) -> int:
    """Number of calendar days from ``start`` through ``end``, both included."""
    return (end - start).days + 1


def meets_advance_notice(request: PtoRequest, min_days: int, today: date) -> bool:
    """True when the request starts at least ``min_days`` calendar days after ``today``."""
    return (request.start_date - today).days >= min_days


def blackout_overlaps(request: PtoRequest, blackout_dates: Iterable[BlackoutDate]) -> list[BlackoutDate]:
    """Return the blackout entries whose interval overlaps the request."""
    return [
        blackout
        for blackout in blackout_dates
        if inclusive_overlaps(request.start_date, request.end_date, blackout.start_date, blackout.end_date)
    ]


def exceeds_consecutive_days(request: PtoRequest, max_days: int) -> bool:
    """True if the request is longer than ``max_days`` inclusive days."""
    return request.requested_days > max_days


def has_schedule_conflict(request: PtoRequest, existing_requests: Iterable[PtoRequest]) -> bool:
    """True if another live request of the same employee overlaps ``request``."""
    return any(
        existing.id != request.id
        and existing.employee.id == request.employee.id
        and existing.status in SCHEDULE_BLOCKING_STATUSES
        and inclusive_overlaps(request.start_date, request.end_date, existing.start_date, existing.end_date)
        for existing in existing_requests
    )


def count_concurrent(
    requests: Iterable[PtoRequest],
    start: date,
    end: date,
    role: str | None = None,
    exclude_employee_id: uuid.UUID | None = None,
) -> int:
    """Count pending or approved requests taking a day from ``start`` through ``end``, optionally for one role."""
    count = 0
    for request in requests:
        if request.status not in CONCURRENT_STATUSES:
            continue
        if exclude_employee_id is not None and request.employee.id == exclude_employee_id:
            continue
        if role is not None and request.employee.role != role:
            continue
        if inclusive_overlaps(start, end, request.start_date, request.end_date):
            count += 1
    return count


def is_multi_day_training(start_date: date | None, end_date: date | None) -> bool:
    """True when a training span covers more than one calendar day."""
    if start_date is None or end_date is None:
        return False
    return inclusive_day_count(start_date, end_date) > 1


def assignment_overlaps(assignment: BackfillAssignment, start: date, end: date) -> bool:
    """True if the assignment's absence window overlaps ``[start, end)``."""
    return spans_overlap(assignment.absence_start_date, assignment.absence_end_date, start, end)


def find_booked_overlaps(
    assignments: Iterable[BackfillAssignment],
    funeral_home_id: uuid.UUID,
    backfill_employee_id: uuid.UUID,
    start: date,
    end: date,
    exclude_assignment_id: uuid.UUID | None = None,
) -> list[BackfillAssignment]:
    """Pending or confirmed assignments of one backfill employee overlapping ``[start, end)``."""
    return [
        assignment
        for assignment in assignments
        if assignment.funeral_home_id == funeral_home_id
        and assignment.backfill_employee.id == backfill_employee_id
        and assignment.status in BOOKED_BACKFILL_STATUSES
        and assignment.id != exclude_assignment_id
        and assignment_overlaps(assignment, start, end)
    ]


def find_releasable_backfills(
    assignments: Iterable[BackfillAssignment],
    funeral_home_id: uuid.UUID,
    absence_id: uuid.UUID,
    start: date,
    end: date,
) -> list[BackfillAssignment]:
    """Pending or confirmed assignments covering one absence within ``[start, end)``.

    Coverage booked for the same employee's other absences is never included.
    """
    return [
        assignment
        for assignment in assignments
        if assignment.funeral_home_id == funeral_home_id
        and assignment.absence_id == absence_id
        and assignment.status in BOOKED_BACKFILL_STATUSES
        and assignment_overlaps(assignment, start, end)
    ]
