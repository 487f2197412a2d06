# ruff: noqa: TC003
"""Coverage, workload and premium-pay calculators.

``estimated_coverage_hours`` is the single duration estimator: every workflow
and every storage adapter derives backfill hours through it.
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Iterable
from datetime import date
from typing import TYPE_CHECKING

from absence_coverage.models.enums import BackfillStatus
from absence_coverage.schemas.backfill import BackfillWorkload, CoverageSummary
from absence_coverage.services.intervals import assignment_overlaps, day_window

if TYPE_CHECKING:
    from absence_coverage.schemas.backfill import BackfillAssignment

DEFAULT_HOURS_PER_DAY = 8
DEFAULT_HOURLY_RATE = 25.0
DEFAULT_MONTHLY_CAPACITY_HOURS = 160.0
_SECONDS_PER_DAY = 86_400

_CONFIRMED = frozenset({BackfillStatus.CONFIRMED, BackfillStatus.COMPLETED})
_PENDING = frozenset({BackfillStatus.SUGGESTED, BackfillStatus.PENDING_CONFIRMATION})
_NOT_COSTED = frozenset({BackfillStatus.REJECTED, BackfillStatus.CANCELLED})


def estimated_coverage_hours(start: date, end: date, hours_per_day: int = DEFAULT_HOURS_PER_DAY) -> float:
    """``ceil(duration in days) * hours_per_day``, at least one day."""
    days = math.ceil((end - start).total_seconds() / _SECONDS_PER_DAY)
    return float(max(days, 1) * hours_per_day)


def estimated_premium_pay(hours: float, base_rate: float, premium_multiplier: float) -> float:
    return hours * base_rate * premium_multiplier


def assignment_hours(assignment: BackfillAssignment) -> float:
    """Actual hours once recorded, otherwise the estimate."""
    return assignment.actual_hours if assignment.actual_hours is not None else assignment.estimated_hours


def assignment_premium_pay(assignment: BackfillAssignment, base_rate: float) -> float:
    return estimated_premium_pay(assignment_hours(assignment), base_rate, assignment.premium_multiplier)


def month_window(day: date) -> tuple[date, date]:
    """Half-open ``[first of month, first of next month)`` containing ``day``."""
    start = day.replace(day=1)
    if start.month == 12:
        return start, start.replace(year=start.year + 1, month=1)
    return start, start.replace(month=start.month + 1)


def months_spanned(start: date, end: date) -> list[date]:
    """First day of every calendar month the absence window touches."""
    window_start, window_end = day_window(start, end)
    months: list[date] = []
    month_start = window_start.replace(day=1)
    while month_start < window_end:
        months.append(month_start)
        month_start = month_window(month_start)[1]
    return months


def coverage_summary(
    absence_id: uuid.UUID,
    backfills: Iterable[BackfillAssignment],
    total_needed: int = 1,
    hourly_rate: float = DEFAULT_HOURLY_RATE,
) -> CoverageSummary:
    """Summarize the assignments covering one absence.

    Completed assignments count as confirmed; suggested ones count as pending.
    Cost excludes rejected and cancelled assignments.
    """
    confirmed = pending = rejected = 0
    estimated_cost = 0.0
    for assignment in backfills:
        if assignment.absence_id != absence_id:
            continue
        if assignment.status in _CONFIRMED:
            confirmed += 1
        elif assignment.status in _PENDING:
            pending += 1
        elif assignment.status == BackfillStatus.REJECTED:
            rejected += 1
        if assignment.status not in _NOT_COSTED:
            estimated_cost += assignment_premium_pay(assignment, hourly_rate)

    return CoverageSummary(
        absence_id=absence_id,
        total_needed=total_needed,
        confirmed_count=confirmed,
        pending_count=pending,
        rejected_count=rejected,
        coverage_complete=confirmed >= total_needed,
        estimated_cost=round(estimated_cost, 2),
    )


def employee_workload(
    employee_id: uuid.UUID,
    backfills: Iterable[BackfillAssignment],
    month_of: date,
    hourly_rate: float = DEFAULT_HOURLY_RATE,
    capacity_hours: float = DEFAULT_MONTHLY_CAPACITY_HOURS,
) -> BackfillWorkload:
    """Booked coverage of one backfill employee in the month containing ``month_of``.

    Capacity is measured on confirmed plus pending-confirmation hours so that
    outstanding offers are not double-booked.
    """
    window_start, window_end = month_window(month_of)
    confirmed_count = pending_count = 0
    confirmed_hours = pending_hours = estimated_cost = 0.0

    for assignment in backfills:
        if assignment.backfill_employee.id != employee_id:
            continue
        if not assignment_overlaps(assignment, window_start, window_end):
            continue
        if assignment.status in _CONFIRMED:
            confirmed_count += 1
            confirmed_hours += assignment_hours(assignment)
        elif assignment.status == BackfillStatus.PENDING_CONFIRMATION:
            pending_count += 1
            pending_hours += assignment_hours(assignment)
        else:
            continue
        estimated_cost += assignment_premium_pay(assignment, hourly_rate)

    scheduled_hours = confirmed_hours + pending_hours
    return BackfillWorkload(
        employee_id=employee_id,
        window_start=window_start,
        window_end=window_end,
        confirmed_count=confirmed_count,
        pending_count=pending_count,
        confirmed_hours=confirmed_hours,
        pending_hours=pending_hours,
        scheduled_hours=scheduled_hours,
        estimated_cost=round(estimated_cost, 2),
        capacity_hours=capacity_hours,
        max_capacity_reached=scheduled_hours > capacity_hours,
    )
