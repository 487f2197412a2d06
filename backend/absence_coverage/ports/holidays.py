# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from typing import Protocol, runtime_checkable


@runtime_checkable
class HolidayCalendar(Protocol):
    """Interface for the organization's holiday calendar."""

    async def get_holidays(self, funeral_home_id: uuid.UUID, start_date: date, end_date: date) -> list[date]:
        """Return holiday dates from ``start_date`` through ``end_date``."""
        ...


class InMemoryHolidayCalendar:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._holidays: dict[uuid.UUID, set[date]] = {}

    def seed(self, funeral_home_id: uuid.UUID, day: date) -> None:
        """Seed a holiday for testing."""
        self._holidays.setdefault(funeral_home_id, set()).add(day)

    async def get_holidays(self, funeral_home_id: uuid.UUID, start_date: date, end_date: date) -> list[date]:
        return sorted(d for d in self._holidays.get(funeral_home_id, set()) if start_date <= d <= end_date)


_holiday_calendar: HolidayCalendar = InMemoryHolidayCalendar()


def get_holiday_calendar() -> HolidayCalendar:
    """FastAPI dependency for the holiday calendar."""
    return _holiday_calendar


def set_holiday_calendar(calendar: HolidayCalendar) -> None:
    """Override the calendar (for testing or production wiring)."""
    global _holiday_calendar
    _holiday_calendar = calendar
