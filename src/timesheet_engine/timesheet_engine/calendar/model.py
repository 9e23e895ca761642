from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from ..core.constants import INT_STATUS_DELETED


@dataclass(frozen=True)
class PatternDetail:
    day_seq: int
    std_work_hours: timedelta
    int_status: int = 0


@dataclass(frozen=True)
class WorkPattern:
    """Work pattern: standard hours per backend weekday (0 = Sunday)."""

    details: tuple[PatternDetail, ...] = ()
    int_status: int = 0

    @property
    def is_active(self) -> bool:
        return self.int_status != INT_STATUS_DELETED


@dataclass(frozen=True)
class Holiday:
    """Non-working date from the employee's holiday calendar."""

    date: date
    name: str = ""


@dataclass(frozen=True)
class AbsenceSplit:
    split_date: date
    hours: timedelta


@dataclass(frozen=True)
class AbsenceRecord:
    """Approved absence with its per-day hour splits."""

    start: date
    reason: str = ""
    type_name: str = ""
    hours_by_day: tuple[AbsenceSplit, ...] = ()


@dataclass(frozen=True)
class AbsenceDay:
    """One expanded absence split inside a period."""

    date: date
    hours: timedelta
    reason: str = ""
    type_name: str = ""


@dataclass(frozen=True)
class CalendarDay:
    """Read-only overlay classification of a single date."""

    date: date
    is_weekend: bool = False
    is_holiday: bool = False
    holiday_name: str = ""
    is_absence: bool = False
    absence_reason: str = ""
    absence_type_name: str = ""
    absence_hours: timedelta = timedelta()


@dataclass(frozen=True)
class CalendarOverlay:
    """Resolver output for one period."""

    start: date
    end: date
    days: dict[str, CalendarDay]
    holiday_totals: dict[str, timedelta]
    absence_totals: dict[str, timedelta]

    def day(self, key: str) -> Optional[CalendarDay]:
        return self.days.get(key)

    def overlay_total(self, key: str) -> timedelta:
        return self.holiday_totals.get(key, timedelta()) + self.absence_totals.get(key, timedelta())

    def leave_dates(self) -> list[str]:
        """Dates carrying a holiday or an absence, ascending."""
        return sorted(set(self.holiday_totals) | set(self.absence_totals))


@dataclass(frozen=True)
class EmployeeProfile:
    """Calendar-related facts about the logged-in employee."""

    employee_id: str
    daily_std_hours: timedelta
    patterns: tuple[WorkPattern, ...] = ()
    non_working_days: tuple[int, ...] = ()
    holidays: tuple[Holiday, ...] = ()
    absences: tuple[AbsenceRecord, ...] = ()
    hire_date: Optional[date] = None
    term_date: Optional[date] = None
