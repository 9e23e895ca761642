"""Calendar overlay resolution.

Classifies every date of a period as weekend / holiday / absence and derives
the per-date overlay durations that the aggregation adds on top of work items.
Holiday and absence sources arrive sorted by date, so the in-period slice is
found with two binary searches.
"""

from __future__ import annotations

import logging
from bisect import bisect_left, bisect_right
from datetime import date, timedelta
from operator import attrgetter
from typing import Callable, Iterable, Sequence, TypeVar

from ..common.datetime_utils import backend_weekday, day_range, to_date_key
from ..core.constants import INT_STATUS_DELETED
from ..core.exceptions import ValidationError
from .model import AbsenceDay, AbsenceRecord, CalendarDay, CalendarOverlay, EmployeeProfile, Holiday, WorkPattern

logger = logging.getLogger(__name__)

T = TypeVar("T")

ALL_WEEKDAYS = range(7)


def derive_weekend_weekdays(patterns: Sequence[WorkPattern], non_working_days: Iterable[int] = ()) -> frozenset[int]:
    """Weekdays without positive standard hours in any active pattern.

    Explicit non-working weekdays are always kept. Without patterns only the
    explicit list applies.
    """
    weekend = set(non_working_days)
    if patterns:
        working = {
            detail.day_seq
            for pattern in patterns
            if pattern.is_active
            for detail in pattern.details
            if detail.int_status != INT_STATUS_DELETED and detail.std_work_hours > timedelta()
        }
        weekend.update(day for day in ALL_WEEKDAYS if day not in working)
    return frozenset(weekend)


def find_in_range(entries: Sequence[T], start: date, end: date, *, key: Callable[[T], date] = attrgetter("date")) -> list[T]:
    """Entries whose date lies in [start, end]; ``entries`` must be sorted by ``key``."""
    if not entries or start is None or end is None:
        return []
    lo = bisect_left(entries, start, key=key)
    hi = bisect_right(entries, end, lo=lo, key=key)
    return list(entries[lo:hi])


def expand_absences(absences: Iterable[AbsenceRecord]) -> list[AbsenceDay]:
    days = [
        AbsenceDay(date=split.split_date, hours=split.hours, reason=record.reason, type_name=record.type_name)
        for record in absences
        for split in record.hours_by_day
    ]
    # Splits of overlapping records interleave; sort is stable.
    days.sort(key=attrgetter("date"))
    return days


def resolve(
    period_start: date,
    period_end: date,
    weekend_weekdays: Iterable[int],
    holidays: Sequence[Holiday],
    absences: Sequence[AbsenceRecord],
    *,
    daily_std_hours: timedelta,
) -> CalendarOverlay:
    if period_end < period_start:
        raise ValidationError("Period end must not precede period start")

    weekend = frozenset(weekend_weekdays)
    holidays_in_range = find_in_range(holidays, period_start, period_end)
    absences_in_range = find_in_range(expand_absences(absences), period_start, period_end)

    holiday_totals: dict[str, timedelta] = {}
    holiday_names: dict[str, str] = {}
    for holiday in holidays_in_range:
        key = to_date_key(holiday.date)
        holiday_totals[key] = holiday_totals.get(key, timedelta()) + daily_std_hours
        holiday_names.setdefault(key, holiday.name or "")

    absence_totals: dict[str, timedelta] = {}
    absence_first: dict[str, AbsenceDay] = {}
    for entry in absences_in_range:
        key = to_date_key(entry.date)
        absence_totals[key] = absence_totals.get(key, timedelta()) + (entry.hours or timedelta())
        absence_first.setdefault(key, entry)

    days: dict[str, CalendarDay] = {}
    for day in day_range(period_start, period_end):
        key = to_date_key(day)
        absence = absence_first.get(key)
        days[key] = CalendarDay(
            date=day,
            is_weekend=backend_weekday(day) in weekend,
            is_holiday=key in holiday_totals,
            holiday_name=holiday_names.get(key, ""),
            is_absence=absence is not None,
            absence_reason=absence.reason if absence else "",
            absence_type_name=absence.type_name if absence else "",
            absence_hours=absence_totals.get(key, timedelta()),
        )

    logger.debug(
        "Overlay %s..%s: weekend=%s holidays=%s absences=%s",
        period_start,
        period_end,
        sorted(weekend),
        sorted(holiday_totals),
        sorted(absence_totals),
    )
    return CalendarOverlay(
        start=period_start,
        end=period_end,
        days=days,
        holiday_totals=holiday_totals,
        absence_totals=absence_totals,
    )


class CalendarOverlayResolver:
    """Resolves overlays for one employee; weekend weekdays are derived once."""

    def __init__(self, profile: EmployeeProfile):
        self._profile = profile
        self._weekend = derive_weekend_weekdays(profile.patterns, profile.non_working_days)

    @property
    def weekend_weekdays(self) -> frozenset[int]:
        return self._weekend

    @property
    def daily_std_hours(self) -> timedelta:
        return self._profile.daily_std_hours

    def resolve(self, period_start: date, period_end: date) -> CalendarOverlay:
        return resolve(
            period_start,
            period_end,
            self._weekend,
            self._profile.holidays,
            self._profile.absences,
            daily_std_hours=self._profile.daily_std_hours,
        )
