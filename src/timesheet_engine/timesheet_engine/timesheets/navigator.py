from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from ..common.datetime_utils import day_range, to_date_key
from ..core.constants import DEFAULT_PERIOD_DAYS
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class VisibleDate:
    day: str
    date: str
    month: str
    full_date: date

    @classmethod
    def of(cls, value: date) -> "VisibleDate":
        return cls(
            day=value.strftime("%a").upper()[:2],
            date=value.strftime("%d"),
            month=value.strftime("%b").upper(),
            full_date=value,
        )


class PeriodNavigator:
    """Window of visible dates, paged by the period length."""

    def __init__(self, start: date, end: Optional[date] = None, *, period_days: int = DEFAULT_PERIOD_DAYS, selected: Optional[date] = None):
        if period_days <= 0:
            raise ValidationError("Period length must be positive")
        self._period_days = int(period_days)
        self._start = start
        self._end = end or start + timedelta(days=self._period_days - 1)
        if self._end < self._start:
            raise ValidationError("Period end must not precede period start")
        self._selected = self._clamp(selected)

    @property
    def start(self) -> date:
        return self._start

    @property
    def end(self) -> date:
        return self._end

    @property
    def period_days(self) -> int:
        return self._period_days

    @property
    def selected(self) -> date:
        return self._selected

    def contains(self, value: date) -> bool:
        return self._start <= value <= self._end

    def select(self, value: date) -> date:
        if not self.contains(value):
            raise ValidationError(f"{to_date_key(value)} is outside the visible period")
        self._selected = value
        return value

    def visible_dates(self) -> list[VisibleDate]:
        return [VisibleDate.of(d) for d in day_range(self._start, self._end)]

    def peek_previous(self) -> tuple[date, date]:
        new_end = self._start - timedelta(days=1)
        return new_end - timedelta(days=self._period_days - 1), new_end

    def peek_next(self) -> tuple[date, date]:
        new_start = self._end + timedelta(days=1)
        return new_start, new_start + timedelta(days=self._period_days - 1)

    def previous_period(self) -> tuple[date, date]:
        return self.move_to(*self.peek_previous())

    def next_period(self) -> tuple[date, date]:
        return self.move_to(*self.peek_next())

    def move_to(self, start: date, end: date) -> tuple[date, date]:
        if end < start:
            raise ValidationError("Period end must not precede period start")
        self._start, self._end = start, end
        self._selected = self._clamp(self._selected)
        return start, end

    def _clamp(self, value: Optional[date]) -> date:
        if value is None or not self.contains(value):
            return self._start
        return value
