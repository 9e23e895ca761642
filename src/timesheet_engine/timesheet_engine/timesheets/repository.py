from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import TimesheetChanges, TimesheetDocument, TimesheetRef, UpdateResult


class TimesheetRepository(Protocol):
    def get(self, timesheet_id: str) -> TimesheetDocument:
        raise NotImplementedError

    def load_period(self, *, employee_id: str, start: date, end: date) -> Optional[TimesheetDocument]:
        """Timesheet covering [start, end], or None when the period has none."""

        raise NotImplementedError

    def update_fields(self, timesheet_id: str, changes: TimesheetChanges) -> UpdateResult:
        """Partial update of the engine-owned top-level fields."""

        raise NotImplementedError

    def find_for_date(self, *, employee_id: str, day: date) -> Sequence[TimesheetRef]:
        raise NotImplementedError
