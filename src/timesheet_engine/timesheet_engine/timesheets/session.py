"""Editing session: unsaved-change tracking, save, discard and paging.

A session wraps one ReconciliationEngine and the snapshot it was loaded from.
At most one network operation (load or save) runs at a time: item mutations
issued meanwhile fail with BusyError, while reload and paging wait for the
pending operation to finish. Edits run one at a time, and a network
operation starts only once no edit is in flight.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, tzinfo
from typing import Callable, Iterator, Optional, Sequence, Union

from ..calendar.model import CalendarDay, EmployeeProfile
from ..calendar.resolver import CalendarOverlayResolver
from ..common.remarks import RemarkText, get_remark_text, set_remark_text
from ..core.constants import DEFAULT_PREFERRED_LANGUAGES
from ..core.enums import SessionState
from ..core.exceptions import ApiError, BusyError, ValidationError
from .aggregation import AggregateTotals, PivotTable
from .engine import ReconciliationEngine
from .model import TimesheetChanges, TimesheetDocument, TimesheetHeader, WorkItem
from .navigator import PeriodNavigator, VisibleDate
from .overtime.base import OvertimeClassifier
from .repository import TimesheetRepository
from .transform import merge_task_groups, split_by_period, to_item_map, to_task_groups
from .validation import ItemValidator

logger = logging.getLogger(__name__)

Confirm = Union[bool, Callable[[], bool], None]


class TimesheetSession:
    def __init__(
        self,
        document: TimesheetDocument,
        *,
        profile: EmployeeProfile,
        repository: TimesheetRepository,
        language: str = "en",
        preferred_languages: Sequence[str] = DEFAULT_PREFERRED_LANGUAGES,
        classifier: Optional[OvertimeClassifier] = None,
        tz: Optional[tzinfo] = None,
        selected: Optional[date] = None,
    ):
        self._profile = profile
        self._repository = repository
        self._language = language
        self._preferred = tuple(preferred_languages)
        self._classifier = classifier
        self._tz = tz
        self._resolver = CalendarOverlayResolver(profile)
        self._cond = threading.Condition()
        self._edit_lock = threading.Lock()
        self._pending = False
        self._mutations = 0
        self._state = SessionState.LOADING
        self._apply(document, selected=selected)

    # -- read side -------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._pending

    @property
    def header(self) -> TimesheetHeader:
        return self._document.header

    @property
    def timesheet_id(self) -> str:
        return self._document.header.timesheet_id

    @property
    def navigator(self) -> PeriodNavigator:
        return self._navigator

    @property
    def engine(self) -> ReconciliationEngine:
        return self._engine

    @property
    def status_map(self) -> dict[str, str]:
        return self._document.status_map

    @property
    def remark(self) -> tuple[RemarkText, ...]:
        return self._remark

    def remark_text(self) -> str:
        return get_remark_text(self._remark, self._language, self._preferred)

    def get_visible_dates(self) -> list[VisibleDate]:
        return self._navigator.visible_dates()

    def get_day_items(self, day: date) -> list[WorkItem]:
        return self._engine.get_day_items(day)

    def get_calendar_day(self, day: date) -> Optional[CalendarDay]:
        return self._engine.get_calendar_day(day)

    def get_aggregates(self) -> AggregateTotals:
        return self._engine.get_aggregates()

    def get_pivot_table(self) -> PivotTable:
        return self._engine.get_pivot_table()

    def leave_dates(self) -> list[str]:
        return self._engine.overlay.leave_dates()

    def absence_hours_by_date(self) -> dict:
        return dict(self._engine.overlay.absence_totals)

    def select_date(self, day: date) -> date:
        return self._navigator.select(day)

    # -- mutations -------------------------------------------------------

    def create_or_update_item(self, item: WorkItem, *, original: Optional[WorkItem] = None) -> WorkItem:
        with self._mutation():
            return self._engine.create_or_update_item(item, original=original)

    def delete_item(self, item: WorkItem) -> bool:
        with self._mutation():
            return self._engine.delete_item(item)

    def set_remark(self, text: Optional[str], *, language: Optional[str] = None) -> None:
        with self._mutation():
            self._remark = set_remark_text(self._remark, language or self._language, text)

    # -- dirty state -----------------------------------------------------

    def has_unsaved_changes(self) -> bool:
        return self._engine.has_dirty_items() or self._remark != self._document.header.remark

    def confirm_discard(self, confirm: Confirm = None) -> bool:
        """Check-then-confirm-then-proceed for destructive actions.

        Returns True when there is nothing to lose or ``confirm`` agrees (the
        changes are then discarded); False leaves the session untouched.
        """
        if not self.has_unsaved_changes():
            return True
        agreed = confirm() if callable(confirm) else bool(confirm)
        if not agreed:
            logger.info("Unsaved changes kept for timesheet %s", self.timesheet_id or "<new>")
            return False
        self.discard()
        return True

    def discard(self) -> None:
        self._await_idle()
        self._apply(self._document, selected=self._navigator.selected)
        self._state = SessionState.DISCARDED
        logger.info("Discarded changes of timesheet %s", self.timesheet_id or "<new>")

    def save(self) -> TimesheetHeader:
        if not self.timesheet_id:
            raise ValidationError("No timesheet exists for this period")

        with self._network_op(SessionState.SAVING):
            totals = self._engine.get_aggregates()
            tasks = merge_task_groups(to_task_groups(self._engine.get_item_map(), tz=self._tz), self._hidden_groups())
            remark_changed = self._remark != self._document.header.remark
            changes = TimesheetChanges(
                tasks=tuple(tasks),
                total_time=totals.total_work_time,
                billable_time=totals.billable_time,
                over_time=totals.over_time,
                remark=self._remark if remark_changed else None,
            )
            result = self._repository.update_fields(self.timesheet_id, changes)
            if not result.success:
                raise ApiError(result.message or "Saving the timesheet failed")

            header = replace(
                self._document.header,
                remark=self._remark,
                total_time=changes.total_time,
                billable_time=changes.billable_time,
                over_time=changes.over_time,
            )
            self._document = replace(self._document, header=header, task_groups=tuple(tasks))
            self._engine.clear_dirty()
            self._state = SessionState.SAVED

        logger.info("Saved timesheet %s", self.timesheet_id)
        return self._document.header

    # -- reload / paging -------------------------------------------------

    def reload(self, confirm: Confirm = None) -> bool:
        self._await_idle()
        if not self.confirm_discard(confirm):
            return False
        if not self.timesheet_id:
            return True
        with self._network_op(SessionState.LOADING):
            document = self._repository.get(self.timesheet_id)
            self._apply(document, selected=self._navigator.selected)
        logger.info("Reloaded timesheet %s", self.timesheet_id)
        return True

    def previous_period(self, confirm: Confirm = None) -> bool:
        return self._page(self._navigator.previous_period, confirm)

    def next_period(self, confirm: Confirm = None) -> bool:
        return self._page(self._navigator.next_period, confirm)

    def _page(self, move: Callable[[], tuple[date, date]], confirm: Confirm) -> bool:
        self._await_idle()
        if not self.confirm_discard(confirm):
            return False
        with self._network_op(SessionState.LOADING):
            current = (self._navigator.start, self._navigator.end)
            selected = self._navigator.selected
            start, end = move()
            try:
                document = self._repository.load_period(employee_id=self._profile.employee_id, start=start, end=end)
            except Exception:
                self._navigator.move_to(*current)
                self._navigator.select(selected)
                raise
            if document is None:
                document = TimesheetDocument(
                    header=TimesheetHeader(timesheet_id="", start=start, end=end),
                    type_details=self._document.type_details,
                )
            self._apply(document, selected=self._navigator.selected)
        logger.info("Moved to period %s..%s", self._navigator.start, self._navigator.end)
        return True

    # -- internals -------------------------------------------------------

    def _apply(self, document: TimesheetDocument, *, selected: Optional[date]) -> None:
        header = document.header
        navigator = PeriodNavigator(
            header.start,
            header.end,
            period_days=document.type_details.period_days,
            selected=selected,
        )
        overlay = self._resolver.resolve(header.start, header.end)
        item_map = to_item_map(document.task_groups, tz=self._tz, period=(header.start, header.end))
        hidden = split_by_period(document.task_groups, header.start, header.end, tz=self._tz)
        validator = ItemValidator(
            hire_date=self._profile.hire_date,
            term_date=self._profile.term_date,
            comment_policy=document.type_details.item_comment_required,
            language=self._language,
            preferred_languages=self._preferred,
        )
        engine = ReconciliationEngine(overlay, item_map, classifier=self._classifier, validator=validator)

        self._document = document
        self._navigator = navigator
        self._hidden = hidden
        self._engine = engine
        self._remark = header.remark
        self._state = SessionState.READY

    def _hidden_groups(self):
        return [replace(group, items=list(group.items)) for group in self._hidden]

    def _await_idle(self) -> None:
        with self._cond:
            while self._pending or self._mutations:
                self._cond.wait()

    @contextmanager
    def _mutation(self) -> Iterator[None]:
        with self._cond:
            if self._pending:
                raise BusyError("A save or load is in progress")
            self._mutations += 1
            self._state = SessionState.MUTATING
        try:
            with self._edit_lock:
                yield
        finally:
            with self._cond:
                self._mutations -= 1
                if not self._mutations:
                    self._state = SessionState.READY
                self._cond.notify_all()

    @contextmanager
    def _network_op(self, state: SessionState) -> Iterator[None]:
        with self._cond:
            while self._pending or self._mutations:
                self._cond.wait()
            self._pending = True
            previous = self._state
            self._state = state
        succeeded = False
        try:
            yield
            succeeded = True
        finally:
            with self._cond:
                self._pending = False
                if not succeeded:
                    self._state = previous
                self._cond.notify_all()
