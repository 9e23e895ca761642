from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from datetime import date, timedelta, tzinfo
from typing import Any, Mapping, Optional, Sequence

from ..calendar.model import CalendarDay
from ..calendar.repository import EmployeeProfileRepository
from ..common.datetime_utils import format_duration, ms_to_timedelta, parse_iso_date, timedelta_to_ms, to_date_key
from ..common.remarks import get_remark_text, set_remark_text
from ..core.constants import DEFAULT_PERIOD_DAYS, DEFAULT_PREFERRED_LANGUAGES
from ..core.exceptions import SessionNotFoundError, ValidationError
from .aggregation import AggregateTotals, PivotTable
from .model import ItemStatus, Quantity, TimesheetDocument, TimesheetHeader, TimesheetTypeDetails, WorkItem
from .overtime.base import OvertimeClassifier
from .repository import TimesheetRepository
from .session import Confirm, TimesheetSession

logger = logging.getLogger(__name__)

_TEXT_FIELDS = (
    "task_id",
    "task_ext_id",
    "task_text",
    "customer_id",
    "customer_ext_id",
    "customer_text",
    "project_id",
    "project_ext_id",
    "project_text",
    "department_id",
    "department_ext_id",
    "department_text",
    "time_type_ext_id",
    "time_type_id",
    "time_type_text",
)


class TimesheetService:
    """Opens editing sessions and shapes their state for the UI."""

    def __init__(
        self,
        timesheets: TimesheetRepository,
        profiles: EmployeeProfileRepository,
        *,
        language: str = "en",
        preferred_languages: Sequence[str] = DEFAULT_PREFERRED_LANGUAGES,
        default_period_days: int = DEFAULT_PERIOD_DAYS,
        tz: Optional[tzinfo] = None,
        classifier: Optional[OvertimeClassifier] = None,
    ):
        self._timesheets = timesheets
        self._profiles = profiles
        self._language = language
        self._preferred = tuple(preferred_languages)
        self._default_period_days = default_period_days
        self._tz = tz
        self._classifier = classifier
        self._sessions: dict[str, TimesheetSession] = {}
        self._lock = threading.Lock()

    # -- sessions --------------------------------------------------------

    def open_session(
        self,
        *,
        employee_id: str,
        timesheet_id: Optional[str] = None,
        day: Optional[date] = None,
    ) -> str:
        """Open a session on a timesheet, or on the period covering ``day``.

        Without a timesheet for ``day`` the session shows an empty period of
        the default length starting on ``day``.
        """
        if not employee_id:
            raise ValidationError("Employee is required")
        if not timesheet_id and day is None:
            raise ValidationError("Timesheet or date is required")

        profile = self._profiles.get_profile(employee_id)
        if timesheet_id:
            document = self._timesheets.get(timesheet_id)
        else:
            document = self._document_for_date(employee_id, day)

        session = TimesheetSession(
            document,
            profile=profile,
            repository=self._timesheets,
            language=self._language,
            preferred_languages=self._preferred,
            classifier=self._classifier,
            tz=self._tz,
            selected=day,
        )
        session_id = uuid.uuid4().hex
        with self._lock:
            self._sessions[session_id] = session
        logger.info("Opened session %s on timesheet %s", session_id, session.timesheet_id or "<none>")
        return session_id

    def get_session(self, session_id: str) -> TimesheetSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"No open session {session_id}")
        return session

    def close_session(self, session_id: str, confirm: Confirm = None) -> bool:
        """Close a session; unsaved changes are only dropped when confirmed."""
        session = self.get_session(session_id)
        if not session.confirm_discard(confirm):
            return False
        with self._lock:
            self._sessions.pop(session_id, None)
        logger.info("Closed session %s", session_id)
        return True

    def find_for_date(self, *, employee_id: str, day: date) -> dict:
        refs = self._timesheets.find_for_date(employee_id=employee_id, day=day)
        return {
            "exists": bool(refs),
            "data": [
                {
                    "id": r.timesheet_id,
                    "start": to_date_key(r.start),
                    "end": to_date_key(r.end),
                    "employee_id": r.employee_id,
                    "status_template_ext_id": r.status_template_ext_id,
                }
                for r in refs
            ],
        }

    def _document_for_date(self, employee_id: str, day: date) -> TimesheetDocument:
        refs = self._timesheets.find_for_date(employee_id=employee_id, day=day)
        if refs:
            return self._timesheets.get(refs[0].timesheet_id)
        end = day + timedelta(days=self._default_period_days - 1)
        return TimesheetDocument(
            header=TimesheetHeader(timesheet_id="", start=day, end=end),
            type_details=TimesheetTypeDetails(period_days=self._default_period_days),
        )

    # -- edits -----------------------------------------------------------

    def create_item(self, session_id: str, payload: Mapping[str, Any]) -> dict:
        session = self.get_session(session_id)
        item = self.item_from_ui(payload, session)
        stored = session.create_or_update_item(item)
        return self._item_to_ui(stored, session)

    def update_item(self, session_id: str, *, day: date, key: str, payload: Mapping[str, Any]) -> dict:
        session = self.get_session(session_id)
        original = self._find_item(session, day, key)
        item = self.item_from_ui(payload, session, base=original)
        stored = session.create_or_update_item(item, original=original)
        return self._item_to_ui(stored, session)

    def delete_item(self, session_id: str, *, day: date, key: str) -> bool:
        session = self.get_session(session_id)
        for item in session.get_day_items(day):
            if item.group_key == key:
                return session.delete_item(item)
        return False

    def set_remark(self, session_id: str, text: Optional[str], *, language: Optional[str] = None) -> dict:
        session = self.get_session(session_id)
        session.set_remark(text, language=language)
        return self.header_ui(session_id)

    def save(self, session_id: str) -> dict:
        session = self.get_session(session_id)
        session.save()
        return self.header_ui(session_id)

    def discard(self, session_id: str) -> dict:
        self.get_session(session_id).discard()
        return self.header_ui(session_id)

    def reload(self, session_id: str, confirm: Confirm = None) -> bool:
        return self.get_session(session_id).reload(confirm)

    def previous_period(self, session_id: str, confirm: Confirm = None) -> bool:
        return self.get_session(session_id).previous_period(confirm)

    def next_period(self, session_id: str, confirm: Confirm = None) -> bool:
        return self.get_session(session_id).next_period(confirm)

    def has_unsaved_changes(self, session_id: str) -> bool:
        return self.get_session(session_id).has_unsaved_changes()

    # -- read models -----------------------------------------------------

    def header_ui(self, session_id: str) -> dict:
        session = self.get_session(session_id)
        h = session.header
        return {
            "id": h.timesheet_id,
            "start": to_date_key(h.start),
            "end": to_date_key(h.end),
            "type": h.type,
            "status": h.status.label or h.status.id,
            "remark": session.remark_text(),
            "state": session.state.value,
            "selected_date": to_date_key(session.navigator.selected),
            "unsaved": session.has_unsaved_changes(),
        }

    def visible_dates_ui(self, session_id: str) -> list[dict]:
        session = self.get_session(session_id)
        out = []
        for v in session.get_visible_dates():
            cal = session.get_calendar_day(v.full_date)
            out.append(
                {
                    "day": v.day,
                    "date": v.date,
                    "month": v.month,
                    "full_date": to_date_key(v.full_date),
                    "is_weekend": bool(cal and cal.is_weekend),
                    "is_holiday": bool(cal and cal.is_holiday),
                    "is_absence": bool(cal and cal.is_absence),
                    "selected": v.full_date == session.navigator.selected,
                }
            )
        return out

    def day_ui(self, session_id: str, day: date) -> dict:
        session = self.get_session(session_id)
        session.select_date(day)
        cal = session.get_calendar_day(day)
        return {
            "date": to_date_key(day),
            "items": [self._item_to_ui(i, session) for i in session.get_day_items(day)],
            "messages": calendar_day_messages(cal) if cal else [],
            "total": format_duration(session.get_aggregates().per_day_total.get(to_date_key(day), timedelta())),
        }

    def aggregates_ui(self, session_id: str) -> dict:
        session = self.get_session(session_id)
        return aggregates_to_ui(session.get_aggregates())

    def pivot_ui(self, session_id: str) -> dict:
        return pivot_to_ui(self.get_session(session_id).get_pivot_table())

    def leave_ui(self, session_id: str) -> dict:
        session = self.get_session(session_id)
        return {
            "leave_dates": session.leave_dates(),
            "absence_hours": {k: format_duration(v) for k, v in session.absence_hours_by_date().items()},
        }

    # -- conversions -----------------------------------------------------

    def item_from_ui(self, payload: Mapping[str, Any], session: TimesheetSession, *, base: Optional[WorkItem] = None) -> WorkItem:
        """Work item from a UI payload; durations arrive in milliseconds."""
        raw_date = payload.get("date")
        if not raw_date and base is None:
            raise ValidationError("Date is required")
        try:
            day = parse_iso_date(str(raw_date)) if raw_date else base.date
        except ValueError as exc:
            raise ValidationError(f"Invalid date: {raw_date!r}") from exc

        values: dict[str, Any] = {}
        for name in _TEXT_FIELDS:
            if name in payload:
                values[name] = str(payload.get(name) or "")
        for name in ("billable", "productive"):
            if name in payload:
                values[name] = bool(payload.get(name))
        for name in ("actual_time", "billable_time"):
            if name in payload:
                try:
                    values[name] = ms_to_timedelta(payload.get(name))
                except (TypeError, ValueError) as exc:
                    raise ValidationError(f"Invalid duration for {name}: {payload.get(name)!r}") from exc
        if "quantity" in payload or "unit" in payload:
            values["actual_quantity"] = Quantity(quantity=float(payload.get("quantity") or 0), unit=str(payload.get("unit") or ""))
        if "remark" in payload:
            existing = base.remark if base is not None else ()
            values["remark"] = set_remark_text(existing, self._language, payload.get("remark"))
        if "status" in payload:
            values["status"] = status_from_label(str(payload.get("status") or ""), session.status_map)

        if base is None:
            return WorkItem(date=day, **values)
        return replace(base, date=day, **values)

    def _item_to_ui(self, item: WorkItem, session: TimesheetSession) -> dict:
        return {
            "key": item.group_key,
            "date": to_date_key(item.date),
            **{name: getattr(item, name) for name in _TEXT_FIELDS},
            "billable": item.billable,
            "productive": item.productive,
            "actual_time": timedelta_to_ms(item.actual_time),
            "actual_hours": format_duration(item.actual_time),
            "billable_time": timedelta_to_ms(item.billable_time),
            "quantity": item.actual_quantity.quantity,
            "unit": item.actual_quantity.unit,
            "remark": get_remark_text(item.remark, self._language, self._preferred),
            "status": item.status.label or session.status_map.get(item.status.id, item.status.id),
            "dirty": item.is_dirty,
        }

    def _find_item(self, session: TimesheetSession, day: date, key: str) -> WorkItem:
        for item in session.get_day_items(day):
            if item.group_key == key:
                return item
        raise ValidationError(f"No item {key} on {to_date_key(day)}")


def status_from_label(label: str, status_map: Mapping[str, str]) -> ItemStatus:
    """Item status for a UI label (or a raw status id) using the status map."""
    if not label:
        return ItemStatus()
    for status_id, status_label in status_map.items():
        if status_label == label:
            return ItemStatus(id=status_id, label=status_label)
    if label in status_map:
        return ItemStatus(id=label, label=status_map[label])
    raise ValidationError(f"Unknown status: {label}")


def calendar_day_messages(day: CalendarDay) -> list[dict]:
    """Holiday/absence/weekend notes shown above a day's items."""
    messages = []
    if day.is_holiday:
        messages.append({"type": "holiday", "text": day.holiday_name or "Holiday"})
    if day.is_absence:
        text = day.absence_type_name or "Absence"
        if day.absence_reason:
            text = f"{text}: {day.absence_reason}"
        messages.append({"type": "absence", "text": text, "hours": format_duration(day.absence_hours)})
    if day.is_weekend and not messages:
        messages.append({"type": "weekend", "text": "Non-working day"})
    return messages


def aggregates_to_ui(totals: AggregateTotals) -> dict:
    return {
        "total_work_time": format_duration(totals.total_work_time),
        "timesheet_total_time": format_duration(totals.timesheet_total_time),
        "billable_time": format_duration(totals.billable_time),
        "over_time": format_duration(totals.over_time),
        "per_day_total": {k: format_duration(v) for k, v in totals.per_day_total.items()},
        "grand_total": format_duration(totals.grand_total),
    }


def pivot_to_ui(pivot: PivotTable) -> dict:
    return {
        "header": pivot.header(),
        "rows": pivot.as_text_rows(),
        "keys": [row.key for row in pivot.rows],
    }
