from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional, Sequence

from ..api.client import ApiClient, QueryFilter
from ..common.datetime_utils import parse_backend_datetime, to_backend_datetime
from ..core.constants import DEFAULT_PERIOD_DAYS
from ..core.exceptions import ApiError
from .mapping import (
    HEADER_FIELD_MAP_V1,
    TIMESHEET_BUSOBJ,
    build_update_payload,
    header_from_backend,
    task_groups_from_record,
    type_details_from_backend,
)
from .model import TimesheetChanges, TimesheetDocument, TimesheetRef, TimesheetTypeDetails, UpdateResult
from .repository import TimesheetRepository

logger = logging.getLogger(__name__)

_ID = f"{TIMESHEET_BUSOBJ}-id"
_START = f"{TIMESHEET_BUSOBJ}-start"
_END = f"{TIMESHEET_BUSOBJ}-end"
_EMPLOYEE = f"{TIMESHEET_BUSOBJ}-employeeID"
_STATUS_TEMPLATE = f"{TIMESHEET_BUSOBJ}-extStatus-processTemplateID"

TYPE_FIELDS = ("TimesheetType-extID", "TimesheetType-period", "TimesheetType-itemCommentRequired")
STATUS_TEMPLATE_FIELDS = ("ProcessTemplate-extID", "ProcessTemplate-steps")


class HttpTimesheetRepository(TimesheetRepository):
    def __init__(self, client: ApiClient, *, default_period_days: int = DEFAULT_PERIOD_DAYS):
        self._client = client
        self._default_period_days = default_period_days

    def get(self, timesheet_id: str) -> TimesheetDocument:
        rows = self._client.query(self._document_fields(), [QueryFilter(_ID, "=", timesheet_id)])
        if not rows:
            raise ApiError(f"Timesheet {timesheet_id} not found")
        return self._to_document(rows[0])

    def load_period(self, *, employee_id: str, start: date, end: date) -> Optional[TimesheetDocument]:
        rows = self._client.query(
            self._document_fields(),
            [
                QueryFilter(_EMPLOYEE, "=", employee_id),
                QueryFilter(_START, "<=", to_backend_datetime(start)),
                QueryFilter(_END, ">=", to_backend_datetime(start)),
            ],
        )
        if not rows:
            logger.info("No timesheet for employee %s in %s..%s", employee_id, start, end)
            return None
        if len(rows) > 1:
            logger.warning("%d timesheets cover %s; using the first", len(rows), start)
        return self._to_document(rows[0])

    def update_fields(self, timesheet_id: str, changes: TimesheetChanges) -> UpdateResult:
        payload = build_update_payload(timesheet_id, changes, client=self._client.config.client)
        success, message = self._client.update_fields(payload)
        if not success:
            logger.warning("Update of timesheet %s rejected: %s", timesheet_id, message)
        return UpdateResult(success=success, message=message)

    def find_for_date(self, *, employee_id: str, day: date) -> Sequence[TimesheetRef]:
        stamp = to_backend_datetime(day)
        rows = self._client.query(
            [_ID, _START, _END, _EMPLOYEE, _STATUS_TEMPLATE],
            [
                QueryFilter(_EMPLOYEE, "=", employee_id),
                QueryFilter(_START, "<=", stamp),
                QueryFilter(_END, ">=", stamp),
            ],
        )
        refs = []
        for r in rows:
            try:
                refs.append(
                    TimesheetRef(
                        timesheet_id=str(r[_ID]),
                        start=parse_backend_datetime(r[_START]).date(),
                        end=parse_backend_datetime(r[_END]).date(),
                        employee_id=str(r.get(_EMPLOYEE) or ""),
                        status_template_ext_id=str(r.get(_STATUS_TEMPLATE) or ""),
                    )
                )
            except (KeyError, ValueError) as exc:
                logger.warning("Skipping timesheet row %r: %s", r.get(_ID), exc)
        return refs

    def _document_fields(self) -> list[str]:
        return [*HEADER_FIELD_MAP_V1, _STATUS_TEMPLATE]

    def _to_document(self, record: dict[str, Any]) -> TimesheetDocument:
        status_map = self._status_map(record.get(_STATUS_TEMPLATE))
        header = header_from_backend(record, status_map=status_map)
        return TimesheetDocument(
            header=header,
            task_groups=tuple(task_groups_from_record(record, status_map=status_map)),
            status_map=status_map,
            type_details=self._type_details(header.type),
        )

    def _type_details(self, type_ext_id: str) -> TimesheetTypeDetails:
        if not type_ext_id:
            return TimesheetTypeDetails(period_days=self._default_period_days)
        rows = self._client.query(TYPE_FIELDS, [QueryFilter("TimesheetType-extID", "=", type_ext_id)])
        return type_details_from_backend(rows[0] if rows else None, default_period_days=self._default_period_days)

    def _status_map(self, template_ext_id: Optional[str]) -> dict[str, str]:
        """Status id -> label of the timesheet's process template steps."""
        if not template_ext_id:
            return {}
        rows = self._client.query(STATUS_TEMPLATE_FIELDS, [QueryFilter("ProcessTemplate-extID", "=", template_ext_id)])
        out: dict[str, str] = {}
        for row in rows:
            for step in row.get("ProcessTemplate-steps") or []:
                if isinstance(step, dict) and step.get("statusID"):
                    out[str(step["statusID"])] = str(step.get("statusLabel") or "")
        return out
