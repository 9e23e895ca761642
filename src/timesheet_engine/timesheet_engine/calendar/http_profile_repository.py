from __future__ import annotations

import logging
from typing import Any

from ..api.client import ApiClient, QueryFilter
from ..common.datetime_utils import ms_to_timedelta, parse_backend_datetime
from ..core.exceptions import ApiError
from .model import AbsenceRecord, AbsenceSplit, EmployeeProfile, Holiday, PatternDetail, WorkPattern
from .repository import EmployeeProfileRepository

logger = logging.getLogger(__name__)

_SCHEDULE = "Resource-timeMgt-workScheduleID:WorkSchedule"
_CALENDAR = f"{_SCHEDULE}-calendarID:WorkCalendar"

RESOURCE_FIELDS = (
    "Resource-id",
    "Resource-core-hireDate",
    "Resource-core-termDate",
    f"{_SCHEDULE}-dailyStdHours",
    f"{_SCHEDULE}-patterns",
    f"{_CALENDAR}-nonWorkingDays",
    f"{_CALENDAR}-nonWorkingDates",
)

ABSENCE_FIELDS = (
    "Absence-id",
    "Absence-start",
    "Absence-remark:text",
    "Absence-type:AbsenceType-name",
    "Absence-hoursByDay",
)

# Only active absences count towards the overlay.
ABSENCE_INT_STATUS = (0,)


def _optional_date(value):
    if not value:
        return None
    return parse_backend_datetime(value).date()


def patterns_from_backend(raw) -> tuple[WorkPattern, ...]:
    patterns = []
    for p in raw or []:
        details = tuple(
            PatternDetail(
                day_seq=int(d.get("daySeq")),
                std_work_hours=ms_to_timedelta(d.get("stdWorkHours")),
                int_status=int(d.get("intStatus") or 0),
            )
            for d in p.get("details") or []
            if d.get("daySeq") is not None
        )
        patterns.append(WorkPattern(details=details, int_status=int(p.get("intStatus") or 0)))
    return tuple(patterns)


def holidays_from_backend(raw) -> tuple[Holiday, ...]:
    out = []
    for entry in raw or []:
        try:
            out.append(Holiday(date=parse_backend_datetime(entry["date"]).date(), name=str(entry.get("name") or "")))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping non-working date %r: %s", entry, exc)
    return tuple(sorted(out, key=lambda h: h.date))


def absence_from_backend(record: dict[str, Any]) -> AbsenceRecord:
    splits = []
    for split in record.get("Absence-hoursByDay") or []:
        try:
            splits.append(AbsenceSplit(split_date=parse_backend_datetime(split["splitDate"]).date(), hours=ms_to_timedelta(split.get("hours"))))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping absence split %r: %s", split, exc)
    return AbsenceRecord(
        start=parse_backend_datetime(record["Absence-start"]).date(),
        reason=str(record.get("Absence-remark:text") or ""),
        type_name=str(record.get("Absence-type:AbsenceType-name") or ""),
        hours_by_day=tuple(splits),
    )


class HttpEmployeeProfileRepository(EmployeeProfileRepository):
    def __init__(self, client: ApiClient):
        self._client = client

    def get_profile(self, employee_id: str) -> EmployeeProfile:
        rows = self._client.query(RESOURCE_FIELDS, [QueryFilter("Resource-id", "=", employee_id)])
        if not rows:
            raise ApiError(f"Employee {employee_id} not found")
        r = rows[0]

        return EmployeeProfile(
            employee_id=employee_id,
            daily_std_hours=ms_to_timedelta(r.get(f"{_SCHEDULE}-dailyStdHours")),
            patterns=patterns_from_backend(r.get(f"{_SCHEDULE}-patterns")),
            non_working_days=tuple(int(d) for d in r.get(f"{_CALENDAR}-nonWorkingDays") or []),
            holidays=holidays_from_backend(r.get(f"{_CALENDAR}-nonWorkingDates")),
            absences=self._absences(employee_id),
            hire_date=_optional_date(r.get("Resource-core-hireDate")),
            term_date=_optional_date(r.get("Resource-core-termDate")),
        )

    def _absences(self, employee_id: str) -> tuple[AbsenceRecord, ...]:
        rows = self._client.query(
            ABSENCE_FIELDS,
            [QueryFilter("Absence-employeeID", "=", employee_id)],
            int_status=ABSENCE_INT_STATUS,
        )
        out: list[AbsenceRecord] = []
        for row in rows:
            try:
                out.append(absence_from_backend(row))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping absence %r: %s", row.get("Absence-id"), exc)
        return tuple(sorted(out, key=lambda a: a.start))
