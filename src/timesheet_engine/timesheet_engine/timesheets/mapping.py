"""Backend field mapping.

The business-object API speaks flat records with templated field names
(``"taskID:Task-extID"``). These tables map them onto typed dataclass fields.
Tables are versioned; bump ``MAPPING_VERSION`` and add a new table pair when
the backend contract changes instead of editing a published one.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Mapping, Optional

from ..common.datetime_utils import ms_to_timedelta, parse_backend_datetime, timedelta_to_ms
from ..common.remarks import remark_from_backend, remark_to_backend
from ..core.enums import CommentPolicy
from ..core.exceptions import ApiError, TransformWarning
from .model import (
    ItemStatus,
    Quantity,
    TaskGroup,
    TaskSubItem,
    TimesheetChanges,
    TimesheetHeader,
    TimesheetTypeDetails,
)

logger = logging.getLogger(__name__)

MAPPING_VERSION = 1

TIMESHEET_BUSOBJ = "TimeConfirmation"

TASK_FIELD_MAP_V1: dict[str, str] = {
    "customerID": "customer_id",
    "customerID:Customer-extID": "customer_ext_id",
    "customerID:Customer-name-text": "customer_text",
    "projectWbsID": "project_id",
    "projectWbsID:ProjectWBS-extID": "project_ext_id",
    "projectWbsID:ProjectWBS-text-text": "project_text",
    "taskID": "task_id",
    "taskID:Task-extID": "task_ext_id",
    "taskID:Task-text-text": "task_text",
    "department": "department_id",
    "department:BusUnit-extID": "department_ext_id",
    "department:BusUnit-name-text": "department_text",
    "timeType": "time_type_ext_id",
    "timeType:TimeItemType-id": "time_type_id",
    "timeType:TimeItemType-name": "time_type_text",
    "billable": "billable",
    "extStatus": "status",
}

ITEM_FIELD_MAP_V1: dict[str, str] = {
    "start": "start",
    "end": "end",
    "actualTime": "actual_time",
    "billableTime": "billable_time",
    "productive": "productive",
    "actualQuantity": "actual_quantity",
    "remark": "remark",
    "extStatus": "status",
}

HEADER_FIELD_MAP_V1: dict[str, str] = {
    f"{TIMESHEET_BUSOBJ}-id": "timesheet_id",
    f"{TIMESHEET_BUSOBJ}-type": "type",
    f"{TIMESHEET_BUSOBJ}-start": "start",
    f"{TIMESHEET_BUSOBJ}-end": "end",
    f"{TIMESHEET_BUSOBJ}-extStatus": "status",
    f"{TIMESHEET_BUSOBJ}-remark": "remark",
    f"{TIMESHEET_BUSOBJ}-totalTime": "total_time",
    f"{TIMESHEET_BUSOBJ}-billableTime": "billable_time",
    f"{TIMESHEET_BUSOBJ}-totalOvertime": "over_time",
    f"{TIMESHEET_BUSOBJ}-tasks": "tasks",
}

# Keys of the partial-update payload, by TimesheetChanges field.
UPDATE_FIELD_MAP_V1: dict[str, str] = {
    "tasks": f"{TIMESHEET_BUSOBJ}-tasks",
    "total_time": f"{TIMESHEET_BUSOBJ}-totalTime",
    "billable_time": f"{TIMESHEET_BUSOBJ}-billableTime",
    "over_time": f"{TIMESHEET_BUSOBJ}-totalOvertime",
    "remark": f"{TIMESHEET_BUSOBJ}-remark",
}

FIELD_MAPS: dict[int, dict[str, dict[str, str]]] = {
    1: {
        "task": TASK_FIELD_MAP_V1,
        "item": ITEM_FIELD_MAP_V1,
        "header": HEADER_FIELD_MAP_V1,
        "update": UPDATE_FIELD_MAP_V1,
    },
}

_DURATION_FIELDS = {"actual_time", "billable_time", "total_time", "over_time"}
_BOOL_FIELDS = {"billable", "productive"}


def _maps(version: int) -> dict[str, dict[str, str]]:
    try:
        return FIELD_MAPS[version]
    except KeyError:
        raise ValueError(f"Unknown mapping version: {version}") from None


def _status_from_backend(raw: Any, status_map: Optional[Mapping[str, str]]) -> ItemStatus:
    if not raw:
        return ItemStatus()
    if isinstance(raw, Mapping):
        status_id = str(raw.get("statusID") or "")
    else:
        status_id = str(raw)
    return ItemStatus(id=status_id, label=(status_map or {}).get(status_id, ""))


def _quantity_from_backend(raw: Any) -> Quantity:
    if not raw:
        return Quantity()
    if not isinstance(raw, Mapping):
        raise TypeError(f"Invalid quantity: {raw!r}")
    return Quantity(quantity=float(raw.get("quantity") or 0), unit=str(raw.get("unit") or ""))


def _convert_in(attr: str, value: Any, status_map: Optional[Mapping[str, str]]) -> Any:
    if attr in _DURATION_FIELDS:
        return ms_to_timedelta(value)
    if attr in _BOOL_FIELDS:
        return bool(value)
    if attr == "status":
        return _status_from_backend(value, status_map)
    if attr == "actual_quantity":
        return _quantity_from_backend(value)
    if attr == "remark":
        return remark_from_backend(value)
    if attr in ("start", "end"):
        return value or None
    return "" if value is None else str(value)


def _convert_out(attr: str, value: Any) -> Any:
    if isinstance(value, timedelta):
        return timedelta_to_ms(value)
    if isinstance(value, Quantity):
        return {"quantity": value.quantity, "unit": value.unit}
    if isinstance(value, ItemStatus):
        return {"statusID": value.id} if value.id else {}
    if attr == "remark":
        return remark_to_backend(value)
    return value


def sub_item_from_backend(record: Mapping[str, Any], *, status_map: Optional[Mapping[str, str]] = None, version: int = MAPPING_VERSION) -> TaskSubItem:
    """Typed sub-item; raises TransformWarning for unusable values."""
    kwargs: dict[str, Any] = {}
    try:
        for backend_name, attr in _maps(version)["item"].items():
            kwargs[attr] = _convert_in(attr, record.get(backend_name), status_map)
    except (TypeError, ValueError) as exc:
        raise TransformWarning(f"Malformed task item {record!r}: {exc}") from exc
    return TaskSubItem(**kwargs)


def task_group_from_backend(record: Mapping[str, Any], *, status_map: Optional[Mapping[str, str]] = None, version: int = MAPPING_VERSION) -> TaskGroup:
    """Typed task group. Malformed sub-items are logged and skipped."""
    kwargs: dict[str, Any] = {}
    for backend_name, attr in _maps(version)["task"].items():
        kwargs[attr] = _convert_in(attr, record.get(backend_name), status_map)

    items: list[TaskSubItem] = []
    for raw in record.get("items") or []:
        try:
            items.append(sub_item_from_backend(raw, status_map=status_map, version=version))
        except TransformWarning as warning:
            logger.warning("Skipping task item: %s", warning)
    return TaskGroup(items=items, **kwargs)


def sub_item_to_backend(item: TaskSubItem, *, version: int = MAPPING_VERSION) -> dict[str, Any]:
    return {backend_name: _convert_out(attr, getattr(item, attr)) for backend_name, attr in _maps(version)["item"].items()}


def task_group_to_backend(group: TaskGroup, *, version: int = MAPPING_VERSION) -> dict[str, Any]:
    out = {backend_name: _convert_out(attr, getattr(group, attr)) for backend_name, attr in _maps(version)["task"].items()}
    out["items"] = [sub_item_to_backend(item, version=version) for item in group.items]
    return out


def header_from_backend(record: Mapping[str, Any], *, status_map: Optional[Mapping[str, str]] = None, version: int = MAPPING_VERSION) -> TimesheetHeader:
    fields = _maps(version)["header"]
    values = {attr: record.get(name) for name, attr in fields.items()}
    if not values["timesheet_id"]:
        raise ApiError("Timesheet record without id")
    try:
        start = parse_backend_datetime(values["start"]).date()
        end = parse_backend_datetime(values["end"]).date()
    except (TypeError, ValueError) as exc:
        raise ApiError(f"Timesheet {values['timesheet_id']} has no valid period: {exc}") from exc
    return TimesheetHeader(
        timesheet_id=str(values["timesheet_id"]),
        start=start,
        end=end,
        type=str(values["type"] or ""),
        status=_status_from_backend(values["status"], status_map),
        remark=remark_from_backend(values["remark"]),
        total_time=ms_to_timedelta(values["total_time"]),
        billable_time=ms_to_timedelta(values["billable_time"]),
        over_time=ms_to_timedelta(values["over_time"]),
    )


def task_groups_from_record(record: Mapping[str, Any], *, status_map: Optional[Mapping[str, str]] = None, version: int = MAPPING_VERSION) -> list[TaskGroup]:
    tasks_field = next(name for name, attr in _maps(version)["header"].items() if attr == "tasks")
    return [task_group_from_backend(raw, status_map=status_map, version=version) for raw in record.get(tasks_field) or []]


def type_details_from_backend(record: Optional[Mapping[str, Any]], *, default_period_days: int) -> TimesheetTypeDetails:
    if not record:
        return TimesheetTypeDetails(period_days=default_period_days)
    period = int(record.get("TimesheetType-period") or default_period_days)
    policy_raw = str(record.get("TimesheetType-itemCommentRequired") or "")
    try:
        policy = CommentPolicy(policy_raw)
    except ValueError:
        logger.warning("Unknown item comment policy %r; ignoring", policy_raw)
        policy = CommentPolicy.NONE
    return TimesheetTypeDetails(period_days=period, item_comment_required=policy)


def build_update_payload(timesheet_id: str, changes: TimesheetChanges, *, client: str = "", version: int = MAPPING_VERSION) -> dict[str, Any]:
    """Partial-update payload: only the engine-owned top-level fields."""
    fields = _maps(version)["update"]
    data: dict[str, Any] = {
        f"{TIMESHEET_BUSOBJ}-id": timesheet_id,
        f"{TIMESHEET_BUSOBJ}-extID": "",
        fields["tasks"]: [task_group_to_backend(group, version=version) for group in changes.tasks],
        fields["total_time"]: timedelta_to_ms(changes.total_time),
        fields["billable_time"]: timedelta_to_ms(changes.billable_time),
        fields["over_time"]: timedelta_to_ms(changes.over_time),
    }
    if client:
        data[f"{TIMESHEET_BUSOBJ}-component"] = f"Client-{client}-all"
    if changes.remark is not None:
        data[fields["remark"]] = remark_to_backend(changes.remark)
    return {"data": data}
