"""Task groups <-> date-indexed item map.

The backend groups dated entries under their task line; the editor works on
one list of items per date. Buckets are kept ordered by group key so that
the same set of items always yields the same map, whatever order it was
built in.
"""

from __future__ import annotations

import logging
from bisect import insort
from datetime import date, tzinfo
from operator import attrgetter
from typing import Iterable, Optional

from ..common.datetime_utils import parse_backend_datetime, to_backend_datetime, to_date_key
from ..core.exceptions import TransformWarning
from .model import TaskGroup, TaskSubItem, WorkItem

logger = logging.getLogger(__name__)

ItemMap = dict[str, list[WorkItem]]

_IDENTITY_FIELDS = (
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

_by_group_key = attrgetter("group_key")


def sub_item_date(sub: TaskSubItem, *, tz: Optional[tzinfo] = None) -> date:
    if not sub.start:
        raise TransformWarning("Task item without start date")
    try:
        return parse_backend_datetime(sub.start, tz=tz).date()
    except ValueError as exc:
        raise TransformWarning(f"Malformed task item start {sub.start!r}") from exc


def insert_item(bucket: list[WorkItem], item: WorkItem) -> None:
    """Insert keeping the bucket ordered by group key."""
    insort(bucket, item, key=_by_group_key)


def to_work_item(group: TaskGroup, sub: TaskSubItem, day: date) -> WorkItem:
    identity = {name: getattr(group, name) or "" for name in _IDENTITY_FIELDS}
    return WorkItem(
        date=day,
        billable=bool(group.billable),
        productive=bool(sub.productive),
        actual_time=sub.actual_time,
        billable_time=sub.billable_time,
        actual_quantity=sub.actual_quantity,
        remark=sub.remark,
        status=sub.status,
        start=sub.start,
        end=sub.end,
        **identity,
    )


def to_item_map(
    task_groups: Iterable[TaskGroup],
    *,
    tz: Optional[tzinfo] = None,
    period: Optional[tuple[date, date]] = None,
) -> ItemMap:
    """Date-indexed item map of the given task groups.

    Sub-items with a missing or malformed date are logged and skipped, as are
    second entries for a task line on a date that already has one. When
    ``period`` is given, sub-items outside it are left out.
    """
    task_groups = list(task_groups)
    logger.debug("Converting %d task group(s) to item map", len(task_groups))

    item_map: ItemMap = {}
    for group in task_groups:
        for sub in group.items:
            try:
                day = sub_item_date(sub, tz=tz)
            except TransformWarning as warning:
                logger.warning("Skipping item of task %r: %s", group.task_id, warning)
                continue
            if period is not None and not (period[0] <= day <= period[1]):
                logger.debug("Item of task %r on %s is outside the period", group.task_id, day)
                continue

            item = to_work_item(group, sub, day)
            bucket = item_map.setdefault(to_date_key(day), [])
            if any(existing.group_key == item.group_key for existing in bucket):
                logger.warning("Skipping duplicate item of task %r on %s", group.task_id, day)
                continue
            insert_item(bucket, item)

    ordered = {key: item_map[key] for key in sorted(item_map)}
    logger.debug("Item map after conversion: %s", {key: len(items) for key, items in ordered.items()})
    return ordered


def _same_day(timestamp: Optional[str], day: date, tz: Optional[tzinfo]) -> bool:
    if not timestamp:
        return False
    try:
        return parse_backend_datetime(timestamp, tz=tz).date() == day
    except ValueError:
        return False


def to_sub_item(item: WorkItem, *, tz: Optional[tzinfo] = None) -> TaskSubItem:
    if _same_day(item.start, item.date, tz):
        start, end = item.start, item.end or item.start
    else:
        start = end = to_backend_datetime(item.date, tz=tz)
    return TaskSubItem(
        start=start,
        end=end,
        actual_time=item.actual_time,
        billable_time=item.billable_time,
        productive=item.productive,
        actual_quantity=item.actual_quantity,
        remark=item.remark,
        status=item.status,
    )


def to_task_groups(item_map: ItemMap, *, tz: Optional[tzinfo] = None) -> list[TaskGroup]:
    """Task groups in order of first encounter of each group key."""
    groups: dict[str, TaskGroup] = {}
    for key, items in item_map.items():
        for item in items:
            group = groups.get(item.group_key)
            if group is None:
                group = TaskGroup(
                    billable=item.billable,
                    status=item.status,
                    **{name: getattr(item, name) for name in _IDENTITY_FIELDS},
                )
                groups[item.group_key] = group
            group.items.append(to_sub_item(item, tz=tz))

    result = list(groups.values())
    logger.debug("Converted item map to %d task group(s)", len(result))
    return result


def split_by_period(task_groups: Iterable[TaskGroup], start: date, end: date, *, tz: Optional[tzinfo] = None) -> list[TaskGroup]:
    """Task groups holding only the sub-items dated outside [start, end].

    Undated sub-items count as outside so that they survive a save untouched.
    """
    outside: list[TaskGroup] = []
    for group in task_groups:
        kept = []
        for sub in group.items:
            try:
                day = sub_item_date(sub, tz=tz)
            except TransformWarning:
                kept.append(sub)
                continue
            if not (start <= day <= end):
                kept.append(sub)
        if kept:
            clone = TaskGroup(**{name: getattr(group, name) for name in _IDENTITY_FIELDS}, billable=group.billable, status=group.status)
            clone.items.extend(kept)
            outside.append(clone)
    return outside


def merge_task_groups(primary: Iterable[TaskGroup], extra: Iterable[TaskGroup]) -> list[TaskGroup]:
    """Append the sub-items of ``extra`` to the matching groups of ``primary``."""
    merged: dict[str, TaskGroup] = {}
    for group in primary:
        merged[group.group_key] = group
    for group in extra:
        target = merged.get(group.group_key)
        if target is None:
            merged[group.group_key] = group
        else:
            target.items.extend(group.items)
    return list(merged.values())
