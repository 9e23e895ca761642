import logging
from datetime import date, timedelta
from zoneinfo import ZoneInfo

from src.timesheet_engine.timesheet_engine.timesheets.grouping import group_key
from src.timesheet_engine.timesheet_engine.timesheets.model import TaskGroup, TaskSubItem, WorkItem
from src.timesheet_engine.timesheet_engine.timesheets.transform import (
    merge_task_groups,
    split_by_period,
    to_item_map,
    to_task_groups,
)

H = timedelta(hours=1)


def _group(task_id, department_id="D1", *stamps_and_hours, billable=False):
    group = TaskGroup(task_id=task_id, task_text=f"Task {task_id}", department_id=department_id, billable=billable)
    for stamp, hours in stamps_and_hours:
        group.items.append(TaskSubItem(start=stamp, end=stamp, actual_time=hours * H))
    return group


def test_group_key_separates_department_and_task():
    assert group_key(WorkItem(date=date(2025, 1, 6), department_id="ab", task_id="c")) != group_key(
        WorkItem(date=date(2025, 1, 6), department_id="a", task_id="bc")
    )
    assert group_key(WorkItem(date=date(2025, 1, 6), department_id="D1", task_id="T1")) == "D1::T1"
    assert group_key(WorkItem(date=date(2025, 1, 6), task_id="T1")) == "::T1"


def test_item_map_is_keyed_by_date_and_sorted():
    groups = [
        _group("T2", "D1", ("2025-01-07T00:00:00Z", 2)),
        _group("T1", "D1", ("2025-01-07T00:00:00Z", 3), ("2025-01-06T00:00:00Z", 1)),
    ]
    item_map = to_item_map(groups)

    assert list(item_map) == ["2025-01-06", "2025-01-07"]
    assert [i.task_id for i in item_map["2025-01-07"]] == ["T1", "T2"]
    assert item_map["2025-01-06"][0].actual_time == 1 * H
    assert item_map["2025-01-06"][0].task_text == "Task T1"


def test_item_map_is_independent_of_group_order():
    a = _group("T1", "D1", ("2025-01-06T00:00:00Z", 1))
    b = _group("T2", "D2", ("2025-01-06T00:00:00Z", 2))
    assert to_item_map([a, b]) == to_item_map([b, a])


def test_malformed_and_duplicate_sub_items_are_skipped(caplog):
    group = _group("T1", "D1", ("2025-01-06T00:00:00Z", 1), ("not a date", 2), ("2025-01-06T08:00:00Z", 4))
    group.items.append(TaskSubItem(start=None, actual_time=H))

    with caplog.at_level(logging.WARNING):
        item_map = to_item_map([group])

    assert list(item_map) == ["2025-01-06"]
    assert item_map["2025-01-06"][0].actual_time == 1 * H
    assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 3


def test_period_filter_drops_outside_items():
    group = _group("T1", "D1", ("2025-01-05T00:00:00Z", 1), ("2025-01-06T00:00:00Z", 2))
    item_map = to_item_map([group], period=(date(2025, 1, 6), date(2025, 1, 10)))
    assert list(item_map) == ["2025-01-06"]


def test_round_trip_through_task_groups():
    groups = [
        _group("T1", "D1", ("2025-01-06T00:00:00Z", 1), ("2025-01-07T00:00:00Z", 2), billable=True),
        _group("T2", "D1", ("2025-01-07T00:00:00Z", 3)),
    ]
    item_map = to_item_map(groups)
    back = to_task_groups(item_map)

    assert [g.task_id for g in back] == ["T1", "T2"]
    assert back[0].billable is True
    assert [s.start for s in back[0].items] == ["2025-01-06T00:00:00Z", "2025-01-07T00:00:00Z"]
    assert to_item_map(back) == item_map


def test_new_item_gets_midnight_utc_timestamp():
    item_map = {"2025-01-08": [WorkItem(date=date(2025, 1, 8), task_id="T9", actual_time=H)]}
    (group,) = to_task_groups(item_map)
    assert group.items[0].start == "2025-01-08T00:00:00Z"
    assert group.items[0].end == "2025-01-08T00:00:00Z"


def test_moved_item_does_not_keep_old_timestamp():
    moved = WorkItem(date=date(2025, 1, 9), task_id="T1", actual_time=H, start="2025-01-06T08:00:00Z", end="2025-01-06T09:00:00Z")
    (group,) = to_task_groups({"2025-01-09": [moved]})
    assert group.items[0].start == "2025-01-09T00:00:00Z"


def test_new_item_keeps_its_date_west_of_utc():
    new_york = ZoneInfo("America/New_York")
    item_map = {"2025-01-08": [WorkItem(date=date(2025, 1, 8), task_id="T9", actual_time=H)]}

    (group,) = to_task_groups(item_map, tz=new_york)
    assert group.items[0].start == "2025-01-08T05:00:00Z"

    again = to_item_map([group], tz=new_york, period=(date(2025, 1, 6), date(2025, 1, 12)))
    assert list(again) == ["2025-01-08"]
    assert again["2025-01-08"][0].actual_time == H


def test_outside_items_survive_split_and_merge():
    group = _group("T1", "D1", ("2025-01-03T00:00:00Z", 5), ("2025-01-06T00:00:00Z", 1))
    hidden = split_by_period([group], date(2025, 1, 6), date(2025, 1, 10))

    assert len(hidden) == 1
    assert [s.start for s in hidden[0].items] == ["2025-01-03T00:00:00Z"]

    visible = to_task_groups(to_item_map([group], period=(date(2025, 1, 6), date(2025, 1, 10))))
    merged = merge_task_groups(visible, hidden)

    assert len(merged) == 1
    assert sorted(s.start for s in merged[0].items) == ["2025-01-03T00:00:00Z", "2025-01-06T00:00:00Z"]
