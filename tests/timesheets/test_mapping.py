from datetime import date, timedelta

import pytest

from src.timesheet_engine.timesheet_engine.common.remarks import RemarkText
from src.timesheet_engine.timesheet_engine.core.enums import CommentPolicy
from src.timesheet_engine.timesheet_engine.core.exceptions import ApiError, TransformWarning
from src.timesheet_engine.timesheet_engine.timesheets.mapping import (
    build_update_payload,
    header_from_backend,
    sub_item_from_backend,
    task_group_from_backend,
    task_group_to_backend,
    task_groups_from_record,
    type_details_from_backend,
)
from src.timesheet_engine.timesheet_engine.timesheets.model import TaskGroup, TaskSubItem, TimesheetChanges

H = timedelta(hours=1)

TASK_RECORD = {
    "taskID": "T1",
    "taskID:Task-extID": "T-001",
    "taskID:Task-text-text": "Design",
    "department": "D1",
    "department:BusUnit-name-text": "Engineering",
    "customerID": "C1",
    "timeType": "OT",
    "billable": True,
    "items": [
        {
            "start": "2025-01-06T00:00:00Z",
            "end": "2025-01-06T00:00:00Z",
            "actualTime": 7_200_000,
            "billableTime": 3_600_000,
            "productive": True,
            "actualQuantity": {"quantity": 2, "unit": "h"},
            "remark": [{"language": "en", "text": "kickoff"}],
            "extStatus": {"statusID": "S1"},
        },
        {"start": "2025-01-07T00:00:00Z", "actualTime": "oops"},
    ],
}

HEADER_RECORD = {
    "TimeConfirmation-id": "TS-1",
    "TimeConfirmation-type": "WEEKLY",
    "TimeConfirmation-start": "2025-01-06T00:00:00Z",
    "TimeConfirmation-end": "2025-01-10T00:00:00Z",
    "TimeConfirmation-extStatus": {"statusID": "S1"},
    "TimeConfirmation-remark": [{"language": "en", "text": "week 2"}],
    "TimeConfirmation-totalTime": 36_000_000,
    "TimeConfirmation-tasks": [TASK_RECORD],
}


def test_task_group_from_backend_maps_fields_and_skips_bad_items():
    group = task_group_from_backend(TASK_RECORD, status_map={"S1": "Open"})

    assert group.task_id == "T1"
    assert group.task_ext_id == "T-001"
    assert group.department_text == "Engineering"
    assert group.time_type_ext_id == "OT"
    assert group.billable is True
    assert len(group.items) == 1

    sub = group.items[0]
    assert sub.actual_time == 2 * H
    assert sub.billable_time == 1 * H
    assert sub.actual_quantity.quantity == 2
    assert sub.remark == (RemarkText("en", "kickoff"),)
    assert sub.status.id == "S1" and sub.status.label == "Open"


def test_sub_item_with_bad_duration_raises_transform_warning():
    with pytest.raises(TransformWarning):
        sub_item_from_backend({"start": "2025-01-06T00:00:00Z", "actualTime": "x"})


def test_header_from_backend():
    header = header_from_backend(HEADER_RECORD, status_map={"S1": "Open"})

    assert header.timesheet_id == "TS-1"
    assert (header.start, header.end) == (date(2025, 1, 6), date(2025, 1, 10))
    assert header.total_time == 10 * H
    assert header.status.label == "Open"
    assert len(task_groups_from_record(HEADER_RECORD)) == 1


def test_header_without_id_or_period_is_an_api_error():
    with pytest.raises(ApiError):
        header_from_backend({**HEADER_RECORD, "TimeConfirmation-id": None})
    with pytest.raises(ApiError):
        header_from_backend({**HEADER_RECORD, "TimeConfirmation-start": "garbage"})


def test_type_details_defaults_and_policy():
    assert type_details_from_backend(None, default_period_days=7).period_days == 7
    details = type_details_from_backend({"TimesheetType-period": 14, "TimesheetType-itemCommentRequired": "E"}, default_period_days=7)
    assert details.period_days == 14
    assert details.item_comment_required == CommentPolicy.ERROR
    unknown = type_details_from_backend({"TimesheetType-itemCommentRequired": "?"}, default_period_days=5)
    assert unknown.item_comment_required == CommentPolicy.NONE
    assert unknown.period_days == 5


def test_task_group_to_backend_uses_milliseconds():
    group = TaskGroup(task_id="T1", department_id="D1", items=[TaskSubItem(start="2025-01-06T00:00:00Z", actual_time=90 * timedelta(minutes=1))])
    out = task_group_to_backend(group)

    assert out["taskID"] == "T1"
    assert out["department"] == "D1"
    assert out["items"][0]["actualTime"] == 5_400_000
    assert out["items"][0]["start"] == "2025-01-06T00:00:00Z"


def test_update_payload_contains_only_engine_owned_fields():
    changes = TimesheetChanges(tasks=(), total_time=10 * H, billable_time=4 * H, over_time=H)
    payload = build_update_payload("TS-1", changes, client="100")

    data = payload["data"]
    assert data["TimeConfirmation-id"] == "TS-1"
    assert data["TimeConfirmation-tasks"] == []
    assert data["TimeConfirmation-totalTime"] == 36_000_000
    assert data["TimeConfirmation-billableTime"] == 14_400_000
    assert data["TimeConfirmation-totalOvertime"] == 3_600_000
    assert data["TimeConfirmation-component"] == "Client-100-all"
    assert "TimeConfirmation-remark" not in data


def test_update_payload_includes_changed_remark():
    changes = TimesheetChanges(tasks=(), total_time=H, billable_time=H, over_time=H, remark=(RemarkText("en", "done"),))
    data = build_update_payload("TS-1", changes)["data"]
    assert data["TimeConfirmation-remark"] == [{"language": "en", "text": "done"}]
