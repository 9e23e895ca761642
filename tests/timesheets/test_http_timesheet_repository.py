from datetime import date, timedelta

from src.timesheet_engine.timesheet_engine.core.enums import CommentPolicy
from src.timesheet_engine.timesheet_engine.timesheets.http_timesheet_repository import HttpTimesheetRepository
from src.timesheet_engine.timesheet_engine.timesheets.model import TimesheetChanges


class FakeConfig:
    client = "100"


class FakeApiClient:
    config = FakeConfig()

    def __init__(self, rows_by_first_field):
        self.rows = rows_by_first_field
        self.queries = []
        self.payloads = []

    def query(self, fields, where=(), **kwargs):
        fields = list(fields)
        self.queries.append((fields, [w.as_dict() for w in where]))
        return self.rows.get(fields[0], [])

    def update_fields(self, payload):
        self.payloads.append(payload)
        return True, None


TIMESHEET_ROW = {
    "TimeConfirmation-id": "TS-1",
    "TimeConfirmation-type": "WEEKLY",
    "TimeConfirmation-start": "2025-01-06T00:00:00Z",
    "TimeConfirmation-end": "2025-01-10T00:00:00Z",
    "TimeConfirmation-extStatus-processTemplateID": "TPL",
    "TimeConfirmation-tasks": [
        {"taskID": "T1", "department": "D1", "items": [{"start": "2025-01-07T00:00:00Z", "actualTime": 3_600_000, "extStatus": {"statusID": "S2"}}]}
    ],
}


def _client():
    return FakeApiClient(
        {
            "TimeConfirmation-id": [TIMESHEET_ROW],
            "TimesheetType-extID": [{"TimesheetType-period": 5, "TimesheetType-itemCommentRequired": "W"}],
            "ProcessTemplate-extID": [{"ProcessTemplate-steps": [{"statusID": "S1", "statusLabel": "Open"}, {"statusID": "S2", "statusLabel": "Approved"}]}],
        }
    )


def test_get_builds_document_with_type_and_status_map():
    repo = HttpTimesheetRepository(_client())

    doc = repo.get("TS-1")

    assert doc.header.timesheet_id == "TS-1"
    assert doc.type_details.period_days == 5
    assert doc.type_details.item_comment_required == CommentPolicy.WARNING
    assert doc.status_map == {"S1": "Open", "S2": "Approved"}
    assert doc.task_groups[0].items[0].status.label == "Approved"


def test_load_period_returns_none_without_rows():
    repo = HttpTimesheetRepository(FakeApiClient({}))
    assert repo.load_period(employee_id="E1", start=date(2025, 1, 13), end=date(2025, 1, 17)) is None


def test_find_for_date_filters_on_employee_and_date():
    client = _client()
    refs = HttpTimesheetRepository(client).find_for_date(employee_id="E1", day=date(2025, 1, 7))

    assert refs[0].timesheet_id == "TS-1"
    assert refs[0].status_template_ext_id == "TPL"
    _, where = client.queries[0]
    assert {"fieldName": "TimeConfirmation-start", "operator": "<=", "value": "2025-01-07T00:00:00Z"} in where
    assert {"fieldName": "TimeConfirmation-end", "operator": ">=", "value": "2025-01-07T00:00:00Z"} in where


def test_update_fields_posts_payload():
    client = _client()
    changes = TimesheetChanges(tasks=(), total_time=timedelta(hours=1), billable_time=timedelta(), over_time=timedelta())

    result = HttpTimesheetRepository(client).update_fields("TS-1", changes)

    assert result.success is True
    assert client.payloads[0]["data"]["TimeConfirmation-component"] == "Client-100-all"
