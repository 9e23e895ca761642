from datetime import date, timedelta

from src.timesheet_engine.timesheet_engine.calendar.http_profile_repository import HttpEmployeeProfileRepository

S = "Resource-timeMgt-workScheduleID:WorkSchedule"
C = f"{S}-calendarID:WorkCalendar"


class FakeApiClient:
    def __init__(self, resource, absences):
        self._rows = {"Resource-id": [resource], "Absence-id": absences}

    def query(self, fields, where=(), **kwargs):
        return self._rows.get(list(fields)[0], [])


def test_profile_from_backend_rows():
    resource = {
        "Resource-core-hireDate": "2024-03-01T00:00:00Z",
        f"{S}-dailyStdHours": 28_800_000,
        f"{S}-patterns": [{"intStatus": 0, "details": [{"daySeq": 1, "stdWorkHours": 28_800_000}]}],
        f"{C}-nonWorkingDays": [0, 6],
        f"{C}-nonWorkingDates": [{"date": "2025-01-08T00:00:00Z", "name": "Feast"}, {"date": "2025-01-01T00:00:00Z", "name": "New year"}, {"name": "broken"}],
    }
    absences = [
        {"Absence-id": "A2", "Absence-start": "2025-02-03T00:00:00Z", "Absence-hoursByDay": []},
        {
            "Absence-id": "A1",
            "Absence-start": "2025-01-09T00:00:00Z",
            "Absence-remark:text": "Dentist",
            "Absence-type:AbsenceType-name": "Sick",
            "Absence-hoursByDay": [{"splitDate": "2025-01-09T00:00:00Z", "hours": 7_200_000}],
        },
    ]

    profile = HttpEmployeeProfileRepository(FakeApiClient(resource, absences)).get_profile("E1")

    assert profile.daily_std_hours == timedelta(hours=8)
    assert profile.hire_date == date(2024, 3, 1)
    assert profile.term_date is None
    assert profile.non_working_days == (0, 6)
    assert [h.name for h in profile.holidays] == ["New year", "Feast"]
    assert profile.patterns[0].details[0].day_seq == 1
    assert [a.start for a in profile.absences] == [date(2025, 1, 9), date(2025, 2, 3)]
    assert profile.absences[0].hours_by_day[0].hours == timedelta(hours=2)
    assert profile.absences[0].reason == "Dentist"
