from datetime import date, timedelta

import pytest

from src.timesheet_engine.timesheet_engine.calendar.model import (
    AbsenceRecord,
    AbsenceSplit,
    EmployeeProfile,
    Holiday,
    PatternDetail,
    WorkPattern,
)
from src.timesheet_engine.timesheet_engine.calendar.resolver import (
    CalendarOverlayResolver,
    derive_weekend_weekdays,
    find_in_range,
    resolve,
)
from src.timesheet_engine.timesheet_engine.core.exceptions import ValidationError

H = timedelta(hours=1)
MON = date(2025, 1, 6)
FRI = date(2025, 1, 10)


def _weekday_pattern(hours=8 * H, int_status=0):
    # Backend numbering: 0 = Sunday, 1..5 = Monday..Friday
    return WorkPattern(details=tuple(PatternDetail(day_seq=d, std_work_hours=hours) for d in range(1, 6)), int_status=int_status)


def test_weekend_from_pattern_is_saturday_and_sunday():
    assert derive_weekend_weekdays([_weekday_pattern()]) == frozenset({0, 6})


def test_weekend_ignores_deleted_pattern_and_details():
    deleted = _weekday_pattern(int_status=3)
    partial = WorkPattern(
        details=(
            PatternDetail(day_seq=1, std_work_hours=8 * H),
            PatternDetail(day_seq=2, std_work_hours=8 * H, int_status=3),
            PatternDetail(day_seq=3, std_work_hours=timedelta()),
        )
    )
    assert derive_weekend_weekdays([deleted, partial]) == frozenset({0, 2, 3, 4, 5, 6})


def test_weekend_keeps_explicit_non_working_days():
    assert derive_weekend_weekdays([_weekday_pattern()], non_working_days=[5]) == frozenset({0, 5, 6})
    assert derive_weekend_weekdays([], non_working_days=[0]) == frozenset({0})


def test_find_in_range_is_inclusive():
    holidays = [Holiday(date=date(2025, 1, d)) for d in (1, 6, 8, 10, 20)]
    found = find_in_range(holidays, MON, FRI)
    assert [h.date.day for h in found] == [6, 8, 10]
    assert find_in_range([], MON, FRI) == []


def test_holiday_adds_daily_standard_hours_and_name():
    overlay = resolve(MON, FRI, {0, 6}, [Holiday(date=date(2025, 1, 8), name="Founders day")], [], daily_std_hours=8 * H)

    assert overlay.holiday_totals == {"2025-01-08": 8 * H}
    day = overlay.day("2025-01-08")
    assert day.is_holiday and day.holiday_name == "Founders day"
    assert not overlay.day("2025-01-07").is_holiday
    assert list(overlay.days) == ["2025-01-06", "2025-01-07", "2025-01-08", "2025-01-09", "2025-01-10"]


def test_absence_splits_on_same_date_are_summed():
    absences = [
        AbsenceRecord(start=MON, reason="Doctor", type_name="Sick", hours_by_day=(AbsenceSplit(date(2025, 1, 7), 2 * H),)),
        AbsenceRecord(start=MON, reason="Errand", type_name="Leave", hours_by_day=(AbsenceSplit(date(2025, 1, 7), 3 * H), AbsenceSplit(date(2025, 1, 13), 8 * H))),
    ]
    overlay = resolve(MON, FRI, set(), [], absences, daily_std_hours=8 * H)

    assert overlay.absence_totals == {"2025-01-07": 5 * H}
    day = overlay.day("2025-01-07")
    assert day.is_absence
    assert day.absence_hours == 5 * H
    assert day.absence_reason == "Doctor"
    assert overlay.leave_dates() == ["2025-01-07"]


def test_weekend_flags_use_backend_numbering():
    sat, sun = date(2025, 1, 11), date(2025, 1, 12)
    overlay = resolve(sat, sun, {0, 6}, [], [], daily_std_hours=8 * H)
    assert overlay.day("2025-01-11").is_weekend
    assert overlay.day("2025-01-12").is_weekend


def test_overlay_total_is_holiday_plus_absence():
    overlay = resolve(
        MON,
        FRI,
        set(),
        [Holiday(date=date(2025, 1, 9))],
        [AbsenceRecord(start=MON, hours_by_day=(AbsenceSplit(date(2025, 1, 9), 4 * H),))],
        daily_std_hours=8 * H,
    )
    assert overlay.overlay_total("2025-01-09") == 12 * H
    assert overlay.overlay_total("2025-01-06") == timedelta()


def test_inverted_period_is_rejected():
    with pytest.raises(ValidationError):
        resolve(FRI, MON, set(), [], [], daily_std_hours=8 * H)


def test_resolver_uses_profile():
    profile = EmployeeProfile(
        employee_id="E1",
        daily_std_hours=7 * H,
        patterns=(_weekday_pattern(),),
        holidays=(Holiday(date=date(2025, 1, 8)),),
    )
    resolver = CalendarOverlayResolver(profile)

    overlay = resolver.resolve(MON, date(2025, 1, 12))

    assert resolver.weekend_weekdays == frozenset({0, 6})
    assert overlay.holiday_totals == {"2025-01-08": 7 * H}
    assert overlay.day("2025-01-12").is_weekend
