from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Mapping, Sequence

from ..calendar.model import CalendarOverlay
from ..common.datetime_utils import format_hours_cell
from ..core.constants import PIVOT_ABSENCE_ROW, PIVOT_HOLIDAY_ROW, PIVOT_TOTAL_KEY
from .model import WorkItem
from .overtime.base import OvertimeClassifier
from .overtime.time_type_classifier import TimeTypeOvertimeClassifier

ZERO = timedelta()


@dataclass(frozen=True)
class AggregateTotals:
    total_work_time: timedelta = ZERO
    timesheet_total_time: timedelta = ZERO
    billable_time: timedelta = ZERO
    over_time: timedelta = ZERO
    per_day_total: dict[str, timedelta] = field(default_factory=dict)
    per_task_row_total: dict[str, timedelta] = field(default_factory=dict)
    per_date_column_total: dict[str, timedelta] = field(default_factory=dict)
    grand_total: timedelta = ZERO


@dataclass(frozen=True)
class PivotRow:
    key: str
    label: str
    cells: dict[str, timedelta]
    total: timedelta


@dataclass(frozen=True)
class PivotTable:
    """Task rows x period dates, with a total column and a total row."""

    dates: tuple[str, ...]
    rows: tuple[PivotRow, ...]
    column_totals: dict[str, timedelta]
    grand_total: timedelta

    def header(self) -> list[str]:
        return ["", *self.dates, PIVOT_TOTAL_KEY]

    def as_text_rows(self) -> list[list[str]]:
        """Display rows: hours with two decimals, blank cells for zero."""
        out = []
        for row in self.rows:
            out.append([row.label, *(format_hours_cell(row.cells[d]) for d in self.dates), format_hours_cell(row.total)])
        out.append(
            [
                PIVOT_TOTAL_KEY,
                *(format_hours_cell(self.column_totals[d]) for d in self.dates),
                format_hours_cell(self.grand_total),
            ]
        )
        return out


def row_label(item: WorkItem) -> str:
    task = " - ".join(part for part in (item.task_ext_id, item.task_text.strip()) if part)
    label = task or item.task_id or item.group_key
    if item.department_text.strip():
        label = f"{label} ({item.department_text.strip()})"
    return label


def _sum(values) -> timedelta:
    return sum(values, ZERO)


def build_pivot(item_map: Mapping[str, Sequence[WorkItem]], overlay: CalendarOverlay) -> PivotTable:
    dates = tuple(overlay.days)
    cells: dict[str, dict[str, timedelta]] = {}
    labels: dict[str, str] = {}

    for key in sorted(item_map):
        if key not in overlay.days:
            continue
        for item in item_map[key]:
            row = cells.setdefault(item.group_key, dict.fromkeys(dates, ZERO))
            labels.setdefault(item.group_key, row_label(item))
            row[key] += item.actual_time

    holiday_row = {d: overlay.holiday_totals.get(d, ZERO) for d in dates}
    absence_row = {d: overlay.absence_totals.get(d, ZERO) for d in dates}

    rows = [PivotRow(key=k, label=labels[k], cells=c, total=_sum(c.values())) for k, c in cells.items()]
    rows.append(PivotRow(key=PIVOT_HOLIDAY_ROW, label=PIVOT_HOLIDAY_ROW, cells=holiday_row, total=_sum(holiday_row.values())))
    rows.append(PivotRow(key=PIVOT_ABSENCE_ROW, label=PIVOT_ABSENCE_ROW, cells=absence_row, total=_sum(absence_row.values())))

    column_totals = {d: _sum(row.cells[d] for row in rows) for d in dates}
    return PivotTable(
        dates=dates,
        rows=tuple(rows),
        column_totals=column_totals,
        grand_total=_sum(column_totals.values()),
    )


def compute_aggregates(
    item_map: Mapping[str, Sequence[WorkItem]],
    overlay: CalendarOverlay,
    *,
    classifier: OvertimeClassifier | None = None,
) -> tuple[AggregateTotals, PivotTable]:
    """Rebuild every total from scratch."""
    classifier = classifier or TimeTypeOvertimeClassifier()
    items = [item for key in sorted(item_map) for item in item_map[key]]

    per_day_total: dict[str, timedelta] = {}
    for key, value in overlay.holiday_totals.items():
        per_day_total[key] = per_day_total.get(key, ZERO) + value
    for key, value in overlay.absence_totals.items():
        per_day_total[key] = per_day_total.get(key, ZERO) + value
    for key in sorted(item_map):
        per_day_total[key] = per_day_total.get(key, ZERO) + _sum(item.actual_time for item in item_map[key])

    pivot = build_pivot(item_map, overlay)
    totals = AggregateTotals(
        total_work_time=_sum(item.actual_time for item in items),
        timesheet_total_time=_sum(per_day_total.values()),
        billable_time=_sum(item.actual_time for item in items if item.billable),
        over_time=_sum(classifier.overtime(item) for item in items),
        per_day_total=dict(sorted(per_day_total.items())),
        per_task_row_total={row.key: row.total for row in pivot.rows},
        per_date_column_total=dict(pivot.column_totals),
        grand_total=pivot.grand_total,
    )
    return totals, pivot
