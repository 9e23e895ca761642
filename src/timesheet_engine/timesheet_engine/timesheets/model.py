from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

from ..common.remarks import RemarkText
from ..core.enums import CommentPolicy
from .grouping import group_key


@dataclass(frozen=True)
class Quantity:
    quantity: float = 0
    unit: str = ""


@dataclass(frozen=True)
class ItemStatus:
    id: str = ""
    label: str = ""


@dataclass(frozen=True)
class WorkItem:
    """One time entry for a task line on one date."""

    date: date
    task_id: str = ""
    task_ext_id: str = ""
    task_text: str = ""
    customer_id: str = ""
    customer_ext_id: str = ""
    customer_text: str = ""
    project_id: str = ""
    project_ext_id: str = ""
    project_text: str = ""
    department_id: str = ""
    department_ext_id: str = ""
    department_text: str = ""
    time_type_ext_id: str = ""
    time_type_id: str = ""
    time_type_text: str = ""
    billable: bool = False
    productive: bool = False
    actual_time: timedelta = timedelta()
    billable_time: timedelta = timedelta()
    actual_quantity: Quantity = Quantity()
    remark: tuple[RemarkText, ...] = ()
    status: ItemStatus = ItemStatus()
    # Explicit backend timestamps; None for items created in the editor.
    start: Optional[str] = None
    end: Optional[str] = None
    is_dirty: bool = field(default=False, compare=False)

    @property
    def group_key(self) -> str:
        return group_key(self)


@dataclass(frozen=True)
class TaskSubItem:
    """Dated entry inside a backend task group."""

    start: Optional[str]
    end: Optional[str] = None
    actual_time: timedelta = timedelta()
    billable_time: timedelta = timedelta()
    productive: bool = False
    actual_quantity: Quantity = Quantity()
    remark: tuple[RemarkText, ...] = ()
    status: ItemStatus = ItemStatus()


@dataclass
class TaskGroup:
    """Backend-shaped task line with its dated sub-items."""

    task_id: str = ""
    task_ext_id: str = ""
    task_text: str = ""
    customer_id: str = ""
    customer_ext_id: str = ""
    customer_text: str = ""
    project_id: str = ""
    project_ext_id: str = ""
    project_text: str = ""
    department_id: str = ""
    department_ext_id: str = ""
    department_text: str = ""
    time_type_ext_id: str = ""
    time_type_id: str = ""
    time_type_text: str = ""
    billable: bool = False
    status: ItemStatus = ItemStatus()
    items: list[TaskSubItem] = field(default_factory=list)

    @property
    def group_key(self) -> str:
        return group_key(self)


@dataclass(frozen=True)
class TimesheetHeader:
    timesheet_id: str
    start: date
    end: date
    type: str = ""
    status: ItemStatus = ItemStatus()
    remark: tuple[RemarkText, ...] = ()
    total_time: timedelta = timedelta()
    billable_time: timedelta = timedelta()
    over_time: timedelta = timedelta()


@dataclass(frozen=True)
class TimesheetTypeDetails:
    period_days: int = 7
    item_comment_required: CommentPolicy = CommentPolicy.NONE


@dataclass(frozen=True)
class TimesheetDocument:
    """One period's timesheet as returned by the business-object API."""

    header: TimesheetHeader
    task_groups: tuple[TaskGroup, ...] = ()
    # status id -> label
    status_map: dict[str, str] = field(default_factory=dict)
    type_details: TimesheetTypeDetails = TimesheetTypeDetails()


@dataclass(frozen=True)
class TimesheetRef:
    timesheet_id: str
    start: date
    end: date
    employee_id: str = ""
    status_template_ext_id: str = ""


@dataclass(frozen=True)
class TimesheetChanges:
    """Partial update of a timesheet's top-level fields."""

    tasks: tuple[TaskGroup, ...]
    total_time: timedelta
    billable_time: timedelta
    over_time: timedelta
    remark: Optional[tuple[RemarkText, ...]] = None


@dataclass(frozen=True)
class UpdateResult:
    success: bool
    message: Optional[str] = None
