from __future__ import annotations

from datetime import timedelta

from ..model import WorkItem
from .base import OvertimeClassifier


class TimeTypeOvertimeClassifier(OvertimeClassifier):
    """Default rule: an item with a time-type extension id is overtime in full."""

    def overtime(self, item: WorkItem) -> timedelta:
        if item.time_type_ext_id:
            return item.actual_time
        return timedelta()
