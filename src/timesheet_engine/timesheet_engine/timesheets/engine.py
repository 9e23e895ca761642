"""Reconciliation and aggregation over one period's item map."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Optional

from ..calendar.model import CalendarDay, CalendarOverlay
from ..common.datetime_utils import to_date_key
from ..common.validators import require_non_empty, require_within
from ..core.exceptions import DuplicateItemError
from .aggregation import AggregateTotals, PivotTable, compute_aggregates
from .model import WorkItem
from .overtime.base import OvertimeClassifier
from .transform import ItemMap, insert_item
from .validation import ItemValidator

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """Owns the item map and its aggregates for one open timesheet.

    All mutations go through ``create_or_update_item`` and ``delete_item``;
    both validate before touching state and recompute every total afterwards.
    """

    def __init__(
        self,
        overlay: CalendarOverlay,
        item_map: Optional[ItemMap] = None,
        *,
        classifier: Optional[OvertimeClassifier] = None,
        validator: Optional[ItemValidator] = None,
    ):
        self._classifier = classifier
        self._validator = validator
        self._overlay = overlay
        self._items: ItemMap = {}
        self._removed: set[tuple[str, str]] = set()
        self._totals = AggregateTotals()
        self._pivot: Optional[PivotTable] = None
        self.load(item_map or {}, overlay)

    @property
    def period_start(self) -> date:
        return self._overlay.start

    @property
    def period_end(self) -> date:
        return self._overlay.end

    @property
    def overlay(self) -> CalendarOverlay:
        return self._overlay

    def load(self, item_map: ItemMap, overlay: Optional[CalendarOverlay] = None) -> None:
        """Replace the working set (clean) and recompute."""
        if overlay is not None:
            self._overlay = overlay
        self._items = {}
        for key in sorted(item_map):
            if not item_map[key]:
                continue
            day = item_map[key][0].date
            require_within(day, self.period_start, self.period_end, "Item date")
            self._items[key] = [replace(item, is_dirty=False) for item in item_map[key]]
        self._removed.clear()
        self.recompute()

    def create_or_update_item(self, item: WorkItem, *, original: Optional[WorkItem] = None) -> WorkItem:
        """Insert ``item``, or replace ``original`` with it.

        Raises ValidationError (state unchanged) for a missing task, a date
        outside the period, or another item on the same date and task line.
        """
        require_non_empty(item.task_id, "Task")
        require_within(item.date, self.period_start, self.period_end, "Item date")
        if self._validator is not None:
            self._validator.validate(item)

        key = to_date_key(item.date)
        original_slot = (to_date_key(original.date), original.group_key) if original is not None else None
        for existing in self._items.get(key, []):
            if existing.group_key == item.group_key and (key, existing.group_key) != original_slot:
                raise DuplicateItemError(f"An item for this task already exists on {key}")

        if original is not None and item == original:
            return self._find(key, item.group_key) or item

        if original_slot is not None:
            self._remove(*original_slot)
        stored = replace(item, is_dirty=True)
        insert_item(self._items.setdefault(key, []), stored)
        logger.debug("Stored item %s on %s", stored.group_key, key)
        self.recompute()
        return stored

    def delete_item(self, item: WorkItem) -> bool:
        """Remove the item at (date, group key); a missing item is a no-op."""
        key = to_date_key(item.date)
        if not self._remove(key, item.group_key):
            return False
        self._removed.add((key, item.group_key))
        logger.debug("Deleted item %s on %s", item.group_key, key)
        self.recompute()
        return True

    def recompute(self) -> AggregateTotals:
        self._totals, self._pivot = compute_aggregates(self._items, self._overlay, classifier=self._classifier)
        return self._totals

    def get_day_items(self, day: date) -> list[WorkItem]:
        return list(self._items.get(to_date_key(day), []))

    def get_item_map(self) -> ItemMap:
        return {key: list(items) for key, items in self._items.items()}

    def get_aggregates(self) -> AggregateTotals:
        return self._totals

    def get_pivot_table(self) -> PivotTable:
        return self._pivot

    def get_calendar_day(self, day: date) -> Optional[CalendarDay]:
        return self._overlay.day(to_date_key(day))

    def has_dirty_items(self) -> bool:
        return bool(self._removed) or any(item.is_dirty for items in self._items.values() for item in items)

    def clear_dirty(self) -> None:
        self._items = {key: [replace(item, is_dirty=False) for item in items] for key, items in self._items.items()}
        self._removed.clear()

    def _find(self, key: str, group_key: str) -> Optional[WorkItem]:
        for existing in self._items.get(key, []):
            if existing.group_key == group_key:
                return existing
        return None

    def _remove(self, key: str, group_key: str) -> bool:
        bucket = self._items.get(key)
        if not bucket:
            return False
        remaining = [existing for existing in bucket if existing.group_key != group_key]
        if len(remaining) == len(bucket):
            return False
        if remaining:
            self._items[key] = remaining
        else:
            del self._items[key]
        return True
