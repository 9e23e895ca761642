from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Sequence

from ..common.remarks import get_remark_text
from ..common.validators import require_non_empty, require_positive_duration
from ..core.constants import DEFAULT_PREFERRED_LANGUAGES
from ..core.enums import CommentPolicy
from ..core.exceptions import ValidationError
from .model import WorkItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemValidator:
    """Editor rules for a work item before it enters the item map."""

    hire_date: date | None = None
    term_date: date | None = None
    comment_policy: CommentPolicy = CommentPolicy.NONE
    language: str = "en"
    preferred_languages: Sequence[str] = DEFAULT_PREFERRED_LANGUAGES

    def validate(self, item: WorkItem) -> None:
        if self.hire_date and item.date < self.hire_date:
            raise ValidationError(f"Entries before the hire date {self.hire_date.isoformat()} are not allowed")
        if self.term_date and item.date > self.term_date:
            raise ValidationError(f"Entries after the termination date {self.term_date.isoformat()} are not allowed")

        require_non_empty(item.task_id, "Task")
        require_positive_duration(item.actual_time, "Time")

        if not get_remark_text(item.remark, self.language, self.preferred_languages):
            if self.comment_policy == CommentPolicy.ERROR:
                raise ValidationError("Remark is required")
            if self.comment_policy == CommentPolicy.WARNING:
                logger.warning("Item of task %r on %s has no remark", item.task_id, item.date)
