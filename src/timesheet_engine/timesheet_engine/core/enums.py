from __future__ import annotations

from enum import Enum


class SessionState(str, Enum):
    """Lifecycle of a timesheet editing session."""

    LOADING = "LOADING"
    READY = "READY"
    MUTATING = "MUTATING"
    SAVING = "SAVING"
    SAVED = "SAVED"
    DISCARDED = "DISCARDED"


class CommentPolicy(str, Enum):
    """Item remark policy declared by the timesheet type."""

    NONE = ""
    WARNING = "W"
    ERROR = "E"


class TimeUnit(str, Enum):
    DAYS = "days"
    HOURS = "hours"
    MINUTES = "minutes"
    SECONDS = "seconds"
