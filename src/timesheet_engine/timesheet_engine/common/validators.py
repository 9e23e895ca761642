from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_positive_duration(value: Optional[timedelta], field_name: str) -> timedelta:
    if not value or value <= timedelta():
        raise ValidationError(f"{field_name} must be greater than zero")
    return value


def require_within(value: date, start: date, end: date, field_name: str) -> date:
    if value < start or value > end:
        raise ValidationError(f"{field_name} {value.isoformat()} is outside {start.isoformat()}..{end.isoformat()}")
    return value
