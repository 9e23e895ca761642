from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterator, Optional

from ..core.constants import DATE_KEY_FORMAT, DISPLAY_DECIMALS
from ..core.enums import TimeUnit

_UNIT_SECONDS = {
    TimeUnit.DAYS: 86400,
    TimeUnit.HOURS: 3600,
    TimeUnit.MINUTES: 60,
    TimeUnit.SECONDS: 1,
}


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, DATE_KEY_FORMAT).date()


def to_date_key(value: date) -> str:
    return value.strftime(DATE_KEY_FORMAT)


def parse_backend_datetime(value: str, *, tz: Optional[tzinfo] = None) -> datetime:
    """Parse an ISO-8601 backend timestamp ("...Z" or "+02:00" suffix allowed).

    Aware timestamps are converted to ``tz`` when given so that the date part
    is period-local.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid timestamp: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if tz is not None and parsed.tzinfo is not None:
        parsed = parsed.astimezone(tz)
    return parsed


def to_backend_datetime(value: date, *, tz: Optional[tzinfo] = None) -> str:
    """Backend (UTC) timestamp of midnight of a calendar day in ``tz``."""
    midnight = datetime.combine(value, time.min, tzinfo=tz or timezone.utc)
    return midnight.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def day_range(start: date, end: date) -> Iterator[date]:
    """Yield every day in [start, end]."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def backend_weekday(value: date) -> int:
    """Weekday in backend numbering: 0 = Sunday ... 6 = Saturday."""
    return (value.weekday() + 1) % 7


def ms_to_timedelta(value) -> timedelta:
    if value is None or value == "":
        return timedelta()
    return timedelta(milliseconds=int(value))


def timedelta_to_ms(value: timedelta) -> int:
    return value // timedelta(milliseconds=1)


def convert_duration(value: timedelta, unit: TimeUnit = TimeUnit.HOURS) -> Decimal:
    """Express a duration as a Decimal number of ``unit``."""
    micros = value // timedelta(microseconds=1)
    return Decimal(micros) / Decimal(_UNIT_SECONDS[TimeUnit(unit)] * 1_000_000)


def format_duration(value: Optional[timedelta], unit: TimeUnit = TimeUnit.HOURS) -> str:
    """Duration as a display number: two decimals, trailing zeros stripped.

    Negative or missing durations render as an empty string.
    """
    if value is None or value < timedelta():
        return ""
    quantized = convert_duration(value, unit).quantize(
        Decimal(1).scaleb(-DISPLAY_DECIMALS), rounding=ROUND_HALF_UP
    )
    text = format(quantized, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_hours_cell(value: timedelta) -> str:
    """Pivot cell text: blank when zero, otherwise ``format_duration`` in hours."""
    if not value:
        return ""
    return format_duration(value, TimeUnit.HOURS)
