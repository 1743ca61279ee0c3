"""Calendar-date helpers - pure, no I/O.

Dates cross the storage boundary as ISO-8601 date or date-time strings.
Every date-only comparison in the engine happens on the *local* calendar
date, so an instant such as ``2026-01-22T03:00:00Z`` is first moved into
the configured zone and only then truncated.
"""

import re
from datetime import date, datetime, time, timedelta, tzinfo

from .errors import ValidationError

HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_timestamp(value: str | date | datetime | None) -> datetime | None:
    """Parse an ISO-8601 date or date-time into a datetime.

    Date-only input becomes local midnight (naive). Returns None for None/"".
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        raise ValidationError(f"Not a date: {value!r}")

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        if len(text) == 10:
            return datetime.combine(date.fromisoformat(text), datetime.min.time())
        return datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Invalid ISO date: {value!r}")


def local_date(value: str | date | datetime, tz: tzinfo | None = None) -> date:
    """Normalize a date, datetime or ISO string to a local calendar date.

    Aware datetimes are converted to ``tz`` (system zone when None) before
    the time of day is dropped. Naive datetimes are taken as already local.
    """
    if isinstance(value, str):
        parsed = parse_timestamp(value)
        if parsed is None:
            raise ValidationError("Empty date")
        value = parsed
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz) if tz else value.astimezone()
        return value.date()
    return value


def clock_minutes(value: datetime, tz: tzinfo | None = None) -> int:
    """Minutes since local midnight for a timestamp."""
    if value.tzinfo is not None:
        value = value.astimezone(tz) if tz else value.astimezone()
    return value.hour * 60 + value.minute


def parse_hhmm(text: str) -> tuple[int, int]:
    """Parse an ``HH:mm`` time of day (00:00-23:59)."""
    m = HHMM_RE.match(text or "")
    if not m:
        raise ValidationError(f"Must be in HH:mm format (00:00-23:59): {text!r}")
    return int(m.group(1)), int(m.group(2))


def date_key(d: date) -> str:
    """YYYY-MM-DD key used for grouping and virtual keys."""
    return d.isoformat()


def day_of_week(d: date) -> int:
    """Day of week with Sunday=0 ... Saturday=6."""
    return (d.weekday() + 1) % 7


def date_range(start: date, days: int) -> list[date]:
    """Inclusive range ``[start, start + days]`` - ``days=7`` yields 8 dates."""
    return [start + timedelta(days=i) for i in range(days + 1)]


def to_iso(value: datetime | date | None) -> str | None:
    """Serialize for the wire."""
    if value is None:
        return None
    return value.isoformat()


def move_to_date(value: datetime | None, d: date, tz: tzinfo | None = None) -> datetime:
    """Same local time of day as ``value``, on date ``d``. Midnight when value is None.

    Aware values are re-localised on the new date, so the wall-clock time
    survives a DST switch between the two dates.
    """
    if value is None:
        return datetime.combine(d, time())
    if value.tzinfo is None:
        return datetime.combine(d, value.time())
    local = value.astimezone(tz) if tz else value.astimezone()
    moved = datetime.combine(d, local.time())
    return moved.replace(tzinfo=tz) if tz else moved.astimezone()
