"""Recurring pattern domain logic - no I/O dependencies."""

import calendar
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum

from .dates import day_of_week, local_date, parse_hhmm
from .errors import ValidationError

# Upper bound on grid steps searched by next_occurrence before giving up.
MAX_SEARCH_STEPS = 400

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

_DAY_ALIASES = {
    "sunday": 0, "sun": 0,
    "monday": 1, "mon": 1,
    "tuesday": 2, "tue": 2, "tues": 2,
    "wednesday": 3, "wed": 3,
    "thursday": 4, "thu": 4, "thur": 4, "thurs": 4,
    "friday": 5, "fri": 5,
    "saturday": 6, "sat": 6,
}

# Longest each month can be in any year (Feb counts leap years).
_MAX_MONTH_DAYS = [31, 29, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31]


class PatternType(Enum):
    """How a recurring todo repeats."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


@dataclass(frozen=True)
class RecurringPattern:
    """A recurrence rule. Immutable; edits replace the whole pattern."""

    type: PatternType
    interval: int = 1
    days_of_week: tuple[int, ...] = field(default_factory=tuple)
    day_of_month: int | None = None
    month_of_year: int | None = None
    end_date: date | None = None
    occurrences: int | None = None
    notify_at: str | None = None

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Reject malformed patterns. Raises ValidationError."""
        if not isinstance(self.type, PatternType):
            raise ValidationError(f"Unknown recurring pattern type: {self.type!r}")
        if not _is_int(self.interval) or self.interval < 1:
            raise ValidationError(f"interval must be a positive integer, got {self.interval!r}")
        for d in self.days_of_week:
            if not _is_int(d) or not 0 <= d <= 6:
                raise ValidationError(f"daysOfWeek entries must be 0-6, got {d!r}")
        if self.day_of_month is not None and (
            not _is_int(self.day_of_month) or not 1 <= self.day_of_month <= 31
        ):
            raise ValidationError(f"dayOfMonth must be 1-31, got {self.day_of_month!r}")
        if self.month_of_year is not None and (
            not _is_int(self.month_of_year) or not 1 <= self.month_of_year <= 12
        ):
            raise ValidationError(f"monthOfYear must be 1-12, got {self.month_of_year!r}")
        if self.occurrences is not None and (not _is_int(self.occurrences) or self.occurrences < 1):
            raise ValidationError(f"occurrences must be a positive integer, got {self.occurrences!r}")
        if self.notify_at is not None:
            parse_hhmm(self.notify_at)

        match self.type:
            case PatternType.WEEKLY | PatternType.CUSTOM:
                if not self.days_of_week:
                    raise ValidationError(f"{self.type.value} pattern needs at least one day of week")
            case PatternType.MONTHLY:
                if self.day_of_month is None:
                    raise ValidationError("monthly pattern needs dayOfMonth")
            case PatternType.YEARLY:
                if self.day_of_month is None or self.month_of_year is None:
                    raise ValidationError("yearly pattern needs monthOfYear and dayOfMonth")
                if self.day_of_month > _MAX_MONTH_DAYS[self.month_of_year - 1]:
                    raise ValidationError(
                        f"{MONTH_NAMES[self.month_of_year - 1]} {self.day_of_month} never occurs"
                    )

    @classmethod
    def from_dict(cls, data: dict) -> "RecurringPattern":
        """Create a pattern from its wire form (camelCase keys)."""
        if not isinstance(data, dict):
            raise ValidationError(f"Recurring pattern must be an object, got {type(data).__name__}")
        try:
            ptype = PatternType(data.get("type"))
        except ValueError:
            raise ValidationError(f"Unknown recurring pattern type: {data.get('type')!r}")

        days = data.get("daysOfWeek") or []
        if not isinstance(days, (list, tuple)):
            raise ValidationError("daysOfWeek must be a list")
        end_date = data.get("endDate")

        return cls(
            type=ptype,
            interval=data.get("interval") if data.get("interval") is not None else 1,
            days_of_week=tuple(sorted(set(days))) if all(_is_int(d) for d in days) else tuple(days),
            day_of_month=data.get("dayOfMonth"),
            month_of_year=data.get("monthOfYear"),
            end_date=local_date(end_date) if end_date else None,
            occurrences=data.get("occurrences"),
            notify_at=data.get("notifyAt"),
        )

    def to_dict(self) -> dict:
        """Serialize to wire form, omitting unset optional fields."""
        data: dict = {"type": self.type.value}
        if self.interval != 1:
            data["interval"] = self.interval
        if self.days_of_week:
            data["daysOfWeek"] = list(self.days_of_week)
        if self.day_of_month is not None:
            data["dayOfMonth"] = self.day_of_month
        if self.month_of_year is not None:
            data["monthOfYear"] = self.month_of_year
        if self.end_date is not None:
            data["endDate"] = self.end_date.isoformat()
        if self.occurrences is not None:
            data["occurrences"] = self.occurrences
        if self.notify_at is not None:
            data["notifyAt"] = self.notify_at
        return data

    @property
    def notify_minutes(self) -> int | None:
        """notifyAt as minutes since midnight."""
        if not self.notify_at:
            return None
        hours, minutes = parse_hhmm(self.notify_at)
        return hours * 60 + minutes


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def matches(pattern: RecurringPattern, d: date) -> bool:
    """
    Is ``d`` an occurrence of ``pattern``?

    Pure function - callable for any past or future date. ``interval`` is
    not applied here; it only spaces successors in next_occurrence().
    """
    if pattern.end_date is not None and d > pattern.end_date:
        return False

    match pattern.type:
        case PatternType.DAILY:
            return True
        case PatternType.WEEKLY | PatternType.CUSTOM:
            return day_of_week(d) in pattern.days_of_week
        case PatternType.MONTHLY:
            return d.day == pattern.day_of_month
        case PatternType.YEARLY:
            return d.month == pattern.month_of_year and d.day == pattern.day_of_month
    return False


def is_pattern_expired(pattern: RecurringPattern, from_date: date, completed_occurrences: int = 0) -> bool:
    """End date passed, or the occurrence cap already reached."""
    if pattern.end_date is not None and from_date > pattern.end_date:
        return True
    if pattern.occurrences is not None and completed_occurrences >= pattern.occurrences:
        return True
    return False


def _week_index(d: date) -> int:
    """Index of the Sunday-started week containing d."""
    return (d.toordinal() - day_of_week(d)) // 7


def _next_daily(pattern: RecurringPattern, from_date: date) -> date | None:
    return from_date + timedelta(days=pattern.interval)


def _next_weekly(pattern: RecurringPattern, from_date: date) -> date | None:
    anchor_week = _week_index(from_date)
    for offset in range(1, 7 * (pattern.interval + 1) + 1):
        candidate = from_date + timedelta(days=offset)
        if (_week_index(candidate) - anchor_week) % pattern.interval:
            continue
        if day_of_week(candidate) in pattern.days_of_week:
            return candidate
    return None


def _next_monthly(pattern: RecurringPattern, from_date: date) -> date | None:
    for step in range(MAX_SEARCH_STEPS):
        months = from_date.year * 12 + (from_date.month - 1) + step * pattern.interval
        year, month = divmod(months, 12)
        month += 1
        if pattern.day_of_month > calendar.monthrange(year, month)[1]:
            continue
        candidate = date(year, month, pattern.day_of_month)
        if candidate > from_date:
            return candidate
    return None


def _next_yearly(pattern: RecurringPattern, from_date: date) -> date | None:
    for step in range(MAX_SEARCH_STEPS):
        year = from_date.year + step * pattern.interval
        if pattern.day_of_month > calendar.monthrange(year, pattern.month_of_year)[1]:
            continue
        candidate = date(year, pattern.month_of_year, pattern.day_of_month)
        if candidate > from_date:
            return candidate
    return None


def next_occurrence(
    pattern: RecurringPattern,
    from_date: date,
    completed_occurrences: int = 0,
) -> date | None:
    """
    First occurrence strictly after ``from_date``.

    ``interval`` is counted on a grid anchored at ``from_date`` (every Nth
    day, Sunday-started week, month or year). The result always satisfies
    matches(). Returns None when the pattern is expired or the next match
    falls after ``end_date``.

    Pure function - no I/O.
    """
    if is_pattern_expired(pattern, from_date, completed_occurrences):
        return None

    match pattern.type:
        case PatternType.DAILY:
            nxt = _next_daily(pattern, from_date)
        case PatternType.WEEKLY | PatternType.CUSTOM:
            nxt = _next_weekly(pattern, from_date)
        case PatternType.MONTHLY:
            nxt = _next_monthly(pattern, from_date)
        case PatternType.YEARLY:
            nxt = _next_yearly(pattern, from_date)
        case _:
            raise ValidationError(f"Unknown recurring pattern type: {pattern.type!r}")

    if nxt is None:
        return None
    if pattern.end_date is not None and nxt > pattern.end_date:
        return None
    return nxt


def parse_recurring_description(description: str, reference: date | None = None) -> RecurringPattern | None:
    """
    Parse phrases like "daily", "every 2 weeks", "every mon and thu",
    "every month on the 15th" into a pattern.

    Anchors the phrase leaves open (weekday, day of month, month) come from
    ``reference`` (default today). Returns None if not recognized.
    """
    reference = reference or date.today()
    text = " ".join(description.lower().split())

    if text in ("daily", "every day"):
        return RecurringPattern(PatternType.DAILY)
    if m := re.fullmatch(r"every (\d+) days?", text):
        return RecurringPattern(PatternType.DAILY, interval=int(m.group(1)))

    if text in ("weekly", "every week"):
        return RecurringPattern(PatternType.WEEKLY, days_of_week=(day_of_week(reference),))
    if m := re.fullmatch(r"every (\d+) weeks?", text):
        return RecurringPattern(
            PatternType.WEEKLY, interval=int(m.group(1)), days_of_week=(day_of_week(reference),)
        )

    if text in ("monthly", "every month"):
        return RecurringPattern(PatternType.MONTHLY, day_of_month=reference.day)
    if m := re.fullmatch(r"every (\d+) months?", text):
        return RecurringPattern(PatternType.MONTHLY, interval=int(m.group(1)), day_of_month=reference.day)
    if m := re.fullmatch(r"every month on (?:the )?(\d+)(?:st|nd|rd|th)?", text):
        day = int(m.group(1))
        if 1 <= day <= 31:
            return RecurringPattern(PatternType.MONTHLY, day_of_month=day)
        return None

    if text in ("yearly", "every year"):
        return RecurringPattern(
            PatternType.YEARLY, month_of_year=reference.month, day_of_month=reference.day
        )
    if m := re.fullmatch(r"every (\d+) years?", text):
        return RecurringPattern(
            PatternType.YEARLY,
            interval=int(m.group(1)),
            month_of_year=reference.month,
            day_of_month=reference.day,
        )

    if m := re.fullmatch(r"every (.+)", text):
        parts = re.split(r"\s*,\s*|\s+and\s+|\s+", m.group(1))
        days = {_DAY_ALIASES[p] for p in parts if p in _DAY_ALIASES}
        if days:
            return RecurringPattern(PatternType.WEEKLY, days_of_week=tuple(sorted(days)))

    return None


def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def format_recurring_pattern(pattern: RecurringPattern) -> str:
    """Human-readable description, e.g. "Weekly on Mon, Wed"."""
    n = pattern.interval
    days = ", ".join(DAY_NAMES[d] for d in pattern.days_of_week)

    match pattern.type:
        case PatternType.DAILY:
            return "Daily" if n == 1 else f"Every {n} days"
        case PatternType.WEEKLY:
            return f"Weekly on {days}" if n == 1 else f"Every {n} weeks on {days}"
        case PatternType.MONTHLY:
            on = f"on the {_ordinal(pattern.day_of_month)}"
            return f"Monthly {on}" if n == 1 else f"Every {n} months {on}"
        case PatternType.YEARLY:
            on = f"on {MONTH_NAMES[pattern.month_of_year - 1]} {pattern.day_of_month}"
            return f"Yearly {on}" if n == 1 else f"Every {n} years {on}"
        case PatternType.CUSTOM:
            return f"Custom: {days}" if n == 1 else f"Custom: {days} every {n} weeks"
    return "Unknown pattern"
