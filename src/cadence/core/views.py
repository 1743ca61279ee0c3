"""Today / Upcoming / Overdue projections - pure, no I/O."""

from dataclasses import dataclass, field
from datetime import date, timedelta, tzinfo

from .dates import clock_minutes
from .materialize import build_completion_map, entry_date, materialize, materialize_all
from .todos import (
    CompletionRecord,
    Entry,
    StatusFilter,
    Todo,
    filter_entries,
    is_entry_completed,
)

UPCOMING_DAYS = 7
OVERDUE_DAYS = 7


@dataclass
class DateGroup:
    """Entries shown under one calendar date."""

    date: date
    label: str
    entries: list[Entry] = field(default_factory=list)


def format_date_label(d: date, today: date) -> str:
    """'Today', 'Tomorrow', 'Yesterday' or e.g. 'Mon, Jan 15'."""
    delta = (d - today).days
    if delta == 0:
        return "Today"
    if delta == 1:
        return "Tomorrow"
    if delta == -1:
        return "Yesterday"
    return f"{d:%a, %b} {d.day}"


def effective_time_minutes(entry: Entry, tz: tzinfo | None = None) -> int | None:
    """
    Time of day used for ordering, in minutes since midnight.

    Priority: pattern notifyAt, then reminder clock time, then due clock
    time when it is not midnight. None = no time.
    """
    pattern = entry.recurring_pattern
    if pattern is not None and pattern.notify_at:
        return pattern.notify_minutes
    if entry.reminder_at is not None:
        return clock_minutes(entry.reminder_at, tz)
    if entry.due_date is not None:
        minutes = clock_minutes(entry.due_date, tz)
        if minutes > 0:
            return minutes
    return None


def sort_by_time_desc(entries: list[Entry], tz: tzinfo | None = None) -> list[Entry]:
    """Latest time first; entries without a time last, in original order."""
    timed = [e for e in entries if effective_time_minutes(e, tz) is not None]
    untimed = [e for e in entries if effective_time_minutes(e, tz) is None]
    timed.sort(key=lambda e: effective_time_minutes(e, tz), reverse=True)
    return timed + untimed


def _overdue_sort_key(entry: Entry, tz: tzinfo | None) -> tuple[int, int]:
    minutes = effective_time_minutes(entry, tz)
    # Active first, then earliest time; untimed last.
    return (1 if is_entry_completed(entry) else 0, minutes if minutes is not None else 24 * 60)


def group_by_date(entries: list[Entry], today: date, tz: tzinfo | None = None) -> list[DateGroup]:
    """Bucket entries by the date they are shown on, ascending."""
    groups: dict[date, DateGroup] = {}
    for entry in entries:
        d = entry_date(entry, tz)
        if d is None:
            continue
        if d not in groups:
            groups[d] = DateGroup(date=d, label=format_date_label(d, today))
        groups[d].entries.append(entry)
    return [groups[d] for d in sorted(groups)]


def today_view(
    todos: list[Todo],
    completions: list[CompletionRecord],
    today: date,
    status: StatusFilter = StatusFilter.ALL,
    query: str = "",
    tz: tzinfo | None = None,
) -> list[Entry]:
    """Occurrences for today plus plain todos due today."""
    completion_map = build_completion_map(completions)
    entries = materialize_all(todos, today, 0, completion_map, tz)
    return filter_entries(entries, status, query)


def upcoming_view(
    todos: list[Todo],
    completions: list[CompletionRecord],
    today: date,
    status: StatusFilter = StatusFilter.ALL,
    query: str = "",
    days: int = UPCOMING_DAYS,
    tz: tzinfo | None = None,
) -> list[DateGroup]:
    """
    Today through today+days, grouped by date ascending.

    Within a date: latest effective time first, untimed entries last.
    Groups left empty by filtering are dropped.
    """
    completion_map = build_completion_map(completions)
    entries = materialize_all(todos, today, days, completion_map, tz)

    result = []
    for group in group_by_date(entries, today, tz):
        filtered = filter_entries(group.entries, status, query)
        if filtered:
            result.append(DateGroup(group.date, group.label, sort_by_time_desc(filtered, tz)))
    return result


def overdue_view(
    todos: list[Todo],
    completions: list[CompletionRecord],
    today: date,
    status: StatusFilter = StatusFilter.ALL,
    query: str = "",
    days: int = OVERDUE_DAYS,
    tz: tzinfo | None = None,
) -> list[DateGroup]:
    """
    Past-due work, most recent date first.

    Plain todos: any due date before today, completed or not. Recurring
    todos: every matched date in the trailing ``days`` (today excluded),
    each carrying its own ledger state so completed occurrences still show
    under the all/completed filters. Active entries sort before completed
    ones on the same date.
    """
    completion_map = build_completion_map(completions)
    window_start = today - timedelta(days=days)

    entries: list[Entry] = []
    seen: set[str] = set()
    for todo in todos:
        if not todo.is_recurring:
            due = todo.due_on(tz)
            if due is not None and due < today:
                entries.append(todo)
            continue
        for entry in materialize(todo, window_start, days - 1, completion_map, tz):
            if entry.virtual_key not in seen:
                seen.add(entry.virtual_key)
                entries.append(entry)

    result = []
    for group in reversed(group_by_date(entries, today, tz)):
        filtered = filter_entries(group.entries, status, query)
        if filtered:
            filtered.sort(key=lambda e: _overdue_sort_key(e, tz))
            result.append(DateGroup(group.date, group.label, filtered))
    return result
