"""Occurrence materialization - turns recurring todos into dated entries.

Pure functions - no I/O. Completion state is joined from a map built once
from a bulk ledger query, never looked up per entry.
"""

from datetime import date, timedelta, tzinfo

from .dates import date_range
from .patterns import RecurringPattern, matches
from .todos import CompletionRecord, Entry, Todo, VirtualTodo, entry_key

CompletionMap = dict[tuple[str, date], bool]


def build_completion_map(records: list[CompletionRecord]) -> CompletionMap:
    """(todo id, scheduled date) -> completed? Later records win."""
    return {record.key: record.is_completed for record in records}


def matching_dates(pattern: RecurringPattern, window_start: date, window_days: int) -> list[date]:
    """Dates in the inclusive window that are occurrences of the pattern."""
    return [d for d in date_range(window_start, window_days) if matches(pattern, d)]


def make_virtual(todo: Todo, on: date, completion_map: CompletionMap | None = None) -> VirtualTodo:
    completed = (completion_map or {}).get((todo.key, on))
    return VirtualTodo(todo=todo, virtual_date=on, occurrence_completed=completed)


def materialize(
    todo: Todo,
    window_start: date,
    window_days: int,
    completion_map: CompletionMap | None = None,
    tz: tzinfo | None = None,
) -> list[Entry]:
    """
    Entries for one todo over ``[window_start, window_start + window_days]``.

    Non-recurring todos pass through unmodified when their due date falls in
    the window. Recurring todos become one VirtualTodo per matching date;
    their own due date is virtualized too (even off-pattern), so every
    occurrence is tracked through the ledger the same way. An archived
    (completed) recurring row yields nothing; its live successor carries the
    series.
    """
    window_end = window_start + timedelta(days=window_days)
    due = todo.due_on(tz)

    if not todo.is_recurring:
        if due is not None and window_start <= due <= window_end:
            return [todo]
        return []

    if todo.completed:
        return []

    dates = set(matching_dates(todo.recurring_pattern, window_start, window_days))
    if due is not None and window_start <= due <= window_end:
        dates.add(due)

    return [make_virtual(todo, d, completion_map) for d in sorted(dates)]


def materialize_all(
    todos: list[Todo],
    window_start: date,
    window_days: int,
    completion_map: CompletionMap | None = None,
    tz: tzinfo | None = None,
) -> list[Entry]:
    """
    Materialize many todos into one de-duplicated list.

    Keyed by virtual_key (or id for plain todos); a repeated todo adds nothing.
    """
    built: dict[str, Entry] = {}
    for todo in todos:
        for entry in materialize(todo, window_start, window_days, completion_map, tz):
            built.setdefault(entry_key(entry), entry)
    return list(built.values())


def entry_date(entry: Entry, tz: tzinfo | None = None) -> date | None:
    """Calendar date an entry is shown on."""
    if isinstance(entry, VirtualTodo):
        return entry.virtual_date
    return entry.due_on(tz)
