"""Completion analytics over todos and the completion ledger - pure, no I/O."""

from dataclasses import dataclass, field
from datetime import date, timedelta, tzinfo

from .dates import date_range, local_date
from .patterns import matches
from .todos import CompletionRecord, Todo


@dataclass
class DailyStats:
    """Completions and misses for one day."""

    date: date
    regular_completed: int = 0
    recurring_completed: int = 0
    recurring_missed: int = 0


@dataclass
class AnalyticsData:
    """Totals for a date range plus a per-day breakdown."""

    total_regular_completed: int = 0
    total_recurring_completed: int = 0
    total_recurring_missed: int = 0
    completion_rate: int = 0
    current_streak: int = 0
    daily_breakdown: list[DailyStats] = field(default_factory=list)


def completion_dates(
    todos: list[Todo],
    completions: list[CompletionRecord],
    tz: tzinfo | None = None,
) -> set[date]:
    """Every day with at least one completion."""
    days = {r.scheduled_date for r in completions if r.is_completed}
    for todo in todos:
        if not todo.is_recurring and todo.completed and todo.completed_at is not None:
            days.add(local_date(todo.completed_at, tz))
    return days


def current_streak(active_days: set[date], today: date) -> int:
    """
    Consecutive days with a completion, ending today.

    A day without completions yet today does not break the streak; counting
    then starts from yesterday.
    """
    day = today if today in active_days else today - timedelta(days=1)
    streak = 0
    while day in active_days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def compute_analytics(
    todos: list[Todo],
    completions: list[CompletionRecord],
    start: date,
    end: date,
    today: date,
    tz: tzinfo | None = None,
) -> AnalyticsData:
    """
    Summarize completions between ``start`` and ``end`` (inclusive).

    A recurring occurrence counts as missed when its date is before today
    and the ledger has no completed record for it.
    """
    days = {d: DailyStats(date=d) for d in date_range(start, (end - start).days)}
    ledger = {r.key: r for r in completions}

    for todo in todos:
        if todo.is_recurring or not todo.completed or todo.completed_at is None:
            continue
        done_on = local_date(todo.completed_at, tz)
        if done_on in days:
            days[done_on].regular_completed += 1

    for record in completions:
        if record.is_completed and record.scheduled_date in days:
            days[record.scheduled_date].recurring_completed += 1

    missed: set[tuple[str, date]] = set()
    for todo in todos:
        if not todo.is_recurring or todo.completed:
            continue
        for d in days:
            if d >= today or not matches(todo.recurring_pattern, d):
                continue
            record = ledger.get((todo.key, d))
            if record is None or not record.is_completed:
                missed.add((todo.key, d))
    for record in completions:
        if not record.is_completed and record.scheduled_date < today and record.scheduled_date in days:
            missed.add(record.key)
    for _, d in missed:
        days[d].recurring_missed += 1

    breakdown = [days[d] for d in sorted(days)]
    regular = sum(s.regular_completed for s in breakdown)
    recurring = sum(s.recurring_completed for s in breakdown)
    missed_total = sum(s.recurring_missed for s in breakdown)
    done = regular + recurring
    rate = round(done / (done + missed_total) * 100) if done + missed_total else 100

    return AnalyticsData(
        total_regular_completed=regular,
        total_recurring_completed=recurring,
        total_recurring_missed=missed_total,
        completion_rate=rate,
        current_streak=current_streak(completion_dates(todos, completions, tz), today),
        daily_breakdown=breakdown,
    )
