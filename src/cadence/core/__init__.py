"""Functional core - pure scheduling logic with no I/O."""

from .errors import StorageError, TodoNotFoundError, ValidationError
from .patterns import (
    PatternType,
    RecurringPattern,
    format_recurring_pattern,
    is_pattern_expired,
    matches,
    next_occurrence,
    parse_recurring_description,
)
from .todos import (
    CompletionRecord,
    Entry,
    StatusFilter,
    Todo,
    TodoStats,
    VirtualTodo,
    calculate_todo_stats,
    filter_entries,
)
from .materialize import build_completion_map, materialize, materialize_all
from .toggle import AdvanceSeries, DirectWrite, NoOp, RecordHistory, ToggleAction, classify_toggle
from .views import DateGroup, overdue_view, today_view, upcoming_view
from .analytics import AnalyticsData, DailyStats, compute_analytics

__all__ = [
    # Errors
    "StorageError",
    "TodoNotFoundError",
    "ValidationError",
    # Patterns
    "PatternType",
    "RecurringPattern",
    "format_recurring_pattern",
    "is_pattern_expired",
    "matches",
    "next_occurrence",
    "parse_recurring_description",
    # Todos
    "CompletionRecord",
    "Entry",
    "StatusFilter",
    "Todo",
    "TodoStats",
    "VirtualTodo",
    "calculate_todo_stats",
    "filter_entries",
    # Materialization
    "build_completion_map",
    "materialize",
    "materialize_all",
    # Toggle
    "AdvanceSeries",
    "DirectWrite",
    "NoOp",
    "RecordHistory",
    "ToggleAction",
    "classify_toggle",
    # Views
    "DateGroup",
    "overdue_view",
    "today_view",
    "upcoming_view",
    # Analytics
    "AnalyticsData",
    "DailyStats",
    "compute_analytics",
]
