"""Completion ledger - per-occurrence completion facts keyed by (todo id, date)."""

from datetime import date, datetime

from .core.materialize import CompletionMap, build_completion_map
from .core.todos import CompletionRecord, TodoId
from .ports.todo_store import TodoStore


class CompletionLedger:
    """
    Upsert/query facade over a store's completion records.

    Three states per occurrence: completed (record with a timestamp), not
    completed (record without one) and unknown (no record). Callers treat
    unknown as incomplete.
    """

    def __init__(self, store: TodoStore):
        self.store = store

    def record(self, todo_id: TodoId, scheduled_date: date, completed_at: datetime | None) -> CompletionRecord:
        """Write the fact for one occurrence, overwriting any earlier one."""
        record = CompletionRecord(todo_id=todo_id, scheduled_date=scheduled_date, completed_at=completed_at)
        self.store.upsert_completion_record(record)
        return record

    def is_completed(self, todo_id: TodoId, scheduled_date: date) -> bool | None:
        """True / False from a record, None when there is no record."""
        key = (str(todo_id), scheduled_date)
        for record in self.store.list_completion_records(scheduled_date, scheduled_date):
            if record.key == key:
                return record.is_completed
        return None

    def query(self, start: date, end: date) -> list[CompletionRecord]:
        """Bulk read for [start, end]. Build a map from this instead of per-entry lookups."""
        return self.store.list_completion_records(start, end)

    def completion_map(self, start: date, end: date) -> CompletionMap:
        return build_completion_map(self.query(start, end))

    def history(self, todo_id: TodoId, start: date, end: date) -> list[CompletionRecord]:
        """Records of one todo, oldest first."""
        key = str(todo_id)
        records = [r for r in self.query(start, end) if str(r.todo_id) == key]
        return sorted(records, key=lambda r: r.scheduled_date)
