"""Todo storage interface."""

from datetime import date
from typing import Protocol

from cadence.core.todos import CompletionRecord, Todo, TodoId


class TodoStore(Protocol):
    """
    Interface for persisting todos and completion records.

    A store is bound to one owner when constructed; every call is scoped to
    that owner. Ids are opaque - callers must not assume they are numeric.
    """

    owner: str

    def list_todos(self) -> list[Todo]:
        """All todos of the owner, completed ones included."""
        ...

    def upsert_todo(self, todo: Todo) -> Todo:
        """Create (id is None) or replace a todo. Returns the stored todo with its id."""
        ...

    def delete_todo(self, todo_id: TodoId) -> None:
        """Delete a todo and its completion records."""
        ...

    def list_completion_records(self, start: date, end: date) -> list[CompletionRecord]:
        """Completion records with scheduled_date in [start, end]."""
        ...

    def upsert_completion_record(self, record: CompletionRecord) -> None:
        """Insert or overwrite the record keyed by (todo_id, scheduled_date)."""
        ...
