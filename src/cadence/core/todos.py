"""Pure todo domain logic - no I/O dependencies."""

from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from enum import Enum

from .dates import date_key, local_date, parse_timestamp, to_iso
from .errors import ValidationError
from .patterns import RecurringPattern

TodoId = str | int


@dataclass
class Todo:
    """
    A task, owned by one user (remote) or by the local device (guest).

    Remote ids are positive integers, negative while an optimistic create is
    unconfirmed; local ids are opaque strings. For a recurring todo,
    ``due_date`` is the next pending occurrence, not a fixed deadline.
    """

    id: TodoId | None
    text: str
    completed: bool = False
    folder_id: TodoId | None = None
    due_date: datetime | None = None
    reminder_at: datetime | None = None
    recurring_pattern: RecurringPattern | None = None
    completed_occurrences: int = 0
    completed_at: datetime | None = None

    @property
    def is_recurring(self) -> bool:
        return self.recurring_pattern is not None

    @property
    def is_optimistic(self) -> bool:
        """Negative integer id = created locally, not yet confirmed by the server."""
        return isinstance(self.id, int) and self.id < 0

    @property
    def key(self) -> str:
        """Id as a string, so local and remote ids compare the same way."""
        return str(self.id)

    def due_on(self, tz: tzinfo | None = None) -> date | None:
        """Local calendar date of due_date."""
        if self.due_date is None:
            return None
        return local_date(self.due_date, tz)

    @classmethod
    def from_dict(cls, data: dict) -> "Todo":
        """Create Todo from its stored/wire form (camelCase keys)."""
        if not isinstance(data.get("text"), str):
            raise ValidationError(f"Todo text must be a string: {data!r}")
        pattern = data.get("recurringPattern")
        return cls(
            id=data.get("id"),
            text=data["text"],
            completed=bool(data.get("completed", False)),
            folder_id=data.get("folderId"),
            due_date=parse_timestamp(data.get("dueDate")),
            reminder_at=parse_timestamp(data.get("reminderAt")),
            recurring_pattern=RecurringPattern.from_dict(pattern) if pattern else None,
            completed_occurrences=data.get("completedOccurrences") or 0,
            completed_at=parse_timestamp(data.get("completedAt")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "completed": self.completed,
            "folderId": self.folder_id,
            "dueDate": to_iso(self.due_date),
            "reminderAt": to_iso(self.reminder_at),
            "recurringPattern": self.recurring_pattern.to_dict() if self.recurring_pattern else None,
            "completedOccurrences": self.completed_occurrences,
            "completedAt": to_iso(self.completed_at),
        }


@dataclass(frozen=True)
class VirtualTodo:
    """
    One occurrence of a recurring todo, built fresh on every read.

    ``occurrence_completed`` comes from the completion ledger: None means no
    ledger entry (treated as incomplete), False an explicit "not completed".
    """

    todo: Todo
    virtual_date: date
    occurrence_completed: bool | None = None

    is_recurring_instance = True

    @property
    def virtual_key(self) -> str:
        return f"{self.todo.id}-{date_key(self.virtual_date)}"

    @property
    def id(self) -> TodoId | None:
        return self.todo.id

    @property
    def text(self) -> str:
        return self.todo.text

    @property
    def completed(self) -> bool:
        return self.todo.completed

    @property
    def due_date(self) -> datetime | None:
        return self.todo.due_date

    @property
    def reminder_at(self) -> datetime | None:
        return self.todo.reminder_at

    @property
    def recurring_pattern(self) -> RecurringPattern | None:
        return self.todo.recurring_pattern


Entry = Todo | VirtualTodo


@dataclass(frozen=True)
class CompletionRecord:
    """
    Ledger fact for one occurrence. ``completed_at=None`` records an explicit
    "not completed"; no record at all means unknown.
    """

    todo_id: TodoId
    scheduled_date: date
    completed_at: datetime | None = None

    @property
    def key(self) -> tuple[str, date]:
        return str(self.todo_id), self.scheduled_date

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @classmethod
    def from_dict(cls, data: dict, tz: tzinfo | None = None) -> "CompletionRecord":
        return cls(
            todo_id=data["todoId"],
            scheduled_date=local_date(data["scheduledDate"], tz),
            completed_at=parse_timestamp(data.get("completedAt")),
        )

    def to_dict(self) -> dict:
        return {
            "todoId": self.todo_id,
            "scheduledDate": self.scheduled_date.isoformat(),
            "completedAt": to_iso(self.completed_at),
        }


class StatusFilter(Enum):
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass
class TodoStats:
    total: int = 0
    completed: int = 0
    active: int = 0
    completion_rate: int = 0


def entry_key(entry: Entry) -> str:
    """De-duplication key: virtual_key for occurrences, id otherwise."""
    if isinstance(entry, VirtualTodo):
        return entry.virtual_key
    return entry.key


def is_entry_completed(entry: Entry) -> bool:
    """Occurrences use their ledger state; plain todos their own flag."""
    if isinstance(entry, VirtualTodo):
        return entry.occurrence_completed is True
    return entry.completed


def filter_by_status(entries: list[Entry], status: StatusFilter = StatusFilter.ALL) -> list[Entry]:
    """Filter by completion. ACTIVE and COMPLETED partition ALL."""
    if status is StatusFilter.ACTIVE:
        return [e for e in entries if not is_entry_completed(e)]
    if status is StatusFilter.COMPLETED:
        return [e for e in entries if is_entry_completed(e)]
    return list(entries)


def filter_by_search(entries: list[Entry], query: str = "") -> list[Entry]:
    """Case-insensitive substring match on text."""
    if not query or not query.strip():
        return list(entries)
    needle = query.lower()
    return [e for e in entries if needle in e.text.lower()]


def filter_entries(
    entries: list[Entry],
    status: StatusFilter = StatusFilter.ALL,
    query: str = "",
) -> list[Entry]:
    return filter_by_search(filter_by_status(entries, status), query)


def calculate_todo_stats(entries: list[Entry]) -> TodoStats:
    """Totals and completion rate (percent, rounded) for a list of entries."""
    total = len(entries)
    completed = sum(1 for e in entries if is_entry_completed(e))
    rate = round(completed / total * 100) if total else 0
    return TodoStats(
        total=total,
        completed=completed,
        active=total - completed,
        completion_rate=rate,
    )
