"""Schedule engine - executes toggle actions and serves views.

The pure core decides; this module performs the writes. Every mutation is
applied to the in-memory TodoCache first and rolled back to the
pre-write snapshot if the store raises StorageError.
"""

import copy
import itertools
import logging
from dataclasses import replace
from datetime import date, datetime, timedelta, tzinfo
from typing import Callable

from .core.analytics import AnalyticsData, compute_analytics
from .core.dates import local_date, move_to_date
from .core.errors import StorageError, TodoNotFoundError
from .core.materialize import build_completion_map
from .core.patterns import RecurringPattern
from .core.todos import (
    CompletionRecord,
    Entry,
    StatusFilter,
    Todo,
    TodoId,
    TodoStats,
    calculate_todo_stats,
    filter_entries,
)
from .core.toggle import AdvanceSeries, DirectWrite, NoOp, RecordHistory, ToggleAction, classify_toggle
from .core.views import OVERDUE_DAYS, UPCOMING_DAYS, DateGroup, overdue_view, today_view, upcoming_view
from .ledger import CompletionLedger
from .ports.change_notifier import ChangeNotifier
from .ports.todo_store import TodoStore

logger = logging.getLogger(__name__)

# Marks an update_schedule argument that was not passed (None means "clear").
UNSET = object()


class TodoCache:
    """In-memory todos and completion records the views are computed from."""

    def __init__(self):
        self.todos: dict[str, Todo] = {}
        self.records: dict[tuple[str, date], CompletionRecord] = {}
        self.loaded = False
        self._temp_ids = itertools.count(-1, -1)

    def load(self, todos: list[Todo], records: list[CompletionRecord]) -> None:
        self.todos = {t.key: t for t in todos}
        self.records = {r.key: r for r in records}
        self.loaded = True

    def snapshot(self) -> tuple[dict, dict]:
        return copy.copy(self.todos), copy.copy(self.records)

    def restore(self, snapshot: tuple[dict, dict]) -> None:
        self.todos, self.records = snapshot

    def temp_id(self) -> int:
        """Negative id for a todo the store has not confirmed yet."""
        return next(self._temp_ids)

    def put_todo(self, todo: Todo) -> None:
        self.todos[todo.key] = todo

    def remove_todo(self, todo_id: TodoId) -> None:
        key = str(todo_id)
        self.todos.pop(key, None)
        self.records = {k: r for k, r in self.records.items() if k[0] != key}

    def put_record(self, record: CompletionRecord) -> None:
        self.records[record.key] = record

    def list_todos(self) -> list[Todo]:
        return list(self.todos.values())

    def list_records(self) -> list[CompletionRecord]:
        return list(self.records.values())


class ScheduleEngine:
    """
    Toggle dispatch, todo mutations and view queries for one owner.

    The store is chosen by the caller at construction and never switched.
    With a notifier, the engine re-reads its cache whenever the owner's
    data changes, and announces its own successful writes.
    """

    def __init__(
        self,
        store: TodoStore,
        notifier: ChangeNotifier | None = None,
        tz: tzinfo | None = None,
        upcoming_days: int = UPCOMING_DAYS,
        overdue_days: int = OVERDUE_DAYS,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.ledger = CompletionLedger(store)
        self.notifier = notifier
        self.tz = tz
        self.upcoming_days = upcoming_days
        self.overdue_days = overdue_days
        self.cache = TodoCache()
        self._clock = clock
        self._announcing = False
        self._unsubscribe = notifier.subscribe(store.owner, self._on_change) if notifier else None

    # ============== Clock ==============

    def now(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        return datetime.now(self.tz) if self.tz else datetime.now().astimezone()

    def current_date(self) -> date:
        return local_date(self.now(), self.tz)

    # ============== Cache ==============

    def refresh(self) -> None:
        """Re-read todos and the ledger window the views need."""
        today = self.current_date()
        start = today - timedelta(days=self.overdue_days)
        end = today + timedelta(days=self.upcoming_days)
        self.cache.load(self.store.list_todos(), self.ledger.query(start, end))
        logger.debug(f"Loaded {len(self.cache.todos)} todos for owner {self.store.owner}")

    def _ensure_loaded(self) -> None:
        if not self.cache.loaded:
            self.refresh()

    def _on_change(self, owner: str) -> None:
        if self._announcing:
            return
        logger.debug(f"Change notification for owner {owner}, reloading")
        self.refresh()

    def _notify(self) -> None:
        if self.notifier is None:
            return
        # The cache already holds our own write; only other subscribers reload.
        self._announcing = True
        try:
            self.notifier.notify(self.store.owner)
        finally:
            self._announcing = False

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def find(self, todo_id: TodoId) -> Todo:
        """Look up a todo by id; remote and local ids compare as strings."""
        self._ensure_loaded()
        todo = self.cache.todos.get(str(todo_id))
        if todo is None:
            raise TodoNotFoundError(todo_id)
        return todo

    def _optimistic(self, write: Callable[[], None], description: str) -> None:
        """Run a cache+store write; restore the cache snapshot if the store fails."""
        snapshot = self.cache.snapshot()
        try:
            write()
        except StorageError as e:
            self.cache.restore(snapshot)
            logger.warning(f"{description} failed, reverted local state: {e}")
            raise
        self._notify()

    # ============== Toggle ==============

    def toggle(self, todo_id: TodoId, completed: bool, virtual_date: date | None = None) -> ToggleAction:
        """Check or uncheck a todo, or one occurrence of a recurring todo."""
        todo = self.find(todo_id)
        action = classify_toggle(todo, completed, virtual_date, today=self.current_date(), tz=self.tz)
        logger.debug(f"Toggle {todo.key} completed={completed} date={virtual_date} -> {type(action).__name__}")

        match action:
            case NoOp():
                logger.debug(f"No-op toggle for {todo.key}: {action.reason}")
            case DirectWrite():
                self._optimistic(lambda: self._direct_write(action), f"Toggle of {todo.key}")
            case RecordHistory():
                self._optimistic(lambda: self._record_history(action), f"History write for {todo.key}")
            case AdvanceSeries():
                self._optimistic(lambda: self._advance_series(action), f"Advance of {todo.key}")
        return action

    def _direct_write(self, action: DirectWrite) -> None:
        updated = replace(
            action.todo,
            completed=action.completed,
            completed_at=self.now() if action.completed else None,
        )
        self.cache.put_todo(updated)
        self.store.upsert_todo(updated)

    def _record_history(self, action: RecordHistory) -> None:
        completed_at = self.now() if action.completed else None
        self.cache.put_record(CompletionRecord(action.todo.id, action.scheduled_date, completed_at))
        self.ledger.record(action.todo.id, action.scheduled_date, completed_at)

    def _advance_series(self, action: AdvanceSeries) -> None:
        """
        Complete the current occurrence and move the live row to the next one.

        Writes, in order: an archived completed copy of the occurrence, the
        live row moved to next_date, and the ledger record. A failed step
        undoes the earlier ones, so either all three exist or none do. The
        live row keeps its id, so ledger history stays attached to it.
        """
        todo = action.todo
        now = self.now()
        occurrence = action.occurrence_date
        done = CompletionRecord(todo.id, occurrence, now)

        if action.next_date is None:
            finished = replace(
                todo,
                completed=True,
                completed_at=now,
                completed_occurrences=action.completed_occurrences,
            )
            self.cache.put_todo(finished)
            self.cache.put_record(done)
            self.store.upsert_todo(finished)
            try:
                self.ledger.record(todo.id, occurrence, now)
            except StorageError:
                self._compensate(lambda: self.store.upsert_todo(todo), f"restore {todo.key}")
                raise
            logger.debug(f"Series {todo.key} finished after {action.completed_occurrences} occurrences")
            return

        shift = timedelta(days=(action.next_date - occurrence).days)
        advanced = replace(
            todo,
            completed=False,
            completed_at=None,
            due_date=move_to_date(todo.due_date, action.next_date, self.tz),
            reminder_at=self._shift(todo.reminder_at, shift),
            completed_occurrences=action.completed_occurrences,
        )
        archived = replace(
            todo,
            id=None,
            completed=True,
            completed_at=now,
            due_date=move_to_date(todo.due_date, occurrence, self.tz),
        )
        self.cache.put_todo(advanced)
        self.cache.put_record(done)

        archived = self.store.upsert_todo(archived)
        self.cache.put_todo(archived)
        try:
            self.store.upsert_todo(advanced)
        except StorageError:
            self._compensate(lambda: self.store.delete_todo(archived.id), f"delete archived copy {archived.key}")
            raise
        try:
            self.ledger.record(todo.id, occurrence, now)
        except StorageError:
            self._compensate(lambda: self.store.upsert_todo(todo), f"restore {todo.key}")
            self._compensate(lambda: self.store.delete_todo(archived.id), f"delete archived copy {archived.key}")
            raise
        logger.debug(f"Advanced {todo.key} from {occurrence} to {action.next_date}")

    def _shift(self, value: datetime | None, shift: timedelta) -> datetime | None:
        """Move a timestamp by whole days, keeping its local time of day."""
        if value is None:
            return None
        return move_to_date(value, local_date(value, self.tz) + shift, self.tz)

    def _compensate(self, undo: Callable[[], object], description: str) -> None:
        logger.warning(f"Advance failed, compensating: {description}")
        try:
            undo()
        except StorageError as e:
            logger.error(f"Compensation failed ({description}): {e}")

    # ============== Mutations ==============

    def create(
        self,
        text: str,
        due_date: datetime | None = None,
        reminder_at: datetime | None = None,
        recurring_pattern: RecurringPattern | None = None,
        folder_id: TodoId | None = None,
    ) -> Todo:
        """Create a todo. It shows in the cache under a negative id until stored."""
        self._ensure_loaded()
        draft = Todo(
            id=None,
            text=text,
            folder_id=folder_id,
            due_date=due_date,
            reminder_at=reminder_at,
            recurring_pattern=recurring_pattern,
        )
        pending = replace(draft, id=self.cache.temp_id())
        created: list[Todo] = []

        def write() -> None:
            self.cache.put_todo(pending)
            stored = self.store.upsert_todo(draft)
            self.cache.remove_todo(pending.id)
            self.cache.put_todo(stored)
            created.append(stored)

        self._optimistic(write, f"Create of {text!r}")
        return created[0]

    def delete(self, todo_id: TodoId) -> None:
        todo = self.find(todo_id)

        def write() -> None:
            self.cache.remove_todo(todo.id)
            self.store.delete_todo(todo.id)

        self._optimistic(write, f"Delete of {todo.key}")

    def update_schedule(
        self,
        todo_id: TodoId,
        due_date=UNSET,
        reminder_at=UNSET,
        recurring_pattern=UNSET,
    ) -> Todo:
        """
        Change due date, reminder and pattern independently.

        Omitted arguments keep their value; passing None clears the field.
        """
        todo = self.find(todo_id)
        changes = {}
        if due_date is not UNSET:
            changes["due_date"] = due_date
        if reminder_at is not UNSET:
            changes["reminder_at"] = reminder_at
        if recurring_pattern is not UNSET:
            changes["recurring_pattern"] = recurring_pattern
        updated = replace(todo, **changes)

        def write() -> None:
            self.cache.put_todo(updated)
            self.store.upsert_todo(updated)

        self._optimistic(write, f"Schedule update of {todo.key}")
        return updated

    # ============== Views ==============

    def list_todos(self, status: StatusFilter = StatusFilter.ALL, query: str = "") -> list[Todo]:
        """Stored rows as they are, without materializing occurrences."""
        self._ensure_loaded()
        return filter_entries(self.cache.list_todos(), status, query)

    def today_view(self, status: StatusFilter = StatusFilter.ALL, query: str = "") -> list[Entry]:
        self._ensure_loaded()
        return today_view(
            self.cache.list_todos(), self.cache.list_records(), self.current_date(), status, query, self.tz
        )

    def upcoming_view(self, status: StatusFilter = StatusFilter.ALL, query: str = "") -> list[DateGroup]:
        self._ensure_loaded()
        return upcoming_view(
            self.cache.list_todos(),
            self.cache.list_records(),
            self.current_date(),
            status,
            query,
            self.upcoming_days,
            self.tz,
        )

    def overdue_view(self, status: StatusFilter = StatusFilter.ALL, query: str = "") -> list[DateGroup]:
        self._ensure_loaded()
        return overdue_view(
            self.cache.list_todos(),
            self.cache.list_records(),
            self.current_date(),
            status,
            query,
            self.overdue_days,
            self.tz,
        )

    def is_occurrence_completed(self, todo_id: TodoId, on: date) -> bool | None:
        """Ledger state of one occurrence, from the cache when it covers ``on``."""
        self._ensure_loaded()
        completion_map = build_completion_map(self.cache.list_records())
        key = (str(todo_id), on)
        if key in completion_map:
            return completion_map[key]
        return self.ledger.is_completed(todo_id, on)

    def history(self, todo_id: TodoId, days: int = 30) -> list[CompletionRecord]:
        """Ledger records of one todo over the last ``days`` days and the upcoming window."""
        todo = self.find(todo_id)
        today = self.current_date()
        return self.ledger.history(
            todo.id, today - timedelta(days=days), today + timedelta(days=self.upcoming_days)
        )

    def today_stats(self) -> TodoStats:
        return calculate_todo_stats(self.today_view())

    def analytics(self, days: int = 30) -> AnalyticsData:
        """Completion analytics over the last ``days`` days, today included."""
        today = self.current_date()
        start = today - timedelta(days=days - 1)
        records = self.ledger.query(start, today)
        return compute_analytics(self.store.list_todos(), records, start, today, today, self.tz)
