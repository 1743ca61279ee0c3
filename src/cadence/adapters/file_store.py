"""File-based todo storage adapter for guest (signed-out) use."""

import json
import logging
import os
import uuid
from dataclasses import replace
from datetime import date
from pathlib import Path

from cadence.core.errors import StorageError, TodoNotFoundError, ValidationError
from cadence.core.todos import CompletionRecord, Todo, TodoId

logger = logging.getLogger(__name__)

LOCAL_OWNER = "local"


class FileTodoStore:
    """
    JSON file storage on this device.

    Implements TodoStore protocol. The whole store is one document
    ``{"todos": [...], "completions": [...]}``; every write rewrites it
    through a temp file so a crash never leaves it half-written. Ids are
    random hex strings.
    """

    def __init__(self, path: Path | str, owner: str = LOCAL_OWNER):
        self.path = Path(path).expanduser()
        self.owner = owner

    def _load(self) -> dict:
        if not self.path.exists():
            return {"todos": [], "completions": []}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read {self.path}: {e}")
            raise StorageError(f"Cannot read local store {self.path}: {e}") from e
        if not isinstance(data, dict):
            logger.error(f"Unexpected content in {self.path}: {type(data).__name__}")
            raise StorageError(f"Cannot read local store {self.path}: expected a JSON object")
        data.setdefault("todos", [])
        data.setdefault("completions", [])
        return data

    def _save(self, data: dict) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data, indent=2))
            os.replace(tmp, self.path)
        except OSError as e:
            logger.error(f"Failed to write {self.path}: {e}")
            raise StorageError(f"Cannot write local store {self.path}: {e}") from e

    def list_todos(self) -> list[Todo]:
        """All stored todos. Malformed rows are skipped."""
        todos = []
        for row in self._load()["todos"]:
            try:
                todos.append(Todo.from_dict(row))
            except ValidationError as e:
                logger.warning(f"Skipping malformed todo {row.get('id')!r}: {e}")
        return todos

    def upsert_todo(self, todo: Todo) -> Todo:
        """Create (id None) or replace a todo. Returns the stored copy."""
        data = self._load()
        stored = todo if todo.id is not None else replace(todo, id=uuid.uuid4().hex)
        row = stored.to_dict()

        for i, existing in enumerate(data["todos"]):
            if str(existing.get("id")) == stored.key:
                data["todos"][i] = row
                break
        else:
            data["todos"].append(row)

        self._save(data)
        return stored

    def delete_todo(self, todo_id: TodoId) -> None:
        """Delete a todo together with its completion records."""
        data = self._load()
        key = str(todo_id)
        remaining = [row for row in data["todos"] if str(row.get("id")) != key]
        if len(remaining) == len(data["todos"]):
            raise TodoNotFoundError(todo_id)
        data["todos"] = remaining
        data["completions"] = [c for c in data["completions"] if str(c.get("todoId")) != key]
        self._save(data)

    def list_completion_records(self, start: date, end: date) -> list[CompletionRecord]:
        records = []
        for row in self._load()["completions"]:
            try:
                record = CompletionRecord.from_dict(row)
            except (KeyError, ValidationError) as e:
                logger.warning(f"Skipping malformed completion record {row!r}: {e}")
                continue
            if start <= record.scheduled_date <= end:
                records.append(record)
        return records

    def upsert_completion_record(self, record: CompletionRecord) -> None:
        """Insert or overwrite the record for (todo_id, scheduled_date)."""
        data = self._load()
        todo_key, scheduled = record.key
        day = scheduled.isoformat()
        data["completions"] = [
            c
            for c in data["completions"]
            if not (str(c.get("todoId")) == todo_key and str(c.get("scheduledDate", ""))[:10] == day)
        ]
        data["completions"].append(record.to_dict())
        self._save(data)
