"""Remote API adapter - HTTP client for signed-in storage."""

import logging
from datetime import date

import requests

from cadence.config import Config, Tokens, load_config
from cadence.core.errors import StorageError, TodoNotFoundError, ValidationError
from cadence.core.todos import CompletionRecord, Todo, TodoId

logger = logging.getLogger(__name__)


class AuthenticationError(StorageError):
    """Raised when authentication fails."""

    pass


class RemoteTodoStore:
    """
    Remote backend adapter.

    Implements TodoStore protocol over the JSON API. Ids are positive
    integers assigned by the server; a todo with no id or a negative
    (optimistic) id is created with POST. No business logic - just I/O.
    """

    def __init__(self, config: Config | None = None, tokens: Tokens | None = None):
        self.config = config or load_config()
        self.tokens = tokens or Tokens.load()
        self.owner = self.tokens.owner
        self._session = requests.Session()

    def _ensure_valid_token(self) -> None:
        if not self.tokens.access_token:
            raise AuthenticationError("No access token. Run 'cadence login' first.")

    def _api_request(
        self,
        method: str,
        endpoint: str,
        todo_id: TodoId | None = None,
        **kwargs,
    ) -> dict | list | None:
        """Make authenticated API request."""
        self._ensure_valid_token()
        url = f"{self.config.api_base_url}{endpoint}"
        try:
            resp = self._session.request(
                method,
                url,
                headers={"Authorization": f"Bearer {self.tokens.access_token}"},
                timeout=self.config.request_timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            logger.error(f"{method} {endpoint} failed: {e}")
            raise StorageError(f"{method} {endpoint} failed: {e}") from e

        if resp.status_code in (401, 403):
            raise AuthenticationError(f"Request rejected ({resp.status_code}). Run 'cadence login' again.")
        if resp.status_code == 404 and todo_id is not None:
            raise TodoNotFoundError(todo_id)
        try:
            resp.raise_for_status()
        except requests.HTTPError as e:
            logger.error(f"{method} {endpoint} returned {resp.status_code}: {resp.text}")
            raise StorageError(f"{method} {endpoint} failed: {e}") from e

        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    def list_todos(self) -> list[Todo]:
        """Fetch all todos of the signed-in owner."""
        todos = []
        for row in self._api_request("GET", "/todos") or []:
            try:
                todos.append(Todo.from_dict(row))
            except ValidationError as e:
                logger.warning(f"Skipping malformed todo {row.get('id')!r}: {e}")
        return todos

    def upsert_todo(self, todo: Todo) -> Todo:
        """POST new (or optimistic) todos, PUT existing ones."""
        body = todo.to_dict()
        if todo.id is None or todo.is_optimistic:
            body.pop("id")
            data = self._api_request("POST", "/todos", json=body)
        else:
            data = self._api_request("PUT", f"/todos/{todo.id}", todo_id=todo.id, json=body)
        return Todo.from_dict(data) if data else todo

    def delete_todo(self, todo_id: TodoId) -> None:
        self._api_request("DELETE", f"/todos/{todo_id}", todo_id=todo_id)

    def list_completion_records(self, start: date, end: date) -> list[CompletionRecord]:
        rows = self._api_request(
            "GET",
            "/completions",
            params={"startDate": start.isoformat(), "endDate": end.isoformat()},
        )
        records = []
        for row in rows or []:
            try:
                records.append(CompletionRecord.from_dict(row))
            except (KeyError, ValidationError) as e:
                logger.warning(f"Skipping malformed completion record {row!r}: {e}")
        return records

    def upsert_completion_record(self, record: CompletionRecord) -> None:
        self._api_request("PUT", "/completions", json=record.to_dict())
