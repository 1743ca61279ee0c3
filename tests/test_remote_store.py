"""Tests for the remote API store."""

from datetime import date, datetime
from unittest.mock import MagicMock

import pytest
import requests

from cadence.adapters.remote_store import AuthenticationError, RemoteTodoStore
from cadence.config import Config, Tokens
from cadence.core.errors import StorageError, TodoNotFoundError
from cadence.core.todos import CompletionRecord, Todo

BASE = "https://api.test/v1"
AUTH = {"Authorization": "Bearer tok"}


def _response(status=200, payload=None):
    resp = MagicMock()
    resp.status_code = status
    resp.content = b"" if payload is None else b"{}"
    resp.json.return_value = payload
    resp.text = ""
    return resp


@pytest.fixture
def store():
    store = RemoteTodoStore(Config(api_base_url=BASE), Tokens(access_token="tok", owner="u1"))
    store._session = MagicMock()
    return store


class TestRemoteTodoStore:
    def test_owner_from_tokens(self, store):
        assert store.owner == "u1"

    def test_list_todos(self, store):
        store._session.request.return_value = _response(
            payload=[{"id": 1, "text": "Buy milk"}, {"id": 2, "text": "Stretch", "recurringPattern": {"type": "daily"}}]
        )
        todos = store.list_todos()
        assert [t.id for t in todos] == [1, 2]
        assert todos[1].is_recurring
        store._session.request.assert_called_once_with("GET", f"{BASE}/todos", headers=AUTH, timeout=10)

    def test_list_todos_skips_malformed(self, store):
        store._session.request.return_value = _response(payload=[{"id": 1}, {"id": 2, "text": "ok"}])
        assert [t.id for t in store.list_todos()] == [2]

    def test_create_posts_without_id(self, store):
        store._session.request.return_value = _response(payload={"id": 42, "text": "Buy milk"})
        stored = store.upsert_todo(Todo(id=None, text="Buy milk"))
        assert stored.id == 42
        method, url = store._session.request.call_args.args
        assert (method, url) == ("POST", f"{BASE}/todos")
        assert "id" not in store._session.request.call_args.kwargs["json"]

    def test_optimistic_id_is_created(self, store):
        store._session.request.return_value = _response(payload={"id": 43, "text": "Buy milk"})
        store.upsert_todo(Todo(id=-1, text="Buy milk"))
        assert store._session.request.call_args.args[0] == "POST"

    def test_update_puts(self, store):
        store._session.request.return_value = _response(payload={"id": 7, "text": "Renamed"})
        stored = store.upsert_todo(Todo(id=7, text="Renamed"))
        assert store._session.request.call_args.args == ("PUT", f"{BASE}/todos/7")
        assert stored.text == "Renamed"

    def test_delete_unknown(self, store):
        store._session.request.return_value = _response(status=404)
        with pytest.raises(TodoNotFoundError):
            store.delete_todo(7)

    def test_delete_no_content(self, store):
        store._session.request.return_value = _response(status=204)
        store.delete_todo(7)
        assert store._session.request.call_args.args == ("DELETE", f"{BASE}/todos/7")

    def test_completion_records_query(self, store):
        store._session.request.return_value = _response(
            payload=[{"todoId": 1, "scheduledDate": "2026-01-25", "completedAt": "2026-01-25T09:00:00"}]
        )
        records = store.list_completion_records(date(2026, 1, 20), date(2026, 1, 31))
        assert records == [CompletionRecord(1, date(2026, 1, 25), datetime(2026, 1, 25, 9, 0))]
        assert store._session.request.call_args.kwargs["params"] == {
            "startDate": "2026-01-20",
            "endDate": "2026-01-31",
        }

    def test_completion_records_skip_malformed(self, store):
        store._session.request.return_value = _response(
            payload=[{"todoId": 1}, {"todoId": 1, "scheduledDate": "2026-01-25", "completedAt": None}]
        )
        records = store.list_completion_records(date(2026, 1, 20), date(2026, 1, 31))
        assert records == [CompletionRecord(1, date(2026, 1, 25), None)]

    def test_upsert_completion_record(self, store):
        store._session.request.return_value = _response(status=204)
        store.upsert_completion_record(CompletionRecord(1, date(2026, 1, 25), None))
        call = store._session.request.call_args
        assert call.args == ("PUT", f"{BASE}/completions")
        assert call.kwargs["json"] == {"todoId": 1, "scheduledDate": "2026-01-25", "completedAt": None}


class TestRemoteFailures:
    def test_missing_token(self):
        store = RemoteTodoStore(Config(api_base_url=BASE), Tokens())
        store._session = MagicMock()
        with pytest.raises(AuthenticationError):
            store.list_todos()
        store._session.request.assert_not_called()

    def test_rejected_token(self, store):
        store._session.request.return_value = _response(status=401)
        with pytest.raises(AuthenticationError):
            store.list_todos()

    def test_rejected_token_is_a_storage_failure(self, store):
        store._session.request.return_value = _response(status=403)
        with pytest.raises(StorageError):
            store.upsert_todo(Todo(id=3, text="Buy milk"))

    def test_server_error(self, store):
        resp = _response(status=500)
        resp.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
        store._session.request.return_value = resp
        with pytest.raises(StorageError):
            store.list_todos()

    def test_connection_error(self, store):
        store._session.request.side_effect = requests.ConnectionError("unreachable")
        with pytest.raises(StorageError):
            store.upsert_completion_record(CompletionRecord(1, date(2026, 1, 25), None))
