"""Tests for the shared workflow layer."""

import itertools
from dataclasses import replace
from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from cadence.adapters.file_store import FileTodoStore
from cadence.adapters.remote_store import RemoteTodoStore
from cadence.config import Config, Tokens
from cadence.core.todos import CompletionRecord, Todo
from cadence.workflows import build_engine, open_store, sync_local_to_remote


@pytest.fixture
def config(tmp_path):
    return Config(local_store_file=str(tmp_path / "todos.json"), upcoming_days=3, overdue_days=5)


class TestOpenStore:
    def test_guest_uses_local_file(self, config, tmp_path):
        store = open_store(config, Tokens())
        assert isinstance(store, FileTodoStore)
        assert store.path == tmp_path / "todos.json"

    def test_signed_in_uses_remote(self, config):
        store = open_store(config, Tokens(access_token="tok", owner="u1"))
        assert isinstance(store, RemoteTodoStore)
        assert store.owner == "u1"


class TestBuildEngine:
    def test_applies_config(self, config):
        engine = build_engine(config, Tokens())
        assert isinstance(engine.store, FileTodoStore)
        assert engine.upcoming_days == 3
        assert engine.overdue_days == 5
        assert engine.tz is None


class TestSyncLocalToRemote:
    @pytest.fixture
    def local(self, tmp_path):
        store = FileTodoStore(tmp_path / "todos.json")
        store.upsert_todo(Todo(id="a", text="Buy milk"))
        store.upsert_todo(Todo(id="b", text="Stretch"))
        return store

    @pytest.fixture
    def remote(self):
        ids = itertools.count(101)
        remote = MagicMock()
        remote.upsert_todo.side_effect = lambda todo: replace(todo, id=next(ids))
        return remote

    def test_copies_todos_with_new_ids(self, local, remote):
        id_map = sync_local_to_remote(local, remote)
        assert id_map == {"a": 101, "b": 102}
        sent = [c.args[0] for c in remote.upsert_todo.call_args_list]
        assert [t.id for t in sent] == [None, None]
        assert [t.text for t in sent] == ["Buy milk", "Stretch"]

    def test_rekeys_completion_records(self, local, remote):
        when = datetime(2026, 1, 22, 8, 0)
        local.upsert_completion_record(CompletionRecord("b", date(2026, 1, 22), when))
        sync_local_to_remote(local, remote)
        remote.upsert_completion_record.assert_called_once_with(CompletionRecord(102, date(2026, 1, 22), when))

    def test_drops_orphan_records(self, local, remote):
        local.upsert_completion_record(CompletionRecord("gone", date(2026, 1, 22), None))
        sync_local_to_remote(local, remote)
        remote.upsert_completion_record.assert_not_called()
