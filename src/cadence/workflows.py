"""Shared workflow layer between the CLI and other front ends.

Picks the storage backend once from the sign-in state and wires the engine.
"""

import logging
from dataclasses import replace
from datetime import date

from .adapters.file_store import FileTodoStore
from .adapters.remote_store import RemoteTodoStore
from .config import Config, Tokens, load_config
from .core.todos import TodoId
from .engine import ScheduleEngine
from .ports.change_notifier import ChangeNotifier
from .ports.todo_store import TodoStore

logger = logging.getLogger(__name__)


def open_store(config: Config, tokens: Tokens) -> TodoStore:
    """Remote store when signed in, the local file store otherwise."""
    if tokens.is_authenticated:
        logger.debug(f"Using remote store at {config.api_base_url}")
        return RemoteTodoStore(config, tokens)
    logger.debug(f"Using local store at {config.store_path}")
    return FileTodoStore(config.store_path)


def build_engine(
    config: Config | None = None,
    tokens: Tokens | None = None,
    notifier: ChangeNotifier | None = None,
) -> ScheduleEngine:
    """Engine over the backend selected by the current sign-in state."""
    config = config or load_config()
    tokens = tokens or Tokens.load()
    return ScheduleEngine(
        open_store(config, tokens),
        notifier=notifier,
        tz=config.zone(),
        upcoming_days=config.upcoming_days,
        overdue_days=config.overdue_days,
    )


def sync_local_to_remote(local: TodoStore, remote: TodoStore) -> dict[str, TodoId]:
    """
    Copy every guest todo into the remote store.

    Todos get fresh remote ids; their completion records follow, re-keyed
    to the new ids. Returns old id (as string) -> new id.
    """
    id_map: dict[str, TodoId] = {}
    for todo in local.list_todos():
        stored = remote.upsert_todo(replace(todo, id=None))
        id_map[todo.key] = stored.id

    for record in local.list_completion_records(date.min, date.max):
        new_id = id_map.get(str(record.todo_id))
        if new_id is None:
            logger.warning(f"Dropping completion record for unknown todo {record.todo_id}")
            continue
        remote.upsert_completion_record(replace(record, todo_id=new_id))

    logger.info(f"Synced {len(id_map)} todos to remote store")
    return id_map
