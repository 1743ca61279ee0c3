"""Adapters - I/O implementations of ports."""

from .file_store import FileTodoStore
from .remote_store import RemoteTodoStore, AuthenticationError
from .change_feed import ChangeFeed

__all__ = [
    "FileTodoStore",
    "RemoteTodoStore",
    "AuthenticationError",
    "ChangeFeed",
]
