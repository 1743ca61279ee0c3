"""Ports - interfaces/protocols for external dependencies."""

from .todo_store import TodoStore
from .change_notifier import ChangeNotifier

__all__ = [
    "TodoStore",
    "ChangeNotifier",
]
