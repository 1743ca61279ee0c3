"""In-process change notification adapter."""

import logging
from typing import Callable

logger = logging.getLogger(__name__)


class ChangeFeed:
    """
    Per-owner subscriber registry.

    Implements ChangeNotifier protocol. Each feed owns its own registry, so
    independent feeds (one per test, one per session) never see each
    other's events.
    """

    def __init__(self):
        self._subscribers: dict[str, list[Callable[[str], None]]] = {}

    def subscribe(self, owner: str, callback: Callable[[str], None]) -> Callable[[], None]:
        """Register a callback. Returns a function that removes it again."""
        self._subscribers.setdefault(owner, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(owner, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def notify(self, owner: str) -> None:
        """Call every subscriber of ``owner``. One failing subscriber does not stop the rest."""
        for callback in list(self._subscribers.get(owner, [])):
            try:
                callback(owner)
            except Exception as e:
                logger.error(f"Change subscriber failed for owner {owner}: {e}")

    def subscriber_count(self, owner: str) -> int:
        return len(self._subscribers.get(owner, []))
