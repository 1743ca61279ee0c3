"""Change notification interface."""

from typing import Callable, Protocol


class ChangeNotifier(Protocol):
    """Delivers "something changed for owner X" events to subscribers."""

    def subscribe(self, owner: str, callback: Callable[[str], None]) -> Callable[[], None]:
        """Register a callback for an owner. Returns a function that unsubscribes it."""
        ...

    def notify(self, owner: str) -> None:
        """Tell every subscriber of ``owner`` that its data changed."""
        ...
