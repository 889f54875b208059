"""Observable state contract for UI-facing state holders.

Architectural role:
    Replaces reactive UI signals with an explicit update-notify contract. A
    state holder mutates its public attributes and then calls `_notify()`;
    subscribers re-read whatever attributes they render.

Error handling strategy:
    A failing subscriber is logged and skipped so one broken view does not stop
    the others from refreshing or break the state transition that triggered it.
"""

import logging
from typing import Callable


logger = logging.getLogger(__name__)

Subscriber = Callable[[object], None]


class Observable:
    """Minimal subscribe/notify base class."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register `callback(state)`; return a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        """Invoke every subscriber with this state holder, in subscription order."""
        for callback in list(self._subscribers):
            try:
                callback(self)
            except Exception:
                logger.exception("State subscriber failed")
