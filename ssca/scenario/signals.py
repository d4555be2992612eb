"""Minimal publish/subscribe primitive for observable scenario state."""

from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

Callback = Callable[..., Any]


class Signal:
    """A named event that delivers payloads to subscribed callbacks in order.

    Callbacks run synchronously on the emitting thread. A callback that
    raises is logged and skipped so one faulty subscriber cannot stop the
    others from being notified.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscribers: list[Callback] = []

    def subscribe(self, callback: Callback) -> Callable[[], None]:
        """Register ``callback``; returns a function that unsubscribes it."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Callback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def emit(self, *args: Any, **kwargs: Any) -> None:
        # Copy so callbacks may unsubscribe themselves while being notified
        for callback in list(self._subscribers):
            try:
                callback(*args, **kwargs)
            except Exception:
                logger.exception("Subscriber %r of signal '%s' failed", callback, self.name)

    def __len__(self) -> int:
        return len(self._subscribers)
