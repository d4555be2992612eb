"""Cancellable periodic tick sources.

A tick source has a single method, ``start(period_s, callback)``, returning
a timer handle with an ``active`` property and ``cancel()``. The playback
controller only relies on that shape, so sweeps can be driven by the
asyncio loop in production and by synthetic time steps in tests.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)


class AsyncioTimer:
    """Repeating ``loop.call_later`` chain. ``cancel()`` is safe to call more than once."""

    def __init__(self, loop: asyncio.AbstractEventLoop, period_s: float, callback: Callable[[], None]) -> None:
        self._loop = loop
        self._period = period_s
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = loop.call_later(period_s, self._fire)

    @property
    def active(self) -> bool:
        return self._handle is not None

    def _fire(self) -> None:
        if self._handle is None:
            return
        try:
            self._callback()
        except Exception:
            logger.exception("Tick callback failed")
        # The callback may have cancelled us (sweep completed, paused)
        if self._handle is not None:
            self._handle = self._loop.call_later(self._period, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class AsyncioTickSource:
    """Tick source backed by ``loop.call_later`` on the running event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def start(self, period_s: float, callback: Callable[[], None]) -> AsyncioTimer:
        loop = self._loop or asyncio.get_running_loop()
        return AsyncioTimer(loop, period_s, callback)
