from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class AsyncioScheduledEvent:
    def __init__(self, callback: Callable[[], None]) -> None:
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()

    def _arm(self, loop: asyncio.AbstractEventLoop, delay_seconds: float) -> None:
        self._handle = loop.call_later(delay_seconds, self._fire)

    def _fire(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        try:
            self._callback()
        except Exception:
            logger.exception("scheduled_callback_failed")


class AsyncioScheduler:
    """Runs callbacks on the running event loop after a delay."""

    def schedule(self, delay_seconds: float, callback: Callable[[], None]) -> AsyncioScheduledEvent:
        event = AsyncioScheduledEvent(callback)
        event._arm(asyncio.get_running_loop(), max(delay_seconds, 0.0))
        return event
