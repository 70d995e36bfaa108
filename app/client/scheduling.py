"""Cancelable delayed callbacks used by the realtime client."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol


class ScheduledTask:
    """Handle for a callback scheduled to run after ``delay`` seconds."""

    def __init__(self, delay: float, handle: asyncio.TimerHandle | None = None) -> None:
        self.delay = delay
        self._handle = handle
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Prevent the callback from running; calling it again does nothing."""

        if self._cancelled:
            return
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask: ...


class LoopScheduler:
    """Schedule callbacks on the running asyncio event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        loop = asyncio.get_running_loop()
        return ScheduledTask(delay, loop.call_later(delay, callback))


__all__ = ["LoopScheduler", "ScheduledTask", "Scheduler"]
