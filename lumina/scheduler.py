from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None:  # pragma: no cover
        ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:  # pragma: no cover
        ...


class AsyncioScheduler:
    """Schedules callbacks on the running event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class TimerArena:
    """Owns every outstanding timer of one session controller, by name.

    Scheduling a name that is already pending cancels the earlier handle. A fired
    timer forgets its handle before running the callback, so the callback may
    re-schedule itself under the same name.
    """

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler
        self._handles: dict[str, TimerHandle] = {}

    def schedule(self, name: str, delay: float, callback: Callable[[], None]) -> None:
        self.cancel(name)

        handle: TimerHandle | None = None

        def fire() -> None:
            if self._handles.get(name) is not handle:
                return
            self._handles.pop(name, None)
            callback()

        handle = self._scheduler.call_later(delay, fire)
        self._handles[name] = handle

    def pending(self, name: str) -> bool:
        return name in self._handles

    def cancel(self, name: str) -> None:
        handle = self._handles.pop(name, None)
        if handle is not None:
            handle.cancel()

    def cancel_all(self) -> None:
        if self._handles:
            logger.debug("Cancelling timers: %s", sorted(self._handles))
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
