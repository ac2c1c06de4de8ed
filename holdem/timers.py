from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

LOGGER = logging.getLogger("holdem_timers")


class TimerHandle(Protocol):
    def cancel(self) -> bool:
        ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class TaskScheduler:
    """Runs each delayed callback in its own asyncio task.

    Must be used from inside a running event loop. Cancelling the returned
    task before the delay elapses means the callback never runs.
    """

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.Task:
        return asyncio.get_running_loop().create_task(self._run(delay, callback))

    async def _run(self, delay: float, callback: Callable[[], None]) -> None:
        await asyncio.sleep(delay)
        try:
            callback()
        except Exception:
            LOGGER.exception("Scheduled callback failed")


@dataclass
class PendingTimer:
    # A table has at most one of these per purpose; generation ties it to a hand.
    seat_id: Optional[str]
    generation: int
    handle: Optional[TimerHandle] = None

    def cancel(self) -> None:
        if self.handle is not None:
            self.handle.cancel()
