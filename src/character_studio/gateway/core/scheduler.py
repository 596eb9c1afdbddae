"""
Clock and delayed-callback scheduling.

The simulated training job completes after a fixed delay. Handlers never
sleep themselves; they ask a Scheduler to run a callback later, so tests
can substitute a manually advanced clock.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Awaitable, Callable, Set

from loguru import logger

Callback = Callable[[], Awaitable[None]]


class Clock(ABC):
    """Source of the current time."""

    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware UTC."""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ScheduledHandle(ABC):
    """Handle returned by Scheduler.call_later."""

    @abstractmethod
    def cancel(self) -> None:
        """Prevent the callback from running if it has not started yet."""


class Scheduler(ABC):
    """Runs async callbacks after a delay."""

    @abstractmethod
    def call_later(self, delay_seconds: float, callback: Callback) -> ScheduledHandle:
        """Schedule ``callback`` to run once after ``delay_seconds``."""

    async def shutdown(self) -> None:
        """Cancel anything still pending."""


class _TaskHandle(ScheduledHandle):
    def __init__(self, task: asyncio.Task):
        self.task = task

    def cancel(self) -> None:
        self.task.cancel()


class AsyncioScheduler(Scheduler):
    """Scheduler backed by tasks on the running event loop."""

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def call_later(self, delay_seconds: float, callback: Callback) -> ScheduledHandle:
        task = asyncio.create_task(self._run(delay_seconds, callback))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return _TaskHandle(task)

    async def _run(self, delay_seconds: float, callback: Callback) -> None:
        await asyncio.sleep(delay_seconds)
        try:
            await callback()
        except Exception:
            logger.exception("Scheduled callback failed")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def shutdown(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Cancelled {len(tasks)} scheduled task(s)")
