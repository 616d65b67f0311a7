"""Deferred retry scheduling for the link connection."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol

logger = logging.getLogger(__name__)

RetryCallback = Callable[[], Awaitable[None]]


class Scheduler(Protocol):
    """Protocol for retry schedulers."""

    def schedule(self, delay: float, callback: RetryCallback) -> None:
        """Run ``callback`` once, ``delay`` seconds from now."""
        ...

    def cancel_all(self) -> None:
        """Drop every pending callback."""
        ...


class RetryScheduler:
    """Runs async callbacks after a delay on the running event loop."""

    def __init__(self):
        self._handles: set[asyncio.TimerHandle] = set()
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of callbacks waiting for their delay to elapse."""
        return len(self._handles)

    def schedule(self, delay: float, callback: RetryCallback) -> None:
        loop = asyncio.get_running_loop()
        handle: Optional[asyncio.TimerHandle] = None

        def fire() -> None:
            self._handles.discard(handle)
            task = loop.create_task(self._run(callback))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        handle = loop.call_later(delay, fire)
        self._handles.add(handle)
        logger.debug(f"Retry scheduled in {delay}s")

    async def _run(self, callback: RetryCallback) -> None:
        try:
            await callback()
        except Exception as e:
            logger.error(f"Scheduled retry failed: {e}")

    def cancel_all(self) -> None:
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()
        for task in self._tasks:
            task.cancel()
        self._tasks.clear()
