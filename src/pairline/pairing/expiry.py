"""Expiry scheduling for pairing sessions.

Each issued code gets one entry in a min-heap keyed by its expiry time.
The ExpiryWorker drains due entries into the store and runs the periodic
sweep that catches anything the heap missed.
"""

import asyncio
import heapq
import logging
import time
from typing import TYPE_CHECKING, Callable, NamedTuple, Optional

if TYPE_CHECKING:
    from pairline.pairing.store import SessionStore

logger = logging.getLogger(__name__)


class ExpiryEntry(NamedTuple):
    expires_at: float
    code: str
    session_id: str


class ExpiryQueue:
    """Min-heap of (expires_at, code, session_id) entries.

    Entries are never removed early. Whoever pops an entry checks the
    session's status before acting on it.
    """

    def __init__(self):
        self._heap: list[ExpiryEntry] = []

    def schedule(self, expires_at: float, code: str, session_id: str) -> None:
        heapq.heappush(self._heap, ExpiryEntry(expires_at, code, session_id))

    def next_due(self) -> Optional[float]:
        """Earliest scheduled expiry time, or None when empty."""
        if not self._heap:
            return None
        return self._heap[0].expires_at

    def pop_due(self, now: float) -> list[ExpiryEntry]:
        """Remove and return every entry with ``expires_at <= now``."""
        due = []
        while self._heap and self._heap[0].expires_at <= now:
            due.append(heapq.heappop(self._heap))
        return due

    def clear(self) -> None:
        self._heap.clear()

    def __len__(self) -> int:
        return len(self._heap)


class ExpiryWorker:
    """Background task that expires due codes and sweeps the store.

    Usage:
        worker = ExpiryWorker(store, sweep_interval=60.0)
        await worker.start()
        ...
        await worker.stop()
    """

    def __init__(
        self,
        store: "SessionStore",
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the worker.

        Args:
            store: Session store whose expiry queue is drained.
            sweep_interval: Upper bound on the time between wakeups and
                the period of the full sweep.
            clock: Time source.
        """
        self._store = store
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._last_sweep = clock()
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the expiry loop."""
        if self._running:
            return

        self._running = True
        self._last_sweep = self._clock()
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Expiry worker started (sweep_interval={self._sweep_interval}s)")

    async def stop(self) -> None:
        """Stop the expiry loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Expiry worker stopped")

    def next_delay(self) -> float:
        """Seconds until the next due expiry or sweep, whichever is sooner."""
        now = self._clock()
        delay = self._last_sweep + self._sweep_interval - now
        next_due = self._store.expiry_queue.next_due()
        if next_due is not None:
            delay = min(delay, next_due - now)
        return max(0.0, delay)

    async def tick(self) -> int:
        """Expire due codes, and sweep if the interval has elapsed.

        Returns:
            Number of pending sessions removed.
        """
        now = self._clock()
        removed = await self._store.process_due(now)

        if now - self._last_sweep >= self._sweep_interval:
            self._last_sweep = now
            swept = await self._store.sweep(now)
            if swept:
                logger.info(f"Sweep cleaned {swept} expired codes")
            removed += swept

        return removed

    async def _loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.next_delay())
                await self.tick()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Expiry loop error: {e}")
