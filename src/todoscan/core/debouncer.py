"""
Debouncer for file lifecycle events.

Collects events into a DebouncedBatch and hands the batch over once the
workspace has been quiet for a while, so a burst of saves or a bulk
rename leads to one index update instead of dozens.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from todoscan.core.file_events import DebouncedBatch, FileEvent

logger = logging.getLogger(__name__)

BatchCallback = Callable[[DebouncedBatch], Awaitable[None]]


class Debouncer:
    """
    Async debouncer that batches file events within a quiet window.

    Every event restarts the quiet timer. When ``max_delay_ms`` is set, a
    batch is emitted no later than that long after its first event even
    if events keep arriving.

    Attributes:
        delay_ms: Quiet period in milliseconds before a batch is emitted
        max_delay_ms: Upper bound on how long the first event of a batch waits
    """

    def __init__(
        self,
        delay_ms: int = 2000,
        on_batch_ready: BatchCallback | None = None,
        max_delay_ms: int | None = None,
    ):
        """
        Initialize the debouncer.

        Args:
            delay_ms: Quiet period in milliseconds (default: 2000)
            on_batch_ready: Async callback receiving each emitted batch
            max_delay_ms: Optional cap on batch age in milliseconds
        """
        if delay_ms < 0:
            raise ValueError(f"delay_ms must be non-negative, got {delay_ms}")
        if max_delay_ms is not None and max_delay_ms < delay_ms:
            raise ValueError("max_delay_ms must not be smaller than delay_ms")

        self._delay_ms = delay_ms
        self._max_delay_ms = max_delay_ms
        self._on_batch_ready = on_batch_ready
        self._pending = DebouncedBatch()
        self._first_event_at: float | None = None
        self._timer_task: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()

    @property
    def delay_ms(self) -> int:
        """Get the debounce delay in milliseconds."""
        return self._delay_ms

    @property
    def max_delay_ms(self) -> int | None:
        """Get the maximum batch age in milliseconds, if any."""
        return self._max_delay_ms

    async def add_event(self, event: FileEvent) -> None:
        """
        Merge an event into the pending batch and restart the timer.

        Args:
            event: The file event to add
        """
        async with self._lock:
            self._pending.merge(event)
            if self._first_event_at is None:
                self._first_event_at = time.monotonic()
            await self._cancel_timer()
            self._timer_task = asyncio.create_task(self._wait_and_emit(self._next_delay()))

    def _next_delay(self) -> float:
        """Seconds to wait before emitting, honouring max_delay_ms."""
        delay = self._delay_ms / 1000.0
        if self._max_delay_ms is None or self._first_event_at is None:
            return delay
        age = time.monotonic() - self._first_event_at
        return max(0.0, min(delay, self._max_delay_ms / 1000.0 - age))

    async def _cancel_timer(self) -> None:
        if self._timer_task is not None and not self._timer_task.done():
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass
        self._timer_task = None

    async def _wait_and_emit(self, delay: float) -> None:
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            return
        # Once taken, the batch must be delivered even if a new event
        # cancels this timer
        await asyncio.shield(self._emit(self._take()))

    def _take(self) -> DebouncedBatch:
        batch = self._pending.copy()
        self._pending.clear()
        self._first_event_at = None
        return batch

    async def _emit(self, batch: DebouncedBatch) -> None:
        if batch.is_empty() or self._on_batch_ready is None:
            return
        try:
            await self._on_batch_ready(batch)
        except Exception as e:
            logger.error(
                "Error in batch callback: %s",
                e,
                extra={"batch_size": batch.total_count()},
                exc_info=True,
            )

    async def flush(self) -> DebouncedBatch:
        """
        Emit all pending events now.

        Returns:
            The batch that was pending (may be empty)
        """
        async with self._lock:
            await self._cancel_timer()
            batch = self._take()

        await self._emit(batch)
        return batch

    async def cancel(self) -> DebouncedBatch:
        """
        Drop the pending batch without emitting it.

        Returns:
            The discarded batch
        """
        async with self._lock:
            await self._cancel_timer()
            return self._take()

    def get_pending_count(self) -> int:
        """Get the number of pending entries in the batch."""
        return self._pending.total_count()

    def has_pending(self) -> bool:
        """Check if there are pending events."""
        return not self._pending.is_empty()
