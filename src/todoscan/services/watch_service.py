"""
Watch Service for keeping the diagnostic index current while files change.

Connects a file watcher to the DiagnosticsService through a Debouncer:
the workspace is scanned once at start, then each debounced batch of
lifecycle events is applied incrementally.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from todoscan.core.config import WatchConfig
from todoscan.core.debouncer import Debouncer
from todoscan.core.file_events import DebouncedBatch, FileEvent
from todoscan.infrastructure.file_watcher import FileWatcherInterface
from todoscan.services.diagnostics_service import DiagnosticsService

logger = logging.getLogger(__name__)


@dataclass
class WatchStats:
    """Counters for the watch service, reported when it stops."""

    started_at: datetime = field(default_factory=datetime.now)
    events_received: int = 0
    updates_triggered: int = 0
    last_update_at: datetime | None = None
    last_update_duration_ms: float = 0.0
    errors: int = 0

    def to_dict(self) -> dict:
        """Serialize stats to dictionary for JSON reporting."""
        return {
            "started_at": self.started_at.isoformat(),
            "events_received": self.events_received,
            "updates_triggered": self.updates_triggered,
            "last_update_at": (
                self.last_update_at.isoformat() if self.last_update_at else None
            ),
            "last_update_duration_ms": self.last_update_duration_ms,
            "errors": self.errors,
        }


class WatchServiceError(Exception):
    """Base exception for watch service errors."""

    pass


class PathValidationError(WatchServiceError):
    """Raised when the watch path is missing or not a directory."""

    pass


class WatchService:
    """
    Applies file lifecycle events to the diagnostic index as they happen.

    Watcher callbacks arrive on the watcher's thread and are handed to the
    event loop the service was started on. Batches are applied one at a
    time; batches that become ready during an update are queued and
    applied afterwards, one by one in order.
    """

    def __init__(
        self,
        diagnostics_service: DiagnosticsService,
        file_watcher: FileWatcherInterface,
        config: WatchConfig,
    ):
        """
        Initialize the watch service.

        Args:
            diagnostics_service: Service that owns the diagnostic index
            file_watcher: File system watcher implementation
            config: Watch configuration
        """
        self._diagnostics_service = diagnostics_service
        self._file_watcher = file_watcher
        self._config = config
        self._debouncer: Debouncer | None = None
        self._stats = WatchStats()
        self._running = False
        self._update_lock = asyncio.Lock()
        self._update_in_progress = False
        self._queued_batches: list[DebouncedBatch] = []
        self._event_loop: asyncio.AbstractEventLoop | None = None

    @property
    def config(self) -> WatchConfig:
        """Get the watch configuration."""
        return self._config

    async def start(self) -> None:
        """
        Scan the workspace and begin watching it.

        Raises:
            PathValidationError: If the path doesn't exist or isn't a directory
            WatchServiceError: If the service is already running
        """
        if self._running:
            raise WatchServiceError("Watch service is already running")

        watch_path = self._config.watch_path.resolve()
        self._validate_path(watch_path)

        logger.info(
            f"Starting watch service for: {watch_path}",
            extra={
                "watch_path": str(watch_path),
                "debounce_ms": self._config.debounce_ms,
            },
        )

        self._event_loop = asyncio.get_running_loop()
        await self._diagnostics_service.update_workspace(watch_path)

        self._debouncer = Debouncer(
            delay_ms=self._config.debounce_ms,
            on_batch_ready=self._on_batch_ready,
        )
        self._stats = WatchStats()
        self._running = True
        try:
            self._file_watcher.start(watch_path, self._on_file_event_sync)
        except (OSError, ValueError, RuntimeError) as e:
            self._running = False
            self._debouncer = None
            self._event_loop = None
            raise WatchServiceError(f"Could not start file watcher: {e}") from e

        logger.info(
            "Watch service started",
            extra={
                "watch_path": str(watch_path),
                "config": self._config.to_dict(),
            },
        )

    async def stop(self) -> None:
        """
        Stop the watch service gracefully.

        Waits for an in-progress update, applies pending events and
        releases the file watcher.
        """
        if not self._running:
            logger.debug("Watch service is not running, nothing to stop")
            return

        logger.info("Stopping watch service...")

        self._file_watcher.stop()

        async with self._update_lock:
            pass

        if self._debouncer and self._debouncer.has_pending():
            logger.debug("Flushing pending events before shutdown")
            await self._debouncer.flush()

        self._running = False
        self._debouncer = None
        self._event_loop = None

        logger.info(
            "Watch service stopped",
            extra={"stats": self._stats.to_dict()},
        )

    def is_running(self) -> bool:
        """Check if the watch service is currently running."""
        return self._running

    def get_stats(self) -> WatchStats:
        """Get current watch statistics."""
        return self._stats

    def get_pending_count(self) -> int:
        """Get the number of pending events waiting to be processed."""
        if self._debouncer:
            return self._debouncer.get_pending_count()
        return 0

    def _validate_path(self, path: Path) -> None:
        if not path.exists():
            raise PathValidationError(f"Path does not exist: {path}")

        if not path.is_dir():
            raise PathValidationError(f"Path is not a directory: {path}")

    def _on_file_event_sync(self, event: FileEvent) -> None:
        """
        Synchronous callback for file events from the watcher thread.

        Schedules the async handler on the service's event loop.
        """
        loop = self._event_loop
        if loop is None or not self._running or loop.is_closed():
            return

        asyncio.run_coroutine_threadsafe(self._on_file_event(event), loop)

    async def _on_file_event(self, event: FileEvent) -> None:
        """Log the event at DEBUG level and hand it to the debouncer."""
        if not self._running:
            return

        self._stats.events_received += 1

        logger.debug(
            "File change detected: %s - %s",
            event.event_type.value,
            event.file_path,
            extra={
                "event_type": event.event_type.value,
                "file_path": str(event.file_path),
                "old_path": str(event.old_path) if event.old_path else None,
                "timestamp": event.timestamp,
            },
        )

        if self._debouncer:
            await self._debouncer.add_event(event)

    async def _on_batch_ready(self, batch: DebouncedBatch) -> None:
        """
        Apply a debounced batch, or queue it while an update is running.

        Args:
            batch: The batch of debounced events
        """
        if batch.is_empty():
            return

        if self._update_in_progress:
            logger.debug(
                "Update in progress, queueing batch for next cycle",
                extra={"batch_size": batch.total_count()},
            )
            self._queued_batches.append(batch.copy())
            return

        await self._process_batch(batch)

        # Batches are applied in the order they became ready
        while self._queued_batches:
            await self._process_batch(self._queued_batches.pop(0))

    async def _process_batch(self, batch: DebouncedBatch) -> None:
        """
        Apply one batch to the index.

        Errors are logged with context and counted; watching continues.
        """
        async with self._update_lock:
            self._update_in_progress = True
            total_changes = batch.total_count()
            start_time = time.time()

            try:
                logger.info(
                    "Applying %d pending changes",
                    total_changes,
                    extra={
                        "created_count": len(batch.created),
                        "modified_count": len(batch.modified),
                        "deleted_count": len(batch.deleted),
                        "moved_count": len(batch.moved),
                        "total_changes": total_changes,
                        "watch_path": str(self._config.watch_path),
                    },
                )

                result = await self._diagnostics_service.apply_batch(batch)

                duration_ms = (time.time() - start_time) * 1000
                self._stats.updates_triggered += 1
                self._stats.last_update_at = datetime.now()
                self._stats.last_update_duration_ms = duration_ms

                logger.info(
                    "Index update completed in %.2fms",
                    duration_ms,
                    extra={
                        "duration_ms": duration_ms,
                        "rescanned_files": result.rescanned_files,
                        "deleted_files": result.deleted_files,
                        "renamed_files": result.renamed_files,
                        "reused_files": result.reused_files,
                        "failed_files": len(result.failed_files),
                        "total_findings": result.total_findings,
                        "updates_triggered_total": self._stats.updates_triggered,
                    },
                )

            except Exception as e:
                self._stats.errors += 1
                duration_ms = (time.time() - start_time) * 1000

                logger.error(
                    "Error during index update: %s",
                    str(e),
                    extra={
                        "error": str(e),
                        "error_type": type(e).__name__,
                        "duration_ms": duration_ms,
                        "watch_path": str(self._config.watch_path),
                        "pending_changes": total_changes,
                        "errors_total": self._stats.errors,
                    },
                    exc_info=True,
                )

            finally:
                self._update_in_progress = False
