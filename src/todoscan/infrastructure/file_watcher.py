"""
File watcher infrastructure component.

Subscribes to file lifecycle notifications using the watchdog library and
turns them into FileEvent objects:
- created, modified (save), deleted and moved (rename) files
- directory events are dropped, except deletions, which clear the subtree
- ignore patterns (fnmatch) drop noise such as .git or build output

Whether a path is monitored is not decided here; the diagnostics service
applies the monitored-set predicate so that renames out of the set can
still clear stale entries.
"""

import fnmatch
import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from todoscan.core.file_events import FileEvent, FileEventType

logger = logging.getLogger(__name__)

EventCallback = Callable[[FileEvent], None]


class FileWatcherInterface(Protocol):
    """Protocol for file watcher implementations."""

    def start(self, path: Path, callback: EventCallback) -> None:
        """
        Start watching the specified directory.

        Args:
            path: Directory path to watch
            callback: Function to call when file events occur
        """
        ...

    def stop(self) -> None:
        """Stop watching and release resources."""
        ...

    def is_running(self) -> bool:
        """Check if the watcher is currently running."""
        ...


def is_ignored(path: Path, root: Path, ignore_patterns: list[str]) -> bool:
    """
    Check a path against ignore patterns.

    A pattern matches the file name, the path relative to ``root``, or any
    single component of that relative path.
    """
    try:
        rel_path = path.relative_to(root)
    except ValueError:
        rel_path = path

    rel_str = rel_path.as_posix()
    for pattern in ignore_patterns:
        if fnmatch.fnmatch(path.name, pattern) or fnmatch.fnmatch(rel_str, pattern):
            return True
        if any(fnmatch.fnmatch(part, pattern) for part in rel_path.parts):
            return True
    return False


class FileWatcher(FileWatcherInterface):
    """
    File system watcher implementation using watchdog.

    Events are delivered on watchdog's observer thread; callers that live
    on an event loop must hop back onto it themselves.
    """

    def __init__(self, ignore_patterns: list[str] | None = None):
        """
        Initialize the file watcher.

        Args:
            ignore_patterns: fnmatch patterns whose events are dropped
        """
        self._ignore_patterns = list(ignore_patterns or [])
        self._observer: Observer | None = None
        self._callback: EventCallback | None = None
        self._watch_path: Path | None = None
        self._lock = threading.Lock()

    def start(self, path: Path, callback: EventCallback) -> None:
        """
        Start watching the specified directory recursively.

        Raises:
            ValueError: If path doesn't exist or isn't a directory
            RuntimeError: If watcher is already running
        """
        with self._lock:
            if self._observer is not None and self._observer.is_alive():
                raise RuntimeError("File watcher is already running")

            path = Path(path).resolve()
            if not path.exists():
                raise ValueError(f"Path does not exist: {path}")
            if not path.is_dir():
                raise ValueError(f"Path is not a directory: {path}")

            self._watch_path = path
            self._callback = callback

            handler = LifecycleEventHandler(
                callback=self._forward,
                root_path=path,
                ignore_patterns=self._ignore_patterns,
            )
            self._observer = Observer()
            self._observer.schedule(handler, str(path), recursive=True)
            self._observer.start()

            logger.info(f"Started watching: {path}")

    def stop(self) -> None:
        """Stop watching and release resources."""
        with self._lock:
            if self._observer is not None:
                self._observer.stop()
                self._observer.join(timeout=5.0)
                self._observer = None
                logger.info(f"Stopped watching: {self._watch_path}")
            self._callback = None
            self._watch_path = None

    def is_running(self) -> bool:
        """Check if the watcher is currently running."""
        with self._lock:
            return self._observer is not None and self._observer.is_alive()

    def _forward(self, event: FileEvent) -> None:
        callback = self._callback
        if callback is None:
            return
        try:
            callback(event)
        except Exception as e:
            logger.error(f"Error in file event callback: {e}", exc_info=True)


class LifecycleEventHandler(FileSystemEventHandler):
    """
    Converts watchdog events into FileEvent objects.

    Kept public so it can be driven directly with watchdog event objects.
    """

    def __init__(
        self,
        callback: EventCallback,
        root_path: Path,
        ignore_patterns: list[str] | None = None,
    ):
        super().__init__()
        self._callback = callback
        self._root_path = root_path
        self._ignore_patterns = list(ignore_patterns or [])

    def _ignored(self, path: Path) -> bool:
        if is_ignored(path, self._root_path, self._ignore_patterns):
            logger.debug(f"Ignoring event for: {path}")
            return True
        return False

    def _emit(
        self,
        event_type: FileEventType,
        file_path: Path,
        old_path: Path | None = None,
    ) -> None:
        event = FileEvent(event_type=event_type, file_path=file_path, old_path=old_path)
        logger.debug(f"Emitting event: {event_type.value} - {file_path}")
        self._callback(event)

    @staticmethod
    def _path(raw: str | bytes) -> Path:
        return Path(raw.decode() if isinstance(raw, bytes) else raw)

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle file creation events."""
        if event.is_directory:
            return
        path = self._path(event.src_path)
        if not self._ignored(path):
            self._emit(FileEventType.CREATED, path)

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle file modification (save) events."""
        if event.is_directory:
            return
        path = self._path(event.src_path)
        if not self._ignored(path):
            self._emit(FileEventType.MODIFIED, path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        """
        Handle deletion events.

        A directory that is removed or moved out of the watched tree arrives
        as a single event, so it is forwarded and the index drops everything
        beneath it.
        """
        path = self._path(event.src_path)
        if not self._ignored(path):
            self._emit(FileEventType.DELETED, path)

    def on_moved(self, event: FileSystemEvent) -> None:
        """
        Handle rename events.

        A move out of ignored territory into watched territory becomes a
        creation; the reverse becomes a deletion.
        """
        if event.is_directory:
            return

        src_path = self._path(event.src_path)
        dest_path = self._path(event.dest_path)
        src_ignored = self._ignored(src_path)
        dest_ignored = self._ignored(dest_path)

        if src_ignored and dest_ignored:
            return
        if dest_ignored:
            self._emit(FileEventType.DELETED, src_path)
        elif src_ignored:
            self._emit(FileEventType.CREATED, dest_path)
        else:
            self._emit(FileEventType.MOVED, dest_path, old_path=src_path)
