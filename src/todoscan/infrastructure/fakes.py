"""
Fake implementations for testing.

Provide in-memory stand-ins for the file system and the file watcher so
services can be exercised without touching disk or starting observers.
"""

from collections.abc import Callable, Iterator
from pathlib import Path

from todoscan.core.file_events import FileEvent, FileEventType
from todoscan.core.file_walker import FileReadError
from todoscan.infrastructure.file_watcher import is_ignored


class InMemoryFileSource:
    """
    In-memory file source.

    Files are held as raw bytes keyed by path. Paths registered through
    ``make_unreadable`` raise FileReadError on read, like a file whose
    permissions were revoked.
    """

    def __init__(self, files: dict[Path | str, bytes | str] | None = None):
        """
        Initialize the fake file source.

        Args:
            files: Initial content by path; str content is UTF-8 encoded
        """
        self._files: dict[Path, bytes] = {}
        self._unreadable: set[Path] = set()
        self.read_calls: list[Path] = []
        for path, content in (files or {}).items():
            self.write(path, content)

    def write(self, path: Path | str, content: bytes | str) -> None:
        """Create or overwrite a file."""
        if isinstance(content, str):
            content = content.encode("utf-8")
        self._files[Path(path)] = content

    def delete(self, path: Path | str) -> None:
        """Delete a file."""
        self._files.pop(Path(path), None)

    def rename(self, old_path: Path | str, new_path: Path | str) -> None:
        """Move a file's content to a new path."""
        self._files[Path(new_path)] = self._files.pop(Path(old_path))

    def make_unreadable(self, path: Path | str) -> None:
        """Make subsequent reads of ``path`` fail."""
        self._unreadable.add(Path(path))

    def iter_files(self, root: Path) -> Iterator[Path]:
        """Yield stored files under ``root``, unreadable ones included."""
        root = Path(root)
        for path in sorted(self._files):
            if path.is_absolute() and root.is_absolute() and not path.is_relative_to(root):
                continue
            yield path
        for path in sorted(self._unreadable - set(self._files)):
            yield path

    def read_bytes(self, path: Path) -> bytes:
        """Return stored content, raising FileReadError like the real reader."""
        path = Path(path)
        self.read_calls.append(path)
        if path in self._unreadable:
            raise FileReadError(path, "permission denied")
        try:
            return self._files[path]
        except KeyError:
            raise FileReadError(path, "file not found") from None


class FakeFileWatcher:
    """
    Fake file watcher for testing.

    Allows manual triggering of file events without actual file system monitoring.
    Implements the same interface as FileWatcher for use in tests.
    """

    def __init__(self, ignore_patterns: list[str] | None = None):
        self._ignore_patterns = ignore_patterns or []
        self._callback: Callable[[FileEvent], None] | None = None
        self._watch_path: Path | None = None
        self._running = False
        self._events: list[FileEvent] = []

    @property
    def watch_path(self) -> Path | None:
        """Directory passed to start(), while running."""
        return self._watch_path

    def start(self, path: Path, callback: Callable[[FileEvent], None]) -> None:
        """Start the fake watcher."""
        if self._running:
            raise RuntimeError("File watcher is already running")

        self._watch_path = Path(path).resolve()
        self._callback = callback
        self._running = True

    def stop(self) -> None:
        """Stop the fake watcher."""
        self._running = False
        self._callback = None
        self._watch_path = None

    def is_running(self) -> bool:
        """Check if the fake watcher is running."""
        return self._running

    def trigger_event(self, event: FileEvent) -> None:
        """
        Manually trigger a file event.

        This is the main testing interface - allows tests to simulate
        file system events without actual file operations. Ignore patterns
        apply as they do in FileWatcher: ignored events are dropped and a
        move across the ignore boundary becomes a create or delete.
        """
        if not self._running:
            raise RuntimeError("File watcher is not running")

        delivered = self._apply_ignore_patterns(event)
        if delivered is None:
            return
        self._events.append(delivered)
        if self._callback is not None:
            self._callback(delivered)

    def _apply_ignore_patterns(self, event: FileEvent) -> FileEvent | None:
        def ignored(path: Path) -> bool:
            return is_ignored(path, self._watch_path, self._ignore_patterns)

        if event.event_type != FileEventType.MOVED or event.old_path is None:
            return None if ignored(event.file_path) else event

        src_ignored = ignored(event.old_path)
        dest_ignored = ignored(event.file_path)
        if src_ignored and dest_ignored:
            return None
        if dest_ignored:
            return FileEvent(FileEventType.DELETED, event.old_path)
        if src_ignored:
            return FileEvent(FileEventType.CREATED, event.file_path)
        return event

    def get_triggered_events(self) -> list[FileEvent]:
        """Get all events that have been triggered."""
        return list(self._events)
