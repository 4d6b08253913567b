"""
File event models for keeping findings in step with the workspace.

Provides data structures for file lifecycle events (save, create,
rename, delete) and batched event collections for debounced processing.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class FileEventType(Enum):
    """Types of file lifecycle events."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    MOVED = "moved"


@dataclass
class FileEvent:
    """
    Represents a single file lifecycle event.

    Attributes:
        event_type: Type of the file event (CREATED, MODIFIED, DELETED, MOVED)
        file_path: Path to the affected file (the new path for MOVED events)
        old_path: Previous path for MOVED events, None otherwise
        timestamp: Unix timestamp when the event occurred
    """

    event_type: FileEventType
    file_path: Path
    old_path: Path | None = None
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        """Ensure paths are Path objects."""
        if isinstance(self.file_path, str):
            self.file_path = Path(self.file_path)
        if isinstance(self.old_path, str):
            self.old_path = Path(self.old_path)


@dataclass
class DebouncedBatch:
    """
    A batch of debounced file events ready for processing.

    Events are merged so that applying the batch (renames and deletions
    together, then rescans of created and modified files) leaves the index
    in the same state as applying the events one by one:
    - Multiple modifications to the same file result in a single entry
    - A create followed by delete cancels both out
    - A create followed by modify results in just a create
    - Renames keep their old path so findings can be reused; chains collapse

    Attributes:
        created: Set of paths for newly created files
        modified: Set of paths for modified (saved) files
        deleted: Set of paths for deleted files
        moved: Renames still eligible for reuse, mapping new path to old path
    """

    created: set[Path] = field(default_factory=set)
    modified: set[Path] = field(default_factory=set)
    deleted: set[Path] = field(default_factory=set)
    moved: dict[Path, Path] = field(default_factory=dict)

    def is_empty(self) -> bool:
        """Check if the batch contains no events."""
        return not (self.created or self.modified or self.deleted or self.moved)

    def _retire(self, path: Path) -> None:
        # The pre-batch entry of path must go; a pending rescan replaces it
        if path in self.created:
            # A later delete must not cancel out silently
            self.created.discard(path)
            self.modified.add(path)
        elif path not in self.modified:
            self.deleted.add(path)

    def _add_created(self, path: Path) -> None:
        # A file deleted earlier in the batch and now back is a modification
        if path in self.moved:
            self._retire(self.moved.pop(path))
            self.deleted.discard(path)
            self.modified.add(path)
        elif path in self.deleted:
            self.deleted.discard(path)
            self.modified.add(path)
        elif path not in self.created and path not in self.modified:
            self.created.add(path)

    def _add_deleted(self, path: Path) -> None:
        if path in self.moved:
            # The renamed file is gone; only its original path had an entry
            self._retire(self.moved.pop(path))
            self.deleted.add(path)
        elif path in self.created:
            self.created.discard(path)
        else:
            self.modified.discard(path)
            self.deleted.add(path)
        self._clear_beneath(path)

    def _clear_beneath(self, path: Path) -> None:
        # A deleted directory drops its whole subtree from the index
        for new_path in [p for p in self.moved if path in p.parents]:
            self._retire(self.moved.pop(new_path))
        for pending in (self.created, self.modified, self.deleted):
            pending.difference_update([p for p in pending if path in p.parents])

    def merge(self, event: FileEvent) -> None:
        """
        Merge a single event into this batch with intelligent deduplication.

        Merge rules:
        - CREATED: Add to created set (or modified, if deleted earlier)
        - MODIFIED: Add to modified set (unless in created set); a saved
          rename target can no longer reuse findings
        - DELETED: Remove from created/modified/moved, add to deleted;
          pending events beneath a deleted directory are dropped with it
        - MOVED: Record old -> new when the old path's findings are still
          valid, otherwise treat as delete of old_path + modify of new path

        Args:
            event: The file event to merge into this batch
        """
        path = event.file_path

        if event.event_type == FileEventType.CREATED:
            self._add_created(path)

        elif event.event_type == FileEventType.MODIFIED:
            if path in self.moved:
                self._retire(self.moved.pop(path))
                self.deleted.discard(path)
                self.modified.add(path)
            elif path in self.deleted:
                self.deleted.discard(path)
                self.modified.add(path)
            elif path not in self.created:
                self.modified.add(path)

        elif event.event_type == FileEventType.DELETED:
            self._add_deleted(path)

        elif event.event_type == FileEventType.MOVED:
            old_path = event.old_path
            if old_path is None or old_path == path:
                self._add_created(path)
                return

            self.deleted.discard(path)
            self.created.discard(path)
            self.modified.discard(path)
            if path in self.moved:
                # The file previously renamed onto this path is overwritten
                self._retire(self.moved.pop(path))

            if old_path in self.moved:
                # Rename chain: a -> b then b -> c is a -> c
                origin = self.moved.pop(old_path)
                self.deleted.add(old_path)
                if origin != path:
                    self.moved[path] = origin
            elif old_path in self.created or old_path in self.modified:
                # Old findings are stale or missing; scan the new path instead
                self.created.discard(old_path)
                self.modified.discard(old_path)
                self.deleted.add(old_path)
                # path may have replaced an indexed file
                self.modified.add(path)
            else:
                self.deleted.discard(old_path)
                self.moved[path] = old_path

    def total_count(self) -> int:
        """Return total number of events in the batch."""
        return len(self.created) + len(self.modified) + len(self.deleted) + len(self.moved)

    def clear(self) -> None:
        """Clear all events from the batch."""
        self.created.clear()
        self.modified.clear()
        self.deleted.clear()
        self.moved.clear()

    def copy(self) -> "DebouncedBatch":
        """Create a copy of this batch."""
        return DebouncedBatch(
            created=set(self.created),
            modified=set(self.modified),
            deleted=set(self.deleted),
            moved=dict(self.moved),
        )

