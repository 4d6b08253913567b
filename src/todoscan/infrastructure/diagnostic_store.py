"""
In-memory diagnostic index.

Maps each file path to the findings currently reported for it. A file
with no findings is absent from the index; it is never stored with an
empty sequence.
"""

import logging
import threading
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import replace
from enum import Enum
from pathlib import Path

from todoscan.core.findings import Finding

logger = logging.getLogger(__name__)

PathLike = Path | str
FileEntry = tuple[Finding, ...]


class RenameOutcome(Enum):
    """What reuse_on_rename did with a renamed file."""

    REUSED = "reused"
    RESCAN_REQUIRED = "rescan_required"
    DROPPED = "dropped"


def _key(path: PathLike) -> str:
    return str(path)


class DiagnosticStore:
    """
    Process-wide index of findings, keyed by file path.

    All operations are atomic with respect to each other; concurrent
    scans may call them from several threads.
    """

    def __init__(self) -> None:
        self._entries: dict[str, FileEntry] = {}
        self._lock = threading.Lock()

    def _set(self, key: str, findings: Sequence[Finding] | None) -> None:
        # Caller holds the lock
        if findings:
            self._entries[key] = tuple(findings)
        else:
            self._entries.pop(key, None)

    def replace_all(self, entries: Iterable[tuple[PathLike, Sequence[Finding] | None]]) -> None:
        """
        Clear the index, then install the given entries.

        Entries without findings are skipped.

        Args:
            entries: (path, findings) pairs from a full rescan
        """
        with self._lock:
            self._entries.clear()
            for path, findings in entries:
                self._set(_key(path), findings)
            total = len(self._entries)
        logger.debug("Replaced diagnostic index", extra={"files_with_findings": total})

    def replace_file(self, path: PathLike, findings: Sequence[Finding] | None) -> None:
        """
        Set a file's findings, or remove its entry when there are none.

        Args:
            path: File path
            findings: Findings from scanning the file, or None
        """
        with self._lock:
            self._set(_key(path), findings)

    def remove_file(self, path: PathLike) -> FileEntry | None:
        """
        Remove a file's entry.

        Returns:
            The removed findings, or None if the file had no entry
        """
        with self._lock:
            return self._entries.pop(_key(path), None)

    def reuse_on_rename(
        self,
        old_path: PathLike,
        new_path: PathLike,
        is_monitored: Callable[[PathLike], bool],
    ) -> RenameOutcome:
        """
        Reflect a rename whose content is assumed unchanged.

        The old path's entry is always removed. If both paths are monitored,
        its findings move to the new path without rescanning (an old path
        without an entry leaves the new path without one too). If only the
        new path is monitored the caller must scan it. If the new path is
        not monitored nothing is installed.

        Args:
            old_path: Path before the rename
            new_path: Path after the rename
            is_monitored: Monitored-set predicate

        Returns:
            What happened to the new path
        """
        return self.apply_renames({new_path: old_path}, is_monitored)[_key(new_path)]

    def apply_renames(
        self,
        renames: Mapping[PathLike, PathLike],
        is_monitored: Callable[[PathLike], bool],
        removed: Iterable[PathLike] = (),
    ) -> dict[str, RenameOutcome]:
        """
        Reflect renames that happened together, as reuse_on_rename does for one.

        Every old entry is taken out before any new one is installed, so
        swaps and cycles (a -> b, b -> a) carry the right findings. Entries
        of ``removed`` paths are dropped in between; a removed directory
        takes every entry beneath it along.

        Args:
            renames: Mapping of new path to old path
            is_monitored: Monitored-set predicate
            removed: Deleted paths

        Returns:
            Outcome per new path, keyed like the index
        """
        outcomes: dict[str, RenameOutcome] = {}
        with self._lock:
            taken = [
                (new_path, old_path, self._entries.pop(_key(old_path), None))
                for new_path, old_path in renames.items()
            ]
            self._drop_trees({_key(path) for path in removed})

            for new_path, old_path, previous in taken:
                new_key = _key(new_path)
                if not is_monitored(new_path):
                    outcome = RenameOutcome.DROPPED
                elif is_monitored(old_path):
                    relocated = (
                        tuple(replace(f, file_path=new_key) for f in previous)
                        if previous
                        else None
                    )
                    self._set(new_key, relocated)
                    outcome = RenameOutcome.REUSED
                else:
                    outcome = RenameOutcome.RESCAN_REQUIRED
                outcomes[new_key] = outcome

        for new_path, old_path in renames.items():
            outcome = outcomes[_key(new_path)]
            logger.debug(
                "Rename %s -> %s: %s",
                old_path,
                new_path,
                outcome.value,
                extra={
                    "old_path": str(old_path),
                    "new_path": str(new_path),
                    "outcome": outcome.value,
                },
            )
        return outcomes

    def _drop_trees(self, roots: set[str]) -> None:
        if not roots:
            return
        for key in list(self._entries):
            if key in roots or any(str(parent) in roots for parent in Path(key).parents):
                del self._entries[key]

    def get(self, path: PathLike) -> FileEntry | None:
        """Get a file's findings, or None if it has no entry."""
        with self._lock:
            return self._entries.get(_key(path))

    def paths(self) -> list[str]:
        """Paths with findings, sorted."""
        with self._lock:
            return sorted(self._entries)

    def snapshot(self) -> dict[str, FileEntry]:
        """Copy of the whole index."""
        with self._lock:
            return dict(self._entries)

    def total_findings(self) -> int:
        """Number of findings across all files."""
        with self._lock:
            return sum(len(f) for f in self._entries.values())

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        with self._lock:
            return _key(path) in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.paths())
