"""
Workspace file enumeration and reading.

Walks a workspace directory yielding the files of the monitored set, and
reads file content as raw bytes for the scan engine.
"""

import fnmatch
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Protocol

from todoscan.core.monitored_set import MonitoredSet

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


class FileReadError(OSError):
    """Raised when a file's content cannot be read for scanning."""

    def __init__(self, path: Path | str, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}")


class FileSource(Protocol):
    """What the diagnostics service needs from its host's file system."""

    def iter_files(self, root: Path) -> Iterator[Path]:
        """Yield every monitored file under ``root``."""
        ...

    def read_bytes(self, path: Path) -> bytes:
        """Read a file's full content, raising FileReadError on failure."""
        ...


def read_file_bytes(path: Path | str, max_file_size: int = DEFAULT_MAX_FILE_SIZE) -> bytes:
    """
    Read a file's full content as bytes.

    Args:
        path: File to read
        max_file_size: Files larger than this are refused

    Raises:
        FileReadError: If the file is missing, unreadable, or too large
    """
    path = Path(path)
    try:
        size = path.stat().st_size
        if size > max_file_size:
            raise FileReadError(path, f"file too large ({size} bytes)")
        return path.read_bytes()
    except FileReadError:
        raise
    except FileNotFoundError:
        raise FileReadError(path, "file not found") from None
    except IsADirectoryError:
        raise FileReadError(path, "is a directory") from None
    except PermissionError as e:
        raise FileReadError(path, f"permission denied ({e.strerror})") from None
    except OSError as e:
        raise FileReadError(path, str(e)) from None


class FileWalker:
    """
    Recursive directory walker for the monitored set.

    Provides:
    - Glob filtering through a MonitoredSet
    - Ignore patterns matched against directory and file names
    - Cycle-safe symlink handling (symlinks skipped unless followed)
    - Graceful error handling for unreadable directories
    """

    def __init__(
        self,
        monitored: MonitoredSet,
        ignore_patterns: list[str] | None = None,
        follow_symlinks: bool = False,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    ):
        """
        Initialize the walker.

        Args:
            monitored: Predicate selecting the files to yield
            ignore_patterns: fnmatch patterns for names to skip entirely
            follow_symlinks: Whether to follow symlinked files and directories
            max_file_size: Size limit applied by read_bytes
        """
        self._monitored = monitored
        self._ignore_patterns = list(ignore_patterns or [])
        self._follow_symlinks = follow_symlinks
        self._max_file_size = max_file_size

    @property
    def monitored(self) -> MonitoredSet:
        """The monitored-set predicate."""
        return self._monitored

    def _is_ignored(self, path: Path) -> bool:
        return any(fnmatch.fnmatch(path.name, p) for p in self._ignore_patterns)

    def iter_files(self, root: Path) -> Iterator[Path]:
        """
        Yield monitored files under ``root`` in a stable order.

        Args:
            root: Workspace root directory
        """
        root = Path(root).resolve()
        if not root.is_dir():
            logger.error(f"Workspace root is not a directory: {root}")
            return

        yield from self._walk(root, set())

    def _walk(self, directory: Path, visited: set[Path]) -> Iterator[Path]:
        try:
            real_path = directory.resolve()
            if real_path in visited:
                logger.debug(f"Skipping recursive cycle: {directory} -> {real_path}")
                return
            visited.add(real_path)
            entries = sorted(directory.iterdir(), key=lambda p: (not p.is_dir(), p.name))
        except PermissionError as e:
            logger.warning(f"Permission denied accessing directory: {directory} - {e}")
            return
        except OSError as e:
            logger.warning(f"Error accessing directory: {directory} - {e}")
            return

        for entry in entries:
            if entry.is_symlink() and not self._follow_symlinks:
                logger.debug(f"Skipping symlink (follow_symlinks=False): {entry}")
                continue
            if self._is_ignored(entry):
                logger.debug(f"Ignoring: {entry}")
                continue

            if entry.is_dir():
                yield from self._walk(entry, visited)
            elif entry.is_file() and self._monitored.matches(entry):
                yield entry

        visited.discard(real_path)

    def read_bytes(self, path: Path) -> bytes:
        """
        Read a file for scanning.

        Raises:
            FileReadError: If the file cannot be read
        """
        return read_file_bytes(path, self._max_file_size)
