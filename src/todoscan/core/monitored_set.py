"""
Monitored-set predicate.

Decides whether a path belongs to the set of files whose findings are
reported, using a gitwildmatch-style glob (e.g. "**/*.rs").
"""

import logging
from pathlib import Path, PurePath

import pathspec

logger = logging.getLogger(__name__)


class MonitoredSet:
    """
    Glob-based membership test for workspace files.

    Paths under ``root`` are matched relative to it; other paths are
    matched as given. The predicate is only consulted when deciding
    whether to scan or keep an entry, never inside the scan engine.
    """

    def __init__(self, glob_pattern: str, root: Path | str | None = None):
        """
        Initialize the monitored set.

        Args:
            glob_pattern: Glob selecting monitored files
            root: Workspace root that relative matching is anchored to
        """
        self._glob_pattern = glob_pattern
        self._root = Path(root).resolve() if root is not None else None
        self._spec = pathspec.PathSpec.from_lines(
            pathspec.patterns.GitWildMatchPattern, [glob_pattern]
        )

    @property
    def glob_pattern(self) -> str:
        """The glob this set was built from."""
        return self._glob_pattern

    @property
    def root(self) -> Path | None:
        """Workspace root, if any."""
        return self._root

    def _relative(self, path: PurePath) -> str:
        """Path string used for matching."""
        if self._root is not None and path.is_absolute():
            try:
                return path.relative_to(self._root).as_posix()
            except ValueError:
                pass
        return path.as_posix()

    def matches(self, path: Path | str) -> bool:
        """Check whether ``path`` belongs to the monitored set."""
        return self._spec.match_file(self._relative(PurePath(path)))

    def __call__(self, path: Path | str) -> bool:
        return self.matches(path)

    def __repr__(self) -> str:
        return f"MonitoredSet({self._glob_pattern!r}, root={self._root!r})"
