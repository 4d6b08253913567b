"""
Infrastructure Layer - Diagnostic index and file system watching.
"""

from todoscan.infrastructure.diagnostic_store import DiagnosticStore, RenameOutcome
from todoscan.infrastructure.fakes import FakeFileWatcher, InMemoryFileSource
from todoscan.infrastructure.file_watcher import (
    FileWatcher,
    FileWatcherInterface,
    LifecycleEventHandler,
)

__all__ = [
    # Diagnostic index
    "DiagnosticStore",
    "RenameOutcome",
    # File watcher
    "FileWatcherInterface",
    "FileWatcher",
    "LifecycleEventHandler",
    # Fakes
    "FakeFileWatcher",
    "InMemoryFileSource",
]
