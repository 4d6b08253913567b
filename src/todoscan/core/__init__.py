"""
Core Layer - Keyword matching, buffer scanning, configuration and file events.
"""

from todoscan.core.config import (
    LoggingConfig,
    ScanConfig,
    TodoscanConfig,
    WatchConfig,
    load_config,
)
from todoscan.core.debouncer import Debouncer
from todoscan.core.file_events import DebouncedBatch, FileEvent, FileEventType
from todoscan.core.file_walker import FileReadError, FileSource, FileWalker
from todoscan.core.findings import Finding, Severity
from todoscan.core.matcher import (
    CaseInsensitiveMatcher,
    CaseSensitiveMatcher,
    KeywordPattern,
    Matcher,
    PatternCompileError,
    compile_pattern,
    compile_patterns,
)
from todoscan.core.monitored_set import MonitoredSet
from todoscan.core.preview import TRUNCATION_MARKER, build_preview
from todoscan.core.scan_engine import ScanEngine, scan_buffer

__all__ = [
    # Config
    "ScanConfig",
    "WatchConfig",
    "LoggingConfig",
    "TodoscanConfig",
    "load_config",
    # Findings
    "Finding",
    "Severity",
    # Pattern compiler
    "KeywordPattern",
    "Matcher",
    "CaseSensitiveMatcher",
    "CaseInsensitiveMatcher",
    "PatternCompileError",
    "compile_pattern",
    "compile_patterns",
    # Scan engine
    "ScanEngine",
    "scan_buffer",
    "build_preview",
    "TRUNCATION_MARKER",
    # Files
    "MonitoredSet",
    "FileSource",
    "FileWalker",
    "FileReadError",
    # Events
    "FileEvent",
    "FileEventType",
    "DebouncedBatch",
    "Debouncer",
]
