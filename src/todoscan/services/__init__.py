"""
Services Layer - Index maintenance and continuous watching.
"""

from todoscan.services.diagnostics_models import ScanResult
from todoscan.services.diagnostics_service import DiagnosticsService
from todoscan.services.watch_service import (
    PathValidationError,
    WatchService,
    WatchServiceError,
    WatchStats,
)

__all__ = [
    "DiagnosticsService",
    "ScanResult",
    "WatchService",
    "WatchStats",
    "WatchServiceError",
    "PathValidationError",
]
