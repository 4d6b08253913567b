"""
Worker functions for parallel workspace scans.

Run in separate processes via ProcessPoolExecutor. Each call touches
only the bytes of one file and the worker's compiled matchers.
"""

import logging
from typing import Optional

from todoscan.core.config import ScanConfig
from todoscan.core.findings import Finding
from todoscan.core.scan_engine import ScanEngine

logger = logging.getLogger(__name__)

# Per-process engine, compiled once by init_worker
_worker_engine: Optional[ScanEngine] = None


def init_worker(config: ScanConfig) -> None:
    """
    Initialize a worker process with its own compiled matchers.

    Args:
        config: Scan configuration snapshot shared by every file of the scan
    """
    global _worker_engine
    _worker_engine = ScanEngine(config)


def scan_file_worker(
    file_path: str, content: bytes
) -> tuple[str, Optional[tuple[Finding, ...]], Optional[str]]:
    """
    Scan one file's content in a worker process.

    Args:
        file_path: Path recorded on the findings
        content: Raw file content

    Returns:
        Tuple of (file_path, findings or None, error message or None)
    """
    try:
        if _worker_engine is None:
            raise RuntimeError("Worker not initialized; call init_worker first")
        return (file_path, _worker_engine.scan(file_path, content), None)
    except Exception as e:
        logger.error(f"Error scanning {file_path}: {e}")
        return (file_path, None, str(e))
