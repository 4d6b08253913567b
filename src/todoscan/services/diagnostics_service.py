"""
Diagnostics Service for todoscan.

Keeps the diagnostic index consistent with the workspace: full rescans,
single-file rescans on save and create, removal on delete, and reuse of
findings when a file is only renamed.

Full rescans scan files in parallel using ProcessPoolExecutor; results
are written to the index in one step once every file has been scanned.
"""

import asyncio
import logging
import time
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from typing import Callable, Optional

from todoscan.core.config import ScanConfig
from todoscan.core.file_events import DebouncedBatch, FileEvent
from todoscan.core.file_walker import FileReadError, FileSource, FileWalker
from todoscan.core.findings import Finding
from todoscan.core.monitored_set import MonitoredSet
from todoscan.core.scan_engine import ScanEngine
from todoscan.infrastructure.diagnostic_store import DiagnosticStore, RenameOutcome
from todoscan.services.diagnostics_models import ScanResult
from todoscan.services.scan_worker import init_worker, scan_file_worker

logger = logging.getLogger(__name__)

Findings = Optional[tuple[Finding, ...]]


class DiagnosticsService:
    """
    Index manager between the host's file events and the DiagnosticStore.

    Scanning is a pure function of a file's bytes and the configuration
    snapshot; only the store is shared state.
    """

    def __init__(
        self,
        store: DiagnosticStore,
        config: ScanConfig,
        root: Optional[Path] = None,
        file_source: Optional[FileSource] = None,
        monitored: Optional[MonitoredSet] = None,
        max_workers: Optional[int] = None,
        ignore_patterns: Optional[list[str]] = None,
        progress_callback: Optional[Callable[[int, int, str], None]] = None,
    ):
        """
        Initialize the diagnostics service.

        Args:
            store: Index the service writes to
            config: Scan configuration snapshot
            root: Workspace root (default: current directory)
            file_source: Enumerates and reads files (default: FileWalker)
            monitored: Monitored-set predicate (default: built from config.glob_pattern)
            max_workers: Parallel workers for full rescans (default: config.max_workers)
            ignore_patterns: Names skipped by the default FileWalker
            progress_callback: Optional callback(current, total, message)

        Raises:
            PatternCompileError: If a configured keyword is empty
        """
        self._store = store
        self._root = Path(root).resolve() if root is not None else Path.cwd()
        self._ignore_patterns = list(ignore_patterns or [])
        self._owns_monitored = monitored is None
        self._owns_file_source = file_source is None
        self._max_workers = max_workers
        self._progress_callback = progress_callback
        self._write_lock = asyncio.Lock()
        self._configure(config, monitored, file_source)

    def _configure(
        self,
        config: ScanConfig,
        monitored: Optional[MonitoredSet],
        file_source: Optional[FileSource],
    ) -> None:
        # Compile first so an invalid keyword leaves the previous setup intact
        engine = ScanEngine(config)
        self._config = config
        self._engine = engine
        self._monitored = monitored or MonitoredSet(config.glob_pattern, self._root)
        self._file_source = file_source or FileWalker(
            self._monitored,
            ignore_patterns=self._ignore_patterns,
            max_file_size=config.max_file_size,
        )

    @property
    def store(self) -> DiagnosticStore:
        """The index this service maintains."""
        return self._store

    @property
    def config(self) -> ScanConfig:
        """The active configuration snapshot."""
        return self._config

    @property
    def engine(self) -> ScanEngine:
        """The active scan engine."""
        return self._engine

    @property
    def root(self) -> Path:
        """Workspace root."""
        return self._root

    @property
    def max_workers(self) -> int:
        """Parallel workers used by full rescans."""
        return self._max_workers if self._max_workers is not None else self._config.max_workers

    def is_monitored(self, path: Path | str) -> bool:
        """Check whether a path belongs to the monitored set."""
        return self._monitored.matches(path)

    def _report_progress(self, current: int, total: int, message: str) -> None:
        """Report progress if callback is set."""
        if self._progress_callback:
            self._progress_callback(current, total, message)
        logger.debug(f"Progress: {current}/{total} - {message}")

    def _read(self, path: Path) -> Optional[bytes]:
        """Read a file, logging and returning None when it cannot be read."""
        try:
            return self._file_source.read_bytes(path)
        except FileReadError as e:
            logger.warning(
                "Skipping unreadable file: %s",
                e,
                extra={"file_path": str(path), "reason": e.reason},
            )
            return None

    def _read_and_scan(self, path: Path) -> tuple[bool, Findings]:
        """Read and scan one file; the flag is False when it was unreadable."""
        content = self._read(path)
        if content is None:
            return False, None
        return True, self._engine.scan(path, content)

    async def update_workspace(self, root: Optional[Path] = None) -> ScanResult:
        """
        Rescan every monitored file and replace the whole index.

        Unreadable files are skipped and reported in failed_files; they
        never abort the rescan.

        Args:
            root: Workspace root (default: the service's root)

        Returns:
            ScanResult with statistics
        """
        async with self._write_lock:
            return await self._update_workspace(root)

    async def _update_workspace(self, root: Optional[Path]) -> ScanResult:
        start_time = time.time()
        result = ScanResult()
        root = Path(root).resolve() if root is not None else self._root

        self._report_progress(0, 0, "Finding files...")
        files = [p for p in self._file_source.iter_files(root) if self.is_monitored(p)]
        total_files = len(files)
        logger.debug(f"update_workspace: found {total_files} files under {root}")

        contents: list[tuple[str, bytes]] = []
        stale: list[tuple[str, Findings]] = []
        for path in files:
            content = self._read(path)
            if content is None:
                result.failed_files.append(str(path))
                if self._config.keep_stale_on_read_error:
                    stale.append((str(path), self._store.get(path)))
            else:
                contents.append((str(path), content))

        self._report_progress(0, total_files, "Scanning files...")
        if self.max_workers > 1 and len(contents) > 1:
            entries = await self._scan_parallel(contents, result)
        else:
            entries = self._scan_sequential(contents, result)

        self._store.replace_all(entries + stale)

        result.total_files = total_files
        result.rescanned_files = len(contents)
        result.files_with_findings = len(self._store)
        result.total_findings = self._store.total_findings()
        result.duration_seconds = time.time() - start_time

        logger.info(
            "Workspace scan completed: %d files, %d findings in %d files",
            result.total_files,
            result.total_findings,
            result.files_with_findings,
            extra={
                "root": str(root),
                "total_files": result.total_files,
                "files_with_findings": result.files_with_findings,
                "total_findings": result.total_findings,
                "failed_files": len(result.failed_files),
                "duration_seconds": result.duration_seconds,
            },
        )
        return result

    async def _scan_parallel(
        self, contents: list[tuple[str, bytes]], result: ScanResult
    ) -> list[tuple[str, Findings]]:
        """
        Scan file contents in parallel using ProcessPoolExecutor.

        Workers are initialized once with the configuration and compile
        their own matchers. Falls back to sequential scanning if the pool
        cannot be used.
        """
        entries: list[tuple[str, Findings]] = []
        loop = asyncio.get_running_loop()
        total = len(contents)

        try:
            with ProcessPoolExecutor(
                max_workers=self.max_workers,
                initializer=init_worker,
                initargs=(self._config,),
            ) as executor:
                futures = [
                    loop.run_in_executor(executor, scan_file_worker, path, content)
                    for path, content in contents
                ]

                for done, future in enumerate(futures, start=1):
                    file_path, findings, error = await future
                    if error:
                        result.failed_files.append(file_path)
                    else:
                        entries.append((file_path, findings))
                    if done % 10 == 0 or done == total:
                        self._report_progress(done, total, f"Scanned {done} files")
        except Exception as exc:
            logger.warning(
                "ProcessPoolExecutor failed (%s). Falling back to sequential scanning.",
                exc,
            )
            # Forget worker failures; every file is scanned again below
            scanned = {path for path, _ in contents}
            result.failed_files = [f for f in result.failed_files if f not in scanned]
            return self._scan_sequential(contents, result)

        return entries

    def _scan_sequential(
        self, contents: list[tuple[str, bytes]], result: ScanResult
    ) -> list[tuple[str, Findings]]:
        """Scan file contents one by one (single worker or fallback)."""
        entries: list[tuple[str, Findings]] = []
        total = len(contents)

        for i, (path, content) in enumerate(contents):
            try:
                entries.append((path, self._engine.scan(path, content)))
            except Exception as e:
                logger.error(f"Failed to scan {path}: {e}")
                result.failed_files.append(path)

            if (i + 1) % 10 == 0 or i == total - 1:
                self._report_progress(i + 1, total, f"Scanned {i + 1} files")

        return entries

    async def update_file(self, path: Path | str) -> Findings:
        """
        Rescan one file and replace its entry.

        When the file cannot be read its entry is removed, unless the
        configuration asks to keep stale findings.

        Args:
            path: File to rescan

        Returns:
            The file's findings, or None
        """
        async with self._write_lock:
            return await self._update_file(Path(path))

    async def _update_file(self, path: Path) -> Findings:
        readable, findings = await asyncio.to_thread(self._read_and_scan, path)

        if not readable:
            if self._config.keep_stale_on_read_error:
                return self._store.get(path)
            self._store.remove_file(path)
            return None

        self._store.replace_file(path, findings)
        logger.debug(
            "Rescanned %s: %d findings",
            path,
            len(findings) if findings else 0,
            extra={"file_path": str(path)},
        )
        return findings

    async def handle_event(self, event: FileEvent) -> ScanResult:
        """
        Apply a single lifecycle event to the index.

        Args:
            event: Save (MODIFIED), CREATED, MOVED (rename) or DELETED event

        Returns:
            ScanResult describing what changed
        """
        batch = DebouncedBatch()
        batch.merge(event)
        return await self.apply_batch(batch)

    async def apply_batch(self, batch: DebouncedBatch) -> ScanResult:
        """
        Apply a batch of lifecycle events to the index.

        Renames and deletions are applied together: the renamed files'
        findings are taken before deleted entries are dropped and are
        installed afterwards. Created and saved files are rescanned last.

        Args:
            batch: Merged lifecycle events

        Returns:
            ScanResult describing what changed
        """
        async with self._write_lock:
            return await self._apply_batch(batch)

    async def _apply_batch(self, batch: DebouncedBatch) -> ScanResult:
        start_time = time.time()
        result = ScanResult()

        outcomes = self._store.apply_renames(
            batch.moved, self.is_monitored, removed=sorted(batch.deleted)
        )
        result.deleted_files = len(batch.deleted)
        result.renamed_files = len(outcomes)

        to_scan: set[Path] = set()
        for new_path in batch.moved:
            outcome = outcomes[str(new_path)]
            if outcome == RenameOutcome.REUSED:
                result.reused_files += 1
            elif outcome == RenameOutcome.RESCAN_REQUIRED:
                to_scan.add(new_path)

        to_scan.update(p for p in batch.created | batch.modified if self.is_monitored(p))

        for path in sorted(to_scan):
            readable, findings = await asyncio.to_thread(self._read_and_scan, path)
            if readable:
                self._store.replace_file(path, findings)
                result.rescanned_files += 1
            else:
                result.failed_files.append(str(path))
                if not self._config.keep_stale_on_read_error:
                    self._store.remove_file(path)

        result.total_files = len(to_scan)
        result.files_with_findings = len(self._store)
        result.total_findings = self._store.total_findings()
        result.duration_seconds = time.time() - start_time

        logger.debug("Applied event batch", extra=result.to_dict())
        return result

    async def reload_config(self, config: ScanConfig) -> ScanResult:
        """
        Switch to a new configuration and rescan the workspace.

        Matchers are recompiled; the monitored set and the default file
        walker follow the new glob pattern.

        Raises:
            PatternCompileError: If a configured keyword is empty; the
                previous configuration stays active
        """
        async with self._write_lock:
            self._configure(
                config,
                None if self._owns_monitored else self._monitored,
                None if self._owns_file_source else self._file_source,
            )
            logger.info(
                "Configuration reloaded",
                extra={"config": config.to_dict()},
            )
            return await self._update_workspace(None)
