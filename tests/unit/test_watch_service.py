"""
Tests for WatchService.

Events are injected through FakeFileWatcher; file content lives in an
InMemoryFileSource rooted at a real temporary directory so the watch
path passes validation.
"""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from todoscan.core.config import ScanConfig, WatchConfig
from todoscan.core.file_events import DebouncedBatch, FileEvent, FileEventType
from todoscan.infrastructure.diagnostic_store import DiagnosticStore
from todoscan.infrastructure.fakes import FakeFileWatcher, InMemoryFileSource
from todoscan.services.diagnostics_models import ScanResult
from todoscan.services.diagnostics_service import DiagnosticsService
from todoscan.services.watch_service import (
    PathValidationError,
    WatchService,
    WatchServiceError,
    WatchStats,
)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    return tmp_path.resolve()


def make_watch_service(
    root: Path, files: dict | None = None, debounce_ms: int = 50
) -> tuple[WatchService, DiagnosticsService, InMemoryFileSource, FakeFileWatcher]:
    source = InMemoryFileSource(files)
    diagnostics = DiagnosticsService(
        DiagnosticStore(), ScanConfig(max_workers=1), root=root, file_source=source
    )
    watcher = FakeFileWatcher()
    config = WatchConfig(watch_path=root, debounce_ms=debounce_ms)
    return WatchService(diagnostics, watcher, config), diagnostics, source, watcher


class TestPathValidation:
    @pytest.mark.asyncio
    async def test_nonexistent_path_is_rejected(self, workspace: Path):
        service, _, _, watcher = make_watch_service(workspace / "missing")

        with pytest.raises(PathValidationError, match="does not exist"):
            await service.start()

        assert not service.is_running()
        assert not watcher.is_running()

    @pytest.mark.asyncio
    async def test_file_path_is_rejected(self, workspace: Path):
        file_path = workspace / "main.rs"
        file_path.write_text("fn main() {}\n", encoding="utf-8")
        service, _, _, _ = make_watch_service(file_path)

        with pytest.raises(PathValidationError, match="not a directory"):
            await service.start()

        assert not service.is_running()


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_scans_workspace_and_starts_watcher(self, workspace: Path):
        main = workspace / "main.rs"
        service, diagnostics, _, watcher = make_watch_service(workspace, {main: "// TODO\n"})

        await service.start()
        try:
            assert service.is_running()
            assert watcher.is_running()
            assert watcher.watch_path == workspace
            assert diagnostics.store.paths() == [str(main)]
        finally:
            await service.stop()

        assert not service.is_running()
        assert not watcher.is_running()

    @pytest.mark.asyncio
    async def test_double_start_is_rejected(self, workspace: Path):
        service, _, _, _ = make_watch_service(workspace)

        await service.start()
        try:
            with pytest.raises(WatchServiceError):
                await service.start()
        finally:
            await service.stop()

    @pytest.mark.asyncio
    async def test_stop_when_not_running_is_noop(self, workspace: Path):
        service, _, _, _ = make_watch_service(workspace)
        await service.stop()
        assert not service.is_running()

    @pytest.mark.asyncio
    async def test_watcher_start_failure_is_wrapped(self, workspace: Path):
        service, _, _, watcher = make_watch_service(workspace)
        watcher.start(workspace, lambda event: None)

        with pytest.raises(WatchServiceError, match="Could not start file watcher"):
            await service.start()

        assert not service.is_running()


class TestEventHandling:
    @pytest.mark.asyncio
    async def test_debounced_events_update_index(self, workspace: Path):
        main = workspace / "main.rs"
        service, diagnostics, source, watcher = make_watch_service(workspace)

        await service.start()
        try:
            source.write(main, "// FIXME soon\n")
            watcher.trigger_event(FileEvent(FileEventType.CREATED, main))
            source.write(main, "// FIXME soon\n// TODO later\n")
            watcher.trigger_event(FileEvent(FileEventType.MODIFIED, main))

            await asyncio.sleep(0.3)

            assert diagnostics.store.total_findings() == 2
            stats = service.get_stats()
            assert stats.events_received == 2
            assert stats.updates_triggered == 1
            assert stats.last_update_at is not None
        finally:
            await service.stop()

    @pytest.mark.asyncio
    async def test_stop_applies_pending_events(self, workspace: Path):
        main = workspace / "main.rs"
        service, diagnostics, source, watcher = make_watch_service(
            workspace, {main: "// TODO\n"}, debounce_ms=10_000
        )

        await service.start()
        source.delete(main)
        watcher.trigger_event(FileEvent(FileEventType.DELETED, main))
        await asyncio.sleep(0.05)
        assert service.get_pending_count() == 1

        await service.stop()

        assert len(diagnostics.store) == 0
        assert service.get_pending_count() == 0

    @pytest.mark.asyncio
    async def test_rename_is_applied_without_rescan(self, workspace: Path):
        old, new = workspace / "old.rs", workspace / "new.rs"
        service, diagnostics, source, watcher = make_watch_service(
            workspace, {old: "// TODO keep\n"}
        )

        await service.start()
        try:
            source.read_calls.clear()
            source.rename(old, new)
            watcher.trigger_event(FileEvent(FileEventType.MOVED, new, old_path=old))
            await asyncio.sleep(0.3)

            assert source.read_calls == []
            assert diagnostics.store.paths() == [str(new)]
        finally:
            await service.stop()

    @pytest.mark.asyncio
    async def test_update_errors_are_counted_and_watching_continues(self, workspace: Path):
        main = workspace / "main.rs"
        service, diagnostics, source, watcher = make_watch_service(workspace)
        real_apply = diagnostics.apply_batch
        diagnostics.apply_batch = AsyncMock(side_effect=RuntimeError("Simulated update failure"))

        await service.start()
        try:
            watcher.trigger_event(FileEvent(FileEventType.CREATED, main))
            await asyncio.sleep(0.3)
            assert service.get_stats().errors == 1
            assert service.is_running()

            diagnostics.apply_batch = real_apply
            source.write(main, "// TODO\n")
            watcher.trigger_event(FileEvent(FileEventType.MODIFIED, main))
            await asyncio.sleep(0.3)

            assert service.get_stats().updates_triggered == 1
            assert diagnostics.store.total_findings() == 1
        finally:
            await service.stop()


class TestQueuedBatches:
    @pytest.mark.asyncio
    async def test_batches_ready_during_an_update_are_applied_in_order(self, workspace: Path):
        service, diagnostics, _, _ = make_watch_service(workspace)
        applied: list[DebouncedBatch] = []
        release = asyncio.Event()

        async def slow_apply(batch: DebouncedBatch) -> ScanResult:
            applied.append(batch)
            if len(applied) == 1:
                await release.wait()
            return ScanResult()

        diagnostics.apply_batch = slow_apply

        first = DebouncedBatch(modified={workspace / "a.rs"})
        second = DebouncedBatch(deleted={workspace / "b.rs"})
        third = DebouncedBatch(created={workspace / "c.rs"})

        running = asyncio.create_task(service._on_batch_ready(first))
        await asyncio.sleep(0.01)
        await service._on_batch_ready(second)
        await service._on_batch_ready(third)
        assert applied == [first]

        release.set()
        await running

        assert [b.total_count() for b in applied] == [1, 1, 1]
        assert applied[1].deleted == second.deleted
        assert applied[2].created == third.created
        assert service.get_stats().updates_triggered == 3

    @pytest.mark.asyncio
    async def test_empty_batch_is_ignored(self, workspace: Path):
        service, diagnostics, _, _ = make_watch_service(workspace)
        diagnostics.apply_batch = AsyncMock(return_value=ScanResult())

        await service._on_batch_ready(DebouncedBatch())

        diagnostics.apply_batch.assert_not_called()


def test_watch_stats_to_dict():
    stats = WatchStats(events_received=3, updates_triggered=1, errors=2)
    data = stats.to_dict()

    assert data["events_received"] == 3
    assert data["updates_triggered"] == 1
    assert data["errors"] == 2
    assert data["last_update_at"] is None
    assert isinstance(data["started_at"], str)
