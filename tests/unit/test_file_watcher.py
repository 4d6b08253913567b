"""
Unit tests for converting watchdog notifications into FileEvents.
"""

import time
from pathlib import Path

import pytest
from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from todoscan.core.file_events import FileEvent, FileEventType
from todoscan.infrastructure.fakes import FakeFileWatcher
from todoscan.infrastructure.file_watcher import FileWatcher, LifecycleEventHandler, is_ignored

ROOT = Path("/workspace")


@pytest.fixture
def captured() -> list[FileEvent]:
    return []


@pytest.fixture
def handler(captured: list[FileEvent]) -> LifecycleEventHandler:
    return LifecycleEventHandler(
        callback=captured.append,
        root_path=ROOT,
        ignore_patterns=[".git", "target"],
    )


class TestLifecycleEventHandler:
    def test_created(self, handler, captured):
        handler.on_created(FileCreatedEvent("/workspace/src/a.rs"))

        assert [(e.event_type, e.file_path) for e in captured] == [
            (FileEventType.CREATED, Path("/workspace/src/a.rs"))
        ]

    def test_modified_and_deleted(self, handler, captured):
        handler.on_modified(FileModifiedEvent("/workspace/a.rs"))
        handler.on_deleted(FileDeletedEvent("/workspace/a.rs"))

        assert [e.event_type for e in captured] == [FileEventType.MODIFIED, FileEventType.DELETED]

    def test_directory_events_dropped(self, handler, captured):
        handler.on_created(DirCreatedEvent("/workspace/src"))
        handler.on_moved(DirMovedEvent("/workspace/src", "/workspace/lib"))

        assert captured == []

    def test_directory_deletion_is_forwarded(self, handler, captured):
        # Moving a directory out of the tree also arrives as a deletion
        handler.dispatch(DirDeletedEvent("/workspace/src"))

        assert [(e.event_type, e.file_path) for e in captured] == [
            (FileEventType.DELETED, Path("/workspace/src"))
        ]

    def test_ignored_directory_deletion_dropped(self, handler, captured):
        handler.dispatch(DirDeletedEvent("/workspace/target/debug"))

        assert captured == []

    def test_ignored_paths_dropped(self, handler, captured):
        handler.on_modified(FileModifiedEvent("/workspace/.git/index"))
        handler.on_created(FileCreatedEvent("/workspace/target/debug/out.rs"))

        assert captured == []

    def test_moved_keeps_both_paths(self, handler, captured):
        handler.on_moved(FileMovedEvent("/workspace/a.rs", "/workspace/b.rs"))

        (event,) = captured
        assert event.event_type == FileEventType.MOVED
        assert event.old_path == Path("/workspace/a.rs")
        assert event.file_path == Path("/workspace/b.rs")

    def test_move_into_ignored_becomes_delete(self, handler, captured):
        handler.on_moved(FileMovedEvent("/workspace/a.rs", "/workspace/target/a.rs"))

        (event,) = captured
        assert (event.event_type, event.file_path) == (
            FileEventType.DELETED,
            Path("/workspace/a.rs"),
        )

    def test_move_out_of_ignored_becomes_create(self, handler, captured):
        handler.on_moved(FileMovedEvent("/workspace/target/a.rs", "/workspace/a.rs"))

        (event,) = captured
        assert (event.event_type, event.file_path) == (
            FileEventType.CREATED,
            Path("/workspace/a.rs"),
        )

    def test_monitored_set_not_applied(self, handler, captured):
        handler.on_moved(FileMovedEvent("/workspace/a.rs", "/workspace/a.txt"))

        assert captured[0].event_type == FileEventType.MOVED


class TestIsIgnored:
    def test_matches_name_relative_path_and_components(self):
        assert is_ignored(Path("/workspace/x.tmp"), ROOT, ["*.tmp"])
        assert is_ignored(Path("/workspace/build/out/a.rs"), ROOT, ["build/*"])
        assert is_ignored(Path("/workspace/node_modules/pkg/a.rs"), ROOT, ["node_modules"])
        assert not is_ignored(Path("/workspace/src/a.rs"), ROOT, ["target"])


class TestFileWatcher:
    def test_start_rejects_missing_path(self, tmp_path: Path):
        watcher = FileWatcher()
        with pytest.raises(ValueError):
            watcher.start(tmp_path / "missing", lambda e: None)

    def test_start_rejects_file(self, tmp_path: Path):
        path = tmp_path / "a.rs"
        path.write_text("", encoding="utf-8")
        with pytest.raises(ValueError):
            FileWatcher().start(path, lambda e: None)

    def test_lifecycle(self, tmp_path: Path):
        events: list[FileEvent] = []
        watcher = FileWatcher()
        watcher.start(tmp_path, events.append)
        try:
            assert watcher.is_running()
            with pytest.raises(RuntimeError):
                watcher.start(tmp_path, events.append)

            (tmp_path / "a.rs").write_text("// TODO", encoding="utf-8")
            deadline = time.time() + 5
            while not events and time.time() < deadline:
                time.sleep(0.05)
        finally:
            watcher.stop()

        assert not watcher.is_running()
        assert any(e.file_path.name == "a.rs" for e in events)


class TestFakeFileWatcher:
    @pytest.fixture
    def fake(self, captured: list[FileEvent]) -> FakeFileWatcher:
        watcher = FakeFileWatcher(ignore_patterns=["target"])
        watcher.start(ROOT, captured.append)
        yield watcher
        watcher.stop()

    def test_ignored_events_are_not_delivered(self, fake, captured):
        fake.trigger_event(FileEvent(FileEventType.MODIFIED, ROOT / "target" / "out.rs"))
        fake.trigger_event(FileEvent(FileEventType.MODIFIED, ROOT / "src" / "a.rs"))

        assert [e.file_path for e in captured] == [ROOT / "src" / "a.rs"]
        assert fake.get_triggered_events() == captured

    def test_moves_across_ignore_boundary_are_translated(self, fake, captured):
        src, built = ROOT / "a.rs", ROOT / "target" / "a.rs"

        fake.trigger_event(FileEvent(FileEventType.MOVED, built, old_path=src))
        fake.trigger_event(FileEvent(FileEventType.MOVED, src, old_path=built))

        assert [(e.event_type, e.file_path) for e in captured] == [
            (FileEventType.DELETED, src),
            (FileEventType.CREATED, src),
        ]
