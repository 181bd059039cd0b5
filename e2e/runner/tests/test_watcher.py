# Where: e2e/runner/tests/test_watcher.py
# What: Unit tests for the change handler and the cancellable watch session.
# Why: Watch mode re-runs exactly the changed file and must stop on request.
from __future__ import annotations

import logging
import threading
from pathlib import Path

from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from e2e.runner import discovery
from e2e.runner.watcher import ChangeHandler, WatchSession

PATTERN = "test/e2e/test_*.py"


def _touch(root: Path, relative: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("def test_ok():\n    pass\n", encoding="utf-8")
    return path.resolve()


def test_change_handler_dispatches_matching_file(tmp_path) -> None:
    target = _touch(tmp_path, "test/e2e/test_one.py")
    other = _touch(tmp_path, "test/e2e/helpers.py")
    seen: list[Path] = []
    handler = ChangeHandler([PATTERN], seen.append, root=tmp_path, cooldown=0)

    handler.on_modified(FileModifiedEvent(str(target)))
    handler.on_modified(FileModifiedEvent(str(other)))
    handler.on_modified(DirModifiedEvent(str(target.parent)))

    assert seen == [target]


def test_change_handler_handles_create_and_move(tmp_path) -> None:
    created = _touch(tmp_path, "test/e2e/test_new.py")
    moved = _touch(tmp_path, "test/e2e/test_moved.py")
    seen: list[Path] = []
    handler = ChangeHandler([PATTERN], seen.append, root=tmp_path, cooldown=0)

    handler.on_created(FileCreatedEvent(str(created)))
    handler.on_moved(FileMovedEvent(str(tmp_path / "test/e2e/.tmp123"), str(moved)))

    assert seen == [created, moved]


def test_change_handler_cooldown_is_per_path(tmp_path) -> None:
    first = _touch(tmp_path, "test/e2e/test_a.py")
    second = _touch(tmp_path, "test/e2e/test_b.py")
    seen: list[Path] = []
    handler = ChangeHandler([PATTERN], seen.append, root=tmp_path, cooldown=60)

    handler.on_modified(FileModifiedEvent(str(first)))
    handler.on_modified(FileModifiedEvent(str(first)))
    handler.on_modified(FileModifiedEvent(str(second)))

    assert seen == [first, second]


def test_watch_session_roots(tmp_path) -> None:
    session = WatchSession(
        [PATTERN, "test/e2e/test_other.py", "extensions/**/test-e2e/test_*.py"],
        lambda path: None,
        root=tmp_path,
    )

    assert session.watch_roots() == [tmp_path / "test" / "e2e", tmp_path / "extensions"]


def test_watch_session_start_stop_and_wait(tmp_path) -> None:
    (tmp_path / "test" / "e2e").mkdir(parents=True)
    session = WatchSession([PATTERN], lambda path: None, root=tmp_path)

    assert not session.active
    session.start()
    assert session.active
    assert not session.wait(timeout=0.01)

    session.stop()
    session.stop()

    assert not session.active
    assert session.wait(timeout=0.01)


def test_watch_session_stop_unblocks_waiter(tmp_path) -> None:
    session = WatchSession([PATTERN], lambda path: None, root=tmp_path).start()
    results: list[bool] = []
    waiter = threading.Thread(target=lambda: results.append(session.wait(timeout=10)))
    waiter.start()

    session.stop()
    waiter.join(timeout=10)

    assert results == [True]


def test_watch_session_runs_changed_file(tmp_path) -> None:
    target = _touch(tmp_path, "test/e2e/test_one.py")
    ran = threading.Event()
    ran_paths: list[Path] = []
    events: list[Path] = []

    def run_file(path: Path) -> None:
        ran_paths.append(path)
        ran.set()

    with WatchSession([PATTERN], run_file, root=tmp_path, on_event=events.append, cooldown=0) as session:
        session._handler.on_modified(FileModifiedEvent(str(target)))
        assert ran.wait(timeout=5)

    assert ran_paths == [target]
    assert events == [target]


def test_watch_session_logs_run_failures(tmp_path, caplog) -> None:
    target = _touch(tmp_path, "test/e2e/test_one.py")
    done = threading.Event()

    def run_file(path: Path) -> None:
        done.set()
        raise RuntimeError("browser crashed")

    with caplog.at_level(logging.ERROR, logger="e2e.runner.watcher"):
        with WatchSession([PATTERN], run_file, root=tmp_path, cooldown=0) as session:
            session._handler.on_modified(FileModifiedEvent(str(target)))
            assert done.wait(timeout=5)

    assert "browser crashed" in caplog.text
    assert not session.active


def test_watch_session_ignores_changes_after_stop(tmp_path) -> None:
    target = _touch(tmp_path, "test/e2e/test_one.py")
    ran: list[Path] = []
    session = WatchSession([PATTERN], ran.append, root=tmp_path, cooldown=0).start()
    session.stop()

    session._handler.on_modified(FileModifiedEvent(str(target)))

    assert ran == []


def test_change_handler_never_globs_the_tree(tmp_path, monkeypatch) -> None:
    def fail_glob(*args, **kwargs):
        raise AssertionError("change events must not expand glob patterns")

    monkeypatch.setattr(discovery.glob, "glob", fail_glob)
    target = _touch(tmp_path, "extensions/amp-y/only-this.py")
    seen: list[Path] = []
    handler = ChangeHandler(["**/only-this.py"], seen.append, root=tmp_path, cooldown=0)

    for index in range(5):
        handler.on_modified(FileModifiedEvent(str(tmp_path / f"node_modules/pkg{index}/index.js")))
    handler.on_created(FileCreatedEvent(str(tmp_path / "test/e2e/__pycache__/only-this.cpython-312.pyc")))
    handler.on_modified(FileModifiedEvent(str(target)))

    assert seen == [target]
