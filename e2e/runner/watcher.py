# Where: e2e/runner/watcher.py
# What: Cancellable file-watch subscription that re-runs changed e2e test files.
# Why: Watch mode must be stoppable from callers and tests instead of living forever.
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from e2e.runner import constants
from e2e.runner.discovery import PatternMatcher, watch_root
from e2e.runner.utils import PROJECT_ROOT

logger = logging.getLogger(__name__)


class ChangeHandler(FileSystemEventHandler):
    def __init__(
        self,
        patterns: list[str],
        on_change: Callable[[Path], None],
        *,
        root: Path = PROJECT_ROOT,
        cooldown: float = constants.WATCH_COOLDOWN_SECONDS,
    ) -> None:
        self.patterns = list(patterns)
        self.on_change = on_change
        self.root = Path(root).resolve()
        self.cooldown = cooldown  # Per-path; editors often emit several events per save.
        self._matcher = PatternMatcher(self.patterns, root=self.root)
        self._last_trigger: dict[Path, float] = {}
        self._lock = threading.Lock()

    def matches(self, path: Path) -> bool:
        return self._matcher.matches(path)

    def on_modified(self, event):
        if event.is_directory:
            return
        self._dispatch(event.src_path)

    def on_created(self, event):
        if event.is_directory:
            return
        self._dispatch(event.src_path)

    def on_moved(self, event):
        if event.is_directory:
            return
        self._dispatch(event.dest_path)

    def _dispatch(self, raw_path) -> None:
        raw = Path(raw_path)
        if not self._matcher.accepts_name(raw.name):
            return
        path = raw.resolve()
        if not self.matches(path):
            return
        now = time.monotonic()
        with self._lock:
            last = self._last_trigger.get(path)
            if last is not None and now - last < self.cooldown:
                return
            self._last_trigger[path] = now
        self.on_change(path)


class WatchSession:
    """Watches test files and runs ``run_file`` for each changed one on a single worker."""

    def __init__(
        self,
        patterns: list[str],
        run_file: Callable[[Path], object],
        *,
        root: Path = PROJECT_ROOT,
        on_event: Callable[[Path], None] | None = None,
        cooldown: float = constants.WATCH_COOLDOWN_SECONDS,
    ) -> None:
        self.patterns = list(patterns)
        self.root = root
        self._run_file = run_file
        self._on_event = on_event
        self._handler = ChangeHandler(self.patterns, self._submit, root=root, cooldown=cooldown)
        self._observer = Observer()
        self._executor: ThreadPoolExecutor | None = None
        self._stopped = threading.Event()
        self._started = False

    @property
    def active(self) -> bool:
        return self._started and not self._stopped.is_set()

    def watch_roots(self) -> list[Path]:
        roots: list[Path] = []
        for pattern in self.patterns:
            base = watch_root(pattern, root=self.root)
            if base not in roots:
                roots.append(base)
        return roots

    def start(self) -> "WatchSession":
        if self._started:
            return self
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="e2e-watch")
        scheduled = 0
        for base in self.watch_roots():
            if not base.is_dir():
                logger.warning("Watch root %s does not exist; skipping", base)
                continue
            self._observer.schedule(self._handler, str(base), recursive=True)
            scheduled += 1
        if scheduled == 0:
            logger.warning("No existing directories to watch for %s", ", ".join(self.patterns))
        self._observer.start()
        self._started = True
        return self

    def _submit(self, path: Path) -> None:
        if self._stopped.is_set() or self._executor is None:
            return
        if self._on_event:
            self._on_event(path)
        future = self._executor.submit(self._run_file, path)
        future.add_done_callback(lambda f: self._log_failure(path, f))

    @staticmethod
    def _log_failure(path: Path, future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Test run for %s raised: %s", path, exc, exc_info=exc)

    def stop(self) -> None:
        if self._stopped.is_set():
            return
        self._stopped.set()
        if self._started:
            self._observer.stop()
            self._observer.join()
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=True)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until ``stop()`` is called; returns whether it was."""
        return self._stopped.wait(timeout)

    def __enter__(self) -> "WatchSession":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
