# Where: e2e/runner/logging.py
# What: Log sinks, subprocess streaming and logger setup for E2E runs.
# Why: Persist full child-process output to a file while keeping the console quiet.
from __future__ import annotations

import logging
import subprocess
import threading
from pathlib import Path
from typing import Callable, TextIO

_OUTPUT_LOCK = threading.Lock()
_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_QUIET_LOGGERS = ("urllib3", "selenium", "watchdog")


def safe_print(message: str = "", *, prefix: str | None = None) -> None:
    """Print a whole line at once; runner threads share stdout."""
    line = f"{prefix} {message}" if prefix else message
    with _OUTPUT_LOCK:
        print(line, flush=True)


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format=_LOG_FORMAT,
        datefmt="%H:%M:%S",
    )
    logging.getLogger("e2e").setLevel(logging.DEBUG if debug else logging.INFO)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class LogSink:
    """Run log file, truncated on open and flushed per line."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._handle: TextIO | None = None
        self._lock = threading.Lock()

    def __enter__(self) -> "LogSink":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self.path.open("w", encoding="utf-8")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def write_line(self, line: str) -> None:
        if self._handle is None:
            raise RuntimeError(f"log sink {self.path} is not open")
        with self._lock:
            print(line, file=self._handle, flush=True)


def make_prefix_printer(label: str) -> Callable[[str], None]:
    prefix = f"[{label}] |"
    return lambda line: safe_print(line, prefix=prefix)


def run_and_stream(
    cmd: list[str],
    *,
    cwd: Path,
    env: dict[str, str],
    log: LogSink,
    printer: Callable[[str], None] | None = None,
) -> int:
    """Run ``cmd`` with stderr merged into stdout, copying every line to ``log``."""
    sinks = [log.write_line] + ([printer] if printer else [])

    def emit(line: str) -> None:
        for sink in sinks:
            sink(line)

    emit(f"$ {' '.join(cmd)}")
    with subprocess.Popen(
        cmd,
        cwd=str(cwd),
        env=env,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        bufsize=1,
        errors="replace",
    ) as proc:
        for raw_line in proc.stdout:
            emit(raw_line.rstrip("\n"))
    return proc.returncode
