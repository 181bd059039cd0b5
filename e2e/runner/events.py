# Where: e2e/runner/events.py
# What: Event and status definitions for E2E runner reporting.
# Why: Provide a stable, decoupled contract between orchestration and UI.
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

EVENT_RUN_START = "run_start"
EVENT_RUN_END = "run_end"
EVENT_PHASE_START = "phase_start"
EVENT_PHASE_END = "phase_end"
EVENT_PHASE_SKIP = "phase_skip"
EVENT_TESTS_STARTED = "tests_started"
EVENT_WATCH_START = "watch_start"
EVENT_FILE_CHANGED = "file_changed"
EVENT_MESSAGE = "message"

STATUS_PASSED = "passed"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"

PHASE_INSTALL = "install"
PHASE_BUILD = "build"
PHASE_SERVE = "serve"
PHASE_TEST = "test"
PHASES = (PHASE_INSTALL, PHASE_BUILD, PHASE_SERVE, PHASE_TEST)


@dataclass(frozen=True)
class Event:
    event_type: str
    phase: str | None = None
    message: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    ts: float = field(default_factory=time.monotonic)
