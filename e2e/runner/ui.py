# Where: e2e/runner/ui.py
# What: Plain reporter for E2E runner progress output.
# Why: Keep output deterministic and line-oriented in both TTY and CI logs.
from __future__ import annotations

import os
import sys
import time

from e2e.runner.events import (
    EVENT_FILE_CHANGED,
    EVENT_MESSAGE,
    EVENT_PHASE_END,
    EVENT_PHASE_SKIP,
    EVENT_PHASE_START,
    EVENT_RUN_END,
    EVENT_RUN_START,
    EVENT_TESTS_STARTED,
    EVENT_WATCH_START,
    PHASES,
    STATUS_FAILED,
    STATUS_PASSED,
    STATUS_SKIPPED,
    Event,
)
from e2e.runner.logging import safe_print

_RESET = "\033[0m"
_GREEN = "\033[32m"
_RED = "\033[31m"
_YELLOW = "\033[33m"
_CYAN = "\033[36m"

# status -> (word, color, icon)
_STATUS_STYLES = {
    STATUS_PASSED: ("ok", _GREEN, "✅"),
    STATUS_FAILED: ("failed", _RED, "❌"),
    STATUS_SKIPPED: ("skipped", _YELLOW, "⏭️"),
}


def _env_allows(flag: bool | None, disable_var: str) -> bool:
    if flag is not None:
        return bool(flag)
    if not sys.stdout.isatty() or os.environ.get("TERM", "").lower() == "dumb":
        return False
    return not os.environ.get(disable_var)


def _format_duration(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    mins, secs = divmod(int(seconds), 60)
    return f"{mins}m{secs:02d}s"


class Reporter:
    def start(self) -> None:
        return None

    def emit(self, event: Event) -> None:
        raise NotImplementedError

    def close(self) -> None:
        return None


class PlainReporter(Reporter):
    """Prints one ``[e2e]`` line per event; color and emoji follow the terminal."""

    def __init__(
        self,
        *,
        verbose: bool = False,
        color: bool | None = None,
        emoji: bool | None = None,
        label: str = "e2e",
    ) -> None:
        self.verbose = verbose
        self.label = label
        self._color = _env_allows(color, "NO_COLOR")
        self._emoji = _env_allows(emoji, "NO_EMOJI")
        self._phase_width = max(len(phase) for phase in PHASES)
        self._phase_started: dict[str, float] = {}
        self._handlers = {
            EVENT_MESSAGE: self._on_message,
            EVENT_RUN_START: self._on_run_start,
            EVENT_RUN_END: self._on_run_end,
            EVENT_TESTS_STARTED: self._on_tests_started,
            EVENT_WATCH_START: self._on_watch_start,
            EVENT_FILE_CHANGED: self._on_file_changed,
            EVENT_PHASE_START: self._on_phase_start,
            EVENT_PHASE_END: self._on_phase_end,
            EVENT_PHASE_SKIP: self._on_phase_skip,
        }

    def emit(self, event: Event) -> None:
        handler = self._handlers.get(event.event_type)
        if handler is not None:
            handler(event)

    def highlight(self, text: str) -> str:
        return self._paint(text, _CYAN)

    def _paint(self, text: str, color: str) -> str:
        return f"{color}{text}{_RESET}" if self._color else text

    def _icon(self, icon: str) -> str:
        return f"{icon} " if self._emoji and icon else ""

    def _line(self, body: str, icon: str = "") -> None:
        safe_print(f"[{self.label}] {self._icon(icon)}{body}")

    def _phase_line(self, phase: str, status: str, suffix_parts: list[str], icon: str) -> None:
        word, color, _ = _STATUS_STYLES.get(status, (status, "", ""))
        status_text = self._paint(word, color) if color else word
        suffix = f" ({', '.join(suffix_parts)})" if suffix_parts else ""
        self._line(f"{phase.ljust(self._phase_width)} ... {status_text}{suffix}", icon)

    def _on_message(self, event: Event) -> None:
        if event.message:
            self._line(event.message)

    def _on_run_start(self, event: Event) -> None:
        self._line("started", "🧪")

    def _on_run_end(self, event: Event) -> None:
        status = str(event.data.get("status", "")).strip()
        summary = event.data.get("summary")
        suffix = f" ({summary})" if summary else ""
        if status == STATUS_PASSED:
            self._line(f"{self._paint('[PASSED]', _GREEN)} all tests passed{suffix}", "✅")
        elif status == STATUS_FAILED:
            self._line(f"{self._paint('[FAILED]', _RED)} some tests failed{suffix}", "❌")

    def _on_tests_started(self, event: Event) -> None:
        count = event.data.get("count")
        noun = "file" if count == 1 else "files"
        self._line(f"Running tests... ({count} {noun})", "🚀")

    def _on_watch_start(self, event: Event) -> None:
        shown = ", ".join(self.highlight(str(p)) for p in event.data.get("patterns") or [])
        self._line(f"Watching {shown} for changes...", "👀")

    def _on_file_changed(self, event: Event) -> None:
        self._line(f"Detected a change in {self.highlight(str(event.data.get('path', '')))}")

    def _on_phase_start(self, event: Event) -> None:
        if not event.phase:
            return
        self._phase_started[event.phase] = time.monotonic()
        if self.verbose:
            self._line(f"{event.phase.ljust(self._phase_width)} ... start", "⏳")

    def _on_phase_end(self, event: Event) -> None:
        if not event.phase:
            return
        status = event.data.get("status", "")
        started = self._phase_started.pop(event.phase, None)
        duration = event.data.get("duration")
        if duration is None and started is not None:
            duration = time.monotonic() - started
        parts = [str(event.data["detail"])] if event.data.get("detail") else []
        if duration is not None:
            parts.append(_format_duration(duration))
        icon = _STATUS_STYLES.get(status, ("", "", ""))[2]
        self._phase_line(event.phase, status, parts, icon)

    def _on_phase_skip(self, event: Event) -> None:
        if not event.phase:
            return
        parts = [event.message] if event.message else []
        self._phase_line(event.phase, STATUS_SKIPPED, parts, "⏭️")
