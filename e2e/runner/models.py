# Where: e2e/runner/models.py
# What: Dataclasses for E2E invocation options, engine selection and results.
# Why: Keep run inputs and outcomes explicit and avoid implicit global state.
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from e2e.runner import constants


@dataclass(frozen=True)
class RunOptions:
    browsers: str | None = None
    engine: str = constants.DEFAULT_ENGINE
    headless: bool = False
    config: str = constants.DEFAULT_CONFIG
    nobuild: bool = False
    files: str | None = None
    testnames: bool = False
    watch: bool = False
    debug: bool = False


@dataclass(frozen=True)
class EngineConfig:
    browsers: frozenset[str] = field(default_factory=frozenset)
    engine: str = constants.DEFAULT_ENGINE
    headless: bool = False

    @classmethod
    def from_options(cls, options: RunOptions) -> "EngineConfig":
        return cls(
            browsers=parse_browser_filter(options.browsers),
            engine=options.engine,
            headless=options.headless,
        )

    def allows(self, browser: str) -> bool:
        return not self.browsers or browser in self.browsers


@dataclass(frozen=True)
class TestOutcome:
    """Aggregated result of one pytest session."""

    __test__ = False

    passed: int = 0
    failed: int = 0
    skipped: int = 0
    retried: int = 0
    errors: int = 0
    files: tuple[Path, ...] = ()

    @property
    def ok(self) -> bool:
        return self.failed == 0 and self.errors == 0

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def summary(self) -> str:
        parts = [f"{self.passed} passed", f"{self.failed} failed"]
        if self.skipped:
            parts.append(f"{self.skipped} skipped")
        if self.retried:
            parts.append(f"{self.retried} retried")
        if self.errors:
            parts.append(f"{self.errors} errors")
        return ", ".join(parts)


def parse_browser_filter(raw: str | None) -> frozenset[str]:
    if not raw:
        return frozenset()
    names = {part.strip().lower() for part in raw.split(",")}
    names.discard("")
    unknown = sorted(names - set(constants.BROWSERS))
    if unknown:
        raise ValueError(
            f"unknown browser(s): {', '.join(unknown)} "
            f"(expected one of {', '.join(constants.BROWSERS)})"
        )
    return frozenset(names)
