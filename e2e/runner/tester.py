# Where: e2e/runner/tester.py
# What: In-process pytest execution for e2e test files.
# Why: Keep test invocation isolated and return a structured outcome instead of an exit status.
from __future__ import annotations

import importlib
import linecache
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Iterable

import pytest

from e2e.runner import constants
from e2e.runner.engine import EnginePlugin
from e2e.runner.models import EngineConfig, TestOutcome

logger = logging.getLogger(__name__)

_ABNORMAL_EXIT_CODES = {
    pytest.ExitCode.INTERRUPTED,
    pytest.ExitCode.INTERNAL_ERROR,
    pytest.ExitCode.USAGE_ERROR,
}


def invalidate_module_cache(path: Path | str) -> list[str]:
    """Forget any imported module loaded from ``path`` so the next import re-reads it."""
    target = Path(path).resolve()
    removed: list[str] = []
    for name, module in list(sys.modules.items()):
        module_file = getattr(module, "__file__", None)
        if not module_file:
            continue
        try:
            same_file = Path(module_file).resolve() == target
        except (OSError, ValueError):
            continue
        if same_file:
            sys.modules.pop(name, None)
            removed.append(name)
    linecache.checkcache(str(target))
    importlib.invalidate_caches()
    if removed:
        logger.debug("Invalidated cached modules for %s: %s", target, ", ".join(removed))
    return removed


def build_pytest_args(
    files: Iterable[Path],
    *,
    reporter: str,
    retries: int,
    slow_threshold: float = constants.SLOW_TEST_THRESHOLD_SECONDS,
) -> list[str]:
    args = [str(path) for path in files]
    if reporter == constants.REPORTER_NAMES:
        args.append("-v")
    else:
        args.extend(["-q", "-rfE"])
    args.extend(["--durations=0", f"--durations-min={slow_threshold}"])
    args.append("--tb=long")
    if retries > 0:
        args.extend(["--reruns", str(retries)])
    return args


class OutcomeCollector:
    """pytest plugin tallying per-test results of one session."""

    def __init__(self) -> None:
        self.passed = 0
        self.failed = 0
        self.skipped = 0
        self.retried = 0
        self.errors = 0

    def pytest_runtest_logreport(self, report) -> None:
        if report.outcome == "rerun":
            self.retried += 1
            return
        if report.when == "call":
            if report.passed:
                self.passed += 1
            elif report.failed:
                self.failed += 1
            elif report.skipped:
                self.skipped += 1
            return
        if report.failed:
            # Setup or teardown error.
            self.errors += 1
        elif report.when == "setup" and report.skipped:
            self.skipped += 1

    def pytest_collectreport(self, report) -> None:
        if report.failed:
            self.errors += 1

    def outcome(self, files: Iterable[Path] = ()) -> TestOutcome:
        return TestOutcome(
            passed=self.passed,
            failed=self.failed,
            skipped=self.skipped,
            retried=self.retried,
            errors=self.errors,
            files=tuple(files),
        )


def run_pytest(
    files: list[Path],
    *,
    engine_config: EngineConfig,
    server_url: str,
    reporter: str,
    retries: int,
) -> TestOutcome:
    args = build_pytest_args(files, reporter=reporter, retries=retries)
    collector = OutcomeCollector()
    plugins = [EnginePlugin(engine_config, server_url=server_url), collector]
    logger.debug("pytest %s", " ".join(args))
    exit_code = pytest.main(args, plugins=plugins)
    outcome = collector.outcome(files)
    if exit_code in _ABNORMAL_EXIT_CODES and outcome.ok:
        logger.warning("pytest ended abnormally (exit code %s)", int(exit_code))
        outcome = replace(outcome, errors=outcome.errors + 1)
    return outcome


def run_single_file(
    path: Path,
    *,
    engine_config: EngineConfig,
    server_url: str,
    reporter: str = constants.REPORTER_NAMES,
) -> TestOutcome:
    invalidate_module_cache(path)
    return run_pytest(
        [Path(path)],
        engine_config=engine_config,
        server_url=server_url,
        reporter=reporter,
        retries=0,
    )
