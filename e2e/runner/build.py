# Where: e2e/runner/build.py
# What: Dependency install and runtime build steps for E2E runs.
# Why: Keep the blocking, fatal-on-failure setup commands out of the orchestrator.
from __future__ import annotations

import sys
from typing import Callable

from e2e.runner.config import E2EConfig
from e2e.runner.logging import LogSink
from e2e.runner.utils import exec_or_die

PYTHON_PLACEHOLDER = "{python}"


def _expand_python(cmd) -> list[str]:
    return [sys.executable if part == PYTHON_PLACEHOLDER else part for part in cmd]


def install_packages(
    config: E2EConfig,
    *,
    log: LogSink,
    printer: Callable[[str], None] | None = None,
) -> None:
    """Install e2e-specific packages; output lands in the run log unless a printer is given."""
    exec_or_die(_expand_python(config.install_command), log=log, printer=printer)


def build_runtime(
    config: E2EConfig,
    variant: str,
    *,
    log: LogSink,
    printer: Callable[[str], None] | None = None,
) -> None:
    exec_or_die(_expand_python(config.clean_command), log=log, printer=printer)
    exec_or_die(
        _expand_python(config.build_command_for(variant)),
        log=log,
        printer=printer,
    )
