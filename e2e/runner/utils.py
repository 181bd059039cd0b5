import os
import subprocess
import sys
from pathlib import Path
from typing import Callable, List, Optional

from e2e.runner import constants
from e2e.runner.logging import LogSink, run_and_stream, safe_print

# Project root
# Assuming this file is in e2e/runner/utils.py, parent.parent is "e2e", parent.parent.parent is root.
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
E2E_ROOT = PROJECT_ROOT / "e2e"
RUN_LOG_PATH = E2E_ROOT / ".e2e-run.log"


def is_ci_build(env: Optional[dict[str, str]] = None) -> bool:
    lookup = os.environ if env is None else env
    return any(lookup.get(key) for key in constants.ENV_CI_MARKERS)


def resolve_test_retries(env: Optional[dict[str, str]] = None) -> int:
    return constants.CI_TEST_RETRIES if is_ci_build(env) else 0


def git_commit_sha(root: Path = PROJECT_ROOT) -> str | None:
    try:
        result = subprocess.run(
            ["git", "-C", str(root), "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    value = result.stdout.strip()
    return value or None


def exec_or_die(
    cmd: List[str],
    *,
    log: LogSink,
    printer: Optional[Callable[[str], None]] = None,
    cwd: Path = PROJECT_ROOT,
    env: Optional[dict[str, str]] = None,
) -> None:
    """Run a command to completion and exit the process with its code on failure."""
    run_env = os.environ.copy()
    if env:
        run_env.update(env)
    try:
        rc = run_and_stream(cmd, cwd=cwd, env=run_env, log=log, printer=printer)
    except OSError as exc:
        safe_print(f"[ERROR] Failed to start `{' '.join(cmd)}`: {exc}")
        sys.exit(1)
    if rc != 0:
        safe_print(f"[ERROR] `{' '.join(cmd)}` exited with code {rc}")
        safe_print(f"        See {log.path} for the full output.")
        sys.exit(rc)
