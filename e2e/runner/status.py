# Where: e2e/runner/status.py
# What: Report e2e run status to an external test-status service from CI.
# Why: Let pull requests show e2e progress; never allowed to fail the run itself.
from __future__ import annotations

import logging
import os

import requests

from e2e.runner import constants
from e2e.runner.models import TestOutcome
from e2e.runner.utils import git_commit_sha, is_ci_build

logger = logging.getLogger(__name__)

TEST_TYPE = "e2e"
SUBTYPE_LOCAL = "local"
SUBTYPE_COMPILED = "compiled"
_TIMEOUT_SECONDS = 10.0


def resolve_subtype(nobuild: bool) -> str:
    return SUBTYPE_LOCAL if nobuild else SUBTYPE_COMPILED


def _status_base_url(env: dict[str, str] | None = None) -> str | None:
    lookup = os.environ if env is None else env
    if not is_ci_build(lookup):
        return None
    base = lookup.get(constants.ENV_STATUS_URL, "").strip().rstrip("/")
    return base or None


def _post(url: str) -> bool:
    try:
        with requests.Session() as session:
            session.trust_env = False
            response = session.post(url, timeout=_TIMEOUT_SECONDS)
        response.raise_for_status()
    except requests.exceptions.RequestException as exc:
        logger.warning("Could not report test status to %s: %s", url, exc)
        return False
    logger.debug("Reported test status: %s", url)
    return True


def _endpoint(subtype: str, action: str, env: dict[str, str] | None = None) -> str | None:
    base = _status_base_url(env)
    if not base:
        return None
    sha = git_commit_sha()
    if not sha:
        logger.warning("Could not resolve commit SHA; skipping test status report")
        return None
    return f"{base}/v0/tests/{sha}/{TEST_TYPE}/{subtype}/{action}"


def report_test_started(subtype: str, *, env: dict[str, str] | None = None) -> bool:
    url = _endpoint(subtype, "started", env)
    if url is None:
        return False
    return _post(url)


def report_test_finished(
    subtype: str,
    outcome: TestOutcome,
    *,
    env: dict[str, str] | None = None,
) -> bool:
    url = _endpoint(subtype, f"report/{outcome.passed}/{outcome.failed + outcome.errors}", env)
    if url is None:
        return False
    return _post(url)
