# Where: e2e/runner/tests/test_status.py
# What: Unit tests for CI test-status reporting.
# Why: Status reports are best-effort and must never fail the run.
from __future__ import annotations

import logging

import requests

from e2e.runner import constants, status
from e2e.runner.models import TestOutcome

CI_ENV = {"CI": "true", constants.ENV_STATUS_URL: "https://status.example.test/"}


class _FakeResponse:
    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")


class _FakeSession:
    posted: list[str] = []
    response = _FakeResponse()
    error: Exception | None = None

    def __init__(self) -> None:
        self.trust_env = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def post(self, url, timeout=None):
        assert self.trust_env is False
        if self.error is not None:
            raise self.error
        self.posted.append(url)
        return self.response


def _install_session(monkeypatch, *, response=None, error=None):
    session_cls = type(
        "Session",
        (_FakeSession,),
        {"posted": [], "response": response or _FakeResponse(), "error": error},
    )
    monkeypatch.setattr(status.requests, "Session", session_cls)
    monkeypatch.setattr(status, "git_commit_sha", lambda: "abc123")
    return session_cls


def test_resolve_subtype() -> None:
    assert status.resolve_subtype(True) == status.SUBTYPE_LOCAL
    assert status.resolve_subtype(False) == status.SUBTYPE_COMPILED


def test_reports_are_skipped_outside_ci(monkeypatch) -> None:
    session_cls = _install_session(monkeypatch)

    assert not status.report_test_started(status.SUBTYPE_LOCAL, env={})
    assert not status.report_test_finished(status.SUBTYPE_LOCAL, TestOutcome(), env={})
    assert session_cls.posted == []


def test_reports_are_skipped_without_status_url(monkeypatch) -> None:
    session_cls = _install_session(monkeypatch)

    assert not status.report_test_started(status.SUBTYPE_LOCAL, env={"TRAVIS": "true"})
    assert session_cls.posted == []


def test_reports_started_and_finished_in_ci(monkeypatch) -> None:
    session_cls = _install_session(monkeypatch)
    outcome = TestOutcome(passed=7, failed=2, errors=1)

    assert status.report_test_started(status.SUBTYPE_COMPILED, env=CI_ENV)
    assert status.report_test_finished(status.SUBTYPE_COMPILED, outcome, env=CI_ENV)

    assert session_cls.posted == [
        "https://status.example.test/v0/tests/abc123/e2e/compiled/started",
        "https://status.example.test/v0/tests/abc123/e2e/compiled/report/7/3",
    ]


def test_http_error_only_warns(monkeypatch, caplog) -> None:
    _install_session(monkeypatch, response=_FakeResponse(503))

    with caplog.at_level(logging.WARNING, logger="e2e.runner.status"):
        assert not status.report_test_started(status.SUBTYPE_LOCAL, env=CI_ENV)

    assert "Could not report test status" in caplog.text


def test_connection_error_only_warns(monkeypatch, caplog) -> None:
    _install_session(monkeypatch, error=requests.exceptions.ConnectionError("refused"))

    with caplog.at_level(logging.WARNING, logger="e2e.runner.status"):
        assert not status.report_test_finished(status.SUBTYPE_LOCAL, TestOutcome(), env=CI_ENV)

    assert "refused" in caplog.text


def test_missing_commit_sha_skips_report(monkeypatch) -> None:
    session_cls = _install_session(monkeypatch)
    monkeypatch.setattr(status, "git_commit_sha", lambda: None)

    assert not status.report_test_started(status.SUBTYPE_LOCAL, env=CI_ENV)
    assert session_cls.posted == []
