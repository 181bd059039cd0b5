# Where: e2e/runner/tests/test_cli.py
# What: Unit tests for flag parsing and invocation options.
# Why: The parsed options are the only long-lived input of a run.
from __future__ import annotations

import dataclasses

import pytest

from e2e.runner import constants
from e2e.runner.cli import parse_args, to_options
from e2e.runner.models import EngineConfig, RunOptions, parse_browser_filter


def test_parse_args_defaults() -> None:
    options = to_options(parse_args([]))

    assert options == RunOptions()
    assert options.engine == constants.ENGINE_SELENIUM
    assert options.config == constants.CONFIG_PROD
    assert options.files is None


def test_parse_args_all_flags() -> None:
    args = parse_args(
        [
            "--browsers=firefox",
            "--engine=playwright",
            "--headless",
            "--config=canary",
            "--nobuild",
            "--files=**/test-e2e/test_*.py",
            "--testnames",
            "--watch",
            "--debug",
        ]
    )
    options = to_options(args)

    assert options == RunOptions(
        browsers="firefox",
        engine="playwright",
        headless=True,
        config="canary",
        nobuild=True,
        files="**/test-e2e/test_*.py",
        testnames=True,
        watch=True,
        debug=True,
    )


def test_parse_args_rejects_unknown_engine() -> None:
    with pytest.raises(SystemExit):
        parse_args(["--engine=puppeteer"])


def test_parse_args_rejects_unknown_config_variant() -> None:
    with pytest.raises(SystemExit):
        parse_args(["--config=nightly"])


def test_run_options_are_immutable() -> None:
    options = RunOptions()
    with pytest.raises(dataclasses.FrozenInstanceError):
        options.nobuild = True  # type: ignore[misc]


def test_parse_browser_filter_accepts_single_and_list() -> None:
    assert parse_browser_filter(None) == frozenset()
    assert parse_browser_filter("Chrome") == frozenset({"chrome"})
    assert parse_browser_filter("chrome, safari") == frozenset({"chrome", "safari"})


def test_parse_browser_filter_rejects_unknown_browser() -> None:
    with pytest.raises(ValueError, match="edge"):
        parse_browser_filter("edge")


def test_engine_config_from_options() -> None:
    options = RunOptions(browsers="firefox", engine="playwright", headless=True)
    engine = EngineConfig.from_options(options)

    assert engine == EngineConfig(
        browsers=frozenset({"firefox"}), engine="playwright", headless=True
    )
    assert engine.allows("firefox")
    assert not engine.allows("chrome")
    assert EngineConfig().allows("safari")
