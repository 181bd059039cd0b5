from __future__ import annotations

import logging
import os
import sys

import pytest

from e2e.runner.logging import LogSink, configure_logging, make_prefix_printer, run_and_stream


def test_log_sink_requires_open(tmp_path) -> None:
    sink = LogSink(tmp_path / "run.log")
    with pytest.raises(RuntimeError):
        sink.write_line("early")


def test_log_sink_creates_parent_and_truncates(tmp_path) -> None:
    path = tmp_path / "nested" / "run.log"
    with LogSink(path) as sink:
        sink.write_line("first run")
    with LogSink(path) as sink:
        sink.write_line("second run")

    assert path.read_text(encoding="utf-8") == "second run\n"


def test_run_and_stream_merges_stderr(tmp_path) -> None:
    script = "import sys; print('out'); print('err', file=sys.stderr)"
    with LogSink(tmp_path / "run.log") as sink:
        rc = run_and_stream(
            [sys.executable, "-c", script],
            cwd=tmp_path,
            env=dict(os.environ),
            log=sink,
        )

    lines = (tmp_path / "run.log").read_text(encoding="utf-8").splitlines()
    assert rc == 0
    assert sorted(lines[1:]) == ["err", "out"]


def test_prefix_printer(capsys) -> None:
    make_prefix_printer("build")("compiled 3 files")
    assert capsys.readouterr().out == "[build] | compiled 3 files\n"


def test_configure_logging_levels() -> None:
    configure_logging(debug=True)
    assert logging.getLogger("e2e").level == logging.DEBUG
    assert logging.getLogger("selenium").level == logging.WARNING

    configure_logging(debug=False)
    assert logging.getLogger("e2e").level == logging.INFO
