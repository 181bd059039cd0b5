# Where: e2e/runner/runner.py
# What: Orchestrates one e2e session: install, build, serve, then run or watch tests.
# Why: Separate the control flow from the CLI entrypoint and the UI.
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from e2e.runner import constants, status
from e2e.runner.build import build_runtime, install_packages
from e2e.runner.config import E2EConfig
from e2e.runner.discovery import resolve_test_files, select_patterns
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
    PHASE_BUILD,
    PHASE_INSTALL,
    PHASE_SERVE,
    PHASE_TEST,
    STATUS_FAILED,
    STATUS_PASSED,
    Event,
)
from e2e.runner.logging import LogSink, make_prefix_printer
from e2e.runner.models import EngineConfig, RunOptions, TestOutcome
from e2e.runner.server import AssetServer, ServerStartError, start_server, stop_server
from e2e.runner.tester import invalidate_module_cache, run_pytest, run_single_file
from e2e.runner.ui import Reporter
from e2e.runner.utils import PROJECT_ROOT, resolve_test_retries
from e2e.runner.watcher import WatchSession

logger = logging.getLogger(__name__)


@dataclass
class E2ERun:
    server: AssetServer
    outcome: TestOutcome | None = None
    watch: WatchSession | None = None
    reporter: Reporter | None = None
    _closed: bool = field(default=False, init=False, repr=False)

    @property
    def exit_code(self) -> int:
        if self.outcome is None:
            return 0
        return self.outcome.exit_code

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.watch is not None:
            self.watch.stop()
        stop_server(self.server)
        if self.reporter is not None and self.watch is not None:
            self.reporter.emit(Event(EVENT_MESSAGE, message="Stopped watching for changes"))
            self.reporter.close()


def resolve_reporter(options: RunOptions) -> str:
    return constants.REPORTER_NAMES if options.testnames else constants.REPORTER_CI


def _phase_end(reporter: Reporter, phase: str, started: float, status_: str, **data) -> None:
    reporter.emit(
        Event(
            EVENT_PHASE_END,
            phase=phase,
            data={"status": status_, "duration": time.monotonic() - started, **data},
        )
    )


def _printer(options: RunOptions, label: str):
    return make_prefix_printer(label) if options.debug else None


def launch_web_server(
    options: RunOptions,
    config: E2EConfig,
    *,
    host: str = constants.HOST,
    port: int = constants.PORT,
) -> AssetServer:
    return start_server(
        config.serve_root,
        host=host,
        port=port,
        quiet=not options.debug,
        compiled=True,
        compiled_root=config.compiled_root,
        ready_timeout=config.ready_timeout,
    )


def prepare_session(
    options: RunOptions,
    *,
    config: E2EConfig,
    reporter: Reporter,
    log: LogSink,
) -> tuple[EngineConfig, AssetServer]:
    """Install, configure the engine, build and serve; any failure here is fatal."""
    started = time.monotonic()
    reporter.emit(Event(EVENT_PHASE_START, phase=PHASE_INSTALL))
    install_packages(config, log=log, printer=_printer(options, PHASE_INSTALL))
    _phase_end(reporter, PHASE_INSTALL, started, STATUS_PASSED)

    engine_config = EngineConfig.from_options(options)
    logger.debug("Engine configuration: %s", engine_config)

    if options.nobuild:
        reporter.emit(Event(EVENT_PHASE_SKIP, phase=PHASE_BUILD, message="--nobuild"))
    else:
        started = time.monotonic()
        reporter.emit(Event(EVENT_PHASE_START, phase=PHASE_BUILD))
        build_runtime(config, options.config, log=log, printer=_printer(options, PHASE_BUILD))
        _phase_end(reporter, PHASE_BUILD, started, STATUS_PASSED, detail=options.config)

    started = time.monotonic()
    reporter.emit(Event(EVENT_PHASE_START, phase=PHASE_SERVE))
    try:
        server = launch_web_server(options, config)
    except ServerStartError:
        _phase_end(reporter, PHASE_SERVE, started, STATUS_FAILED)
        raise
    _phase_end(reporter, PHASE_SERVE, started, STATUS_PASSED, detail=server.url)
    return engine_config, server


def _run_files(
    options: RunOptions,
    files: list[Path],
    *,
    subtype: str,
    engine_config: EngineConfig,
    server: AssetServer,
    reporter: Reporter,
) -> TestOutcome:
    for path in files:
        invalidate_module_cache(path)

    reporter.emit(Event(EVENT_TESTS_STARTED, data={"count": len(files)}))
    status.report_test_started(subtype)
    started = time.monotonic()
    reporter.emit(Event(EVENT_PHASE_START, phase=PHASE_TEST))
    outcome = run_pytest(
        files,
        engine_config=engine_config,
        server_url=server.url,
        reporter=resolve_reporter(options),
        retries=resolve_test_retries(),
    )
    _phase_end(
        reporter,
        PHASE_TEST,
        started,
        STATUS_PASSED if outcome.ok else STATUS_FAILED,
        detail=outcome.summary(),
    )
    return outcome


def run_once(
    options: RunOptions,
    *,
    config: E2EConfig,
    engine_config: EngineConfig,
    server: AssetServer,
    reporter: Reporter,
    root: Path = PROJECT_ROOT,
) -> TestOutcome:
    subtype = status.resolve_subtype(options.nobuild)
    try:
        patterns = select_patterns(options.files, config.e2e_test_paths)
        files = resolve_test_files(patterns, root=root)
        if not files:
            reporter.emit(
                Event(EVENT_MESSAGE, message=f"No test files matched {', '.join(patterns)}")
            )
            # CI status still records an empty run.
            status.report_test_started(subtype)
            outcome = TestOutcome()
        else:
            outcome = _run_files(
                options,
                files,
                subtype=subtype,
                engine_config=engine_config,
                server=server,
                reporter=reporter,
            )
    finally:
        stop_server(server)

    status.report_test_finished(subtype, outcome)
    return outcome


def start_watch(
    options: RunOptions,
    *,
    config: E2EConfig,
    engine_config: EngineConfig,
    server: AssetServer,
    reporter: Reporter,
    root: Path = PROJECT_ROOT,
) -> WatchSession:
    patterns = select_patterns(options.files, config.e2e_test_paths)

    def _on_event(path: Path) -> None:
        reporter.emit(Event(EVENT_FILE_CHANGED, data={"path": path}))

    def _run_file(path: Path) -> TestOutcome:
        reporter.emit(Event(EVENT_PHASE_START, phase=PHASE_TEST))
        started = time.monotonic()
        outcome = run_single_file(
            path,
            engine_config=engine_config,
            server_url=server.url,
            reporter=constants.REPORTER_NAMES,
        )
        _phase_end(
            reporter,
            PHASE_TEST,
            started,
            STATUS_PASSED if outcome.ok else STATUS_FAILED,
            detail=outcome.summary(),
        )
        return outcome

    session = WatchSession(patterns, _run_file, root=root, on_event=_on_event)
    session.start()
    reporter.emit(Event(EVENT_WATCH_START, data={"patterns": patterns}))
    return session


def run_e2e(
    options: RunOptions,
    *,
    config: E2EConfig,
    reporter: Reporter,
    log: LogSink,
    root: Path = PROJECT_ROOT,
) -> E2ERun:
    reporter.start()
    reporter.emit(Event(EVENT_RUN_START))
    engine_config, server = prepare_session(options, config=config, reporter=reporter, log=log)

    if options.watch:
        session = start_watch(
            options,
            config=config,
            engine_config=engine_config,
            server=server,
            reporter=reporter,
            root=root,
        )
        return E2ERun(server=server, watch=session, reporter=reporter)

    outcome = run_once(
        options,
        config=config,
        engine_config=engine_config,
        server=server,
        reporter=reporter,
        root=root,
    )
    reporter.emit(
        Event(
            EVENT_RUN_END,
            data={
                "status": STATUS_PASSED if outcome.ok else STATUS_FAILED,
                "summary": outcome.summary(),
            },
        )
    )
    reporter.close()
    return E2ERun(server=server, outcome=outcome)
