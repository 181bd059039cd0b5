# Where: e2e/runner/server.py
# What: Local static web server that serves the built project to browsers under test.
# Why: Tests load pages from it, so it must be accepting connections before any test runs.
from __future__ import annotations

import functools
import logging
import os
import threading
import time
from http.client import HTTPConnection, HTTPException
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

from e2e.runner import constants

logger = logging.getLogger(__name__)


class ServerStartError(RuntimeError):
    pass


class _AssetRequestHandler(SimpleHTTPRequestHandler):
    quiet = True
    compiled_root: Path | None = None

    def translate_path(self, path: str) -> str:
        source_path = super().translate_path(path)
        if self.compiled_root is None:
            return source_path
        relative = os.path.relpath(source_path, self.directory)
        compiled_path = self.compiled_root / relative
        if compiled_path.is_file():
            return str(compiled_path)
        return source_path

    def log_message(self, format: str, *args) -> None:
        if self.quiet:
            return
        logger.info("%s - %s", self.address_string(), format % args)


class AssetServer:
    """Serves ``root`` (and ``compiled_root`` first when compiled) on a background thread."""

    def __init__(
        self,
        root: Path,
        *,
        host: str = constants.HOST,
        port: int = constants.PORT,
        quiet: bool = True,
        compiled: bool = False,
        compiled_root: Path | None = None,
    ) -> None:
        self.root = Path(root)
        self.host = host
        self.port = port
        self.quiet = quiet
        self.compiled = compiled
        self.compiled_root = Path(compiled_root) if compiled_root else None
        self._httpd: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def running(self) -> bool:
        return self._httpd is not None

    def _handler_class(self):
        attrs = {"quiet": self.quiet}
        if self.compiled and self.compiled_root is not None:
            attrs["compiled_root"] = self.compiled_root
        handler = type("AssetRequestHandler", (_AssetRequestHandler,), attrs)
        return functools.partial(handler, directory=str(self.root))

    def start(self, *, ready_timeout: float = constants.SERVER_READY_TIMEOUT_SECONDS) -> None:
        if self._httpd is not None:
            return
        if not self.root.is_dir():
            raise ServerStartError(f"Serve root does not exist: {self.root}")
        try:
            httpd = ThreadingHTTPServer((self.host, self.port), self._handler_class())
        except OSError as exc:
            raise ServerStartError(f"Could not bind {self.host}:{self.port}: {exc}") from exc
        httpd.daemon_threads = True
        # Port 0 asks the OS for a free port.
        self.port = httpd.server_address[1]
        self._httpd = httpd
        self._thread = threading.Thread(
            target=httpd.serve_forever,
            name=f"e2e-server-{self.port}",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Serving %s at %s (compiled=%s)", self.root, self.url, self.compiled)
        try:
            wait_for_server_ready(self.host, self.port, timeout=ready_timeout)
        except ServerStartError:
            self.stop()
            raise

    def stop(self) -> None:
        httpd = self._httpd
        if httpd is None:
            return
        self._httpd = None
        httpd.shutdown()
        httpd.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        logger.debug("Stopped server at %s", self.url)


def _server_responding(host: str, port: int, timeout: float = 2) -> bool:
    # Local server only; bypass proxy resolution entirely.
    conn = HTTPConnection(host, port, timeout=timeout)
    try:
        conn.request("HEAD", "/")
        response = conn.getresponse()
        response.read()
        return True
    except (OSError, HTTPException):
        return False
    finally:
        conn.close()


def wait_for_server_ready(
    host: str,
    port: int,
    *,
    timeout: float = constants.SERVER_READY_TIMEOUT_SECONDS,
    interval: float = 0.1,
) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if _server_responding(host, port):
            return
        time.sleep(interval)
    raise ServerStartError(f"Server not responding at http://{host}:{port}/ after {timeout}s")


def start_server(
    root: Path,
    *,
    host: str = constants.HOST,
    port: int = constants.PORT,
    quiet: bool = True,
    compiled: bool = False,
    compiled_root: Path | None = None,
    ready_timeout: float = constants.SERVER_READY_TIMEOUT_SECONDS,
) -> AssetServer:
    server = AssetServer(
        root,
        host=host,
        port=port,
        quiet=quiet,
        compiled=compiled,
        compiled_root=compiled_root,
    )
    server.start(ready_timeout=ready_timeout)
    return server


def stop_server(server: AssetServer | None) -> None:
    if server is not None:
        server.stop()
