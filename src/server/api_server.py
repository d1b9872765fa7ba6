"""Threaded HTTP server exposing the REST task API."""

from __future__ import annotations

import logging
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional
from urllib.parse import urlsplit

from .api_routes import TaskApiRoutes
from .config import API_PREFIX, ApiServerConfig

MAX_BODY_BYTES = 64 * 1024


def _make_handler(routes: TaskApiRoutes, logger: logging.Logger):
    class ApiRequestHandler(BaseHTTPRequestHandler):
        server_version = "PomodoroTaskApi/1.0"
        protocol_version = "HTTP/1.1"

        def do_GET(self) -> None:
            self._dispatch()

        def do_POST(self) -> None:
            self._dispatch()

        def do_PATCH(self) -> None:
            self._dispatch()

        def do_DELETE(self) -> None:
            self._dispatch()

        def log_message(self, format: str, *args) -> None:
            logger.debug("%s - %s", self.address_string(), format % args)

        def _dispatch(self) -> None:
            started = time.perf_counter()
            path = urlsplit(self.path).path

            try:
                length = int(self.headers.get("Content-Length") or 0)
            except ValueError:
                length = -1
            if length < 0:
                self.close_connection = True
                self._send(400, b'{"message": "Invalid Content-Length"}', "application/json")
                return
            if length > MAX_BODY_BYTES:
                self.close_connection = True
                self._send(413, b'{"message": "Request body too large"}', "application/json")
                return
            body = self.rfile.read(length) if length > 0 else b""

            response = routes.handle(self.command, path, body)
            self._send(response.status, response.encode(), response.content_type)

            if path.startswith(API_PREFIX):
                logger.info(
                    "%s %s %s in %.0fms",
                    self.command,
                    path,
                    response.status,
                    (time.perf_counter() - started) * 1000,
                )

        def _send(self, status: int, payload: bytes, content_type: str) -> None:
            self.send_response(status)
            if payload:
                self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(payload)))
            self.send_header("Cache-Control", "no-store")
            self.end_headers()
            if payload:
                self.wfile.write(payload)

    return ApiRequestHandler


class ApiServer:
    """Runs the REST API on a daemon thread next to the websocket UI server."""

    def __init__(
        self,
        config: ApiServerConfig,
        routes: TaskApiRoutes,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._routes = routes
        self._logger = logger or logging.getLogger("api_server")
        self._httpd: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def host(self) -> str:
        return self._config.host

    @property
    def port(self) -> int:
        if self._httpd is not None:
            return self._httpd.server_address[1]
        return self._config.port

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            self._logger.warning("API server is already running")
            return

        try:
            self._httpd = ThreadingHTTPServer(
                (self._config.host, self._config.port),
                _make_handler(self._routes, self._logger),
            )
        except OSError as error:
            raise RuntimeError(f"API server startup failed: {error}") from error
        self._httpd.daemon_threads = True

        self._thread = threading.Thread(
            target=self._httpd.serve_forever,
            kwargs={"poll_interval": 0.25},
            daemon=True,
            name="api-server",
        )
        self._thread.start()
        self._logger.info(
            "API server running at http://%s:%d%s",
            self._config.host,
            self.port,
            API_PREFIX,
        )

    def stop(self, timeout_seconds: float = 5.0) -> None:
        if self._httpd is None:
            return

        self._httpd.shutdown()
        self._httpd.server_close()
        if self._thread is not None:
            self._thread.join(timeout=timeout_seconds)
            if self._thread.is_alive():
                self._logger.error(
                    "API server thread did not stop within %.1fs",
                    timeout_seconds,
                )

        self._httpd = None
        self._thread = None
