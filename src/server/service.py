"""Websocket UI server: timer events out, user commands in."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from typing import Any, Callable, Optional
from urllib.parse import urlsplit

import websockets
from websockets.asyncio.server import ServerConnection
from websockets.datastructures import Headers
from websockets.http11 import Request, Response

from contracts.ui_protocol import EVENT_ERROR, EVENT_HELLO

from .config import HEALTHZ_PATH, INDEX_PATH, ROOT_PATH, UIServerConfig
from .events import CommandDecodeError, StickyEventStore, decode_command, make_event
from .static_files import StaticAssets

CommandSink = Callable[[dict[str, Any]], None]

_TEXT_PLAIN = "text/plain; charset=utf-8"
_TEXT_HTML = "text/html; charset=utf-8"
_SHUTDOWN_CLOSE_CODE = 1001
_POLICY_CLOSE_CODE = 1008


def _http_response(status: int, reason: str, body: bytes, content_type: str) -> Response:
    headers = Headers()
    headers["Content-Type"] = content_type
    headers["Content-Length"] = str(len(body))
    headers["Cache-Control"] = "no-store"
    return Response(status, reason, headers, body)


class UIServer:
    """Runs a websockets server on its own asyncio loop in a daemon thread.

    `publish` may be called from any thread. Queue, timer, and error events
    are remembered and replayed to clients that connect later. Frames sent
    by clients are decoded and handed to the command sink; the sink must not
    block because it runs on the server loop.
    """

    def __init__(
        self,
        config: UIServerConfig,
        command_sink: Optional[CommandSink] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._command_sink = command_sink
        self._logger = logger or logging.getLogger("ui_server")
        self._sticky_events = StickyEventStore()
        self._assets: Optional[StaticAssets] = (
            StaticAssets(config.index_file) if config.index_file else None
        )

        self._clients: set[ServerConnection] = set()
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._shutdown: Optional[asyncio.Future] = None
        self._ready = threading.Event()
        self._failure: Optional[BaseException] = None

    @property
    def host(self) -> str:
        return self._config.host

    @property
    def port(self) -> int:
        return self._config.port

    @property
    def websocket_path(self) -> str:
        return self._config.websocket_path

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive() and self._failure is None

    def set_command_sink(self, command_sink: Optional[CommandSink]) -> None:
        self._command_sink = command_sink

    def start(self, timeout_seconds: float = 5.0) -> None:
        """Start serving; raises RuntimeError when the socket cannot be bound in time."""
        if self.is_running:
            self._logger.warning("UI server is already running")
            return

        self._failure = None
        self._ready.clear()
        self._thread = threading.Thread(target=self._thread_main, daemon=True, name="ui-server")
        self._thread.start()

        if not self._ready.wait(timeout_seconds):
            raise RuntimeError(f"UI server did not start within {timeout_seconds:.1f}s")
        if self._failure is not None:
            raise RuntimeError(f"UI server startup failed: {self._failure}")

    def stop(self, timeout_seconds: float = 5.0) -> None:
        thread = self._thread
        if thread is None:
            return

        loop, shutdown = self._loop, self._shutdown
        if loop is not None and shutdown is not None:
            with contextlib.suppress(RuntimeError):
                loop.call_soon_threadsafe(_resolve, shutdown)

        thread.join(timeout=timeout_seconds)
        if thread.is_alive():
            self._logger.error("UI server thread did not stop within %.1fs", timeout_seconds)

        self._thread = None
        self._loop = None
        self._shutdown = None

    def publish(self, event_type: str, **payload: Any) -> None:
        message = make_event(event_type, **payload)
        # Remembered before startup too, so the first client sees current state.
        self._sticky_events.remember(event_type, message)

        loop = self._loop
        if loop is None or not self.is_running:
            return
        try:
            future = asyncio.run_coroutine_threadsafe(self._broadcast(message), loop)
        except RuntimeError:
            # Loop already closed.
            return
        future.add_done_callback(self._log_broadcast_failure)

    def clear_sticky(self, event_type: str) -> None:
        self._sticky_events.forget(event_type)

    def _log_broadcast_failure(self, future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self._logger.debug("Broadcast failed: %s", error)

    # Server thread

    def _thread_main(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        self._shutdown = loop.create_future()
        try:
            loop.run_until_complete(self._serve())
        except Exception as error:
            self._failure = error
            self._logger.error("UI server failed: %s", error, exc_info=True)
        finally:
            self._ready.set()
            leftovers = asyncio.all_tasks(loop)
            for task in leftovers:
                task.cancel()
            with contextlib.suppress(Exception):
                loop.run_until_complete(asyncio.gather(*leftovers, return_exceptions=True))
            loop.close()

    async def _serve(self) -> None:
        async with websockets.serve(
            self._handle_connection,
            host=self._config.host,
            port=self._config.port,
            process_request=self._route_http,
            logger=self._logger,
        ):
            self._logger.info(
                "UI server running at http://%s:%d (websocket: %s)",
                self._config.host,
                self._config.port,
                self._config.websocket_path,
            )
            self._ready.set()
            await self._shutdown
            await self._disconnect_all()

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        request = websocket.request
        path = urlsplit(request.path).path if request is not None else ""
        if path != self._config.websocket_path:
            await websocket.close(code=_POLICY_CLOSE_CODE, reason="Invalid websocket path")
            return

        self._clients.add(websocket)
        self._logger.info("Client connected: %s", websocket.remote_address)
        try:
            await websocket.send(make_event(EVENT_HELLO, message="Timer websocket connected"))
            for message in self._sticky_events.snapshot():
                await websocket.send(message)
            async for frame in websocket:
                await self._receive(websocket, frame)
        except websockets.exceptions.ConnectionClosed:
            self._logger.info("Client disconnected: %s", websocket.remote_address)
        finally:
            self._clients.discard(websocket)

    async def _receive(self, websocket: ServerConnection, frame: str | bytes) -> None:
        self._logger.debug("Received from UI: %s", frame)
        try:
            command = decode_command(frame)
        except CommandDecodeError as error:
            self._logger.warning("Rejected UI command: %s", error)
            await websocket.send(make_event(EVENT_ERROR, message=str(error)))
            return

        sink = self._command_sink
        if sink is None:
            self._logger.debug("No command sink; dropping %s", command["command"])
            return
        try:
            sink(command)
        except Exception as error:
            self._logger.error("Command sink failed: %s", error, exc_info=True)
            await websocket.send(make_event(EVENT_ERROR, message="Command could not be queued"))

    async def _route_http(
        self,
        connection: ServerConnection,
        request: Request,
    ) -> Optional[Response]:
        """Plain HTTP requests on the websocket port: index, assets, health."""
        del connection
        path = urlsplit(request.path).path
        if path == self._config.websocket_path:
            return None
        if path == HEALTHZ_PATH:
            return _http_response(200, "OK", b"ok\n", _TEXT_PLAIN)

        assets = self._assets
        if assets is not None:
            if path in (ROOT_PATH, INDEX_PATH):
                return _http_response(200, "OK", assets.index_html, _TEXT_HTML)
            asset = assets.load(path)
            if asset is not None:
                body, content_type = asset
                return _http_response(200, "OK", body, content_type)

        return _http_response(404, "Not Found", b"not found\n", _TEXT_PLAIN)

    async def _broadcast(self, message: str) -> None:
        clients = tuple(self._clients)
        if not clients:
            return

        results = await asyncio.gather(
            *(client.send(message) for client in clients),
            return_exceptions=True,
        )
        for client, result in zip(clients, results):
            if isinstance(result, Exception):
                self._logger.warning("Dropping client after failed send: %s", result)
                self._clients.discard(client)

    async def _disconnect_all(self) -> None:
        clients = tuple(self._clients)
        self._clients.clear()
        if not clients:
            return
        await asyncio.gather(
            *(
                client.close(code=_SHUTDOWN_CLOSE_CODE, reason="Server shutting down")
                for client in clients
            ),
            return_exceptions=True,
        )


def _resolve(future: asyncio.Future) -> None:
    if not future.done():
        future.set_result(None)
