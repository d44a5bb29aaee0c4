"""
Mock Socket.IO server for testing.

Serves the Engine.IO v4 websocket handshake at ``/socket.io/`` with
aiohttp, records what clients send and lets tests push events, pings
and disconnects.
"""

import asyncio
import time
from collections.abc import Callable
from typing import Any

import orjson
from aiohttp import WSMsgType, web
from aiohttp.test_utils import TestServer


async def wait_until(predicate: Callable[[], bool], timeout: float = 3.0) -> None:
    """Poll until ``predicate`` holds, failing the test after ``timeout``."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


class MockSocketIOServer:
    """
    Socket.IO server speaking just enough of the protocol for the client.

    Usage:
        async with MockSocketIOServer() as server:
            transport = SocketTransport(server.url)
    """

    def __init__(
        self,
        ping_interval_ms: int = 25_000,
        ping_timeout_ms: int = 20_000,
    ) -> None:
        """
        Initialize mock server.

        Args:
            ping_interval_ms: Advertised ping interval.
            ping_timeout_ms: Advertised ping timeout.
        """
        self.ping_interval_ms = ping_interval_ms
        self.ping_timeout_ms = ping_timeout_ms
        self.refuse_connect = False

        self.auth_payloads: list[Any] = []
        self.received: list[str] = []
        self.pongs = 0
        self.connection_count = 0

        self._sockets: list[web.WebSocketResponse] = []
        self._server: TestServer | None = None

    @property
    def url(self) -> str:
        """HTTP base URL of the running server."""
        assert self._server is not None, "server not started"
        return f"http://{self._server.host}:{self._server.port}"

    @property
    def active_connections(self) -> int:
        """Number of sockets that completed the Socket.IO connect."""
        return len(self._sockets)

    def events_received(self, event: str) -> list[list[Any]]:
        """Decoded EVENT packets with the given name sent by clients."""
        events = []
        for frame in self.received:
            if frame.startswith("42"):
                payload = orjson.loads(frame[2:])
                if payload[0] == event:
                    events.append(payload)
        return events

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start serving on a free local port."""
        app = web.Application()
        app.router.add_get("/socket.io/", self._handle)
        self._server = TestServer(app)
        await self._server.start_server()

    async def close(self) -> None:
        """Close every socket and stop the server."""
        await self.drop_all()
        if self._server is not None:
            await self._server.close()
            self._server = None

    async def __aenter__(self) -> "MockSocketIOServer":
        await self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    # =========================================================================
    # Server Actions
    # =========================================================================

    async def emit(self, event: str, data: Any = None) -> None:
        """Send an EVENT to every connected socket."""
        frame = "42" + orjson.dumps([event, data]).decode()
        for ws in list(self._sockets):
            await ws.send_str(frame)

    async def send_raw(self, frame: str) -> None:
        """Send a raw frame to every connected socket."""
        for ws in list(self._sockets):
            await ws.send_str(frame)

    async def ping(self) -> None:
        """Send an Engine.IO PING to every connected socket."""
        await self.send_raw("2")

    async def drop_all(self) -> None:
        """Close every socket from the server side."""
        for ws in list(self._sockets):
            await ws.close()
        self._sockets.clear()

    # =========================================================================
    # Handler
    # =========================================================================

    async def _handle(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)

        self.connection_count += 1
        open_payload = {
            "sid": f"eio-{self.connection_count}",
            "upgrades": [],
            "pingInterval": self.ping_interval_ms,
            "pingTimeout": self.ping_timeout_ms,
            "maxPayload": 1_000_000,
        }
        await ws.send_str("0" + orjson.dumps(open_payload).decode())

        try:
            async for msg in ws:
                if msg.type != WSMsgType.TEXT:
                    continue

                frame = msg.data
                self.received.append(frame)

                if frame == "3":
                    self.pongs += 1
                elif frame.startswith("40"):
                    self.auth_payloads.append(orjson.loads(frame[2:]) if len(frame) > 2 else None)
                    if self.refuse_connect:
                        await ws.send_str('44{"message":"unauthorized"}')
                        continue
                    await ws.send_str("40" + orjson.dumps({"sid": f"sock-{self.connection_count}"}).decode())
                    self._sockets.append(ws)
                elif frame == "41":
                    break
        finally:
            if ws in self._sockets:
                self._sockets.remove(ws)

        return ws
