"""
Websocket transport for the push channel.

Speaks Socket.IO v4 over an aiohttp websocket with:
- Handshake credential read fresh on every (re)connect
- Engine.IO ping/pong liveness with read timeout
- Auto-reconnection with exponential backoff
"""

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, Protocol

import aiohttp

from arbclient.channel.protocol import (
    PONG,
    EnginePacketType,
    Packet,
    ProtocolError,
    SocketPacketType,
    decode,
    encode_connect,
    encode_disconnect,
    encode_event,
)
from arbclient.config.constants import (
    ENGINEIO_VERSION,
    MAX_RECONNECT_DELAY,
    MIN_RECONNECT_DELAY,
    RECONNECT_MULTIPLIER,
    SOCKETIO_PATH,
    WS_CLOSE_TIMEOUT,
    WS_CONNECT_TIMEOUT,
    WS_DEFAULT_PING_INTERVAL,
    WS_DEFAULT_PING_TIMEOUT,
    WS_MAX_MESSAGE_SIZE,
)
from arbclient.telemetry.metrics import MetricsCollector


logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Base exception for transport errors."""

    pass


class TransportNotConnected(TransportError):
    """Emit attempted while no socket session is established."""

    pass


class HandshakeError(TransportError):
    """Server refused or broke the Socket.IO handshake."""

    pass


class TransportClosed(TransportError):
    """Websocket closed underneath an active session."""

    pass


class TransportListener(Protocol):
    """Receiver of transport lifecycle and inbound events."""

    def handshake_auth(self) -> dict[str, Any]:
        """Auth payload sent with every CONNECT."""
        ...

    def on_transport_connecting(self) -> None: ...

    def on_transport_open(self, sid: str | None) -> Awaitable[None]:
        """Socket session acknowledged; awaited before any event is read."""
        ...

    def on_transport_close(self, reason: str) -> None: ...

    def on_transport_event(self, event: str, data: Any) -> None: ...


class Transport(Protocol):
    """What the channel manager needs from a transport."""

    @property
    def connected(self) -> bool: ...

    def start(self, listener: TransportListener) -> None: ...

    async def emit(self, event: str, *args: Any) -> None: ...

    async def stop(self) -> None: ...


def build_socketio_url(base_url: str) -> str:
    """
    Build the websocket endpoint URL for a Socket.IO server.

    Example:
        >>> build_socketio_url("https://api.example.com")
        'wss://api.example.com/socket.io/?EIO=4&transport=websocket'
    """
    url = base_url.rstrip("/")
    if url.startswith("https://"):
        url = "wss://" + url[len("https://") :]
    elif url.startswith("http://"):
        url = "ws://" + url[len("http://") :]
    return f"{url}{SOCKETIO_PATH}?EIO={ENGINEIO_VERSION}&transport=websocket"


class SocketTransport:
    """
    Single Socket.IO connection with its own reconnect loop.

    Once started, the transport keeps reconnecting until ``stop()``; the
    listener observes every attempt through connecting/open/close calls.
    """

    def __init__(
        self,
        base_url: str,
        min_reconnect_delay: float = MIN_RECONNECT_DELAY,
        max_reconnect_delay: float = MAX_RECONNECT_DELAY,
        connect_timeout: float = WS_CONNECT_TIMEOUT,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize the transport.

        Args:
            base_url: Socket.IO server base URL (http(s) or ws(s)).
            min_reconnect_delay: First backoff delay in seconds.
            max_reconnect_delay: Backoff ceiling in seconds.
            connect_timeout: Timeout for connect plus handshake.
            metrics: Optional metrics collector.
        """
        self._url = build_socketio_url(base_url)
        self._min_delay = min_reconnect_delay
        self._max_delay = max_reconnect_delay
        self._connect_timeout = connect_timeout
        self._metrics = metrics

        self._listener: TransportListener | None = None
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._connected = False
        self._reconnect_delay = min_reconnect_delay
        self._sid: str | None = None

    @property
    def url(self) -> str:
        """Websocket endpoint URL."""
        return self._url

    @property
    def connected(self) -> bool:
        """Check if a socket session is established."""
        return self._connected

    @property
    def sid(self) -> str | None:
        """Socket.IO session id of the current connection."""
        return self._sid

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self, listener: TransportListener) -> None:
        """Start the connection loop as a task."""
        if self._task is not None and not self._task.done():
            return

        self._listener = listener
        self._running = True
        self._task = asyncio.create_task(self.run(), name="socketio-transport")

    async def stop(self) -> None:
        """Stop the connection loop and disconnect."""
        self._running = False

        ws = self._ws
        if ws is not None and not ws.closed:
            try:
                await ws.send_str(encode_disconnect())
            except (aiohttp.ClientError, ConnectionError) as e:
                logger.debug(f"[WS] Could not send disconnect: {e}")

        if self._task:
            self._task.cancel()
            try:
                await asyncio.wait_for(self._task, timeout=WS_CLOSE_TIMEOUT)
            except (TimeoutError, asyncio.CancelledError):
                pass
            self._task = None

        if self._session and not self._session.closed:
            await self._session.close()

        self._session = None
        self._ws = None
        self._connected = False

    async def run(self) -> None:
        """Main connection loop with auto-reconnection."""
        while self._running:
            reason = "connection closed"
            try:
                reason = await self._run_session()
            except asyncio.CancelledError:
                raise
            except (TimeoutError, asyncio.TimeoutError):
                reason = "heartbeat or handshake timeout"
                logger.warning(f"[WS] {reason}")
            except (aiohttp.ClientError, TransportError, ProtocolError) as e:
                reason = str(e) or type(e).__name__
                logger.warning(f"[WS] Connection failed: {reason}")
            except Exception as e:
                reason = f"unexpected error: {e}"
                logger.exception("[WS] Error in connection loop")
            finally:
                self._ws = None
                self._connected = False
                self._sid = None

            if not self._running:
                break

            if self._listener:
                self._listener.on_transport_close(reason)

            if self._metrics:
                self._metrics.increment_counter("reconnects")

            logger.info(f"[WS] Reconnecting in {self._reconnect_delay:.1f}s")
            await asyncio.sleep(self._reconnect_delay)

            # Exponential backoff
            self._reconnect_delay = min(
                self._reconnect_delay * RECONNECT_MULTIPLIER,
                self._max_delay,
            )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def _run_session(self) -> str:
        """
        Run one connection from connect to close.

        Returns:
            Human-readable reason the session ended.
        """
        listener = self._listener
        if listener is None:
            raise TransportError("Transport started without a listener")

        listener.on_transport_connecting()
        session = await self._get_session()

        logger.info(f"[WS] Connecting to {self._url}")
        ws = await asyncio.wait_for(
            session.ws_connect(self._url, max_msg_size=WS_MAX_MESSAGE_SIZE),
            timeout=self._connect_timeout,
        )
        self._ws = ws

        try:
            read_timeout = await self._handshake(ws, listener)

            self._connected = True
            self._reconnect_delay = self._min_delay
            logger.info(f"[WS] Connected (sid={self._sid})")
            await listener.on_transport_open(self._sid)

            return await self._read_loop(ws, listener, read_timeout)
        finally:
            if not ws.closed:
                await ws.close()

    async def _receive(self, ws: aiohttp.ClientWebSocketResponse, timeout: float) -> Packet | None:
        """
        Receive and decode one frame.

        Returns:
            The packet, or None for frames that carry nothing for us.
        """
        msg = await ws.receive(timeout=timeout)

        if msg.type == aiohttp.WSMsgType.TEXT:
            return decode(msg.data)

        if msg.type in (
            aiohttp.WSMsgType.CLOSE,
            aiohttp.WSMsgType.CLOSING,
            aiohttp.WSMsgType.CLOSED,
        ):
            raise TransportClosed("websocket closed by server")

        if msg.type == aiohttp.WSMsgType.ERROR:
            raise TransportClosed(f"websocket error: {ws.exception()}")

        return None

    async def _handshake(
        self,
        ws: aiohttp.ClientWebSocketResponse,
        listener: TransportListener,
    ) -> float:
        """
        Perform the Engine.IO open and Socket.IO connect exchange.

        Returns:
            Read timeout derived from the server's ping settings.
        """
        packet = await self._receive(ws, self._connect_timeout)
        if packet is None or packet.engine_type != EnginePacketType.OPEN:
            raise HandshakeError("expected Engine.IO OPEN packet")

        settings = packet.data if isinstance(packet.data, dict) else {}
        ping_interval = settings.get("pingInterval", WS_DEFAULT_PING_INTERVAL * 1000) / 1000
        ping_timeout = settings.get("pingTimeout", WS_DEFAULT_PING_TIMEOUT * 1000) / 1000

        await ws.send_str(encode_connect(listener.handshake_auth()))

        while True:
            packet = await self._receive(ws, self._connect_timeout)
            if packet is None:
                continue

            if packet.engine_type == EnginePacketType.PING:
                await ws.send_str(PONG)
                continue

            if packet.socket_type == SocketPacketType.CONNECT:
                data = packet.data if isinstance(packet.data, dict) else {}
                self._sid = data.get("sid")
                return float(ping_interval + ping_timeout)

            if packet.socket_type == SocketPacketType.CONNECT_ERROR:
                data = packet.data if isinstance(packet.data, dict) else {}
                raise HandshakeError(f"connect refused: {data.get('message', packet.data)}")

            raise HandshakeError(f"unexpected packet during handshake: {packet.engine_type.name}")

    async def _read_loop(
        self,
        ws: aiohttp.ClientWebSocketResponse,
        listener: TransportListener,
        read_timeout: float,
    ) -> str:
        """Process frames until the session ends."""
        while self._running:
            try:
                packet = await self._receive(ws, read_timeout)
            except ProtocolError as e:
                logger.warning(f"[WS] Dropping malformed frame: {e}")
                continue

            if packet is None:
                continue

            if packet.engine_type == EnginePacketType.PING:
                await ws.send_str(PONG)
            elif packet.engine_type == EnginePacketType.CLOSE:
                return "server closed the session"
            elif packet.engine_type == EnginePacketType.MESSAGE:
                if packet.namespace != "/":
                    continue
                if packet.socket_type == SocketPacketType.EVENT and packet.event:
                    listener.on_transport_event(packet.event, packet.data)
                elif packet.socket_type == SocketPacketType.DISCONNECT:
                    return "server disconnected the socket"
                elif packet.socket_type == SocketPacketType.CONNECT_ERROR:
                    return f"server error: {packet.data}"
                elif packet.socket_type in (
                    SocketPacketType.BINARY_EVENT,
                    SocketPacketType.BINARY_ACK,
                ):
                    logger.debug("[WS] Ignoring binary packet")

        return "transport stopped"

    # =========================================================================
    # Outbound
    # =========================================================================

    async def emit(self, event: str, *args: Any) -> None:
        """
        Send an event to the server.

        Raises:
            TransportNotConnected: If no socket session is established.
        """
        ws = self._ws
        if ws is None or ws.closed or not self._connected:
            raise TransportNotConnected(f"cannot emit {event!r}: not connected")

        try:
            await ws.send_str(encode_event(event, *args))
        except (aiohttp.ClientError, ConnectionError) as e:
            raise TransportError(f"emit {event!r} failed: {e}") from e
