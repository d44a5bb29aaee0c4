"""
Fake push transport for testing.

Lets tests drive the channel manager's transport callbacks directly,
without a server or network connection.
"""

import asyncio
from typing import Any

from arbclient.channel.transport import TransportListener, TransportNotConnected


class FakeTransport:
    """
    Transport whose lifecycle is scripted by the test.

    Every emitted event is recorded as ``(event, args)``.
    """

    def __init__(self) -> None:
        """Initialize fake transport."""
        self.listener: TransportListener | None = None
        self.emitted: list[tuple[str, tuple[Any, ...]]] = []
        self.handshakes: list[dict[str, Any]] = []
        self.start_count = 0
        self.stopped = False
        self.fail_emits = False
        self.emit_yields = False
        self._connected = False

    @property
    def connected(self) -> bool:
        """Check if the scripted connection is open."""
        return self._connected

    def start(self, listener: TransportListener) -> None:
        """Record the listener; nothing connects until ``open()``."""
        self.listener = listener
        self.start_count += 1
        self.stopped = False

    async def emit(self, event: str, *args: Any) -> None:
        """Record an outbound event."""
        if self.emit_yields:
            # Let other tasks run while the frame is "on the wire"
            await asyncio.sleep(0)
        if not self._connected:
            raise TransportNotConnected(f"cannot emit {event!r}: not connected")
        if self.fail_emits:
            raise TransportNotConnected(f"cannot emit {event!r}: scripted failure")
        self.emitted.append((event, args))

    async def stop(self) -> None:
        """Stop the transport."""
        self.stopped = True
        self._connected = False

    # =========================================================================
    # Scripting
    # =========================================================================

    async def open(self, sid: str = "sid-1") -> None:
        """Simulate a successful connect and handshake."""
        assert self.listener is not None, "transport was never started"
        self.listener.on_transport_connecting()
        self.handshakes.append(self.listener.handshake_auth())
        self._connected = True
        await self.listener.on_transport_open(sid)

    def drop(self, reason: str = "connection lost") -> None:
        """Simulate the connection going away."""
        assert self.listener is not None, "transport was never started"
        self._connected = False
        self.listener.on_transport_close(reason)

    def push(self, event: str, data: Any = None) -> None:
        """Simulate an inbound server event."""
        assert self.listener is not None, "transport was never started"
        self.listener.on_transport_event(event, data)

    def events_named(self, event: str) -> list[tuple[Any, ...]]:
        """Arguments of every emitted event with the given name."""
        return [args for name, args in self.emitted if name == event]
