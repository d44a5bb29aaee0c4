"""
Socket.IO v4 / Engine.IO v4 packet codec.

Only what a websocket-only client on the default namespace needs:

    0{...}          Engine.IO OPEN (server handshake, ping settings)
    1               Engine.IO CLOSE
    2 / 3           Engine.IO PING / PONG
    40{auth}        Socket.IO CONNECT (client) / connect ack (server)
    41              Socket.IO DISCONNECT
    42["ev",data]   Socket.IO EVENT
    44{...}         Socket.IO CONNECT_ERROR
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Final

import orjson


class EnginePacketType(IntEnum):
    """Engine.IO packet types."""

    OPEN = 0
    CLOSE = 1
    PING = 2
    PONG = 3
    MESSAGE = 4
    UPGRADE = 5
    NOOP = 6


class SocketPacketType(IntEnum):
    """Socket.IO packet types carried in Engine.IO MESSAGE packets."""

    CONNECT = 0
    DISCONNECT = 1
    EVENT = 2
    ACK = 3
    CONNECT_ERROR = 4
    BINARY_EVENT = 5
    BINARY_ACK = 6


PONG: Final[str] = str(EnginePacketType.PONG.value)


class ProtocolError(Exception):
    """Frame that cannot be decoded as an Engine.IO/Socket.IO packet."""

    pass


@dataclass(slots=True, frozen=True)
class Packet:
    """
    Decoded packet.

    ``socket_type`` is set only for Engine.IO MESSAGE packets. For EVENT
    packets ``event`` holds the event name and ``data`` its first argument.
    """

    engine_type: EnginePacketType
    socket_type: SocketPacketType | None = None
    namespace: str = "/"
    event: str | None = None
    data: Any = None
    ack_id: int | None = None


def _loads(text: str) -> Any:
    try:
        return orjson.loads(text)
    except orjson.JSONDecodeError as e:
        raise ProtocolError(f"Invalid JSON payload: {e}") from e


def decode(frame: str) -> Packet:
    """
    Decode one websocket text frame.

    Raises:
        ProtocolError: On an empty frame, unknown type or bad payload.
    """
    if not frame:
        raise ProtocolError("Empty frame")

    try:
        engine_type = EnginePacketType(int(frame[0]))
    except ValueError as e:
        raise ProtocolError(f"Unknown engine packet type: {frame[0]!r}") from e

    body = frame[1:]

    if engine_type == EnginePacketType.OPEN:
        return Packet(engine_type=engine_type, data=_loads(body) if body else {})

    if engine_type != EnginePacketType.MESSAGE:
        return Packet(engine_type=engine_type, data=body or None)

    if not body:
        raise ProtocolError("Empty Socket.IO packet")

    try:
        socket_type = SocketPacketType(int(body[0]))
    except ValueError as e:
        raise ProtocolError(f"Unknown socket packet type: {body[0]!r}") from e

    rest = body[1:]

    # Binary packets carry an attachment count: "51-..."
    if socket_type in (SocketPacketType.BINARY_EVENT, SocketPacketType.BINARY_ACK):
        return Packet(engine_type=engine_type, socket_type=socket_type)

    namespace = "/"
    if rest.startswith("/"):
        namespace, sep, rest = rest.partition(",")
        if not sep:
            rest = ""

    digits = 0
    while digits < len(rest) and rest[digits].isdigit():
        digits += 1
    ack_id = int(rest[:digits]) if digits else None
    payload = _loads(rest[digits:]) if rest[digits:] else None

    if socket_type == SocketPacketType.EVENT:
        if not isinstance(payload, list) or not payload or not isinstance(payload[0], str):
            raise ProtocolError(f"Malformed event payload: {rest[:80]!r}")
        return Packet(
            engine_type=engine_type,
            socket_type=socket_type,
            namespace=namespace,
            event=payload[0],
            data=payload[1] if len(payload) > 1 else None,
            ack_id=ack_id,
        )

    return Packet(
        engine_type=engine_type,
        socket_type=socket_type,
        namespace=namespace,
        data=payload,
        ack_id=ack_id,
    )


def _message(socket_type: SocketPacketType, payload: str = "") -> str:
    return f"{EnginePacketType.MESSAGE.value}{socket_type.value}{payload}"


def encode_connect(auth: dict[str, Any] | None = None) -> str:
    """Encode a CONNECT to the default namespace with a handshake auth payload."""
    payload = orjson.dumps(auth).decode() if auth is not None else ""
    return _message(SocketPacketType.CONNECT, payload)


def encode_disconnect() -> str:
    """Encode a DISCONNECT from the default namespace."""
    return _message(SocketPacketType.DISCONNECT)


def encode_event(event: str, *args: Any) -> str:
    """
    Encode an EVENT.

    Example:
        >>> encode_event("subscribe:opportunities", {})
        '42["subscribe:opportunities",{}]'
        >>> encode_event("unsubscribe:opportunities")
        '42["unsubscribe:opportunities"]'
    """
    return _message(SocketPacketType.EVENT, orjson.dumps([event, *args]).decode())
