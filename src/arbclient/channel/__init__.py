"""Push channel: Socket.IO framing, websocket transport and manager."""

from arbclient.channel.manager import PushChannelManager
from arbclient.channel.protocol import Packet, ProtocolError, decode, encode_connect, encode_event
from arbclient.channel.transport import (
    HandshakeError,
    SocketTransport,
    Transport,
    TransportClosed,
    TransportError,
    TransportListener,
    TransportNotConnected,
    build_socketio_url,
)


__all__ = [
    "HandshakeError",
    "Packet",
    "ProtocolError",
    "PushChannelManager",
    "SocketTransport",
    "Transport",
    "TransportClosed",
    "TransportError",
    "TransportListener",
    "TransportNotConnected",
    "build_socketio_url",
    "decode",
    "encode_connect",
    "encode_event",
]
