"""Mock implementations for testing."""

from tests.mocks.backend import MockBackend, RecordedRequest
from tests.mocks.factories import make_opportunity, opportunity_payload, trade_payload
from tests.mocks.socketio import MockSocketIOServer, wait_until
from tests.mocks.transport import FakeTransport


__all__ = [
    "FakeTransport",
    "MockBackend",
    "MockSocketIOServer",
    "RecordedRequest",
    "make_opportunity",
    "opportunity_payload",
    "trade_payload",
    "wait_until",
]
