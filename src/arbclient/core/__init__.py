"""Core module containing shared types, the event bus, and session wiring."""

from arbclient.core.event_bus import Event, EventBus, EventHandler
from arbclient.core.types import (
    ChannelEvent,
    ChannelState,
    ChannelStatus,
    Credential,
    Emphasis,
    MarketType,
    ReconciledOpportunity,
    SessionInvalidated,
    TradeStatus,
)


__all__ = [
    "ChannelEvent",
    "ChannelState",
    "ChannelStatus",
    "Credential",
    "Emphasis",
    "Event",
    "EventBus",
    "EventHandler",
    "MarketType",
    "ReconciledOpportunity",
    "SessionInvalidated",
    "TradeStatus",
]
