"""
Type definitions for the arbitrage client.

Enums and slotted dataclasses shared across the session, channel and
reconciliation layers. Wire records parsed from backend JSON live in
``arbclient.api.models``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from arbclient.api.models import Opportunity


# =============================================================================
# Enums
# =============================================================================


class MarketType(str, Enum):
    """Market an opportunity was detected on."""

    SPOT = "SPOT"
    FUTURES = "FUTURES"
    DEX = "DEX"


class TradeStatus(str, Enum):
    """Server-side trade lifecycle status."""

    PENDING = "PENDING"
    BUY_PLACED = "BUY_PLACED"
    BUY_FILLED = "BUY_FILLED"
    SELL_PLACED = "SELL_PLACED"
    SELL_FILLED = "SELL_FILLED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_final(self) -> bool:
        """Check if the trade can no longer change."""
        return self in (TradeStatus.COMPLETED, TradeStatus.FAILED, TradeStatus.CANCELLED)


class Emphasis(str, Enum):
    """Direction of a spread change since the previous snapshot."""

    NONE = "none"
    INCREASED = "increased"
    DECREASED = "decreased"


class ChannelStatus(str, Enum):
    """Push channel connection status."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ChannelEvent(str, Enum):
    """Server -> client events delivered by the push channel."""

    OPPORTUNITIES_UPDATE = "opportunities:update"
    TRADE_UPDATE = "trade:update"
    ALERT_NOTIFICATION = "alert:notification"
    SYSTEM_MESSAGE = "system:message"


# =============================================================================
# Session Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class Credential:
    """Access/refresh token pair owned by the credential store."""

    access_token: str
    refresh_token: str

    def __repr__(self) -> str:
        return "Credential(access_token=***, refresh_token=***)"


@dataclass(slots=True, frozen=True)
class SessionInvalidated:
    """
    Signal emitted when the session can no longer be renewed.

    The credential store has already been cleared when this is emitted;
    the receiver decides how to re-authenticate.
    """

    reason: str
    status: int | None = None


@dataclass(slots=True, frozen=True)
class ChannelState:
    """Snapshot of the push channel state machine."""

    status: ChannelStatus = ChannelStatus.DISCONNECTED
    subscribed: bool = False

    @property
    def connected(self) -> bool:
        """Check if the transport is connected."""
        return self.status == ChannelStatus.CONNECTED


# =============================================================================
# Reconciliation Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class ReconciledOpportunity:
    """
    An opportunity as displayed, with its transient change emphasis.

    ``emphasized_at_ms`` is the wall-clock time the emphasis was assigned,
    or None when there is no emphasis.
    """

    opportunity: "Opportunity"
    emphasis: Emphasis = Emphasis.NONE
    emphasized_at_ms: int | None = None

    @property
    def id(self) -> str:
        """Opportunity identity."""
        return self.opportunity.id

    @property
    def is_emphasized(self) -> bool:
        """Check if the row currently carries a change emphasis."""
        return self.emphasis != Emphasis.NONE
