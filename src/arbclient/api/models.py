"""
Pydantic models for backend API responses and push payloads.

These models provide type-safe parsing of backend JSON. Every response
is wrapped in an ``{success, message, data}`` envelope.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from arbclient.core.types import MarketType, TradeStatus


WIRE_CONFIG = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


def to_decimal(value: str | None) -> Decimal | None:
    """
    Parse a decimal string, returning None for anything non-finite or malformed.

    Example:
        >>> to_decimal("1.25")
        Decimal('1.25')
        >>> to_decimal("n/a") is None
        True
    """
    if value is None or value == "":
        return None
    try:
        parsed = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    return parsed if parsed.is_finite() else None


class ApiResponse(BaseModel):
    """Response envelope shared by every endpoint."""

    success: bool = True
    message: str = ""
    data: Any = None


class User(BaseModel):
    """Authenticated user profile."""

    id: str
    email: str
    username: str
    role: str = "USER"
    created_at: datetime | None = Field(default=None, alias="createdAt")
    last_login: datetime | None = Field(default=None, alias="lastLogin")

    model_config = WIRE_CONFIG


class AuthTokens(BaseModel):
    """Login/register response payload."""

    access_token: str = Field(alias="accessToken")
    refresh_token: str = Field(alias="refreshToken")
    user: User | None = None

    model_config = WIRE_CONFIG


class Exchange(BaseModel):
    """Exchange embedded in an opportunity."""

    id: str
    name: str
    display_name: str = Field(default="", alias="displayName")
    type: str = "CEX"
    is_active: bool = Field(default=True, alias="isActive")
    logo_url: str | None = Field(default=None, alias="logoUrl")

    model_config = WIRE_CONFIG

    @property
    def label(self) -> str:
        """Display name, falling back to the short name."""
        return self.display_name or self.name


class TradingPair(BaseModel):
    """Trading pair embedded in an opportunity."""

    id: str
    symbol: str
    base_asset: str = Field(default="", alias="baseAsset")
    quote_asset: str = Field(default="", alias="quoteAsset")
    is_active: bool = Field(default=True, alias="isActive")

    model_config = WIRE_CONFIG


class Opportunity(BaseModel):
    """
    Arbitrage opportunity as pushed by the backend.

    Price-like fields are decimal strings and are kept verbatim: a
    malformed value must never reject the whole record, so numeric access
    goes through the ``*_value`` properties which return None instead of
    raising.
    """

    id: str
    trading_pair: TradingPair = Field(alias="tradingPair")
    buy_exchange: Exchange = Field(alias="buyExchange")
    sell_exchange: Exchange = Field(alias="sellExchange")
    buy_price: str = Field(default="", alias="buyPrice")
    sell_price: str = Field(default="", alias="sellPrice")
    spread_percentage: str = Field(default="", alias="spreadPercentage")
    estimated_profit: str | None = Field(default=None, alias="estimatedProfit")
    profit_after_fees: str = Field(default="", alias="profitAfterFees")
    market_type: MarketType = Field(default=MarketType.SPOT, alias="marketType")
    buy_volume: str | None = Field(default=None, alias="buyVolume")
    sell_volume: str | None = Field(default=None, alias="sellVolume")
    funding_rate: str | None = Field(default=None, alias="fundingRate")
    is_active: bool = Field(default=True, alias="isActive")
    detected_at: datetime | None = Field(default=None, alias="detectedAt")
    expires_at: datetime | None = Field(default=None, alias="expiresAt")

    model_config = WIRE_CONFIG

    @field_validator(
        "buy_price",
        "sell_price",
        "spread_percentage",
        "profit_after_fees",
        mode="before",
    )
    @classmethod
    def coerce_decimal_string(cls, v: Any) -> str:
        """Accept any JSON scalar or null; malformed values surface later as None."""
        if v is None:
            return ""
        if not isinstance(v, str):
            return str(v)
        return v

    @field_validator("estimated_profit", "buy_volume", "sell_volume", "funding_rate", mode="before")
    @classmethod
    def coerce_optional_decimal_string(cls, v: Any) -> str | None:
        """Accept JSON numbers for optional decimal-string fields."""
        if isinstance(v, (int, float, Decimal)) and not isinstance(v, bool):
            return str(v)
        return v  # type: ignore[no-any-return]

    @property
    def symbol(self) -> str:
        """Trading pair symbol."""
        return self.trading_pair.symbol

    @property
    def spread_value(self) -> Decimal | None:
        """Spread percentage as a decimal, None when malformed."""
        return to_decimal(self.spread_percentage)

    @property
    def buy_price_value(self) -> Decimal | None:
        """Buy price as a decimal, None when malformed."""
        return to_decimal(self.buy_price)

    @property
    def sell_price_value(self) -> Decimal | None:
        """Sell price as a decimal, None when malformed."""
        return to_decimal(self.sell_price)

    @property
    def profit_after_fees_value(self) -> Decimal | None:
        """Profit after fees as a decimal, None when malformed."""
        return to_decimal(self.profit_after_fees)


class Trade(BaseModel):
    """
    Trade created by the backend in response to an execution request.

    Read-only on the client: status is authoritative from the server.
    """

    id: str
    opportunity_id: str = Field(alias="opportunityId")
    amount: Decimal
    status: TradeStatus
    user_id: str | None = Field(default=None, alias="userId")
    buy_exchange: str | None = Field(default=None, alias="buyExchange")
    sell_exchange: str | None = Field(default=None, alias="sellExchange")
    trading_pair: str | None = Field(default=None, alias="tradingPair")
    buy_price: Decimal | None = Field(default=None, alias="buyPrice")
    sell_price: Decimal | None = Field(default=None, alias="sellPrice")
    spread_percentage: Decimal | None = Field(default=None, alias="spreadPercentage")
    gross_profit: Decimal | None = Field(default=None, alias="grossProfit")
    total_fees: Decimal | None = Field(default=None, alias="totalFees")
    net_profit: Decimal | None = Field(default=None, alias="netProfit")
    error_message: str | None = Field(default=None, alias="errorMessage")
    executed_at: datetime | None = Field(default=None, alias="executedAt")
    completed_at: datetime | None = Field(default=None, alias="completedAt")

    model_config = WIRE_CONFIG


class UserFilters(BaseModel):
    """Per-user opportunity filters."""

    min_spread_percentage: float = Field(default=0.5, alias="minSpreadPercentage")
    min_profit: float | None = Field(default=None, alias="minProfit")
    exchange_filter: list[str] = Field(default_factory=list, alias="exchangeFilter")
    pair_filter: list[str] = Field(default_factory=list, alias="pairFilter")
    market_type_filter: list[MarketType] = Field(default_factory=list, alias="marketTypeFilter")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict[str, Any]:
        """Serialize with backend field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PairCount(BaseModel):
    """Occurrence count of a trading pair."""

    symbol: str
    count: int

    model_config = WIRE_CONFIG


class ExchangeCount(BaseModel):
    """Occurrence count of an exchange."""

    name: str
    count: int

    model_config = WIRE_CONFIG


class Statistics(BaseModel):
    """Aggregated opportunity statistics for a time range."""

    total_opportunities: int = Field(default=0, alias="totalOpportunities")
    avg_spread: float = Field(default=0.0, alias="avgSpread")
    avg_profit: float = Field(default=0.0, alias="avgProfit")
    top_pairs: list[PairCount] = Field(default_factory=list, alias="topPairs")
    top_exchanges: list[ExchangeCount] = Field(default_factory=list, alias="topExchanges")

    model_config = WIRE_CONFIG
