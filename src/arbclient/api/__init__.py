"""Backend REST integration: authenticated client, models and endpoints."""

from arbclient.api.client import (
    ApiClient,
    ApiClientError,
    AuthExpired,
    HttpError,
    RequestRejected,
)
from arbclient.api.models import (
    AuthTokens,
    Exchange,
    Opportunity,
    Statistics,
    Trade,
    TradingPair,
    User,
    UserFilters,
)
from arbclient.api.service import ArbitrageApi


__all__ = [
    "ApiClient",
    "ApiClientError",
    "ArbitrageApi",
    "AuthExpired",
    "AuthTokens",
    "Exchange",
    "HttpError",
    "Opportunity",
    "RequestRejected",
    "Statistics",
    "Trade",
    "TradingPair",
    "User",
    "UserFilters",
]
