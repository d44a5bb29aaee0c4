"""
Typed facade over the backend REST endpoints.

Unwraps response envelopes into models and owns the login/logout side of
the credential lifecycle; refresh lives in ``ApiClient``.
"""

import logging
from decimal import Decimal
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from arbclient.api.client import ApiClient, ApiClientError
from arbclient.api.models import (
    ApiResponse,
    AuthTokens,
    Opportunity,
    Statistics,
    Trade,
    User,
    UserFilters,
)
from arbclient.config.constants import (
    ENDPOINT_FILTERS,
    ENDPOINT_LOGIN,
    ENDPOINT_LOGOUT,
    ENDPOINT_ME,
    ENDPOINT_OPPORTUNITIES,
    ENDPOINT_REGISTER,
    ENDPOINT_STATISTICS,
    ENDPOINT_SUMMARY,
    ENDPOINT_TRADE_EXECUTE,
    ENDPOINT_TRADE_STATS,
    ENDPOINT_TRADES,
    STATISTICS_TIME_RANGES,
)
from arbclient.core.types import Credential, MarketType


logger = logging.getLogger(__name__)


ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse(model: type[ModelT], data: Any, path: str) -> ModelT:
    """Validate a response payload, reporting a mismatch as a client error."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ApiClientError(
            f"Unexpected {model.__name__} payload from {path}: {e.error_count()} error(s)"
        ) from e


class ArbitrageApi:
    """Backend endpoints as typed coroutines."""

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    @property
    def client(self) -> ApiClient:
        """Underlying request client."""
        return self._client

    async def _data(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> Any:
        """Send a request and return the envelope's ``data`` member."""
        raw = await self._client.request(method, path, body, params, **kwargs)
        return _parse(ApiResponse, raw, path).data

    # =========================================================================
    # Auth
    # =========================================================================

    async def login(self, email: str, password: str) -> AuthTokens:
        """Log in and store the issued credentials."""
        data = await self._data(
            "POST",
            ENDPOINT_LOGIN,
            {"email": email, "password": password},
            authenticate=False,
            refreshable=False,
        )
        tokens = _parse(AuthTokens, data, ENDPOINT_LOGIN)
        self._store(tokens)
        logger.info(f"Logged in as {tokens.user.username if tokens.user else email}")
        return tokens

    async def register(self, email: str, username: str, password: str) -> AuthTokens:
        """Create an account and store the issued credentials."""
        data = await self._data(
            "POST",
            ENDPOINT_REGISTER,
            {"email": email, "username": username, "password": password},
            authenticate=False,
            refreshable=False,
        )
        tokens = _parse(AuthTokens, data, ENDPOINT_REGISTER)
        self._store(tokens)
        return tokens

    async def logout(self) -> None:
        """
        End the session.

        Credentials are cleared locally even when the backend call fails.
        """
        try:
            await self._client.request("POST", ENDPOINT_LOGOUT, refreshable=False)
        except ApiClientError as e:
            logger.warning(f"Logout request failed, clearing local session anyway: {e}")
        finally:
            self._client.credentials.clear()

    async def me(self) -> User:
        """Get the authenticated user."""
        return _parse(User, await self._data("GET", ENDPOINT_ME), ENDPOINT_ME)

    def _store(self, tokens: AuthTokens) -> None:
        self._client.credentials.set(
            Credential(access_token=tokens.access_token, refresh_token=tokens.refresh_token)
        )

    # =========================================================================
    # Opportunities & Statistics
    # =========================================================================

    async def get_opportunities(
        self,
        symbol: str | None = None,
        min_spread: float | None = None,
        limit: int | None = None,
        market_type: MarketType | None = None,
    ) -> list[Opportunity]:
        """List current opportunities matching the given filters."""
        params = {
            "symbol": symbol,
            "minSpread": min_spread,
            "limit": limit,
            "marketType": market_type.value if market_type else None,
        }
        data = await self._data("GET", ENDPOINT_OPPORTUNITIES, params=params)
        return [_parse(Opportunity, item, ENDPOINT_OPPORTUNITIES) for item in data or []]

    async def get_opportunity(self, opportunity_id: str) -> Opportunity:
        """Get one opportunity by id."""
        path = f"{ENDPOINT_OPPORTUNITIES}/{opportunity_id}"
        return _parse(Opportunity, await self._data("GET", path), path)

    async def get_summary(self) -> dict[str, Any]:
        """Get the dashboard summary."""
        return await self._data("GET", ENDPOINT_SUMMARY) or {}  # type: ignore[no-any-return]

    async def get_statistics(self, time_range: str = "day") -> Statistics:
        """
        Get aggregated statistics.

        Args:
            time_range: One of ``hour``, ``day`` or ``week``.
        """
        if time_range not in STATISTICS_TIME_RANGES:
            raise ValueError(f"Unsupported time range: {time_range}")

        data = await self._data("GET", ENDPOINT_STATISTICS, params={"timeRange": time_range})
        return _parse(Statistics, data or {}, ENDPOINT_STATISTICS)

    # =========================================================================
    # Filters
    # =========================================================================

    async def get_filters(self) -> UserFilters:
        """Get the user's opportunity filters."""
        return _parse(UserFilters, await self._data("GET", ENDPOINT_FILTERS) or {}, ENDPOINT_FILTERS)

    async def update_filters(self, filters: UserFilters) -> UserFilters:
        """Replace the user's opportunity filters."""
        data = await self._data("PUT", ENDPOINT_FILTERS, filters.to_wire())
        return _parse(UserFilters, data, ENDPOINT_FILTERS) if data else filters

    # =========================================================================
    # Trades
    # =========================================================================

    async def get_trades(self) -> list[Trade]:
        """List the user's trades."""
        data = await self._data("GET", ENDPOINT_TRADES)
        return [_parse(Trade, item, ENDPOINT_TRADES) for item in data or []]

    async def get_trade(self, trade_id: str) -> Trade:
        """Get one trade by id."""
        path = f"{ENDPOINT_TRADES}/{trade_id}"
        return _parse(Trade, await self._data("GET", path), path)

    async def execute_trade(self, opportunity_id: str, amount: Decimal) -> Trade:
        """
        Submit a trade intent. Sent once; callers must not retry.

        The amount goes over the wire as a JSON number.
        """
        data = await self._data(
            "POST",
            ENDPOINT_TRADE_EXECUTE,
            {"opportunityId": opportunity_id, "amount": float(amount)},
        )
        return _parse(Trade, data, ENDPOINT_TRADE_EXECUTE)

    async def get_trade_stats(self) -> dict[str, Any]:
        """Get the user's trade statistics."""
        return await self._data("GET", ENDPOINT_TRADE_STATS) or {}  # type: ignore[no-any-return]
