"""
Trade execution.

Submits a trade intent for one opportunity. Exactly one request per
submission and no client-side retry: a duplicated submission would mean
a duplicated financial side effect.
"""

import logging
from decimal import Decimal, InvalidOperation

from arbclient.api.client import HttpError
from arbclient.api.models import Opportunity, Trade
from arbclient.api.service import ArbitrageApi
from arbclient.state.trades import TradeBook
from arbclient.telemetry.metrics import MetricsCollector


logger = logging.getLogger(__name__)


class ExecutionError(Exception):
    """Base exception for trade execution errors."""

    pass


class TradeInFlightError(ExecutionError):
    """A submission for the same opportunity is still outstanding."""

    def __init__(self, opportunity_id: str) -> None:
        super().__init__(f"Trade for opportunity {opportunity_id} is already being submitted")
        self.opportunity_id = opportunity_id


class ExecutionFailure(ExecutionError):
    """Backend rejected the trade; ``message`` is the backend's own text."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


def estimate_profit(opportunity: Opportunity, amount: Decimal) -> Decimal | None:
    """
    Estimate profit of trading ``amount`` on an opportunity.

    ``profitAfterFees`` is a percentage of the traded amount.

    Returns:
        Estimated profit, or None if the opportunity's profit is malformed.
    """
    pct = opportunity.profit_after_fees_value
    if pct is None:
        return None
    return pct * amount / Decimal(100)


def _to_amount(amount: Decimal | float | str) -> Decimal:
    try:
        value = Decimal(str(amount))
    except InvalidOperation as e:
        raise ValueError(f"Invalid trade amount: {amount!r}") from e

    if not value.is_finite() or value <= 0:
        raise ValueError(f"Trade amount must be positive, got {amount!r}")
    return value


class TradeExecutor:
    """
    Single-shot trade submitter.

    Features:
    - One outstanding submission per opportunity
    - Backend messages surfaced verbatim
    - Accepted trades recorded in the trade book as reported
    """

    def __init__(
        self,
        api: ArbitrageApi,
        trade_book: TradeBook | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize the executor.

        Args:
            api: Backend endpoints.
            trade_book: Where accepted trades are recorded.
            metrics: Optional metrics collector.
        """
        self._api = api
        self._trade_book = trade_book
        self._metrics = metrics
        self._in_flight: set[str] = set()

    def is_pending(self, opportunity_id: str) -> bool:
        """Check if a submission for the opportunity is outstanding."""
        return opportunity_id in self._in_flight

    @property
    def pending(self) -> frozenset[str]:
        """Opportunity ids with an outstanding submission."""
        return frozenset(self._in_flight)

    async def execute(self, opportunity_id: str, amount: Decimal | float | str) -> Trade:
        """
        Submit a trade.

        Args:
            opportunity_id: Opportunity to trade.
            amount: Amount in quote currency; must be positive.

        Returns:
            The trade as created by the backend; its status is displayed as-is.

        Raises:
            TradeInFlightError: A submission for this opportunity is outstanding.
            ExecutionFailure: The backend rejected the trade.
            ValueError: The amount is not a positive number.
            AuthExpired: The session could not be renewed.
        """
        value = _to_amount(amount)

        if opportunity_id in self._in_flight:
            raise TradeInFlightError(opportunity_id)

        self._in_flight.add(opportunity_id)
        try:
            logger.info(f"Submitting trade: opportunity={opportunity_id} amount={value}")
            trade = await self._api.execute_trade(opportunity_id, value)
        except HttpError as e:
            if self._metrics:
                self._metrics.increment_counter("trades_rejected")
            logger.warning(f"Trade rejected ({e.status}): {e.message}")
            raise ExecutionFailure(e.message, status=e.status) from e
        finally:
            self._in_flight.discard(opportunity_id)

        if self._metrics:
            self._metrics.increment_counter("trades_executed")
        logger.info(f"Trade {trade.id} accepted with status {trade.status.value}")

        if self._trade_book is not None:
            self._trade_book.record(trade)

        return trade
