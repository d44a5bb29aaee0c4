"""
Local view of the user's trades.

Statuses are authoritative from the server: the book only records what
the backend reports, either in REST responses or ``trade:update`` pushes.
It never infers an intermediate status.
"""

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from arbclient.api.models import Trade


logger = logging.getLogger(__name__)


class TradeBook:
    """Trades keyed by id, in first-seen order."""

    def __init__(self) -> None:
        self._trades: dict[str, Trade] = {}

    def record(self, trade: Trade) -> None:
        """Store the backend's latest view of a trade."""
        previous = self._trades.get(trade.id)
        self._trades[trade.id] = trade

        if previous is not None and previous.status != trade.status:
            logger.info(f"Trade {trade.id}: {previous.status.value} -> {trade.status.value}")

    def replace_all(self, trades: Iterable[Trade]) -> None:
        """Replace the book with a full trade listing."""
        self._trades = {}
        for trade in trades:
            self._trades[trade.id] = trade

    def apply_update(self, payload: Any) -> Trade | None:
        """
        Record a ``trade:update`` push.

        Accepts a trade object or a ``{"data": trade}`` envelope.

        Returns:
            The recorded trade, or None if the payload was unusable.
        """
        record = payload.get("data", payload) if isinstance(payload, dict) else payload
        try:
            trade = Trade.model_validate(record)
        except ValidationError as e:
            logger.warning(f"Data quality: ignoring malformed trade update ({e.error_count()} error(s))")
            return None

        self.record(trade)
        return trade

    def get(self, trade_id: str) -> Trade | None:
        """Get a trade by id."""
        return self._trades.get(trade_id)

    def all(self) -> list[Trade]:
        """All known trades."""
        return list(self._trades.values())

    def open_trades(self) -> list[Trade]:
        """Trades whose status can still change."""
        return [t for t in self._trades.values() if not t.status.is_final]

    def __len__(self) -> int:
        return len(self._trades)
