"""
Snapshot reconciliation.

Turns each full replacement snapshot of opportunities into display rows
annotated with the direction their spread moved since the previous
snapshot. Rows are joined by ``id``, never by position, so a reordered
snapshot does not shift emphasis onto the wrong record.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace
from decimal import Decimal
from typing import Any

from pydantic import ValidationError

from arbclient.api.models import Opportunity, to_decimal
from arbclient.config.constants import EMPHASIS_WINDOW_MS
from arbclient.core.types import Emphasis, ReconciledOpportunity
from arbclient.telemetry.metrics import MetricsCollector
from arbclient.utils.time import get_timestamp_ms


logger = logging.getLogger(__name__)


ChangeCallback = Callable[[list[ReconciledOpportunity]], None]


def parse_spread(value: str, opportunity_id: str = "") -> Decimal | None:
    """
    Parse a spread percentage, logging a data-quality warning when malformed.

    Returns:
        The spread, or None when it is missing or not a finite number.
    """
    parsed = to_decimal(value)
    if parsed is None:
        logger.warning(f"Data quality: unusable spreadPercentage {value!r} for {opportunity_id or '?'}")
    return parsed


def compare_spread(previous: Decimal | None, current: Decimal | None) -> Emphasis:
    """Classify a spread change; any unknown side means no emphasis."""
    if previous is None or current is None:
        return Emphasis.NONE
    if current > previous:
        return Emphasis.INCREASED
    if current < previous:
        return Emphasis.DECREASED
    return Emphasis.NONE


def classify(
    previous: Iterable[Opportunity],
    snapshot: Sequence[Opportunity],
    now_ms: int | None = None,
) -> tuple[list[ReconciledOpportunity], int]:
    """
    Classify every record of a snapshot against the previous one.

    Records new to this snapshot are never emphasized; records missing from
    it are dropped.

    Returns:
        Rows in snapshot order, and the number of malformed spreads seen.
    """
    now_ms = get_timestamp_ms() if now_ms is None else now_ms
    by_id = {opp.id: opp for opp in previous}
    rows: list[ReconciledOpportunity] = []
    malformed = 0

    for opp in snapshot:
        prior = by_id.get(opp.id)
        current = parse_spread(opp.spread_percentage, opp.id)
        if current is None:
            malformed += 1

        if prior is None:
            emphasis = Emphasis.NONE
        else:
            emphasis = compare_spread(to_decimal(prior.spread_percentage), current)

        rows.append(
            ReconciledOpportunity(
                opportunity=opp,
                emphasis=emphasis,
                emphasized_at_ms=now_ms if emphasis != Emphasis.NONE else None,
            )
        )

    return rows, malformed


def parse_snapshot(payload: Any) -> list[Opportunity]:
    """
    Extract opportunities from an ``opportunities:update`` payload.

    Accepts ``{"data": [...]}`` or a bare list. Records that cannot be
    parsed at all are skipped with a data-quality warning.
    """
    records = payload.get("data") if isinstance(payload, dict) else payload
    if not isinstance(records, list):
        logger.warning(f"Data quality: snapshot payload is not a list ({type(records).__name__})")
        return []

    snapshot: list[Opportunity] = []
    for record in records:
        try:
            snapshot.append(Opportunity.model_validate(record))
        except ValidationError as e:
            record_id = record.get("id") if isinstance(record, dict) else None
            logger.warning(
                f"Data quality: skipping unparseable opportunity {record_id or '?'}: "
                f"{e.error_count()} error(s)"
            )

    return snapshot


class SnapshotReconciler:
    """
    Holds the rendered opportunity set and its transient emphasis.

    Features:
    - Atomic replacement of the rendered set per snapshot
    - One pending emphasis-decay timer at most, superseded by each snapshot
    - Malformed spreads degrade to no emphasis instead of failing
    """

    def __init__(
        self,
        emphasis_window: float = EMPHASIS_WINDOW_MS / 1000,
        on_change: ChangeCallback | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize the reconciler.

        Args:
            emphasis_window: Seconds before emphasis decays to none.
            on_change: Called with the rows after every apply and every decay.
            metrics: Optional metrics collector.
        """
        self._window = emphasis_window
        self._on_change = on_change
        self._metrics = metrics
        self._rows: list[ReconciledOpportunity] = []
        self._decay: asyncio.TimerHandle | None = None

    @property
    def rows(self) -> list[ReconciledOpportunity]:
        """Currently rendered rows, in snapshot order."""
        return list(self._rows)

    @property
    def opportunities(self) -> list[Opportunity]:
        """Currently rendered opportunities, without emphasis."""
        return [row.opportunity for row in self._rows]

    @property
    def decay_pending(self) -> bool:
        """Whether an emphasis-decay timer is scheduled."""
        return self._decay is not None

    def get(self, opportunity_id: str) -> ReconciledOpportunity | None:
        """Look up a rendered row by opportunity id."""
        for row in self._rows:
            if row.id == opportunity_id:
                return row
        return None

    def __len__(self) -> int:
        return len(self._rows)

    def apply(self, snapshot: Sequence[Opportunity]) -> list[ReconciledOpportunity]:
        """
        Reconcile a new full snapshot against the rendered one.

        Must be called from within a running event loop.

        Returns:
            The new rendered rows.
        """
        rows, malformed = classify(self.opportunities, snapshot)
        self._rows = rows

        if self._metrics:
            self._metrics.increment_counter("snapshots_applied")
            if malformed:
                self._metrics.increment_counter("data_quality_warnings", malformed)

        self._schedule_decay()
        self._notify()
        return self.rows

    def clear_emphasis(self) -> None:
        """Reset every row's emphasis to none, leaving all other fields alone."""
        self._decay = None
        if not any(row.is_emphasized for row in self._rows):
            return

        self._rows = [
            replace(row, emphasis=Emphasis.NONE, emphasized_at_ms=None) if row.is_emphasized else row
            for row in self._rows
        ]
        self._notify()

    def close(self) -> None:
        """Cancel any pending decay timer."""
        if self._decay is not None:
            self._decay.cancel()
            self._decay = None

    def _schedule_decay(self) -> None:
        loop = asyncio.get_running_loop()
        if self._decay is not None:
            self._decay.cancel()
        self._decay = loop.call_later(self._window, self.clear_emphasis)

    def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self.rows)
        except Exception:
            logger.exception("Reconciler change callback failed")
