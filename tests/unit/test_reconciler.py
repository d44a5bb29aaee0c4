"""
Unit tests for snapshot reconciliation.

Tests spread classification, identity joins, malformed data handling
and emphasis decay.
"""

import asyncio
import logging
from decimal import Decimal

import pytest

from arbclient.core.types import Emphasis, ReconciledOpportunity
from arbclient.state.reconciler import (
    SnapshotReconciler,
    classify,
    compare_spread,
    parse_snapshot,
    parse_spread,
)
from arbclient.telemetry.metrics import MetricsCollector
from tests.mocks.factories import make_opportunity, opportunity_payload


def emphasis_by_id(rows: list[ReconciledOpportunity]) -> dict[str, Emphasis]:
    return {row.id: row.emphasis for row in rows}


class TestParseSpread:
    """Tests for spread parsing."""

    def test_valid(self) -> None:
        """Test a well-formed spread."""
        assert parse_spread("1.25") == Decimal("1.25")

    @pytest.mark.parametrize("value", ["", "abc", "NaN", "Infinity"])
    def test_malformed(self, value: str, caplog: pytest.LogCaptureFixture) -> None:
        """Test malformed spreads parse to None with a warning."""
        with caplog.at_level(logging.WARNING):
            assert parse_spread(value, "opp-x") is None

        assert "Data quality" in caplog.text
        assert "opp-x" in caplog.text

    def test_compare(self) -> None:
        """Test spread direction."""
        assert compare_spread(Decimal("1.0"), Decimal("1.2")) == Emphasis.INCREASED
        assert compare_spread(Decimal("1.2"), Decimal("1.0")) == Emphasis.DECREASED
        assert compare_spread(Decimal("1.0"), Decimal("1.00")) == Emphasis.NONE
        assert compare_spread(None, Decimal("1.0")) == Emphasis.NONE
        assert compare_spread(Decimal("1.0"), None) == Emphasis.NONE


class TestClassify:
    """Tests for snapshot classification."""

    def test_increase_and_decrease(self) -> None:
        """Test spreads moving both ways."""
        previous = [make_opportunity("a", "1.0"), make_opportunity("b", "2.0")]
        snapshot = [make_opportunity("a", "1.5"), make_opportunity("b", "1.9")]

        rows, malformed = classify(previous, snapshot, now_ms=1000)

        assert emphasis_by_id(rows) == {"a": Emphasis.INCREASED, "b": Emphasis.DECREASED}
        assert all(row.emphasized_at_ms == 1000 for row in rows)
        assert malformed == 0

    def test_unchanged_spread(self) -> None:
        """Test numerically equal spreads carry no emphasis."""
        rows, _ = classify([make_opportunity("a", "1.50")], [make_opportunity("a", "1.5")])

        assert rows[0].emphasis == Emphasis.NONE
        assert rows[0].emphasized_at_ms is None

    def test_new_record_not_emphasized(self) -> None:
        """Test a record absent from the previous snapshot."""
        rows, _ = classify([make_opportunity("a", "1.0")], [make_opportunity("b", "9.0")])

        assert emphasis_by_id(rows) == {"b": Emphasis.NONE}

    def test_removed_record_dropped(self) -> None:
        """Test a record absent from the new snapshot disappears."""
        previous = [make_opportunity("a", "1.0"), make_opportunity("b", "1.0")]

        rows, _ = classify(previous, [make_opportunity("a", "1.0")])

        assert [row.id for row in rows] == ["a"]

    def test_reorder_joins_by_id(self) -> None:
        """Test emphasis follows identity, not position."""
        previous = [make_opportunity("a", "1.0"), make_opportunity("b", "3.0")]
        snapshot = [make_opportunity("b", "2.0"), make_opportunity("a", "2.0")]

        rows, _ = classify(previous, snapshot)

        assert [row.id for row in rows] == ["b", "a"]
        assert emphasis_by_id(rows) == {"b": Emphasis.DECREASED, "a": Emphasis.INCREASED}

    def test_malformed_spread(self) -> None:
        """Test a malformed spread on either side yields no emphasis."""
        previous = [make_opportunity("a", "1.0"), make_opportunity("b", "oops")]
        snapshot = [make_opportunity("a", "abc"), make_opportunity("b", "2.0")]

        rows, malformed = classify(previous, snapshot)

        assert emphasis_by_id(rows) == {"a": Emphasis.NONE, "b": Emphasis.NONE}
        assert malformed == 1

    def test_empty_snapshot(self) -> None:
        """Test an empty snapshot clears the view."""
        rows, malformed = classify([make_opportunity("a")], [])

        assert rows == []
        assert malformed == 0


class TestParseSnapshot:
    """Tests for push payload parsing."""

    def test_envelope(self) -> None:
        """Test the ``{"data": [...]}`` form."""
        snapshot = parse_snapshot({"data": [opportunity_payload("a"), opportunity_payload("b")]})

        assert [opp.id for opp in snapshot] == ["a", "b"]

    def test_bare_list(self) -> None:
        """Test a bare list payload."""
        assert [opp.id for opp in parse_snapshot([opportunity_payload("a")])] == ["a"]

    def test_numeric_and_null_spreads_kept(self) -> None:
        """Test records with odd spread encodings are kept, not rejected."""
        snapshot = parse_snapshot([opportunity_payload("a", 1.5), opportunity_payload("b", None)])

        assert snapshot[0].spread_percentage == "1.5"
        assert snapshot[1].spread_percentage == ""

    def test_unparseable_record_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test a record missing required fields is skipped with a warning."""
        with caplog.at_level(logging.WARNING):
            snapshot = parse_snapshot([{"id": "broken"}, opportunity_payload("a")])

        assert [opp.id for opp in snapshot] == ["a"]
        assert "broken" in caplog.text

    def test_not_a_list(self) -> None:
        """Test a payload without a list yields an empty snapshot."""
        assert parse_snapshot({"data": "nope"}) == []


class TestSnapshotReconciler:
    """Tests for the stateful reconciler."""

    @pytest.mark.asyncio
    async def test_first_snapshot_has_no_emphasis(self) -> None:
        """Test the initial snapshot renders plainly."""
        reconciler = SnapshotReconciler(emphasis_window=0.05)

        rows = reconciler.apply([make_opportunity("a", "1.0")])

        assert rows[0].emphasis == Emphasis.NONE
        assert len(reconciler) == 1
        reconciler.close()

    @pytest.mark.asyncio
    async def test_emphasis_then_decay(self) -> None:
        """Test emphasis is cleared once the window elapses."""
        changes: list[list[ReconciledOpportunity]] = []
        reconciler = SnapshotReconciler(emphasis_window=0.05, on_change=changes.append)

        reconciler.apply([make_opportunity("a", "1.0")])
        reconciler.apply([make_opportunity("a", "1.2")])

        row = reconciler.get("a")
        assert row is not None and row.emphasis == Emphasis.INCREASED
        assert reconciler.decay_pending

        await asyncio.sleep(0.12)

        row = reconciler.get("a")
        assert row is not None
        assert row.emphasis == Emphasis.NONE
        assert row.emphasized_at_ms is None
        assert row.opportunity.spread_percentage == "1.2"
        assert not reconciler.decay_pending
        assert len(changes) == 3

    @pytest.mark.asyncio
    async def test_new_snapshot_supersedes_decay(self) -> None:
        """Test a later snapshot restarts the emphasis window."""
        reconciler = SnapshotReconciler(emphasis_window=0.3)

        reconciler.apply([make_opportunity("a", "1.0")])
        reconciler.apply([make_opportunity("a", "1.1")])
        await asyncio.sleep(0.2)
        reconciler.apply([make_opportunity("a", "1.0")])
        await asyncio.sleep(0.2)

        # First window would have expired by now; the second has not
        row = reconciler.get("a")
        assert row is not None and row.emphasis == Emphasis.DECREASED

        await asyncio.sleep(0.2)
        row = reconciler.get("a")
        assert row is not None and row.emphasis == Emphasis.NONE

    @pytest.mark.asyncio
    async def test_close_cancels_decay(self) -> None:
        """Test closing leaves emphasis untouched and no timer behind."""
        reconciler = SnapshotReconciler(emphasis_window=0.05)
        reconciler.apply([make_opportunity("a", "1.0")])
        reconciler.apply([make_opportunity("a", "2.0")])

        reconciler.close()
        await asyncio.sleep(0.08)

        row = reconciler.get("a")
        assert row is not None and row.emphasis == Emphasis.INCREASED
        assert not reconciler.decay_pending

    @pytest.mark.asyncio
    async def test_metrics(self, metrics: MetricsCollector) -> None:
        """Test snapshot and data-quality counters."""
        reconciler = SnapshotReconciler(emphasis_window=0.05, metrics=metrics)

        reconciler.apply([make_opportunity("a", "bad"), make_opportunity("b", "1.0")])
        reconciler.apply([make_opportunity("a", "bad")])
        reconciler.close()

        assert metrics.get_counter("snapshots_applied") == 2
        assert metrics.get_counter("data_quality_warnings") == 2

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_break_apply(self) -> None:
        """Test a raising change callback is logged, not propagated."""

        def boom(rows: list[ReconciledOpportunity]) -> None:
            raise RuntimeError("render failed")

        reconciler = SnapshotReconciler(emphasis_window=0.05, on_change=boom)

        rows = reconciler.apply([make_opportunity("a")])
        reconciler.close()

        assert len(rows) == 1
