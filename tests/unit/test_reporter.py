"""
Unit tests for the CLI reporter and metrics collector.
"""

import io
from datetime import UTC, datetime, timedelta

from arbclient.api.models import Trade
from arbclient.core.types import ChannelState, ChannelStatus, Emphasis, ReconciledOpportunity
from arbclient.state.trades import TradeBook
from arbclient.telemetry.metrics import MetricsCollector
from arbclient.telemetry.reporter import CLIReporter
from tests.mocks.factories import make_opportunity, trade_payload


def make_reporter(
    rows: list[ReconciledOpportunity],
    state: ChannelState,
    metrics: MetricsCollector | None = None,
    max_rows: int = 15,
) -> tuple[CLIReporter, io.StringIO]:
    output = io.StringIO()
    reporter = CLIReporter(
        metrics=metrics or MetricsCollector(),
        rows=lambda: rows,
        channel_state=lambda: state,
        max_rows=max_rows,
        output=output,
    )
    return reporter, output


class TestCLIReporter:
    """Tests for panel rendering."""

    def test_render_rows_with_markers(self) -> None:
        """Test emphasized rows carry direction markers."""
        rows = [
            ReconciledOpportunity(make_opportunity("a", "1.20"), Emphasis.INCREASED, 1),
            ReconciledOpportunity(make_opportunity("b", "0.80", symbol="ETH/USDT"), Emphasis.DECREASED, 1),
            ReconciledOpportunity(make_opportunity("c", "0.50", symbol="SOL/USDT")),
        ]
        reporter, _ = make_reporter(rows, ChannelState(ChannelStatus.CONNECTED, subscribed=True))

        panel = reporter.render()

        assert "Channel: connected" in panel
        assert "Subscribed: yes" in panel
        assert "1.20% ▲" in panel
        assert "0.80% ▼" in panel
        assert "ETH/USDT" in panel and "SOL/USDT" in panel

    def test_row_shows_type_and_age(self) -> None:
        """Test the market type and detection age are not truncated."""
        opportunity = make_opportunity("a", market_type="FUTURES").model_copy(
            update={"detected_at": datetime.now(tz=UTC) - timedelta(minutes=5, seconds=10)}
        )
        reporter, _ = make_reporter([], ChannelState())

        row = reporter.format_row(ReconciledOpportunity(opportunity))

        assert row.rstrip().endswith("FUTURES   5m")

    def test_lines_have_fixed_width(self) -> None:
        """Test every panel line is exactly the configured width."""
        rows = [ReconciledOpportunity(make_opportunity("a"))]
        reporter, _ = make_reporter(rows, ChannelState(ChannelStatus.CONNECTED))

        assert {len(line) for line in reporter.render().splitlines()} == {110}

    def test_waiting_states(self) -> None:
        """Test the empty table explains why it is empty."""
        reporter, _ = make_reporter([], ChannelState(ChannelStatus.CONNECTING))
        assert "Connecting to server..." in reporter.render()

        reporter, _ = make_reporter([], ChannelState(ChannelStatus.CONNECTED, subscribed=True))
        assert "No opportunities yet" in reporter.render()

    def test_open_trades_counter(self) -> None:
        """Test the open-trade count is shown when a source is given."""
        book = TradeBook()
        book.replace_all(
            [
                Trade.model_validate(trade_payload("a", status="PENDING")),
                Trade.model_validate(trade_payload("b", status="COMPLETED")),
            ]
        )
        reporter = CLIReporter(
            metrics=MetricsCollector(),
            rows=lambda: [],
            channel_state=ChannelState,
            open_trades=lambda: len(book.open_trades()),
            output=io.StringIO(),
        )

        assert "Open trades: 1" in reporter.render()

        reporter, _ = make_reporter([], ChannelState())
        assert "Open trades" not in reporter.render()

    def test_row_limit(self) -> None:
        """Test overflow rows are summarised."""
        rows = [ReconciledOpportunity(make_opportunity(f"o{i}")) for i in range(5)]
        reporter, _ = make_reporter(rows, ChannelState(ChannelStatus.CONNECTED), max_rows=2)

        assert "... 3 more" in reporter.render()

    def test_display_writes_output(self) -> None:
        """Test display clears the screen and writes the panel."""
        reporter, output = make_reporter([], ChannelState())

        reporter.display()

        assert output.getvalue().startswith("\033[2J\033[H")
        assert "LIVE OPPORTUNITIES" in output.getvalue()

    def test_summary(self) -> None:
        """Test the shutdown summary reports counters."""
        metrics = MetricsCollector()
        metrics.increment_counter("reconnects", 3)
        metrics.increment_counter("trades_executed")
        reporter, output = make_reporter([], ChannelState(), metrics)

        reporter.print_summary()

        assert "Reconnects:      3" in output.getvalue()
        assert "1 ok / 0 rejected" in output.getvalue()


class TestMetricsCollector:
    """Tests for session counters."""

    def test_counters(self) -> None:
        """Test counters and stats snapshot."""
        metrics = MetricsCollector()
        metrics.record_event()
        metrics.record_event()
        metrics.increment_counter("trades_executed", 3)
        metrics.increment_counter("trades_rejected")

        stats = metrics.get_stats()

        assert stats.events_received == 2
        assert stats.execution_success_rate == 0.75
        assert metrics.seconds_since_last_event is not None

    def test_reset(self) -> None:
        """Test reset clears every counter."""
        metrics = MetricsCollector()
        metrics.increment_counter("reconnects")

        metrics.reset()

        assert metrics.get_counter("reconnects") == 0
        assert metrics.seconds_since_last_event is None
