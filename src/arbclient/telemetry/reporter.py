"""
CLI reporter for the live opportunity view.

Provides a terminal panel showing channel health, session counters and
the reconciled opportunity table with change markers.
"""

import asyncio
import sys
from collections.abc import Callable
from datetime import timedelta
from typing import TextIO

from arbclient import __version__
from arbclient.config.constants import REPORT_INTERVAL
from arbclient.core.types import ChannelState, Emphasis, ReconciledOpportunity
from arbclient.telemetry.metrics import MetricsCollector
from arbclient.utils.time import format_age


# Marker shown next to the spread while a row is emphasized
EMPHASIS_MARKERS: dict[Emphasis, str] = {
    Emphasis.NONE: " ",
    Emphasis.INCREASED: "▲",  # ▲
    Emphasis.DECREASED: "▼",  # ▼
}


class CLIReporter:
    """
    Real-time CLI panel.

    Displays:
    - Channel status and subscription
    - Event, snapshot and reconnect counters
    - Top opportunities with spread change markers
    """

    # Box drawing characters
    BOX_TL = "╔"  # ╔
    BOX_TR = "╗"  # ╗
    BOX_BL = "╚"  # ╚
    BOX_BR = "╝"  # ╝
    BOX_H = "═"  # ═
    BOX_V = "║"  # ║
    BOX_LT = "╠"  # ╠
    BOX_RT = "╣"  # ╣

    def __init__(
        self,
        metrics: MetricsCollector,
        rows: Callable[[], list[ReconciledOpportunity]],
        channel_state: Callable[[], ChannelState],
        open_trades: Callable[[], int] | None = None,
        width: int = 110,
        max_rows: int = 15,
        output: TextIO | None = None,
    ) -> None:
        """
        Initialize CLI reporter.

        Args:
            metrics: Metrics collector instance.
            rows: Source of the current reconciled rows.
            channel_state: Source of the current channel state.
            open_trades: Source of the number of trades still in progress.
            width: Panel width in characters.
            max_rows: Maximum opportunities listed.
            output: Output stream (default: stdout).
        """
        self._metrics = metrics
        self._rows = rows
        self._channel_state = channel_state
        self._open_trades = open_trades
        self._width = width
        self._max_rows = max_rows
        self._output = output or sys.stdout
        self._running = False
        self._task: asyncio.Task[None] | None = None

    def _format_uptime(self, seconds: float) -> str:
        """Format uptime as HH:MM:SS."""
        total = int(timedelta(seconds=int(seconds)).total_seconds())
        hours, remainder = divmod(total, 3600)
        minutes, secs = divmod(remainder, 60)
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"

    def _line(self, content: str) -> str:
        """Create a bordered line."""
        inner_width = self._width - 2
        return f"{self.BOX_V}{content.ljust(inner_width)[:inner_width]}{self.BOX_V}"

    def _divider(self) -> str:
        """Create a horizontal divider."""
        return f"{self.BOX_LT}{self.BOX_H * (self._width - 2)}{self.BOX_RT}"

    def format_row(self, row: ReconciledOpportunity) -> str:
        """Format one opportunity as a table row."""
        opp = row.opportunity
        marker = EMPHASIS_MARKERS[row.emphasis]
        age = format_age(opp.detected_at) if opp.detected_at else "-"
        return (
            f"  {opp.symbol:<12}"
            f"{opp.buy_exchange.label[:12]:<13}"
            f"{opp.buy_price[:12]:>12}  "
            f"{opp.sell_exchange.label[:12]:<13}"
            f"{opp.sell_price[:12]:>12}  "
            f"{opp.spread_percentage[:8]:>8}% {marker} "
            f"{opp.profit_after_fees[:10]:>10}  "
            f"{opp.market_type.value:<8}"
            f"{age:>4}"
        )

    def render(self) -> str:
        """
        Render the panel.

        Returns:
            Formatted panel string.
        """
        stats = self._metrics.get_stats()
        state = self._channel_state()
        rows = self._rows()

        lines = []

        # Header
        lines.append(f"{self.BOX_TL}{self.BOX_H * (self._width - 2)}{self.BOX_TR}")
        lines.append(self._line(f"  ARBITRAGE CLIENT v{__version__} | LIVE OPPORTUNITIES"))
        lines.append(self._divider())

        # Status row
        subscribed = "yes" if state.subscribed else "no"
        since = self._metrics.seconds_since_last_event
        last_event = "-" if since is None else f"{since:.0f}s ago"
        lines.append(
            self._line(
                f"  Uptime: {self._format_uptime(stats.uptime_seconds)}  |  "
                f"Channel: {state.status.value}  |  Subscribed: {subscribed}  |  "
                f"Reconnects: {stats.reconnects}  |  Last event: {last_event}"
            )
        )
        counters = (
            f"  Events: {stats.events_received:,}  |  Snapshots: {stats.snapshots_applied:,}  |  "
            f"Data warnings: {stats.data_quality_warnings:,}  |  Refreshes: {stats.auth_refreshes}"
        )
        if self._open_trades is not None:
            counters += f"  |  Open trades: {self._open_trades()}"
        lines.append(self._line(counters))
        lines.append(self._divider())

        # Table
        header = (
            f"  {'PAIR':<12}{'BUY ON':<13}{'BUY':>12}  {'SELL ON':<13}{'SELL':>12}  "
            f"{'SPREAD':>9}    {'PROFIT':>10}  {'TYPE':<8}{'AGE':>4}"
        )
        lines.append(self._line(header))

        if not rows:
            waiting = "Connecting to server..." if not state.connected else "No opportunities yet"
            lines.append(self._line(f"  {waiting}"))
        for row in rows[: self._max_rows]:
            lines.append(self._line(self.format_row(row)))
        if len(rows) > self._max_rows:
            lines.append(self._line(f"  ... {len(rows) - self._max_rows} more"))

        # Footer
        lines.append(f"{self.BOX_BL}{self.BOX_H * (self._width - 2)}{self.BOX_BR}")

        return "\n".join(lines)

    def display(self) -> None:
        """Display the panel once."""
        # Clear screen and move cursor to top
        self._output.write("\033[2J\033[H")
        self._output.write(self.render())
        self._output.write("\n")
        self._output.flush()

    async def run(self, interval: float = REPORT_INTERVAL) -> None:
        """
        Run continuous display updates.

        Args:
            interval: Update interval in seconds.
        """
        self._running = True

        while self._running:
            self.display()
            await asyncio.sleep(interval)

    def start(self, interval: float = REPORT_INTERVAL) -> asyncio.Task[None]:
        """Start the reporter as a background task."""
        self._task = asyncio.create_task(self.run(interval))
        return self._task

    def stop(self) -> None:
        """Stop the reporter."""
        self._running = False
        if self._task:
            self._task.cancel()

    def print_summary(self) -> None:
        """Print a final summary."""
        stats = self._metrics.get_stats()

        print("\n" + "=" * 50, file=self._output)
        print("  SESSION SUMMARY", file=self._output)
        print("=" * 50, file=self._output)
        print(f"  Uptime:          {self._format_uptime(stats.uptime_seconds)}", file=self._output)
        print(f"  Events received: {stats.events_received:,}", file=self._output)
        print(f"  Snapshots:       {stats.snapshots_applied:,}", file=self._output)
        print(f"  Reconnects:      {stats.reconnects:,}", file=self._output)
        print(f"  Token refreshes: {stats.auth_refreshes:,}", file=self._output)
        print(f"  Trades:          {stats.trades_executed} ok / {stats.trades_rejected} rejected", file=self._output)
        print("=" * 50, file=self._output)
