"""
Metrics collection for session monitoring.

Tracks event counters and channel health with in-memory storage.
"""

import time
from dataclasses import dataclass


@dataclass
class SessionStats:
    """Aggregated session statistics."""

    events_received: int = 0
    snapshots_applied: int = 0
    reconnects: int = 0
    auth_refreshes: int = 0
    data_quality_warnings: int = 0
    trades_executed: int = 0
    trades_rejected: int = 0
    uptime_seconds: float = 0.0

    @property
    def execution_success_rate(self) -> float:
        """Share of trade submissions accepted by the backend."""
        total = self.trades_executed + self.trades_rejected
        return self.trades_executed / total if total > 0 else 0.0


class MetricsCollector:
    """
    Collects session counters.

    Counter names are free-form; the ones listed in ``SessionStats`` are
    the ones the client itself increments.
    """

    def __init__(self) -> None:
        """Initialize metrics collector."""
        self._counters: dict[str, int] = {}
        self._start_time = time.time()
        self._last_event_time: float | None = None

    def increment_counter(self, name: str, value: int = 1) -> None:
        """
        Increment a counter.

        Args:
            name: Counter name.
            value: Amount to increment.
        """
        self._counters[name] = self._counters.get(name, 0) + value

    def get_counter(self, name: str) -> int:
        """Get counter value."""
        return self._counters.get(name, 0)

    def record_event(self) -> None:
        """Record receipt of one push event."""
        self.increment_counter("events_received")
        self._last_event_time = time.time()

    @property
    def seconds_since_last_event(self) -> float | None:
        """Seconds since the last push event, None if none arrived yet."""
        if self._last_event_time is None:
            return None
        return time.time() - self._last_event_time

    def get_stats(self) -> SessionStats:
        """Get a snapshot of the session statistics."""
        return SessionStats(
            events_received=self.get_counter("events_received"),
            snapshots_applied=self.get_counter("snapshots_applied"),
            reconnects=self.get_counter("reconnects"),
            auth_refreshes=self.get_counter("auth_refreshes"),
            data_quality_warnings=self.get_counter("data_quality_warnings"),
            trades_executed=self.get_counter("trades_executed"),
            trades_rejected=self.get_counter("trades_rejected"),
            uptime_seconds=time.time() - self._start_time,
        )

    def reset(self) -> None:
        """Reset all counters."""
        self._counters.clear()
        self._start_time = time.time()
        self._last_event_time = None
