"""Trade execution module."""

from arbclient.execution.executor import (
    ExecutionError,
    ExecutionFailure,
    TradeExecutor,
    TradeInFlightError,
    estimate_profit,
)


__all__ = [
    "ExecutionError",
    "ExecutionFailure",
    "TradeExecutor",
    "TradeInFlightError",
    "estimate_profit",
]
