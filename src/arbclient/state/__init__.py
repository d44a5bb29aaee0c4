"""Client-side state: reconciled opportunities and trades."""

from arbclient.state.reconciler import (
    SnapshotReconciler,
    classify,
    compare_spread,
    parse_snapshot,
    parse_spread,
)
from arbclient.state.trades import TradeBook


__all__ = [
    "SnapshotReconciler",
    "TradeBook",
    "classify",
    "compare_spread",
    "parse_snapshot",
    "parse_spread",
]
