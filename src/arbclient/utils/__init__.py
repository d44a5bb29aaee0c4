"""Utility functions for the arbitrage client."""

from arbclient.utils.time import format_age, get_timestamp_ms


__all__ = [
    "format_age",
    "get_timestamp_ms",
]
