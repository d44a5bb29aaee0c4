"""
Time utilities.

Millisecond wall-clock timestamps for event stamping and
emphasis bookkeeping, and age formatting for display.
"""

import time
from datetime import UTC, datetime


def get_timestamp_ms() -> int:
    """
    Get current timestamp in milliseconds.

    Returns:
        Current Unix timestamp in milliseconds.
    """
    return time.time_ns() // 1_000_000


def format_age(since: datetime, now: datetime | None = None) -> str:
    """
    Format how long ago something happened, e.g. ``"42s"`` or ``"3m"``.

    Naive datetimes are taken as UTC.
    """
    if since.tzinfo is None:
        since = since.replace(tzinfo=UTC)
    now = now or datetime.now(tz=UTC)

    seconds = max(0, int((now - since).total_seconds()))
    if seconds < 60:
        return f"{seconds}s"
    elif seconds < 3600:
        return f"{seconds // 60}m"
    else:
        return f"{seconds // 3600}h"
