"""Configuration module for the arbitrage client."""

from arbclient.config.constants import (
    DEFAULT_BACKEND_URL,
    DEFAULT_WS_URL,
    EMPHASIS_WINDOW_MS,
    MAX_RECONNECT_DELAY,
    MIN_RECONNECT_DELAY,
)
from arbclient.config.settings import Settings, get_settings


__all__ = [
    "Settings",
    "get_settings",
    "DEFAULT_BACKEND_URL",
    "DEFAULT_WS_URL",
    "EMPHASIS_WINDOW_MS",
    "MIN_RECONNECT_DELAY",
    "MAX_RECONNECT_DELAY",
]
