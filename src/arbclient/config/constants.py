"""
Client constants and configuration values.

This module contains all hardcoded values used throughout the client.
Values are organized by category for easy maintenance and auditing.
"""

from typing import Final


# =============================================================================
# Backend Endpoints
# =============================================================================

DEFAULT_BACKEND_URL: Final[str] = "http://localhost:5000"
DEFAULT_WS_URL: Final[str] = "http://localhost:5000"

# Auth
ENDPOINT_LOGIN: Final[str] = "/api/auth/login"
ENDPOINT_REGISTER: Final[str] = "/api/auth/register"
ENDPOINT_REFRESH: Final[str] = "/api/auth/refresh"
ENDPOINT_LOGOUT: Final[str] = "/api/auth/logout"
ENDPOINT_ME: Final[str] = "/api/auth/me"

# Arbitrage
ENDPOINT_OPPORTUNITIES: Final[str] = "/api/arbitrage/opportunities"
ENDPOINT_SUMMARY: Final[str] = "/api/arbitrage/summary"
ENDPOINT_STATISTICS: Final[str] = "/api/arbitrage/statistics"
ENDPOINT_FILTERS: Final[str] = "/api/arbitrage/filters"

# Trades
ENDPOINT_TRADES: Final[str] = "/api/trades"
ENDPOINT_TRADE_EXECUTE: Final[str] = "/api/trades/execute"
ENDPOINT_TRADE_STATS: Final[str] = "/api/trades/stats"


# =============================================================================
# HTTP
# =============================================================================

HTTP_UNAUTHORIZED: Final[int] = 401

DEFAULT_REQUEST_TIMEOUT: Final[float] = 15.0  # seconds

STATISTICS_TIME_RANGES: Final[frozenset[str]] = frozenset({"hour", "day", "week"})


# =============================================================================
# Push Channel (Socket.IO over websocket)
# =============================================================================

SOCKETIO_PATH: Final[str] = "/socket.io/"
ENGINEIO_VERSION: Final[str] = "4"

# Client -> server events
EVENT_SUBSCRIBE_OPPORTUNITIES: Final[str] = "subscribe:opportunities"
EVENT_UNSUBSCRIBE_OPPORTUNITIES: Final[str] = "unsubscribe:opportunities"

# Handshake and liveness
WS_CONNECT_TIMEOUT: Final[float] = 10.0  # seconds
WS_DEFAULT_PING_INTERVAL: Final[float] = 25.0  # seconds
WS_DEFAULT_PING_TIMEOUT: Final[float] = 20.0  # seconds
WS_MAX_MESSAGE_SIZE: Final[int] = 10 * 1024 * 1024  # 10MB
WS_CLOSE_TIMEOUT: Final[float] = 5.0  # seconds


# =============================================================================
# Reconnection Strategy
# =============================================================================

MIN_RECONNECT_DELAY: Final[float] = 1.0  # seconds
MAX_RECONNECT_DELAY: Final[float] = 30.0  # seconds
RECONNECT_MULTIPLIER: Final[float] = 2.0


# =============================================================================
# Reconciliation
# =============================================================================

# How long a spread change stays emphasized after the snapshot that set it
EMPHASIS_WINDOW_MS: Final[int] = 500

# Bounded history of push notifications kept by a session
MAX_NOTIFICATIONS: Final[int] = 100


# =============================================================================
# Credential Storage
# =============================================================================

DEFAULT_CREDENTIAL_FILE: Final[str] = "~/.arbclient/credentials.json"
CREDENTIAL_FILE_MODE: Final[int] = 0o600


# =============================================================================
# Logging & Telemetry
# =============================================================================

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

# Reporter refresh interval (seconds)
REPORT_INTERVAL: Final[float] = 1.0

# Maximum log queue size
MAX_LOG_QUEUE_SIZE: Final[int] = 10_000
