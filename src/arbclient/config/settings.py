"""
Application settings with environment variable support.

Uses Pydantic Settings for type-safe configuration with automatic
environment variable loading and validation.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from arbclient.config.constants import (
    DEFAULT_BACKEND_URL,
    DEFAULT_CREDENTIAL_FILE,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_WS_URL,
    EMPHASIS_WINDOW_MS,
    MAX_RECONNECT_DELAY,
    MIN_RECONNECT_DELAY,
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Sensitive values use SecretStr for safe handling.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Backend
    # =========================================================================

    backend_url: str = Field(
        default=DEFAULT_BACKEND_URL,
        description="Base URL of the REST backend",
    )
    ws_url: str = Field(
        default=DEFAULT_WS_URL,
        description="Base URL of the Socket.IO push channel",
    )
    request_timeout: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT,
        gt=0.0,
        le=120.0,
        description="Total timeout for a single REST call in seconds",
    )

    # =========================================================================
    # Session
    # =========================================================================

    credential_file: Path = Field(
        default=Path(DEFAULT_CREDENTIAL_FILE),
        description="Where access and refresh tokens are persisted",
    )
    email: str | None = Field(
        default=None,
        description="Login email used when no stored session exists",
    )
    password: SecretStr | None = Field(
        default=None,
        description="Login password used when no stored session exists",
    )

    # =========================================================================
    # Push Channel
    # =========================================================================

    reconnect_min_delay: float = Field(
        default=MIN_RECONNECT_DELAY,
        gt=0.0,
        description="First reconnect delay in seconds",
    )
    reconnect_max_delay: float = Field(
        default=MAX_RECONNECT_DELAY,
        gt=0.0,
        description="Upper bound of the reconnect backoff in seconds",
    )

    emphasis_window_ms: int = Field(
        default=EMPHASIS_WINDOW_MS,
        ge=50,
        le=10_000,
        description="How long a spread change stays emphasized",
    )

    # =========================================================================
    # Operation Mode
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: Path | None = Field(
        default=None,
        description="Optional file that receives DEBUG-level logs",
    )
    use_uvloop: bool = Field(
        default=True,
        description="Use uvloop for improved async performance",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("backend_url", "ws_url", mode="after")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Require an http(s) or ws(s) URL and drop any trailing slash."""
        if not v.startswith(("http://", "https://", "ws://", "wss://")):
            raise ValueError(f"Unsupported URL scheme: {v}")
        return v.rstrip("/")

    @field_validator("credential_file", mode="after")
    @classmethod
    def expand_credential_file(cls, v: Path) -> Path:
        """Expand ``~`` so the store never writes into a literal tilde dir."""
        return v.expanduser()

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def emphasis_window(self) -> float:
        """Emphasis window in seconds."""
        return self.emphasis_window_ms / 1000

    @property
    def has_login(self) -> bool:
        """Whether settings carry credentials for an automatic login."""
        return bool(self.email) and self.password is not None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are loaded only once.
    Clear cache with `get_settings.cache_clear()` if needed.
    """
    return Settings()
