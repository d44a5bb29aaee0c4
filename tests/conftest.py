"""
Pytest configuration and shared fixtures.

Provides reusable test fixtures for all test modules.
"""

from pathlib import Path

import pytest

from arbclient.auth.store import CredentialStore, MemoryCredentialBackend
from arbclient.config.settings import Settings
from arbclient.core.types import Credential
from arbclient.telemetry.metrics import MetricsCollector
from tests.mocks.transport import FakeTransport


# =============================================================================
# Credential Fixtures
# =============================================================================


@pytest.fixture
def credential() -> Credential:
    """Credential issued at login."""
    return Credential(access_token="access-1", refresh_token="refresh-1")


@pytest.fixture
def empty_store() -> CredentialStore:
    """Logged-out in-memory store."""
    return CredentialStore(MemoryCredentialBackend())


@pytest.fixture
def auth_store(credential: Credential) -> CredentialStore:
    """Logged-in in-memory store."""
    return CredentialStore(MemoryCredentialBackend(credential))


@pytest.fixture
def credential_file(tmp_path: Path) -> Path:
    """Path for a file-backed credential store."""
    return tmp_path / "session" / "credentials.json"


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def metrics() -> MetricsCollector:
    """Fresh metrics collector."""
    return MetricsCollector()


@pytest.fixture
def transport() -> FakeTransport:
    """In-process transport driven by the test."""
    return FakeTransport()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from the environment and the user's home."""
    return Settings(
        _env_file=None,
        backend_url="http://127.0.0.1:1",
        ws_url="http://127.0.0.1:1",
        credential_file=tmp_path / "credentials.json",
        reconnect_min_delay=0.05,
        reconnect_max_delay=0.2,
        emphasis_window_ms=100,
        request_timeout=5.0,
    )
