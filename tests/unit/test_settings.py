"""
Unit tests for application settings.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from arbclient.config.settings import Settings


class TestSettings:
    """Tests for settings loading and validation."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test defaults without environment overrides."""
        for name in ("BACKEND_URL", "WS_URL", "EMAIL", "PASSWORD", "EMPHASIS_WINDOW_MS"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.backend_url == "http://localhost:5000"
        assert settings.emphasis_window == 0.5
        assert settings.reconnect_min_delay == 1.0
        assert settings.reconnect_max_delay == 30.0
        assert not settings.has_login

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test values are read from the environment, case-insensitively."""
        monkeypatch.setenv("backend_url", "https://api.example.com/")
        monkeypatch.setenv("EMAIL", "trader@example.com")
        monkeypatch.setenv("PASSWORD", "secret")

        settings = Settings(_env_file=None)

        assert settings.backend_url == "https://api.example.com"
        assert settings.has_login
        assert settings.password is not None
        assert settings.password.get_secret_value() == "secret"
        assert "secret" not in repr(settings)

    def test_rejects_bad_scheme(self) -> None:
        """Test non-http(s)/ws(s) URLs are refused."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, backend_url="ftp://example.com")

    @pytest.mark.parametrize("window", [0, 10, 60_000])
    def test_rejects_emphasis_window_out_of_range(self, window: int) -> None:
        """Test the emphasis window bounds."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, emphasis_window_ms=window)

    def test_expands_credential_file(self) -> None:
        """Test ``~`` in the credential path is expanded."""
        settings = Settings(_env_file=None, credential_file=Path("~/creds.json"))

        assert "~" not in str(settings.credential_file)
        assert settings.credential_file.is_absolute()
