"""
Credential store.

Process-wide holder of the access/refresh token pair. Consumers never
cache a token: they call ``get()`` per use, so a refresh written by one
request is immediately visible to every later request and to the next
push channel handshake. Writes are last-writer-wins.
"""

import logging
import os
from pathlib import Path
from typing import Protocol

import orjson

from arbclient.config.constants import CREDENTIAL_FILE_MODE
from arbclient.core.types import Credential


logger = logging.getLogger(__name__)


class CredentialBackend(Protocol):
    """Durable storage behind a credential store."""

    def load(self) -> Credential | None: ...

    def save(self, credential: Credential) -> None: ...

    def delete(self) -> None: ...


class MemoryCredentialBackend:
    """Non-durable backend for tests and throwaway sessions."""

    def __init__(self, credential: Credential | None = None) -> None:
        self.credential = credential

    def load(self) -> Credential | None:
        return self.credential

    def save(self, credential: Credential) -> None:
        self.credential = credential

    def delete(self) -> None:
        self.credential = None


class FileCredentialBackend:
    """
    JSON file backend.

    Writes go to a sibling temp file that is then renamed over the target,
    so a crash mid-write never leaves a truncated credential file.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        """Location of the credential file."""
        return self._path

    def load(self) -> Credential | None:
        if not self._path.exists():
            return None

        try:
            data = orjson.loads(self._path.read_bytes())
            return Credential(
                access_token=data["accessToken"],
                refresh_token=data["refreshToken"],
            )
        except (OSError, orjson.JSONDecodeError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable credential file {self._path}: {e}")
            return None

    def save(self, credential: Credential) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = orjson.dumps(
            {
                "accessToken": credential.access_token,
                "refreshToken": credential.refresh_token,
            }
        )

        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, CREDENTIAL_FILE_MODE)
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        os.replace(tmp, self._path)

    def delete(self) -> None:
        self._path.unlink(missing_ok=True)


class CredentialStore:
    """
    Owner of the current credential.

    ``get()`` never raises; an absent credential is the logged-out state.
    The in-memory snapshot is authoritative for the running process even
    when persisting it fails.
    """

    def __init__(self, backend: CredentialBackend | None = None) -> None:
        """
        Initialize the store and load any persisted credential.

        Args:
            backend: Durable storage; defaults to in-memory only.
        """
        self._backend: CredentialBackend = backend or MemoryCredentialBackend()
        self._current: Credential | None = self._backend.load()

        if self._current is not None:
            logger.debug("Loaded stored credential")

    @classmethod
    def from_file(cls, path: Path) -> "CredentialStore":
        """Create a store persisted to a JSON file."""
        return cls(FileCredentialBackend(path))

    def get(self) -> Credential | None:
        """Get the current credential, or None when logged out."""
        return self._current

    def set(self, credential: Credential) -> None:
        """Replace the current credential and persist it."""
        self._current = credential
        try:
            self._backend.save(credential)
        except OSError as e:
            logger.error(f"Failed to persist credential: {e}")

    def update_access_token(self, access_token: str, refresh_token: str | None = None) -> None:
        """
        Store a refreshed access token.

        Args:
            access_token: Newly issued access token.
            refresh_token: Rotated refresh token, if the backend issued one.
        """
        current = self._current
        if refresh_token is None:
            if current is None:
                logger.warning("Refreshed access token arrived after logout; dropping it")
                return
            refresh_token = current.refresh_token

        self.set(Credential(access_token=access_token, refresh_token=refresh_token))

    def clear(self) -> None:
        """Forget the credential (logout or irrecoverable refresh failure)."""
        self._current = None
        try:
            self._backend.delete()
        except OSError as e:
            logger.error(f"Failed to delete stored credential: {e}")

    @property
    def access_token(self) -> str | None:
        """Current access token, if any."""
        return self._current.access_token if self._current else None

    @property
    def refresh_token(self) -> str | None:
        """Current refresh token, if any."""
        return self._current.refresh_token if self._current else None

    @property
    def is_authenticated(self) -> bool:
        """Check if a credential is present."""
        return self._current is not None
