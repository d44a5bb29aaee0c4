"""Credential storage for the authenticated session."""

from arbclient.auth.store import (
    CredentialBackend,
    CredentialStore,
    FileCredentialBackend,
    MemoryCredentialBackend,
)


__all__ = [
    "CredentialBackend",
    "CredentialStore",
    "FileCredentialBackend",
    "MemoryCredentialBackend",
]
