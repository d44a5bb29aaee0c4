"""
Async authenticated REST client.

Wraps every backend call with:
- Connection pooling and keep-alive
- Fast JSON encoding/decoding with orjson
- Bearer credentials read from the credential store per call
- One transparent refresh-and-retry on 401
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import aiohttp
import orjson

from arbclient.auth.store import CredentialStore
from arbclient.config.constants import (
    DEFAULT_REQUEST_TIMEOUT,
    ENDPOINT_REFRESH,
    HTTP_UNAUTHORIZED,
)
from arbclient.core.types import SessionInvalidated
from arbclient.telemetry.metrics import MetricsCollector


logger = logging.getLogger(__name__)


SessionListener = Callable[[SessionInvalidated], None]

SUPPORTED_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})


class ApiClientError(Exception):
    """Base exception for client errors (network, malformed responses)."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class HttpError(ApiClientError):
    """Non-2xx response from the backend."""

    def __init__(self, status: int, body: Any, message: str) -> None:
        super().__init__(f"HTTP {status}: {message}", status=status)
        self.body = body
        self.message = message


class RequestRejected(HttpError):
    """Request refused by the backend; recoverable by user action."""

    pass


class AuthExpired(ApiClientError):
    """
    Session could not be renewed.

    Raised after the refresh endpoint failed, or the retried request was
    still unauthorized. Credentials are already cleared when this is raised.
    Intentionally not an HttpError: it must not be handled as an ordinary
    request failure.
    """

    pass


def _error_message(data: Any, text: str, status: int) -> str:
    """Extract the backend's message from an error body."""
    if isinstance(data, dict):
        message = data.get("message") or data.get("error")
        if isinstance(message, str) and message:
            return message
    return text.strip() or f"status {status}"


class ApiClient:
    """
    Async backend client with transparent credential renewal.

    At most one refresh-and-retry cycle happens per call. Concurrent calls
    that hit 401 may each refresh; the store keeps the last token written.
    """

    def __init__(
        self,
        base_url: str,
        credentials: CredentialStore,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Backend base URL, without trailing slash.
            credentials: Credential store read on every call.
            timeout: Total timeout per HTTP exchange in seconds.
            metrics: Optional metrics collector.
        """
        self._base_url = base_url.rstrip("/")
        self._credentials = credentials
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._metrics = metrics
        self._session: aiohttp.ClientSession | None = None
        self._session_listeners: list[SessionListener] = []

    @property
    def credentials(self) -> CredentialStore:
        """Credential store used by this client."""
        return self._credentials

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=20,
                keepalive_timeout=30,
                enable_cleanup_closed=True,
            )

            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=self._timeout,
                headers={"Accept": "application/json"},
                json_serialize=lambda x: orjson.dumps(x).decode(),
            )

        return self._session

    async def close(self) -> None:
        """Close the client session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    # =========================================================================
    # Session Invalidation
    # =========================================================================

    def add_session_listener(self, listener: SessionListener) -> None:
        """Register a callback for irrecoverable authentication failures."""
        self._session_listeners.append(listener)

    def remove_session_listener(self, listener: SessionListener) -> None:
        """Remove a session listener."""
        if listener in self._session_listeners:
            self._session_listeners.remove(listener)

    def _invalidate(self, reason: str, status: int | None = None) -> SessionInvalidated:
        """Clear credentials and notify listeners that the session is gone."""
        self._credentials.clear()
        signal = SessionInvalidated(reason=reason, status=status)
        logger.warning(f"Session invalidated: {reason}")

        for listener in list(self._session_listeners):
            try:
                listener(signal)
            except Exception:
                logger.exception("Session listener failed")

        return signal

    # =========================================================================
    # Transport
    # =========================================================================

    @asynccontextmanager
    async def _request_context(self) -> AsyncIterator[aiohttp.ClientSession]:
        """Context manager for making requests."""
        session = await self._get_session()
        try:
            yield session
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ApiClientError(f"Network error: {e!r}") from e

    async def _send(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
        authenticate: bool = True,
    ) -> tuple[int, Any, str]:
        """
        Send one HTTP exchange.

        The bearer token is read from the store at send time, never earlier.

        Returns:
            Status code, decoded JSON (None if not JSON) and raw text.
        """
        headers: dict[str, str] = {}
        if authenticate:
            credential = self._credentials.get()
            if credential is not None:
                headers["Authorization"] = f"Bearer {credential.access_token}"

        query = {k: str(v) for k, v in (params or {}).items() if v is not None}
        url = f"{self._base_url}{path}"

        async with self._request_context() as session:
            async with session.request(
                method,
                url,
                json=body,
                params=query or None,
                headers=headers,
            ) as response:
                text = await response.text()
                status = response.status

        data: Any = None
        if text:
            try:
                data = orjson.loads(text)
            except orjson.JSONDecodeError:
                if 200 <= status < 300:
                    raise ApiClientError(f"Invalid JSON response from {path}", status=status)

        return status, data, text

    async def _refresh(self, refresh_token: str) -> None:
        """
        Exchange the refresh token for a new access token.

        Raises:
            AuthExpired: Refresh failed; credentials are cleared.
        """
        if self._metrics:
            self._metrics.increment_counter("auth_refreshes")
        logger.info("Access token rejected, refreshing")

        try:
            status, data, _ = await self._send(
                "POST",
                ENDPOINT_REFRESH,
                {"refreshToken": refresh_token},
                authenticate=False,
            )
        except ApiClientError as e:
            self._invalidate(f"Token refresh failed: {e}")
            raise AuthExpired(f"Token refresh failed: {e}") from e

        if not 200 <= status < 300:
            self._invalidate(f"Token refresh rejected with status {status}", status)
            raise AuthExpired(f"Token refresh rejected with status {status}", status=status)

        payload = data.get("data") if isinstance(data, dict) else None
        access_token = payload.get("accessToken") if isinstance(payload, dict) else None
        if not isinstance(access_token, str) or not access_token:
            self._invalidate("Token refresh response carried no access token", status)
            raise AuthExpired("Token refresh response carried no access token", status=status)

        rotated = payload.get("refreshToken") if isinstance(payload, dict) else None
        self._credentials.update_access_token(
            access_token,
            rotated if isinstance(rotated, str) and rotated else None,
        )
        logger.debug("Access token refreshed")

    # =========================================================================
    # Public API
    # =========================================================================

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
        *,
        authenticate: bool = True,
        refreshable: bool = True,
    ) -> dict[str, Any]:
        """
        Make an API request.

        Args:
            method: HTTP method.
            path: Endpoint path, e.g. ``/api/trades``.
            body: JSON body.
            params: Query parameters; None values are dropped.
            authenticate: Attach the bearer token if one is stored.
            refreshable: Allow the transparent refresh-and-retry on 401.

        Returns:
            Decoded JSON envelope.

        Raises:
            RequestRejected: On any non-2xx response outside the refresh case.
            AuthExpired: When the session could not be renewed.
            ApiClientError: On network or decoding errors.
        """
        method = method.upper()
        if method not in SUPPORTED_METHODS:
            raise ApiClientError(f"Unsupported method: {method}")

        status, data, text = await self._send(method, path, body, params, authenticate)

        if status == HTTP_UNAUTHORIZED and authenticate and refreshable:
            credential = self._credentials.get()
            if credential is not None and credential.refresh_token:
                await self._refresh(credential.refresh_token)

                # Exactly one retry, with whatever token the store now holds
                status, data, text = await self._send(method, path, body, params, authenticate)
                if status == HTTP_UNAUTHORIZED:
                    self._invalidate("Request still unauthorized after token refresh", status)
                    raise AuthExpired(
                        "Request still unauthorized after token refresh",
                        status=status,
                    )

        if not 200 <= status < 300:
            message = _error_message(data, text, status)
            logger.debug(f"{method} {path} rejected: {status} {message}")
            raise RequestRejected(status, data if data is not None else text, message)

        return data if isinstance(data, dict) else {"success": True, "message": "", "data": data}

    async def __aenter__(self) -> "ApiClient":
        """Async context manager entry."""
        await self._get_session()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()
