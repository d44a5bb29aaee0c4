"""
Realtime session orchestrator.

Wires the credential store, REST client, push channel, reconciler and
trade flow together and manages the session lifecycle.
"""

import asyncio
import logging
import signal
from collections import deque
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any

from arbclient.api.client import ApiClient, ApiClientError
from arbclient.api.models import Trade
from arbclient.api.service import ArbitrageApi
from arbclient.auth.store import CredentialStore
from arbclient.channel.manager import PushChannelManager
from arbclient.channel.transport import SocketTransport, Transport
from arbclient.config.constants import MAX_NOTIFICATIONS, REPORT_INTERVAL
from arbclient.config.settings import Settings
from arbclient.core.event_bus import Event
from arbclient.core.types import ChannelEvent, ChannelState, SessionInvalidated
from arbclient.execution.executor import TradeExecutor
from arbclient.state.reconciler import SnapshotReconciler, parse_snapshot
from arbclient.state.trades import TradeBook
from arbclient.telemetry.metrics import MetricsCollector
from arbclient.telemetry.reporter import CLIReporter


logger = logging.getLogger(__name__)


InvalidationHandler = Callable[[SessionInvalidated], None]


class RealtimeSession:
    """
    One user session against the backend.

    Manages the complete lifecycle of:
    - Credentials and the authenticated REST client
    - The push channel and its opportunity subscription
    - The reconciled opportunity view
    - Trade submission and the trade book
    """

    def __init__(
        self,
        settings: Settings,
        credentials: CredentialStore | None = None,
        client: ApiClient | None = None,
        transport: Transport | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize the session.

        Args:
            settings: Application settings.
            credentials: Credential store (default: file store from settings).
            client: REST client (default: built from settings).
            transport: Push transport (default: websocket to ``ws_url``).
            metrics: Metrics collector shared by every component.
        """
        self._settings = settings
        self._metrics = metrics or MetricsCollector()

        if credentials is None:
            credentials = client.credentials if client else CredentialStore.from_file(settings.credential_file)
        self._credentials = credentials

        self._client = client or ApiClient(
            settings.backend_url,
            self._credentials,
            timeout=settings.request_timeout,
            metrics=self._metrics,
        )
        self._api = ArbitrageApi(self._client)

        self._transport = transport or SocketTransport(
            settings.ws_url,
            min_reconnect_delay=settings.reconnect_min_delay,
            max_reconnect_delay=settings.reconnect_max_delay,
            metrics=self._metrics,
        )
        self._channel = PushChannelManager(self._transport, self._credentials, self._metrics)

        self._reconciler = SnapshotReconciler(
            emphasis_window=settings.emphasis_window,
            metrics=self._metrics,
        )
        self._trade_book = TradeBook()
        self._executor = TradeExecutor(self._api, self._trade_book, self._metrics)

        self._alerts: deque[Any] = deque(maxlen=MAX_NOTIFICATIONS)
        self._system_messages: deque[Any] = deque(maxlen=MAX_NOTIFICATIONS)
        self._invalidation_handlers: list[InvalidationHandler] = []
        self._client.add_session_listener(self._on_session_invalidated)

        self._reporter: CLIReporter | None = None
        self._shutdown_event = asyncio.Event()
        self._running = False
        self._closed = False

    # =========================================================================
    # Components
    # =========================================================================

    @property
    def api(self) -> ArbitrageApi:
        """Typed REST endpoints."""
        return self._api

    @property
    def credentials(self) -> CredentialStore:
        """Credential store."""
        return self._credentials

    @property
    def channel(self) -> PushChannelManager:
        """Push channel manager."""
        return self._channel

    @property
    def reconciler(self) -> SnapshotReconciler:
        """Reconciled opportunity view."""
        return self._reconciler

    @property
    def trade_book(self) -> TradeBook:
        """Trades as reported by the backend."""
        return self._trade_book

    @property
    def executor(self) -> TradeExecutor:
        """Trade submitter."""
        return self._executor

    @property
    def metrics(self) -> MetricsCollector:
        """Get metrics collector."""
        return self._metrics

    @property
    def state(self) -> ChannelState:
        """Current push channel state."""
        return self._channel.state

    @property
    def alerts(self) -> list[Any]:
        """Most recent alert notifications, oldest first."""
        return list(self._alerts)

    @property
    def system_messages(self) -> list[Any]:
        """Most recent system messages, oldest first."""
        return list(self._system_messages)

    @property
    def is_running(self) -> bool:
        """Check if the session is running."""
        return self._running

    # =========================================================================
    # Session Invalidation
    # =========================================================================

    def on_session_invalidated(self, handler: InvalidationHandler) -> None:
        """Register a handler for the session-invalidated signal."""
        self._invalidation_handlers.append(handler)

    def _on_session_invalidated(self, signal_: SessionInvalidated) -> None:
        logger.warning(f"Re-authentication required: {signal_.reason}")
        for handler in list(self._invalidation_handlers):
            try:
                handler(signal_)
            except Exception:
                logger.exception("Session invalidation handler failed")

    # =========================================================================
    # Channel Events
    # =========================================================================

    def _wire_channel(self) -> None:
        self._channel.on(ChannelEvent.OPPORTUNITIES_UPDATE, self._on_opportunities)
        self._channel.on(ChannelEvent.TRADE_UPDATE, self._on_trade_update)
        self._channel.on(ChannelEvent.ALERT_NOTIFICATION, self._on_alert)
        self._channel.on(ChannelEvent.SYSTEM_MESSAGE, self._on_system_message)

    def _on_opportunities(self, event: Event) -> None:
        snapshot = parse_snapshot(event.payload)
        rows = self._reconciler.apply(snapshot)
        logger.debug(f"Snapshot #{event.sequence}: {len(rows)} opportunities")

    def _on_trade_update(self, event: Event) -> None:
        self._trade_book.apply_update(event.payload)

    def _on_alert(self, event: Event) -> None:
        self._alerts.append(event.payload)
        logger.info(f"Alert: {event.payload}")

    def _on_system_message(self, event: Event) -> None:
        self._system_messages.append(event.payload)
        logger.info(f"System message: {event.payload}")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def login_if_needed(self) -> bool:
        """
        Log in with the settings' credentials when no session is stored.

        Returns:
            True if the session is authenticated afterwards.
        """
        if self._credentials.is_authenticated:
            return True

        email, password = self._settings.email, self._settings.password
        if not email or password is None:
            logger.info("No stored session and no login configured; continuing anonymously")
            return False

        await self._api.login(email, password.get_secret_value())
        return True

    async def load_trades(self) -> list[Trade]:
        """Replace the trade book with the backend's trade listing."""
        trades = await self._api.get_trades()
        self._trade_book.replace_all(trades)
        logger.info(f"Loaded {len(trades)} trades")
        return trades

    async def start(self) -> None:
        """Open the push channel and subscribe to opportunities."""
        if self._running:
            logger.debug("Session already started")
            return

        logger.info("Starting realtime session...")
        self._closed = False
        self._running = True

        self._wire_channel()
        await self._channel.connect()
        await self._channel.subscribe()

    async def execute_trade(self, opportunity_id: str, amount: Decimal | float | str) -> Trade:
        """Submit a trade for a displayed opportunity."""
        return await self._executor.execute(opportunity_id, amount)

    async def run(self, report_interval: float | None = REPORT_INTERVAL) -> None:
        """
        Run the session until a shutdown signal.

        Args:
            report_interval: Terminal panel refresh interval; None disables it.
        """
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._handle_shutdown)

        try:
            await self.login_if_needed()
            if self._credentials.is_authenticated:
                try:
                    await self.load_trades()
                except ApiClientError as e:
                    logger.warning(f"Could not load trades: {e}")

            await self.start()

            if report_interval is not None:
                self._reporter = CLIReporter(
                    metrics=self._metrics,
                    rows=lambda: self._reconciler.rows,
                    channel_state=lambda: self._channel.state,
                    open_trades=lambda: len(self._trade_book.open_trades()),
                )
                self._reporter.start(interval=report_interval)

            # Main loop - just wait for shutdown
            await self._shutdown_event.wait()

        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
            await self.shutdown()

    def _handle_shutdown(self) -> None:
        """Handle shutdown signal."""
        logger.info("Shutdown signal received")
        self._shutdown_event.set()

    def request_shutdown(self) -> None:
        """Ask a running ``run()`` to return."""
        self._shutdown_event.set()

    async def shutdown(self) -> None:
        """Unsubscribe, close the channel and release every resource."""
        if self._closed:
            return
        self._closed = True
        self._running = False

        logger.info("Shutting down session...")

        if self._reporter:
            self._reporter.stop()
            self._reporter.print_summary()
            self._reporter = None

        await self._channel.close()
        self._reconciler.close()
        self._client.remove_session_listener(self._on_session_invalidated)
        await self._client.close()

        logger.info("Session shutdown complete")


@asynccontextmanager
async def open_session(settings: Settings, **kwargs: Any) -> AsyncIterator[RealtimeSession]:
    """
    Create and manage a session lifecycle.

    Usage:
        async with open_session(settings) as session:
            await session.execute_trade(opportunity_id, 100)
    """
    session = RealtimeSession(settings, **kwargs)

    try:
        await session.start()
        yield session
    finally:
        await session.shutdown()
