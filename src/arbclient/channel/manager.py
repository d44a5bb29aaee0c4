"""
Push channel manager.

Owns the single push connection of a session:
- ``disconnected -> connecting -> connected`` state machine driven by the transport
- Opportunity subscription intent that survives reconnects
- Strictly ordered, one-at-a-time dispatch of inbound events
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from arbclient.auth.store import CredentialStore
from arbclient.channel.transport import Transport, TransportError
from arbclient.config.constants import (
    EVENT_SUBSCRIBE_OPPORTUNITIES,
    EVENT_UNSUBSCRIBE_OPPORTUNITIES,
)
from arbclient.core.event_bus import Event, EventBus, EventHandler
from arbclient.core.types import ChannelEvent, ChannelState, ChannelStatus
from arbclient.telemetry.metrics import MetricsCollector
from arbclient.utils.time import get_timestamp_ms


logger = logging.getLogger(__name__)


StateListener = Callable[[ChannelState], None]


class PushChannelManager:
    """
    Lifecycle and subscription manager for the push channel.

    ``subscribe``/``unsubscribe`` are fire-and-forget intents: they never
    raise. Transport failures are logged and left to the transport's own
    reconnect loop.
    """

    def __init__(
        self,
        transport: Transport,
        credentials: CredentialStore,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize the manager.

        Args:
            transport: Connection to drive; one per manager.
            credentials: Store read at every handshake.
            metrics: Optional metrics collector.
        """
        self._transport = transport
        self._credentials = credentials
        self._metrics = metrics
        self._bus = EventBus()

        self._status = ChannelStatus.DISCONNECTED
        self._subscribed = False
        self._wants_subscription = False
        # Open generation whose subscribe request is on the wire, if any
        self._subscribe_in_flight: int | None = None
        self._generation = 0
        self._wants_subscription = False
        self._state_listeners: list[StateListener] = []
        self._connected_event = asyncio.Event()

        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._dispatch_task: asyncio.Task[None] | None = None
        self._sequence = 0
        self._started = False

    # =========================================================================
    # State
    # =========================================================================

    @property
    def state(self) -> ChannelState:
        """Current channel state snapshot."""
        return ChannelState(status=self._status, subscribed=self._subscribed)

    @property
    def wants_subscription(self) -> bool:
        """Whether the caller currently intends to receive opportunities."""
        return self._wants_subscription

    def add_state_listener(self, listener: StateListener) -> None:
        """Register a callback invoked on every state change."""
        self._state_listeners.append(listener)

    def _set_state(self, status: ChannelStatus, subscribed: bool | None = None) -> None:
        changed = status != self._status
        self._status = status
        if subscribed is not None:
            changed = changed or subscribed != self._subscribed
            self._subscribed = subscribed

        if status == ChannelStatus.CONNECTED:
            self._connected_event.set()
        else:
            self._connected_event.clear()

        if changed:
            state = self.state
            for listener in list(self._state_listeners):
                try:
                    listener(state)
                except Exception:
                    logger.exception("Channel state listener failed")

    async def wait_connected(self, timeout: float = 30.0) -> bool:
        """
        Wait for the channel to be connected.

        Returns:
            True if connected within timeout.
        """
        try:
            await asyncio.wait_for(self._connected_event.wait(), timeout=timeout)
        except TimeoutError:
            return False
        return True

    # =========================================================================
    # Listeners
    # =========================================================================

    def on(self, event: ChannelEvent, handler: EventHandler) -> None:
        """Register a handler for an inbound event."""
        self._bus.subscribe(event, handler)

    def off(self, event: ChannelEvent, handler: EventHandler) -> bool:
        """Remove a handler for an inbound event."""
        return self._bus.unsubscribe(event, handler)

    @property
    def listener_count(self) -> int:
        """Number of registered event handlers."""
        return self._bus.handler_count()

    # =========================================================================
    # Commands
    # =========================================================================

    async def connect(self) -> None:
        """
        Open the channel.

        Returns as soon as the transport is started; the connection (and any
        later reconnection) proceeds in the background.
        """
        if self._started:
            return

        self._started = True
        self._ensure_dispatcher()
        self._set_state(ChannelStatus.CONNECTING)
        self._transport.start(self)

    async def subscribe(self) -> None:
        """
        Subscribe to the opportunity stream.

        Records the intent even when disconnected; the subscribe request is
        then sent once the channel connects.
        """
        self._wants_subscription = True

        if self._subscribed:
            return

        if self._status != ChannelStatus.CONNECTED:
            logger.debug("Subscription deferred until the channel connects")
            return

        await self._emit_subscribe()

    async def unsubscribe(self) -> None:
        """Unsubscribe from the opportunity stream and clear the intent."""
        self._wants_subscription = False

        if not self._subscribed:
            return

        self._set_state(self._status, subscribed=False)
        if self._status != ChannelStatus.CONNECTED:
            return

        try:
            await self._transport.emit(EVENT_UNSUBSCRIBE_OPPORTUNITIES)
            logger.info("Unsubscribed from opportunities")
        except TransportError as e:
            logger.warning(f"Unsubscribe not delivered: {e}")

    async def close(self) -> None:
        """Unsubscribe, stop the transport and release listeners."""
        await self.unsubscribe()
        await self._transport.stop()
        self._started = False
        self._set_state(ChannelStatus.DISCONNECTED, subscribed=False)

        if self._dispatch_task is not None:
            self._dispatch_task.cancel()
            try:
                await self._dispatch_task
            except asyncio.CancelledError:
                pass
            self._dispatch_task = None

        self._bus.clear()
        self._state_listeners.clear()

    async def _emit_subscribe(self) -> None:
        generation = self._generation
        if self._subscribed or self._subscribe_in_flight == generation:
            return

        self._subscribe_in_flight = generation
        try:
            await self._transport.emit(EVENT_SUBSCRIBE_OPPORTUNITIES, {})
        except TransportError as e:
            logger.warning(f"Subscribe not delivered: {e}")
            return
        finally:
            if self._subscribe_in_flight == generation:
                self._subscribe_in_flight = None

        if generation != self._generation or self._status != ChannelStatus.CONNECTED:
            return

        self._set_state(self._status, subscribed=True)
        logger.info("Subscribed to opportunities")

        if not self._wants_subscription:
            # Unsubscribed while the request was on the wire
            await self.unsubscribe()

    # =========================================================================
    # Transport Listener
    # =========================================================================

    def handshake_auth(self) -> dict[str, Any]:
        """Credential for the handshake; empty token connects anonymously."""
        credential = self._credentials.get()
        return {"token": credential.access_token if credential else ""}

    def on_transport_connecting(self) -> None:
        self._set_state(ChannelStatus.CONNECTING, subscribed=False)

    async def on_transport_open(self, sid: str | None) -> None:
        self._generation += 1
        self._set_state(ChannelStatus.CONNECTED, subscribed=False)
        logger.info(f"Push channel connected (sid={sid})")

        if self._wants_subscription:
            await self._emit_subscribe()

    def on_transport_close(self, reason: str) -> None:
        if self._status != ChannelStatus.DISCONNECTED:
            logger.warning(f"Push channel disconnected: {reason}")
        self._set_state(ChannelStatus.DISCONNECTED, subscribed=False)

    def on_transport_event(self, event: str, data: Any) -> None:
        """Queue an inbound event for ordered dispatch."""
        try:
            event_type = ChannelEvent(event)
        except ValueError:
            logger.debug(f"Ignoring unknown event {event!r}")
            return

        if self._metrics:
            self._metrics.record_event()

        self._sequence += 1
        self._ensure_dispatcher()
        self._queue.put_nowait(
            Event(
                type=event_type,
                payload=data,
                timestamp_ms=get_timestamp_ms(),
                sequence=self._sequence,
            )
        )

    # =========================================================================
    # Dispatch
    # =========================================================================

    def _ensure_dispatcher(self) -> None:
        if self._dispatch_task is None or self._dispatch_task.done():
            self._dispatch_task = asyncio.create_task(
                self._dispatch_loop(),
                name="push-channel-dispatch",
            )

    async def _dispatch_loop(self) -> None:
        """Deliver queued events one at a time, in arrival order."""
        while True:
            event = await self._queue.get()
            try:
                await self._bus.publish(event)
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every queued event has been delivered."""
        await self._queue.join()

    @property
    def pending_events(self) -> int:
        """Number of events waiting for dispatch."""
        return self._queue.qsize()
