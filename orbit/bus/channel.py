"""
Event Bus

Process-wide publish/subscribe channel for transcript and clear events.

Lifecycle:
  bus = EventBus("orbit_autotranslate")
  await bus.open()          # once, at process start
  unsubscribe = bus.subscribe(handler)
  bus.publish(event)        # local subscribers first, then other processes
  await bus.close()         # once, at teardown; never reopened

Ordering: events from one publisher arrive in publish order. There is no
ordering across publishers, so consumers decide relevance by event id.
"""

import logging
from collections.abc import Callable
from enum import Enum

from ..config import CHANNEL_NAME
from ..core.errors import ChannelClosedError
from ..core.models import ClearEvent, TranscriptEvent, parse_event
from .transport import ChannelTransport, LocalTransport

logger = logging.getLogger(__name__)

Event = TranscriptEvent | ClearEvent
EventHandler = Callable[[Event], None]


class BusState(Enum):
    """Lifecycle of an EventBus."""

    CREATED = "created"
    OPEN = "open"
    CLOSED = "closed"


def _noop() -> None:
    pass


class EventBus:
    """
    Pub/sub channel fanning events out to local and remote subscribers.

    Owns no domain state. Subscriber errors are logged and never stop
    delivery to the remaining subscribers.
    """

    def __init__(self, name: str = CHANNEL_NAME, transport: ChannelTransport | None = None):
        """
        Initialize event bus.

        Args:
            name: Channel name shared by every attached process
            transport: Transport to other processes (defaults to LocalTransport)
        """
        self.name = name
        self.transport = transport if transport is not None else LocalTransport(name)
        self.state = BusState.CREATED
        self._subscribers: list[EventHandler] = []

    @property
    def is_open(self) -> bool:
        return self.state is BusState.OPEN

    @property
    def is_closed(self) -> bool:
        return self.state is BusState.CLOSED

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def open(self) -> None:
        """Attach the transport. A closed bus cannot be reopened."""
        if self.state is BusState.CLOSED:
            raise ChannelClosedError(f"Channel '{self.name}' is closed")
        if self.state is BusState.OPEN:
            return

        await self.transport.open(self._on_remote)
        self.state = BusState.OPEN
        logger.info(f"Channel opened: {self.name}")

    async def close(self) -> None:
        """Detach the transport and drop all subscribers."""
        if self.state is BusState.CLOSED:
            return

        was_open = self.state is BusState.OPEN
        self.state = BusState.CLOSED
        self._subscribers.clear()
        if was_open:
            await self.transport.close()
        logger.info(f"Channel closed: {self.name}")

    async def __aenter__(self) -> "EventBus":
        await self.open()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """
        Register a handler for every event on the channel.

        Returns:
            Unsubscribe callable (idempotent). After close, a no-op.
        """
        if self.state is BusState.CLOSED:
            logger.debug("subscribe() on closed channel ignored")
            return _noop

        self._subscribers.append(handler)

        def unsubscribe() -> None:
            if handler in self._subscribers:
                self._subscribers.remove(handler)

        return unsubscribe

    def publish(self, event: Event) -> bool:
        """
        Deliver an event to local subscribers, then forward it to other processes.

        Returns:
            True if the event was delivered, False if the channel is closed
        """
        if self.state is BusState.CLOSED:
            logger.debug("publish() on closed channel ignored")
            return False

        self._deliver(event)

        if self.state is BusState.OPEN:
            self.transport.send(event.to_json())
        return True

    def _on_remote(self, message: str) -> None:
        """Inbound message from another process."""
        if self.state is not BusState.OPEN:
            return
        try:
            event = parse_event(message)
        except ValueError as e:
            logger.warning(f"Dropping malformed channel message: {e}")
            return
        self._deliver(event)

    def _deliver(self, event: Event) -> None:
        for handler in list(self._subscribers):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Subscriber error on {event.kind} event: {e}", exc_info=True)

    def __repr__(self) -> str:
        return f"EventBus({self.name!r}, {self.state.value}, {self.subscriber_count} subscribers)"
