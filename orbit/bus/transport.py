"""
Channel Transports

Carry serialized channel messages between EventBus instances attached to the
same channel name. A transport never echoes a message back to its sender;
the bus delivers to its own local subscribers itself.

- LocalTransport: process-local, via a ChannelHub keyed by channel name
- WebSocketTransport: cross-process, via the relay server (orbit.bus.server)
"""

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

import websockets

from ..config import CHANNEL_URL, OUTBOUND_QUEUE_MAX, RECONNECT_DELAY

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str], None]


class ChannelTransport(ABC):
    """Abstract base class for channel transports."""

    def __init__(self, name: str):
        self.name = name
        self.running = False
        self._on_message: MessageHandler | None = None

    @abstractmethod
    async def open(self, on_message: MessageHandler) -> None:
        """Attach to the channel; inbound messages go to on_message."""

    @abstractmethod
    def send(self, message: str) -> None:
        """Queue a message for every other attachment. Never blocks."""

    @abstractmethod
    async def close(self) -> None:
        """Detach from the channel."""

    def _dispatch(self, message: str) -> None:
        if self.running and self._on_message:
            self._on_message(message)


class ChannelHub:
    """Process-local registry of transports grouped by channel name."""

    def __init__(self):
        self._channels: dict[str, list["LocalTransport"]] = {}

    def attach(self, transport: "LocalTransport") -> None:
        self._channels.setdefault(transport.name, []).append(transport)

    def detach(self, transport: "LocalTransport") -> None:
        members = self._channels.get(transport.name, [])
        if transport in members:
            members.remove(transport)
        if not members:
            self._channels.pop(transport.name, None)

    def post(self, sender: "LocalTransport", message: str) -> None:
        for member in list(self._channels.get(sender.name, [])):
            if member is not sender:
                member._receive(message)

    def members(self, name: str) -> int:
        """Number of transports attached to a channel name."""
        return len(self._channels.get(name, []))


# Shared by every LocalTransport that is not given an explicit hub
default_hub = ChannelHub()


class LocalTransport(ChannelTransport):
    """
    In-process transport.

    Delivery to other attachments is scheduled on the event loop rather than
    run inline, so a subscriber publishing from inside its handler cannot
    re-enter the sender.
    """

    def __init__(self, name: str, hub: ChannelHub | None = None):
        super().__init__(name)
        self.hub = hub if hub is not None else default_hub
        self._loop: asyncio.AbstractEventLoop | None = None

    async def open(self, on_message: MessageHandler) -> None:
        self._on_message = on_message
        self._loop = asyncio.get_running_loop()
        self.running = True
        self.hub.attach(self)

    def send(self, message: str) -> None:
        if self.running:
            self.hub.post(self, message)

    def _receive(self, message: str) -> None:
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon(self._dispatch, message)

    async def close(self) -> None:
        self.running = False
        self.hub.detach(self)
        self._on_message = None


class WebSocketTransport(ChannelTransport):
    """
    Cross-process transport through the channel relay server.

    A single sender task drains the outbound queue, so messages leave in
    publish order. The connection is re-established after failures until
    close() is called.
    """

    def __init__(
        self,
        name: str,
        url: str = CHANNEL_URL,
        reconnect_delay: float = RECONNECT_DELAY,
        queue_max: int = OUTBOUND_QUEUE_MAX,
        on_connected: Callable[[bool], None] | None = None,
    ):
        """
        Initialize WebSocket transport.

        Args:
            name: Channel name
            url: Relay server base URL (ws://host:port)
            reconnect_delay: Seconds to wait before reconnecting
            queue_max: Outbound messages held while disconnected
            on_connected: Callback when connection status changes (bool: connected)
        """
        super().__init__(name)
        self.url = url.rstrip("/")
        self.reconnect_delay = reconnect_delay
        self.queue_max = queue_max
        self.on_connected = on_connected
        self.connected = False
        self._outbound: asyncio.Queue[str] | None = None
        self._task: asyncio.Task | None = None

    @property
    def uri(self) -> str:
        """WebSocket URI for this channel on the relay server."""
        return f"{self.url}/channel/{self.name}"

    async def open(self, on_message: MessageHandler) -> None:
        self._on_message = on_message
        self._outbound = asyncio.Queue(maxsize=self.queue_max)
        self.running = True
        self._task = asyncio.create_task(self._run())

    def send(self, message: str) -> None:
        if not self.running or self._outbound is None:
            return
        try:
            self._outbound.put_nowait(message)
        except asyncio.QueueFull:
            # Keep the newest state; the oldest message is the least relevant
            self._outbound.get_nowait()
            self._outbound.put_nowait(message)
            logger.warning("Outbound channel queue full, dropped oldest message")

    async def _run(self) -> None:
        """Connection loop."""
        while self.running:
            try:
                logger.info(f"Connecting to channel: {self.uri}")
                async with websockets.connect(self.uri) as ws:
                    self._set_connected(True)

                    send_task = asyncio.create_task(self._send_loop(ws), name="send loop")
                    recv_task = asyncio.create_task(self._receive_loop(ws), name="receive loop")

                    done, pending = await asyncio.wait(
                        [send_task, recv_task], return_when=asyncio.FIRST_COMPLETED
                    )

                    for task in pending:
                        task.cancel()
                        with contextlib.suppress(asyncio.CancelledError):
                            await task

                    for task in done:
                        if task.exception() is not None:
                            logger.error(f"Channel {task.get_name()} failed: {task.exception()}")

                self._set_connected(False)
                logger.info("Channel connection closed")
            except (ConnectionRefusedError, OSError) as e:
                self._set_connected(False)
                logger.warning(f"Channel connection failed: {e}")
            except websockets.exceptions.WebSocketException as e:
                self._set_connected(False)
                logger.warning(f"Channel error: {e}")

            if self.running:
                await asyncio.sleep(self.reconnect_delay)

    async def _send_loop(self, ws) -> None:
        """Send queued messages in order."""
        while self.running:
            message = await self._outbound.get()
            try:
                await ws.send(message)
            except websockets.exceptions.ConnectionClosed as e:
                logger.warning(f"Send failed, message dropped: {e}")
                break

    async def _receive_loop(self, ws) -> None:
        """Forward inbound text frames to the bus."""
        try:
            async for message in ws:
                if isinstance(message, str):
                    self._dispatch(message)
        except websockets.exceptions.ConnectionClosed as e:
            logger.debug(f"Receive loop ended: {e}")

    def _set_connected(self, connected: bool) -> None:
        if connected == self.connected:
            return
        self.connected = connected
        if self.on_connected:
            try:
                self.on_connected(connected)
            except Exception as e:
                logger.warning(f"on_connected callback error: {e}")

    async def close(self) -> None:
        self.running = False
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        self._set_connected(False)
        self._on_message = None
