"""
Channel Relay Server

Rebroadcasts channel messages between processes. Every text frame received
on /channel/{name} is sent to every other socket attached to the same name.

Protocol:
1. Client connects to /channel/{name}
2. Client sends JSON channel messages (partial, final, clear)
3. Client receives every message sent by the other attachments
"""

import logging

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..core.models import parse_event

logger = logging.getLogger(__name__)


class ChannelRelay:
    """Tracks attached sockets per channel name and fans messages out."""

    def __init__(self):
        self.channels: dict[str, set[WebSocket]] = {}

    def attach(self, name: str, websocket: WebSocket) -> None:
        self.channels.setdefault(name, set()).add(websocket)
        logger.info(f"Attached to '{name}' ({len(self.channels[name])} members)")

    def detach(self, name: str, websocket: WebSocket) -> None:
        members = self.channels.get(name)
        if not members:
            return
        members.discard(websocket)
        if not members:
            del self.channels[name]
        logger.info(f"Detached from '{name}'")

    def member_count(self, name: str) -> int:
        return len(self.channels.get(name, ()))

    async def broadcast(self, name: str, message: str, sender: WebSocket | None = None) -> int:
        """
        Send a message to every member except the sender.

        Returns:
            Number of sockets the message reached
        """
        delivered = 0
        dead = []
        for member in list(self.channels.get(name, ())):
            if member is sender:
                continue
            try:
                await member.send_text(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping dead socket on '{name}': {e}")
                dead.append(member)

        for member in dead:
            self.detach(name, member)
        return delivered


def create_app(relay: ChannelRelay | None = None) -> FastAPI:
    """Build the relay FastAPI app."""
    relay = relay or ChannelRelay()

    app = FastAPI(title="Orbit Channel Relay", version=__version__)
    app.state.relay = relay

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "channels": {name: len(members) for name, members in relay.channels.items()},
            "version": __version__,
        }

    @app.websocket("/channel/{name}")
    async def channel_socket(websocket: WebSocket, name: str):
        await websocket.accept()
        relay.attach(name, websocket)

        try:
            while True:
                message = await websocket.receive_text()
                try:
                    parse_event(message)
                except ValueError as e:
                    logger.warning(f"Rejected malformed message on '{name}': {e}")
                    continue
                await relay.broadcast(name, message, sender=websocket)
        except WebSocketDisconnect:
            pass
        finally:
            relay.detach(name, websocket)

    return app
