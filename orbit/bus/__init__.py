"""
Orbit Channel

EventBus plus the transports that connect buses across processes.

Usage:
    from orbit.bus import EventBus, WebSocketTransport

    bus = EventBus("orbit_autotranslate", WebSocketTransport("orbit_autotranslate"))
    await bus.open()
    bus.subscribe(lambda event: print(event.kind))
"""

from .channel import BusState, EventBus
from .transport import (
    ChannelHub,
    ChannelTransport,
    LocalTransport,
    WebSocketTransport,
    default_hub,
)

__all__ = [
    "BusState",
    "ChannelHub",
    "ChannelTransport",
    "EventBus",
    "LocalTransport",
    "WebSocketTransport",
    "default_hub",
]
