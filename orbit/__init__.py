"""
Orbit - live transcript relay with streaming translation and speech playback

Provides:
- bus: EventBus channel with in-process and WebSocket transports, relay server
- client: TranscriptStore derived from channel events
- capture: CaptureSession keeping a recognition engine listening
- translation: TranslationClient and TranslationRelay
- playback: PlaybackQueue and speech synthesizers
- station: Station wiring the components for one process

Usage:
    from orbit import EventBus, Station
    from orbit.translation import TranslationClient

    async with Station(EventBus(), translator=TranslationClient()) as station:
        station.set_target_language("fr")
"""

__version__ = "1.0.0"

from .bus import EventBus, LocalTransport, WebSocketTransport
from .capture import CaptureSession, CaptureState, RecognitionEngine
from .client import TranscriptStore
from .core import ClearEvent, NetworkMonitor, TranscriptEvent, TranslatedEntry
from .playback import PlaybackQueue
from .station import Station, StationConfig
from .translation import TranslationClient, TranslationRelay
from .utils import setup_logging

__all__ = [
    "CaptureSession",
    "CaptureState",
    "ClearEvent",
    "EventBus",
    "LocalTransport",
    "NetworkMonitor",
    "PlaybackQueue",
    "RecognitionEngine",
    "Station",
    "StationConfig",
    "TranscriptEvent",
    "TranscriptStore",
    "TranslatedEntry",
    "TranslationClient",
    "TranslationRelay",
    "WebSocketTransport",
    "setup_logging",
]
