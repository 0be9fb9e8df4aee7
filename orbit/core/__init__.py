"""
Core Orbit types: wire models, errors and the network signal.
"""

from .errors import (
    CaptureError,
    ChannelClosedError,
    EngineStartError,
    FatalCaptureError,
    OrbitError,
    PlaybackError,
    TransientCaptureError,
    TranslationError,
    classify_engine_error,
)
from .models import (
    ClearEvent,
    TranscriptEvent,
    TranslatedEntry,
    TranslationResult,
    final_event_id,
    now_ms,
    parse_event,
    partial_event_id,
)
from .network import NetworkMonitor

__all__ = [
    "CaptureError",
    "ChannelClosedError",
    "ClearEvent",
    "EngineStartError",
    "FatalCaptureError",
    "NetworkMonitor",
    "OrbitError",
    "PlaybackError",
    "TranscriptEvent",
    "TransientCaptureError",
    "TranslatedEntry",
    "TranslationError",
    "TranslationResult",
    "classify_engine_error",
    "final_event_id",
    "now_ms",
    "parse_event",
    "partial_event_id",
]
