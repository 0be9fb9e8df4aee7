"""
Orbit Capture

CaptureSession drives a RecognitionEngine and publishes transcript events.

Usage:
    from orbit.capture import CaptureSession, StreamingASREngine

    session = CaptureSession(bus, lambda: StreamingASREngine(uri, MicrophoneAudioSource))
    session.start()
"""

from .adapters import StreamingASREngine, parse_asr_message
from .engine import (
    ENGINE_EVENTS,
    RecognitionEngine,
    RecognitionError,
    RecognitionResult,
    ResultSegment,
)
from .session import CaptureSession, CaptureState

__all__ = [
    "ENGINE_EVENTS",
    "CaptureSession",
    "CaptureState",
    "RecognitionEngine",
    "RecognitionError",
    "RecognitionResult",
    "ResultSegment",
    "StreamingASREngine",
    "parse_asr_message",
]
