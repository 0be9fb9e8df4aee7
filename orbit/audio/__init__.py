"""Microphone capture, level sampling and audio sources."""

from .microphone import (
    TARGET_SAMPLE_RATE,
    AudioSource,
    LevelMonitor,
    MicrophoneAudioSource,
    MicrophoneCapture,
    MicrophoneLevelMonitor,
    NullLevelMonitor,
    resample_audio,
    rms_level,
)

__all__ = [
    "TARGET_SAMPLE_RATE",
    "AudioSource",
    "LevelMonitor",
    "MicrophoneAudioSource",
    "MicrophoneCapture",
    "MicrophoneLevelMonitor",
    "NullLevelMonitor",
    "resample_audio",
    "rms_level",
]
