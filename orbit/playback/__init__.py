"""
Orbit Playback

Usage:
    from orbit.playback import HttpSpeechSynthesizer, PlaybackQueue

    queue = PlaybackQueue(HttpSpeechSynthesizer(), voice="Zephyr")
    queue.enqueue("hola")
"""

from .queue import PlaybackQueue
from .synthesizer import (
    AudioPlayer,
    HttpSpeechSynthesizer,
    PyAudioPlayer,
    SpeechSynthesizer,
    pcm_duration,
)

__all__ = [
    "AudioPlayer",
    "HttpSpeechSynthesizer",
    "PlaybackQueue",
    "PyAudioPlayer",
    "SpeechSynthesizer",
    "pcm_duration",
]
