"""
Orbit Client State

TranscriptStore keeps the state every consumer derives from the channel.

Usage:
    from orbit.client import TranscriptStore

    store = TranscriptStore()
    bus.subscribe(store.apply)
"""

from .transcript import TranscriptStore

__all__ = ["TranscriptStore"]
