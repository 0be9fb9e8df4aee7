"""
Orbit Translation

Usage:
    from orbit.translation import TranslationClient, TranslationRelay

    client = TranslationClient(network=network)
    relay = TranslationRelay(store, client, playback, target_lang="es")
    relay.on_change(lambda r: render(r.entries, r.live_partial))
"""

from .client import OFFLINE_PREFIX, TranslationClient, offline_marker
from .relay import SpeechQueue, TranslationRelay, Translator

__all__ = [
    "OFFLINE_PREFIX",
    "SpeechQueue",
    "TranslationClient",
    "TranslationRelay",
    "Translator",
    "offline_marker",
]
