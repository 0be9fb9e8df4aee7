"""
Orbit Configuration Module

Environment-driven settings plus language and voice definitions.
"""

from .languages import (
    SOURCE_LANGUAGES,
    TARGET_LANGUAGES,
    TTS_VOICES,
    get_language_label,
    is_source_language,
    is_target_language,
    is_voice,
)
from .settings import (
    CHANNEL_NAME,
    CHANNEL_URL,
    DEFAULT_VOICE,
    HISTORY_LIMIT,
    NETWORK_PROBE_INTERVAL,
    OUTBOUND_QUEUE_MAX,
    RECONNECT_DELAY,
    RESTART_DELAY_MS,
    SOURCE_LANG,
    TARGET_LANG,
    TRANSLATE_TIMEOUT,
    TRANSLATE_URL,
    TRANSLATED_LIMIT,
    TTS_SAMPLE_RATE,
    TTS_TIMEOUT,
    TTS_URL,
)

__all__ = [
    "CHANNEL_NAME",
    "CHANNEL_URL",
    "DEFAULT_VOICE",
    "HISTORY_LIMIT",
    "NETWORK_PROBE_INTERVAL",
    "OUTBOUND_QUEUE_MAX",
    "RECONNECT_DELAY",
    "RESTART_DELAY_MS",
    "SOURCE_LANG",
    "SOURCE_LANGUAGES",
    "TARGET_LANG",
    "TARGET_LANGUAGES",
    "TRANSLATED_LIMIT",
    "TRANSLATE_TIMEOUT",
    "TRANSLATE_URL",
    "TTS_SAMPLE_RATE",
    "TTS_TIMEOUT",
    "TTS_URL",
    "TTS_VOICES",
    "get_language_label",
    "is_source_language",
    "is_target_language",
    "is_voice",
]
