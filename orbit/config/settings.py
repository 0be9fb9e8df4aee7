"""Environment-driven settings for Orbit processes."""

import os

# Pub/sub channel
CHANNEL_NAME = os.getenv("ORBIT_CHANNEL_NAME", "orbit_autotranslate")
CHANNEL_URL = os.getenv("ORBIT_CHANNEL_URL", "ws://localhost:8765")
RECONNECT_DELAY = float(os.getenv("ORBIT_RECONNECT_DELAY", "2.0"))
OUTBOUND_QUEUE_MAX = int(os.getenv("ORBIT_OUTBOUND_QUEUE_MAX", "500"))

# Bounded windows
HISTORY_LIMIT = int(os.getenv("ORBIT_HISTORY_LIMIT", "100"))
TRANSLATED_LIMIT = int(os.getenv("ORBIT_TRANSLATED_LIMIT", "10"))

# Capture
RESTART_DELAY_MS = int(os.getenv("ORBIT_RESTART_DELAY_MS", "100"))
SOURCE_LANG = os.getenv("ORBIT_SOURCE_LANG", "en-US")

# Translation service
TRANSLATE_URL = os.getenv("ORBIT_TRANSLATE_URL", "http://localhost:8010")
TRANSLATE_TIMEOUT = float(os.getenv("ORBIT_TRANSLATE_TIMEOUT", "5.0"))
TARGET_LANG = os.getenv("ORBIT_TARGET_LANG", "es")

# Connectivity
NETWORK_PROBE_INTERVAL = float(os.getenv("ORBIT_NETWORK_PROBE_INTERVAL", "10.0"))

# Speech synthesis service
TTS_URL = os.getenv("ORBIT_TTS_URL", "http://localhost:8011")
TTS_TIMEOUT = float(os.getenv("ORBIT_TTS_TIMEOUT", "10.0"))
TTS_SAMPLE_RATE = int(os.getenv("ORBIT_TTS_SAMPLE_RATE", "24000"))
DEFAULT_VOICE = os.getenv("ORBIT_VOICE", "Zephyr")
