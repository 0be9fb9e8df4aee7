"""
Language and Voice Definitions

Single source of truth for the selectable source languages (BCP-47 codes
understood by recognition engines), target languages (ISO 639-1 codes sent
to the translation service) and synthesis voices.
"""

from typing import Any

SOURCE_LANGUAGES: dict[str, dict[str, Any]] = {
    "en-US": {"label": "English (US)"},
    "en-GB": {"label": "English (UK)"},
    "es-ES": {"label": "Spanish (Spain)"},
    "es-MX": {"label": "Spanish (Mexico)"},
    "fr-FR": {"label": "French (France)"},
    "de-DE": {"label": "German (Germany)"},
    "it-IT": {"label": "Italian (Italy)"},
    "ja-JP": {"label": "Japanese (Japan)"},
    "zh-CN": {"label": "Chinese (Mandarin, Simplified)"},
    "ko-KR": {"label": "Korean (South Korea)"},
    "pt-BR": {"label": "Portuguese (Brazil)"},
    "ru-RU": {"label": "Russian (Russia)"},
    "ar-SA": {"label": "Arabic (Saudi Arabia)"},
    "hi-IN": {"label": "Hindi (India)"},
    "nl-NL": {"label": "Dutch (Netherlands)"},
    "tr-TR": {"label": "Turkish (Turkey)"},
    "vi-VN": {"label": "Vietnamese (Vietnam)"},
    "th-TH": {"label": "Thai (Thailand)"},
    "pl-PL": {"label": "Polish (Poland)"},
}

TARGET_LANGUAGES: dict[str, dict[str, Any]] = {
    "en": {"label": "English"},
    "es": {"label": "Spanish"},
    "fr": {"label": "French"},
    "de": {"label": "German"},
    "it": {"label": "Italian"},
    "ja": {"label": "Japanese"},
    "zh": {"label": "Chinese"},
    "ko": {"label": "Korean"},
    "pt": {"label": "Portuguese"},
    "ru": {"label": "Russian"},
    "ar": {"label": "Arabic"},
    "hi": {"label": "Hindi"},
}

TTS_VOICES: dict[str, dict[str, Any]] = {
    "Kore": {"label": "Kore (Male, Professional)"},
    "Puck": {"label": "Puck (Male, Youthful)"},
    "Charon": {"label": "Charon (Male, Deep)"},
    "Fenrir": {"label": "Fenrir (Male, Rugged)"},
    "Zephyr": {"label": "Zephyr (Female, Warm)"},
}


def get_language_label(code: str) -> str:
    """Human-readable label for a source or target language code."""
    for table in (SOURCE_LANGUAGES, TARGET_LANGUAGES):
        if code in table:
            return table[code]["label"]
    return code


def is_source_language(code: str) -> bool:
    return code in SOURCE_LANGUAGES


def is_target_language(code: str) -> bool:
    return code in TARGET_LANGUAGES


def is_voice(name: str) -> bool:
    return name in TTS_VOICES
