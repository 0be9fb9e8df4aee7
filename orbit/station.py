"""
Station

Wires one process's components together and exposes the user actions.

  CaptureSession -> EventBus -> TranscriptStore -> TranslationRelay -> PlaybackQueue

A transcriber station owns a capture session; a receiver station owns a
relay and playback queue; a station may be both, in which case its own
receiver sees its transcripts through local delivery.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .audio import LevelMonitor
from .bus import EventBus
from .capture import CaptureSession, RecognitionEngine
from .client import TranscriptStore
from .config import (
    CHANNEL_NAME,
    DEFAULT_VOICE,
    HISTORY_LIMIT,
    RESTART_DELAY_MS,
    SOURCE_LANG,
    TARGET_LANG,
    TRANSLATED_LIMIT,
    is_source_language,
    is_target_language,
    is_voice,
)
from .core.models import ClearEvent, SpeakerGender
from .core.network import NetworkMonitor
from .playback import PlaybackQueue, SpeechSynthesizer
from .translation import TranslationRelay, Translator

logger = logging.getLogger(__name__)


@dataclass
class StationConfig:
    """Per-station settings."""

    channel_name: str = CHANNEL_NAME
    source_lang: str = SOURCE_LANG
    target_lang: str = TARGET_LANG
    voice: str = DEFAULT_VOICE
    speaker_gender: SpeakerGender = "neutral"
    auto_speak: bool = False
    history_limit: int = HISTORY_LIMIT
    translated_limit: int = TRANSLATED_LIMIT
    restart_delay_ms: int = RESTART_DELAY_MS
    max_pending_speech: int | None = None


class Station:
    """
    One process attached to the channel.

    Usage:
        station = Station(bus, translator=client, synthesizer=tts)
        await station.open()
        station.set_auto_speak(True)
        ...
        await station.aclose()
    """

    def __init__(
        self,
        bus: EventBus,
        config: StationConfig | None = None,
        engine_factory: Callable[[], RecognitionEngine] | None = None,
        level_monitor: LevelMonitor | None = None,
        translator: Translator | None = None,
        synthesizer: SpeechSynthesizer | None = None,
        network: NetworkMonitor | None = None,
        capture: bool = False,
    ):
        """
        Initialize station.

        Args:
            bus: Channel shared with the other stations
            config: Station settings
            engine_factory: Recognition engine factory (transcriber role)
            level_monitor: Microphone level sampler (transcriber role)
            translator: Translation collaborator (receiver role)
            synthesizer: Speech synthesizer (receiver role, auto-speak)
            network: Online/offline signal
            capture: Create a capture session even without an engine factory
        """
        self.config = config or StationConfig()
        self.bus = bus
        self.network = network or NetworkMonitor()
        self.store = TranscriptStore(max_history=self.config.history_limit)
        self._unsubscribe = bus.subscribe(self.store.apply)

        self.capture: CaptureSession | None = None
        if capture or engine_factory is not None:
            self.capture = CaptureSession(
                bus,
                engine_factory,
                level_monitor=level_monitor,
                network=self.network,
                source_lang=self.config.source_lang,
                speaker_gender=self.config.speaker_gender,
                restart_delay=self.config.restart_delay_ms / 1000,
            )

        self.playback: PlaybackQueue | None = None
        if synthesizer is not None:
            self.playback = PlaybackQueue(
                synthesizer,
                voice=self.config.voice,
                max_pending=self.config.max_pending_speech,
            )

        self.relay: TranslationRelay | None = None
        if translator is not None:
            self.relay = TranslationRelay(
                self.store,
                translator,
                playback=self.playback,
                target_lang=self.config.target_lang,
                auto_speak=self.config.auto_speak,
                max_entries=self.config.translated_limit,
            )

    async def open(self) -> None:
        await self.bus.open()
        self.network.start()

    # ------------------------------------------------------------------
    # Transcriber actions
    # ------------------------------------------------------------------

    def start_capture(self) -> None:
        self._require_capture().start()

    def stop_capture(self) -> None:
        self._require_capture().stop()

    def toggle_capture(self) -> None:
        self._require_capture().toggle()

    def set_source_language(self, language: str) -> None:
        if not is_source_language(language):
            raise ValueError(f"Unsupported source language: {language}")
        self.config.source_lang = language
        if self.capture is not None:
            self.capture.set_language(language)

    def set_speaker_gender(self, gender: SpeakerGender) -> None:
        self.config.speaker_gender = gender
        if self.capture is not None:
            self.capture.set_speaker_gender(gender)

    def clear_session(self) -> None:
        """Reset every attached station's transcript and translations."""
        logger.info("Clearing session")
        self.bus.publish(ClearEvent())

    # ------------------------------------------------------------------
    # Receiver actions
    # ------------------------------------------------------------------

    def set_target_language(self, language: str) -> None:
        if not is_target_language(language):
            raise ValueError(f"Unsupported target language: {language}")
        self.config.target_lang = language
        if self.relay is not None:
            self.relay.set_target_language(language)

    def set_auto_speak(self, enabled: bool) -> None:
        if enabled and self.playback is None:
            raise ValueError("Auto-speak needs a speech synthesizer")
        self.config.auto_speak = enabled
        if self.relay is not None:
            self.relay.set_auto_speak(enabled)

    def set_voice(self, voice: str) -> None:
        if not is_voice(voice):
            raise ValueError(f"Unknown voice: {voice}")
        self.config.voice = voice
        if self.relay is not None:
            self.relay.set_voice(voice)
        elif self.playback is not None:
            self.playback.voice = voice

    @property
    def is_speaking(self) -> bool:
        return self.playback is not None and self.playback.is_speaking

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Tear down capture, relay, playback, the network watch, then the channel."""
        if self.capture is not None:
            self.capture.close()
        if self.relay is not None:
            await self.relay.aclose()
        if self.playback is not None:
            await self.playback.close()
        await self.network.stop()
        self._unsubscribe()
        await self.bus.close()

    async def __aenter__(self) -> "Station":
        await self.open()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    def _require_capture(self) -> CaptureSession:
        if self.capture is None:
            raise RuntimeError("Station has no capture session")
        return self.capture
