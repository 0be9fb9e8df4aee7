"""
Capture Session

Keeps a recognition engine continuously listening and publishes what it hears
as partial/final transcript events.

States:
  IDLE -> STARTING -> LISTENING -> STOPPING -> IDLE
  any state -> ERROR (engine missing, start failure, fatal engine error)

The engine's "ended" event fires both after an explicit stop() and when the
engine terminates on its own. The two are told apart by should_listen, which
only start()/stop() change. A spontaneous end schedules a restart after a
short delay; stop() cancels that timer and detaches every engine handler
before stopping the engine, so late callbacks from the old engine are no-ops.
"""

import asyncio
import logging
import random
from collections.abc import Callable
from enum import Enum

from ..audio import LevelMonitor, NullLevelMonitor
from ..bus import EventBus
from ..config import RESTART_DELAY_MS, SOURCE_LANG
from ..core.errors import CaptureError, classify_engine_error
from ..core.models import SpeakerGender, TranscriptEvent, now_ms
from ..core.network import NetworkMonitor
from .engine import RecognitionEngine, RecognitionError, RecognitionResult

logger = logging.getLogger(__name__)

# Status strings shown to the user
STATUS_READY = "Ready"
STATUS_LIVE = "Broadcasting Live"
STATUS_STANDBY = "Standby"
STATUS_UNSUPPORTED = "API not supported"
STATUS_INIT_ERROR = "Init Error"


class CaptureState(Enum):
    """Lifecycle of a capture session."""

    IDLE = "idle"
    STARTING = "starting"
    LISTENING = "listening"
    STOPPING = "stopping"
    ERROR = "error"


class CaptureSession:
    """
    Owns the recognition engine and the level monitor for its lifetime.

    All methods run on the event loop; engine callbacks are expected there too.
    """

    def __init__(
        self,
        bus: EventBus,
        engine_factory: Callable[[], RecognitionEngine] | None,
        level_monitor: LevelMonitor | None = None,
        network: NetworkMonitor | None = None,
        source_lang: str = SOURCE_LANG,
        speaker_gender: SpeakerGender = "neutral",
        restart_delay: float = RESTART_DELAY_MS / 1000,
        rng: random.Random | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        """
        Initialize capture session.

        Args:
            bus: Channel that transcript events are published on
            engine_factory: Creates a fresh engine per start(); None if unsupported
            level_monitor: Microphone level sampler (started while listening)
            network: Online/offline signal stamped on each event
            source_lang: BCP-47 recognition language
            speaker_gender: Gender hint attached to events
            restart_delay: Seconds between a spontaneous end and the restart
            rng: Random source for final-id disambiguators
            clock: Millisecond clock for event timestamps
        """
        self.bus = bus
        self.engine_factory = engine_factory
        self.level_monitor = level_monitor or NullLevelMonitor()
        self.network = network or NetworkMonitor()
        self.source_lang = source_lang
        self.speaker_gender = speaker_gender
        self.restart_delay = restart_delay
        self.rng = rng
        self.clock = clock

        self.state = CaptureState.IDLE
        self.status = STATUS_READY
        self.should_listen = False
        self.last_error: CaptureError | None = None
        self.restart_count = 0

        self._engine: RecognitionEngine | None = None
        self._engine_started = False
        self._monitor_active = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._restart_handle: asyncio.TimerHandle | None = None
        self._state_listeners: list[Callable[[CaptureState], None]] = []
        self._status_listeners: list[Callable[[str], None]] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_listening(self) -> bool:
        return self.state is CaptureState.LISTENING

    @property
    def restart_pending(self) -> bool:
        return self._restart_handle is not None

    @property
    def engine(self) -> RecognitionEngine | None:
        return self._engine

    def start(self) -> None:
        """Start listening. No-op while already starting or listening."""
        if self.state in (CaptureState.STARTING, CaptureState.LISTENING):
            return

        # A new session never shares the engine with a previous one
        if self._engine is not None:
            self._teardown()

        if self.engine_factory is None:
            logger.error("No recognition engine available")
            self._fail(STATUS_UNSUPPORTED)
            return

        self._loop = asyncio.get_running_loop()
        engine = self.engine_factory()
        engine.configure(self.source_lang, continuous=True, interim_results=True)
        engine.on("started", lambda: self._on_started(engine))
        engine.on("result", lambda result: self._on_result(engine, result))
        engine.on("error", lambda error: self._on_error(engine, error))
        engine.on("ended", lambda: self._on_ended(engine))

        self._engine = engine
        self._engine_started = False
        self.should_listen = True
        self.last_error = None
        self._set_state(CaptureState.STARTING)
        logger.info(f"Starting capture: {engine.name} ({self.source_lang})")

        try:
            engine.start()
        except Exception as e:
            logger.error(f"Engine start failed: {e}")
            self._teardown()
            self._fail(STATUS_INIT_ERROR)

    def stop(self) -> None:
        """Stop listening, cancel any pending restart and release the microphone."""
        self.should_listen = False
        self._cancel_restart()

        if self.state is CaptureState.IDLE and self._engine is None:
            return

        self._set_state(CaptureState.STOPPING)
        self._teardown()
        self._set_state(CaptureState.IDLE)
        self._set_status(STATUS_STANDBY)
        logger.info("Capture stopped")

    def toggle(self) -> None:
        if self.should_listen:
            self.stop()
        else:
            self.start()

    def set_language(self, language: str) -> None:
        """Change the recognition language; restarts the engine if listening."""
        if language == self.source_lang:
            return
        self.source_lang = language
        if self.should_listen:
            logger.info(f"Restarting capture for language {language}")
            self.stop()
            self.start()

    def set_speaker_gender(self, gender: SpeakerGender) -> None:
        self.speaker_gender = gender

    def close(self) -> None:
        self.stop()
        self._state_listeners.clear()
        self._status_listeners.clear()

    def on_state(self, callback: Callable[[CaptureState], None]) -> None:
        self._state_listeners.append(callback)

    def on_status(self, callback: Callable[[str], None]) -> None:
        self._status_listeners.append(callback)

    # ------------------------------------------------------------------
    # Engine callbacks
    # ------------------------------------------------------------------

    def _on_started(self, engine: RecognitionEngine) -> None:
        if engine is not self._engine:
            return

        self._engine_started = True
        self._set_state(CaptureState.LISTENING)
        self._set_status(STATUS_LIVE)

        if not self._monitor_active:
            try:
                self._monitor_active = self.level_monitor.start()
            except Exception as e:
                logger.warning(f"Level monitor failed to start: {e}")

    def _on_result(self, engine: RecognitionEngine, result: RecognitionResult) -> None:
        if engine is not self._engine or not self.should_listen:
            return

        interim_text = result.interim_text
        final_text = result.final_text
        timestamp = self.clock()
        is_offline = not self.network.is_online

        if interim_text:
            self.bus.publish(
                TranscriptEvent.partial(
                    interim_text,
                    self.source_lang,
                    timestamp=timestamp,
                    speaker_gender=self.speaker_gender,
                    is_offline=is_offline,
                )
            )
        if final_text:
            self.bus.publish(
                TranscriptEvent.final(
                    final_text,
                    self.source_lang,
                    timestamp=timestamp,
                    speaker_gender=self.speaker_gender,
                    is_offline=is_offline,
                    rng=self.rng,
                )
            )

    def _on_error(self, engine: RecognitionEngine, error: RecognitionError) -> None:
        if engine is not self._engine:
            return

        capture_error = classify_engine_error(error.code, error.message)
        self.last_error = capture_error
        status = f"Error: {error.code}"

        if capture_error.is_fatal:
            logger.error(f"Fatal capture error: {capture_error}")
            self.stop()
            self._set_state(CaptureState.ERROR)
        else:
            # The engine's own "ended" drives recovery
            logger.warning(f"Transient capture error: {capture_error}")
        self._set_status(status)

    def _on_ended(self, engine: RecognitionEngine) -> None:
        if engine is not self._engine or not self.should_listen:
            return

        if not self._engine_started:
            # Never came up: report instead of retrying against a dead engine
            logger.error("Engine ended before it started")
            status = self.status if self.last_error else STATUS_INIT_ERROR
            self.stop()
            self._fail(status)
            return

        logger.info(f"Engine ended, restarting in {self.restart_delay * 1000:.0f}ms")
        self._set_state(CaptureState.STARTING)
        self._schedule_restart()

    # ------------------------------------------------------------------
    # Restart timer
    # ------------------------------------------------------------------

    def _schedule_restart(self) -> None:
        self._cancel_restart()
        self._restart_handle = self._loop.call_later(self.restart_delay, self._restart)

    def _cancel_restart(self) -> None:
        if self._restart_handle is not None:
            self._restart_handle.cancel()
            self._restart_handle = None

    def _restart(self) -> None:
        self._restart_handle = None
        engine = self._engine
        if not self.should_listen or engine is None:
            return

        self.restart_count += 1
        try:
            engine.start()
        except Exception as e:
            logger.error(f"Engine restart failed: {e}")
            self.stop()
            self._fail(STATUS_INIT_ERROR)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _teardown(self) -> None:
        """Detach handlers, stop the engine and release the level monitor."""
        engine = self._engine
        self._engine = None
        self._engine_started = False

        if engine is not None:
            # Detach first so a late callback from the stopping engine is a no-op
            engine.off()
            try:
                engine.stop()
            except Exception as e:
                logger.debug(f"Engine stop error: {e}")

        if self._monitor_active:
            try:
                self.level_monitor.stop()
            except Exception as e:
                logger.warning(f"Level monitor failed to stop: {e}")
            self._monitor_active = False

    def _fail(self, status: str) -> None:
        self.should_listen = False
        self._set_state(CaptureState.ERROR)
        self._set_status(status)

    def _set_state(self, state: CaptureState) -> None:
        if state is self.state:
            return
        logger.debug(f"Capture state: {self.state.value} -> {state.value}")
        self.state = state
        for callback in list(self._state_listeners):
            try:
                callback(state)
            except Exception as e:
                logger.error(f"State listener error: {e}")

    def _set_status(self, status: str) -> None:
        self.status = status
        for callback in list(self._status_listeners):
            try:
                callback(status)
            except Exception as e:
                logger.error(f"Status listener error: {e}")

    def __repr__(self) -> str:
        return f"CaptureSession({self.state.value}, {self.source_lang!r}, status={self.status!r})"
