"""
Recognition Engine Interface

Capability set every concrete speech-recognition engine adapter exposes.
CaptureSession depends only on this interface.

Events:
  started  handler()                          engine is capturing
  result   handler(RecognitionResult)         zero or more interim/final segments
  error    handler(RecognitionError)          engine-specific error code
  ended    handler()                          engine stopped, for any reason
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Literal

logger = logging.getLogger(__name__)

EngineEvent = Literal["started", "result", "error", "ended"]
ENGINE_EVENTS: tuple[str, ...] = ("started", "result", "error", "ended")


@dataclass(frozen=True)
class ResultSegment:
    """One recognized text segment."""

    text: str
    is_final: bool = False


@dataclass(frozen=True)
class RecognitionResult:
    """Segments reported by a single result callback."""

    segments: list[ResultSegment] = field(default_factory=list)

    @property
    def interim_text(self) -> str:
        return "".join(s.text for s in self.segments if not s.is_final)

    @property
    def final_text(self) -> str:
        return "".join(s.text for s in self.segments if s.is_final)

    @classmethod
    def from_interim(cls, text: str) -> "RecognitionResult":
        return cls(segments=[ResultSegment(text, is_final=False)])

    @classmethod
    def from_final(cls, text: str) -> "RecognitionResult":
        return cls(segments=[ResultSegment(text, is_final=True)])


@dataclass(frozen=True)
class RecognitionError:
    """Error reported by an engine (e.g. "no-speech", "not-allowed")."""

    code: str
    message: str = ""


class RecognitionEngine(ABC):
    """
    Abstract base class for recognition engines.

    Adapters call _emit() to fire events; handlers registered with on() are
    invoked synchronously on the caller's thread (the event loop).
    """

    def __init__(self):
        self.language = "en-US"
        self.continuous = True
        self.interim_results = True
        self._handlers: dict[str, Callable[..., None]] = {}

    def configure(self, language: str, continuous: bool = True, interim_results: bool = True) -> None:
        """Set recognition parameters for the next start()."""
        self.language = language
        self.continuous = continuous
        self.interim_results = interim_results

    def on(self, event: EngineEvent, handler: Callable[..., None]) -> None:
        """Register the handler for an event, replacing any previous one."""
        if event not in ENGINE_EVENTS:
            raise ValueError(f"Unknown engine event: {event}")
        self._handlers[event] = handler

    def off(self, event: EngineEvent | None = None) -> None:
        """Detach one handler, or all of them when event is None."""
        if event is None:
            self._handlers.clear()
        else:
            self._handlers.pop(event, None)

    def has_handler(self, event: EngineEvent) -> bool:
        return event in self._handlers

    def _emit(self, event: EngineEvent, *args: Any) -> None:
        handler = self._handlers.get(event)
        if handler is None:
            return
        try:
            handler(*args)
        except Exception as e:
            logger.error(f"Engine '{event}' handler error: {e}", exc_info=True)

    @abstractmethod
    def start(self) -> None:
        """
        Begin recognition.

        Raises:
            EngineStartError: If the engine cannot start
        """

    @abstractmethod
    def stop(self) -> None:
        """Stop recognition. The engine fires 'ended' when it has stopped."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return human-readable engine name."""
