"""
Orbit exception taxonomy.

Failures from external collaborators are converted to state at the boundary
of the component that invoked them; these types carry them up to that point.
"""

# Engine error codes that end the session and need an explicit user restart
FATAL_ENGINE_ERRORS = frozenset({"not-allowed", "service-not-allowed"})

# Engine error codes recovered by the normal end-driven restart path
TRANSIENT_ENGINE_ERRORS = frozenset({"no-speech", "network", "aborted", "audio-capture"})


class OrbitError(Exception):
    """Base class for all Orbit errors."""


class ChannelClosedError(OrbitError):
    """Raised when reopening an event bus that has already been closed."""


class CaptureError(OrbitError):
    """Error reported by a recognition engine."""

    def __init__(self, code: str, message: str = ""):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}" if message else code)

    @property
    def is_fatal(self) -> bool:
        return False


class TransientCaptureError(CaptureError):
    """No speech, network blip, aborted. Recovered by restarting the engine."""


class FatalCaptureError(CaptureError):
    """Permission denied or service disallowed. Terminates the session."""

    @property
    def is_fatal(self) -> bool:
        return True


class EngineStartError(OrbitError):
    """Recognition engine could not be started."""


class TranslationError(OrbitError):
    """Translation service call failed. Never leaves the translation client."""


class PlaybackError(OrbitError):
    """Speech synthesis or audio playback failed."""


def classify_engine_error(code: str, message: str = "") -> CaptureError:
    """
    Map an engine error code to its capture error class.

    Unknown codes are treated as transient so a flaky engine keeps restarting
    rather than silently dropping the session.
    """
    if code in FATAL_ENGINE_ERRORS:
        return FatalCaptureError(code, message)
    return TransientCaptureError(code, message)
