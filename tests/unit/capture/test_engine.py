"""Unit tests for orbit.capture.engine."""

import pytest

from orbit.capture.engine import RecognitionResult, ResultSegment

from conftest import FakeEngine


class TestRecognitionResult:
    """Tests for segment aggregation."""

    def test_interim_and_final_text(self):
        """Segments are split by finality and joined."""
        result = RecognitionResult(
            segments=[
                ResultSegment("a ", is_final=True),
                ResultSegment("b", is_final=False),
                ResultSegment("c", is_final=True),
            ]
        )
        assert result.final_text == "a c"
        assert result.interim_text == "b"

    def test_factories(self):
        """from_interim/from_final build single-segment results."""
        assert RecognitionResult.from_interim("x").interim_text == "x"
        assert RecognitionResult.from_final("y").final_text == "y"


class TestRecognitionEngine:
    """Tests for handler registration."""

    def test_unknown_event_rejected(self):
        """Only the four engine events can be handled."""
        with pytest.raises(ValueError):
            FakeEngine().on("paused", lambda: None)

    def test_off_detaches_all(self):
        """off() without an event removes every handler."""
        engine = FakeEngine()
        calls = []
        engine.on("started", lambda: calls.append("started"))
        engine.on("ended", lambda: calls.append("ended"))

        engine.off()
        engine.fire_started()
        engine.fire_ended()

        assert calls == []
        assert not engine.has_handler("started")

    def test_off_single_event(self):
        """off(event) removes only that handler."""
        engine = FakeEngine()
        engine.on("started", lambda: None)
        engine.on("ended", lambda: None)
        engine.off("started")
        assert engine.has_handler("ended")
        assert not engine.has_handler("started")

    def test_handler_error_contained(self):
        """A raising handler does not propagate into the engine."""
        engine = FakeEngine()

        def broken():
            raise RuntimeError("boom")

        engine.on("started", broken)
        engine.fire_started()

    def test_configure(self):
        """configure() records parameters for the next start."""
        engine = FakeEngine()
        engine.configure("pt-BR", continuous=False, interim_results=False)
        assert engine.language == "pt-BR"
        assert engine.continuous is False
        assert engine.interim_results is False
