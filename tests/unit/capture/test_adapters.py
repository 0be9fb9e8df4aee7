"""
Unit tests for the streaming ASR engine adapter.

The WebSocket connection is replaced by an in-memory fake.
"""

import asyncio
import json
from unittest.mock import MagicMock, patch

import pytest

from orbit.audio import AudioSource
from orbit.capture import StreamingASREngine, parse_asr_message
from orbit.capture.engine import RecognitionError, RecognitionResult
from orbit.core.errors import EngineStartError


class FakeSource(AudioSource):
    """Audio source that yields one chunk then waits until stopped."""

    def __init__(self, ok=True):
        self.ok = ok
        self.stopped = False
        self._stop = asyncio.Event()

    def start(self) -> bool:
        return self.ok

    def stop(self) -> None:
        self.stopped = True
        self._stop.set()

    async def chunks(self):
        yield b"\x00\x00" * 160
        await self._stop.wait()


class FakeWebSocket:
    """Minimal async-context websocket that replays server messages."""

    def __init__(self, messages):
        self.messages = messages
        self.sent = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def send(self, data):
        self.sent.append(data)

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self.messages:
            await asyncio.sleep(0)
            yield message


class HeldWebSocket(FakeWebSocket):
    """Websocket that stays open and silent until cancelled."""

    def __init__(self):
        super().__init__([])

    async def _iterate(self):
        await asyncio.Event().wait()
        yield


class CrashingWebSocket(FakeWebSocket):
    """Websocket whose receive side fails with a non-protocol error."""

    def __init__(self):
        super().__init__([])

    async def _iterate(self):
        await asyncio.sleep(0)
        raise RuntimeError("decoder crashed")
        yield


class BrokenSource(FakeSource):
    """Audio source whose stream fails right after start."""

    async def chunks(self):
        await asyncio.sleep(0)
        raise OSError("device unplugged")
        yield


def record(engine):
    events = []
    engine.on("started", lambda: events.append("started"))
    engine.on("result", lambda r: events.append(("result", r.interim_text, r.final_text)))
    engine.on("error", lambda e: events.append(("error", e.code)))
    engine.on("ended", lambda: events.append("ended"))
    return events


class TestParseAsrMessage:
    """Tests for the ASR message parser."""

    def test_partial(self):
        """Partial messages become interim results."""
        result = parse_asr_message('{"partial": "hel"}')
        assert isinstance(result, RecognitionResult)
        assert result.interim_text == "hel"
        assert result.final_text == ""

    def test_final(self):
        """text with final=true becomes a final result."""
        result = parse_asr_message('{"text": "hello", "final": true}')
        assert result.final_text == "hello"

    def test_text_without_final_flag_is_interim(self):
        """text without a final flag is interim."""
        result = parse_asr_message('{"text": "hello"}')
        assert result.interim_text == "hello"

    @pytest.mark.parametrize(
        "message,is_final",
        [
            ('{"id": "s1", "text": "hi"}', True),
            ('{"id": "s1", "text": "hi", "is_final": false}', False),
            ('{"id": "s1", "text": "hi", "is_final": true}', True),
        ],
    )
    def test_segment_protocol(self, message, is_final):
        """Segment messages are final unless is_final is false."""
        result = parse_asr_message(message)
        assert bool(result.final_text) is is_final

    def test_error(self):
        """Error messages carry the code."""
        error = parse_asr_message('{"error": "denied", "code": "not-allowed"}')
        assert error == RecognitionError("not-allowed", "denied")

    def test_error_without_code_is_network(self):
        """Errors without a code default to network."""
        assert parse_asr_message('{"error": "oops"}').code == "network"

    def test_plain_text_fallback(self):
        """Non-JSON text is treated as a final."""
        result = parse_asr_message(b"plain words\n")
        assert result.final_text == "plain words"

    @pytest.mark.parametrize("message", ['{"partial": ""}', '{"text": ""}', "[1, 2]", "{}", "  "])
    def test_no_text(self, message):
        """Messages without text yield nothing."""
        assert parse_asr_message(message) is None


class TestStreamingASREngine:
    """Tests for the engine adapter lifecycle."""

    @pytest.mark.asyncio
    async def test_session_flow(self):
        """Engine sends config, reports results and ends when the server closes."""
        ws = FakeWebSocket(['{"partial": "hel"}', '{"text": "hello", "final": true}'])
        source = FakeSource()
        engine = StreamingASREngine("ws://asr/stream", lambda: source, chunk_ms=100)
        engine.configure("es-ES")
        events = record(engine)

        with patch("orbit.capture.adapters.websockets.connect", return_value=ws):
            engine.start()
            await engine._task

        assert json.loads(ws.sent[0]) == {"chunk_ms": 100, "language": "es-ES"}
        assert events == [
            "started",
            ("result", "hel", ""),
            ("result", "", "hello"),
            "ended",
        ]
        assert source.stopped is True
        assert engine.running is False

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        """A refused connection reports a network error then ends."""
        engine = StreamingASREngine("ws://asr/stream", FakeSource)
        events = record(engine)

        with patch(
            "orbit.capture.adapters.websockets.connect",
            MagicMock(side_effect=OSError("refused")),
        ):
            engine.start()
            await engine._task

        assert events == [("error", "network"), "ended"]

    @pytest.mark.asyncio
    async def test_audio_unavailable(self):
        """start() raises when the audio source cannot start."""
        engine = StreamingASREngine("ws://asr/stream", lambda: FakeSource(ok=False))
        with pytest.raises(EngineStartError):
            engine.start()

    @pytest.mark.asyncio
    async def test_start_twice_raises(self):
        """start() while running raises."""
        ws = FakeWebSocket([])
        engine = StreamingASREngine("ws://asr/stream", FakeSource)

        with patch("orbit.capture.adapters.websockets.connect", return_value=ws):
            engine.start()
            with pytest.raises(EngineStartError):
                engine.start()
            engine.stop()
            await asyncio.gather(engine._task, return_exceptions=True)

    @pytest.mark.asyncio
    async def test_stop_emits_ended(self):
        """Stopping a running engine still fires ended."""
        source = FakeSource()
        engine = StreamingASREngine("ws://asr/stream", lambda: source)
        events = record(engine)

        with patch("orbit.capture.adapters.websockets.connect", return_value=FakeWebSocket([])):
            engine.start()
            await asyncio.sleep(0)
            engine.stop()
            await asyncio.gather(engine._task, return_exceptions=True)

        assert events[-1] == "ended"
        assert source.stopped is True

    @pytest.mark.asyncio
    async def test_audio_stream_failure_reported(self, caplog):
        """A failing audio source surfaces as an audio-capture error, then ends."""
        source = BrokenSource()
        engine = StreamingASREngine("ws://asr/stream", lambda: source)
        events = record(engine)

        with patch("orbit.capture.adapters.websockets.connect", return_value=HeldWebSocket()):
            engine.start()
            await engine._task

        assert events == ["started", ("error", "audio-capture"), "ended"]
        assert "device unplugged" in caplog.text
        assert source.stopped is True

    @pytest.mark.asyncio
    async def test_receive_failure_reported(self):
        """An unexpected receive failure surfaces as a network error, then ends."""
        engine = StreamingASREngine("ws://asr/stream", FakeSource)
        events = record(engine)

        with patch("orbit.capture.adapters.websockets.connect", return_value=CrashingWebSocket()):
            engine.start()
            await engine._task

        assert events == ["started", ("error", "network"), "ended"]
