"""
Recognition engine adapters.

StreamingASREngine speaks the streaming ASR WebSocket protocol:
1. Connect to ws://host:port/stream
2. Send config JSON: {"chunk_ms": X, "language": "en-US"}
3. Stream raw PCM audio (int16, 16kHz, mono)
4. Receive JSON:
   {"partial": "..."}                         interim segment
   {"text": "...", "final": true}             final segment
   {"id": "s1", "text": "...", "is_final": b} segment protocol (final unless is_final is false)
   {"error": "...", "code": "..."}            engine error
"""

import asyncio
import contextlib
import json
import logging
from collections.abc import Callable

import websockets

from ..audio import AudioSource
from ..core.errors import EngineStartError
from .engine import RecognitionEngine, RecognitionError, RecognitionResult, ResultSegment

logger = logging.getLogger(__name__)


def parse_asr_message(message: str | bytes) -> RecognitionResult | RecognitionError | None:
    """
    Parse one ASR service message.

    Returns:
        RecognitionResult, RecognitionError, or None for messages without text
    """
    if isinstance(message, bytes):
        message = message.decode("utf-8", errors="replace")

    try:
        data = json.loads(message)
    except json.JSONDecodeError:
        # Plain text fallback
        text = message.strip()
        return RecognitionResult.from_final(text) if text else None

    if not isinstance(data, dict):
        return None

    if "error" in data:
        return RecognitionError(code=data.get("code", "network"), message=str(data["error"]))

    if "partial" in data:
        text = data["partial"]
        return RecognitionResult.from_interim(text) if text else None

    if "text" in data:
        text = data["text"]
        if not text:
            return None
        if "id" in data:
            is_final = bool(data.get("is_final", data.get("final", True)))
        else:
            is_final = bool(data.get("final", False))
        return RecognitionResult(segments=[ResultSegment(text, is_final=is_final)])

    return None


class StreamingASREngine(RecognitionEngine):
    """
    WebSocket streaming ASR adapter.

    The engine ends on its own whenever the service closes the connection,
    which CaptureSession treats as spontaneous termination.
    """

    def __init__(
        self,
        uri: str,
        audio_source_factory: Callable[[], AudioSource],
        chunk_ms: int = 200,
    ):
        """
        Initialize streaming engine.

        Args:
            uri: ASR WebSocket URI (e.g. ws://localhost:8000/stream)
            audio_source_factory: Creates a fresh audio source for each start()
            chunk_ms: Chunk duration sent in the config message
        """
        super().__init__()
        self.uri = uri
        self.audio_source_factory = audio_source_factory
        self.chunk_ms = chunk_ms
        self._source: AudioSource | None = None
        self._task: asyncio.Task | None = None

    @property
    def name(self) -> str:
        return f"Streaming ASR ({self.uri})"

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            raise EngineStartError("Recognition already started")

        source = self.audio_source_factory()
        if not source.start():
            raise EngineStartError("Audio capture unavailable")

        self._source = source
        self._task = asyncio.get_running_loop().create_task(self._run(source))

    def stop(self) -> None:
        if self._source is not None:
            self._source.stop()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def _run(self, source: AudioSource) -> None:
        try:
            async with websockets.connect(self.uri) as ws:
                await ws.send(json.dumps({"chunk_ms": self.chunk_ms, "language": self.language}))
                self._emit("started")

                send_task = asyncio.create_task(self._send_audio(ws, source))
                recv_task = asyncio.create_task(self._receive(ws))

                done, pending = await asyncio.wait(
                    [send_task, recv_task], return_when=asyncio.FIRST_COMPLETED
                )
                for task in pending:
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task

                for task in done:
                    error = task.exception()
                    if error is None:
                        continue
                    audio_failed = task is send_task and not isinstance(
                        error, websockets.exceptions.WebSocketException
                    )
                    if audio_failed:
                        logger.error(f"Audio stream failed: {error}")
                        self._emit("error", RecognitionError("audio-capture", str(error)))
                    else:
                        logger.error(f"ASR stream failed: {error}")
                        self._emit("error", RecognitionError("network", str(error)))

        except (ConnectionRefusedError, OSError) as e:
            logger.warning(f"ASR connection failed: {e}")
            self._emit("error", RecognitionError("network", str(e)))
        except websockets.exceptions.WebSocketException as e:
            logger.warning(f"ASR error: {e}")
            self._emit("error", RecognitionError("network", str(e)))
        finally:
            source.stop()
            if self._source is source:
                self._source = None
            self._emit("ended")

    async def _send_audio(self, ws, source: AudioSource) -> None:
        async for chunk in source.chunks():
            await ws.send(chunk)
        # Empty frame signals end of stream
        with contextlib.suppress(websockets.exceptions.ConnectionClosed):
            await ws.send(b"")

    async def _receive(self, ws) -> None:
        try:
            async for message in ws:
                parsed = parse_asr_message(message)
                if isinstance(parsed, RecognitionError):
                    self._emit("error", parsed)
                elif parsed is not None:
                    self._emit("result", parsed)
        except websockets.exceptions.ConnectionClosed as e:
            logger.debug(f"ASR connection closed: {e}")
