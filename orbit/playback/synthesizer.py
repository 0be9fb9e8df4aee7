"""
Speech synthesis collaborators.

A synthesizer's speak() resolves only when playback has finished and raises
PlaybackError instead of hanging when synthesis or audio output fails.

HttpSpeechSynthesizer protocol:
  POST {url}/synthesize {"text": "...", "voice": "Zephyr"}
  -> {"audio": "<base64 PCM int16 mono>", "sample_rate": 24000}
"""

import asyncio
import base64
import binascii
import logging
import threading
from abc import ABC, abstractmethod

import httpx

from ..config import DEFAULT_VOICE, TTS_SAMPLE_RATE, TTS_TIMEOUT, TTS_URL
from ..core.errors import PlaybackError

logger = logging.getLogger(__name__)

# Output is written in slices this long so an abort takes effect quickly
PLAYBACK_CHUNK_MS = 50


class SpeechSynthesizer(ABC):
    """Abstract synthesize-and-play collaborator."""

    @abstractmethod
    async def speak(self, text: str, voice: str = DEFAULT_VOICE) -> None:
        """Synthesize text and play it; returns when playback completes."""


class AudioPlayer(ABC):
    """Blocking PCM output device."""

    @abstractmethod
    def play(self, pcm: bytes, sample_rate: int, stop: threading.Event) -> None:
        """
        Play 16-bit mono PCM; blocks until playback finishes.

        Implementations must return promptly once stop is set.
        """


def iter_pcm_chunks(pcm: bytes, sample_rate: int, chunk_ms: int = PLAYBACK_CHUNK_MS):
    """Split 16-bit mono PCM into chunks of chunk_ms."""
    step = max(2, int(sample_rate * chunk_ms / 1000) * 2)
    for offset in range(0, len(pcm), step):
        yield pcm[offset : offset + step]


class PyAudioPlayer(AudioPlayer):
    """Plays PCM through the default output device using PyAudio."""

    def __init__(self, device_index: int | None = None):
        self.device_index = device_index

    def play(self, pcm: bytes, sample_rate: int, stop: threading.Event) -> None:
        import pyaudio

        pa = pyaudio.PyAudio()
        stream = None
        try:
            stream = pa.open(
                format=pyaudio.paInt16,
                channels=1,
                rate=sample_rate,
                output=True,
                output_device_index=self.device_index,
            )
            for chunk in iter_pcm_chunks(pcm, sample_rate):
                if stop.is_set():
                    logger.debug("Playback aborted")
                    break
                stream.write(chunk)
        except OSError as e:
            raise PlaybackError(f"Audio output failed: {e}") from e
        finally:
            if stream is not None:
                stream.stop_stream()
                stream.close()
            pa.terminate()


def pcm_duration(pcm: bytes, sample_rate: int) -> float:
    """Duration in seconds of 16-bit mono PCM."""
    return len(pcm) / 2 / sample_rate if sample_rate else 0.0


class HttpSpeechSynthesizer(SpeechSynthesizer):
    """Fetches speech from the TTS service and plays it locally."""

    def __init__(
        self,
        url: str = TTS_URL,
        timeout: float = TTS_TIMEOUT,
        player: AudioPlayer | None = None,
        sample_rate: int = TTS_SAMPLE_RATE,
    ):
        """
        Initialize synthesizer.

        Args:
            url: TTS service base URL
            timeout: HTTP timeout, also the slack allowed on top of audio duration
            player: Output device (defaults to PyAudioPlayer)
            sample_rate: Rate assumed when the service does not report one
        """
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.player = player or PyAudioPlayer()
        self.sample_rate = sample_rate
        self._http: httpx.AsyncClient | None = None

    async def _get_http(self) -> httpx.AsyncClient:
        """Lazy-init HTTP client with connection pooling."""
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    async def synthesize(self, text: str, voice: str = DEFAULT_VOICE) -> tuple[bytes, int]:
        """
        Request speech audio.

        Returns:
            (pcm bytes, sample rate)
        """
        try:
            http = await self._get_http()
            response = await http.post(f"{self.url}/synthesize", json={"text": text, "voice": voice})
        except httpx.HTTPError as e:
            raise PlaybackError(f"TTS request failed: {e}") from e

        if response.status_code != 200:
            raise PlaybackError(f"TTS service returned {response.status_code}")

        try:
            data = response.json()
            pcm = base64.b64decode(data["audio"], validate=True)
        except (ValueError, KeyError, TypeError, binascii.Error) as e:
            raise PlaybackError(f"No audio data received: {e}") from e

        if not pcm:
            raise PlaybackError("No audio data received")
        return pcm, int(data.get("sample_rate", self.sample_rate))

    async def speak(self, text: str, voice: str = DEFAULT_VOICE) -> None:
        if not text or not text.strip():
            return

        pcm, sample_rate = await self.synthesize(text, voice)
        budget = pcm_duration(pcm, sample_rate) + self.timeout

        stop = threading.Event()
        playing = asyncio.ensure_future(asyncio.to_thread(self.player.play, pcm, sample_rate, stop))
        try:
            await asyncio.wait_for(asyncio.shield(playing), budget)
        except TimeoutError as e:
            # The output thread must be gone before the next item may play
            await self._abort(playing, stop)
            raise PlaybackError(f"Playback did not finish within {budget:.1f}s") from e
        except asyncio.CancelledError:
            await self._abort(playing, stop)
            raise

    async def _abort(self, playing: asyncio.Future, stop: threading.Event) -> None:
        stop.set()
        done, _pending = await asyncio.wait([playing])
        for future in done:
            if not future.cancelled() and future.exception() is not None:
                logger.debug(f"Aborted playback raised: {future.exception()}")

    async def close(self):
        """Close HTTP client."""
        if self._http:
            await self._http.aclose()
            self._http = None
