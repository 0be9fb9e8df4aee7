"""
Microphone input via PyAudio.

Two consumers share the same capture class:
- MicrophoneLevelMonitor samples input level while a capture session listens
- MicrophoneAudioSource feeds 16 kHz mono PCM to streaming recognition engines
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable

import numpy as np

logger = logging.getLogger(__name__)

# Audio settings
TARGET_SAMPLE_RATE = 16000
CHUNK_DURATION_MS = 100


def calculate_chunk_size(sample_rate: int, chunk_ms: int = CHUNK_DURATION_MS) -> int:
    """Frames per buffer for the given rate and chunk duration."""
    return int(sample_rate * chunk_ms / 1000)


def resample_audio(audio_data: bytes, from_rate: int, to_rate: int) -> bytes:
    """
    Resample 16-bit PCM with linear interpolation.

    Args:
        audio_data: Raw 16-bit PCM audio bytes
        from_rate: Source sample rate in Hz
        to_rate: Target sample rate in Hz
    """
    if from_rate == to_rate or not audio_data:
        return audio_data

    audio_np = np.frombuffer(audio_data, dtype=np.int16).astype(np.float32)
    new_length = int(len(audio_np) * to_rate / from_rate)
    indices = np.linspace(0, len(audio_np) - 1, new_length)
    resampled = np.interp(indices, np.arange(len(audio_np)), audio_np)
    return np.clip(resampled, -32768, 32767).astype(np.int16).tobytes()


def rms_level(audio_data: bytes) -> float:
    """RMS level of 16-bit PCM, normalized to 0.0-1.0."""
    if len(audio_data) < 2:
        return 0.0
    audio_np = np.frombuffer(audio_data[: len(audio_data) // 2 * 2], dtype=np.int16)
    audio_np = audio_np.astype(np.float32) / 32768.0
    return float(min(1.0, np.sqrt(np.mean(audio_np**2))))


class MicrophoneCapture:
    """Capture 16 kHz mono PCM from a microphone using PyAudio."""

    def __init__(self, callback: Callable[[bytes], None], device_index: int | None = None):
        """
        Initialize microphone capture.

        Args:
            callback: Called from the PyAudio thread with each 16 kHz chunk
            device_index: Specific input device index, or None for default
        """
        self.callback = callback
        self.device_index = device_index
        self.running = False
        self.pyaudio_instance = None
        self.stream = None
        self.capture_rate = TARGET_SAMPLE_RATE
        self.device_name = "Microphone"

    def start(self) -> bool:
        """Open the input stream. Returns True on success."""
        try:
            import pyaudio

            self.pyaudio_instance = pyaudio.PyAudio()

            if self.device_index is not None:
                device_info = self.pyaudio_instance.get_device_info_by_index(self.device_index)
            else:
                device_info = self.pyaudio_instance.get_default_input_device_info()

            self.device_name = device_info["name"]
            self.capture_rate = int(device_info["defaultSampleRate"])

            logger.info(f"Microphone: {self.device_name}")
            logger.info(f"Rate: {self.capture_rate}Hz → {TARGET_SAMPLE_RATE}Hz")

            self.stream = self.pyaudio_instance.open(
                format=pyaudio.paInt16,
                channels=1,
                rate=self.capture_rate,
                input=True,
                input_device_index=self.device_index,
                frames_per_buffer=calculate_chunk_size(self.capture_rate),
                stream_callback=self._audio_callback,
            )

            self.stream.start_stream()
            self.running = True
            logger.info("Microphone capture started")
            return True

        except Exception as e:
            logger.error(f"Microphone start failed: {e}")
            self._release()
            return False

    def _audio_callback(self, in_data, frame_count, time_info, status):
        import pyaudio

        if not self.running:
            return (None, pyaudio.paComplete)

        try:
            self.callback(resample_audio(in_data, self.capture_rate, TARGET_SAMPLE_RATE))
        except Exception as e:
            logger.error(f"Mic callback error: {e}")

        return (None, pyaudio.paContinue)

    def stop(self) -> None:
        if not self.running and self.stream is None:
            return
        self.running = False
        self._release()
        logger.info("Microphone capture stopped")

    def _release(self) -> None:
        if self.stream:
            try:
                self.stream.stop_stream()
                self.stream.close()
            except OSError as e:
                logger.debug(f"Stream close error: {e}")
            self.stream = None

        if self.pyaudio_instance:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None


class LevelMonitor(ABC):
    """Samples microphone input level while a capture session is listening."""

    @abstractmethod
    def start(self) -> bool:
        """Start sampling. Returns True on success."""

    @abstractmethod
    def stop(self) -> None:
        """Stop sampling and release the input device."""

    @property
    @abstractmethod
    def level(self) -> float:
        """Latest input level, 0.0-1.0."""


class NullLevelMonitor(LevelMonitor):
    """Level monitor for hosts without a visualizer."""

    def start(self) -> bool:
        return True

    def stop(self) -> None:
        pass

    @property
    def level(self) -> float:
        return 0.0


class MicrophoneLevelMonitor(LevelMonitor):
    """RMS level of the default (or given) microphone."""

    def __init__(
        self,
        device_index: int | None = None,
        on_level: Callable[[float], None] | None = None,
    ):
        self.on_level = on_level
        self._level = 0.0
        self._capture = MicrophoneCapture(self._on_audio, device_index)

    def _on_audio(self, audio_data: bytes) -> None:
        self._level = rms_level(audio_data)
        if self.on_level:
            self.on_level(self._level)

    def start(self) -> bool:
        return self._capture.start()

    def stop(self) -> None:
        self._capture.stop()
        self._level = 0.0

    @property
    def level(self) -> float:
        return self._level


class AudioSource(ABC):
    """Source of 16 kHz mono PCM chunks for streaming engines."""

    @abstractmethod
    def start(self) -> bool:
        """Start producing audio. Returns True on success."""

    @abstractmethod
    def stop(self) -> None:
        """Stop producing audio; chunks() ends."""

    @abstractmethod
    def chunks(self) -> AsyncIterator[bytes]:
        """Iterate audio chunks until stopped."""


class MicrophoneAudioSource(AudioSource):
    """Bridges PyAudio's callback thread onto the event loop."""

    def __init__(self, device_index: int | None = None, queue_max: int = 100):
        self.device_index = device_index
        self.queue_max = queue_max
        self._queue: asyncio.Queue[bytes | None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._capture = MicrophoneCapture(self._on_audio, device_index)

    def start(self) -> bool:
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=self.queue_max)
        return self._capture.start()

    def _on_audio(self, audio_data: bytes) -> None:
        # PyAudio thread
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._put, audio_data)

    def _put(self, audio_data: bytes | None) -> None:
        if self._queue is None:
            return
        try:
            self._queue.put_nowait(audio_data)
        except asyncio.QueueFull:
            logger.warning("Audio queue full, dropping audio chunk")

    def stop(self) -> None:
        self._capture.stop()
        if self._queue is not None:
            # Unblock chunks(); make room so the sentinel always fits
            while self._queue.full():
                self._queue.get_nowait()
            self._queue.put_nowait(None)

    async def chunks(self) -> AsyncIterator[bytes]:
        if self._queue is None:
            return
        while True:
            chunk = await self._queue.get()
            if chunk is None:
                break
            yield chunk
