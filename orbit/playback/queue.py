"""
Playback Queue

FIFO of texts to speak with a single worker task. The worker awaits each
synthesize-and-play call before taking the next item, so two utterances never
overlap. It stops when the queue is empty; the next enqueue() starts it again.
A failed item is logged and skipped.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Callable

from ..config import DEFAULT_VOICE
from .synthesizer import SpeechSynthesizer

logger = logging.getLogger(__name__)


class PlaybackQueue:
    """Serializes speech playback."""

    def __init__(
        self,
        synthesizer: SpeechSynthesizer,
        voice: str = DEFAULT_VOICE,
        max_pending: int | None = None,
    ):
        """
        Initialize playback queue.

        Args:
            synthesizer: Synthesize-and-play collaborator
            voice: Voice passed to the synthesizer
            max_pending: Cap on waiting items (oldest dropped); None for unbounded
        """
        self.synthesizer = synthesizer
        self.voice = voice
        self.max_pending = max_pending
        self.current: str | None = None
        self.played = 0
        self.failed = 0

        self._items: deque[str] = deque()
        self._worker: asyncio.Task | None = None
        self._closed = False
        self._listeners: list[Callable[[bool], None]] = []

    @property
    def is_speaking(self) -> bool:
        """True while the worker is draining the queue."""
        return self._worker is not None

    @property
    def pending(self) -> list[str]:
        """Items waiting to be played (excludes the one playing)."""
        return list(self._items)

    def on_speaking(self, callback: Callable[[bool], None]) -> None:
        self._listeners.append(callback)

    def enqueue(self, text: str) -> bool:
        """
        Append text for playback.

        Returns:
            False if the text was rejected (blank, or queue closed)
        """
        if self._closed or not text or not text.strip():
            return False

        if self.max_pending is not None and len(self._items) >= self.max_pending:
            dropped = self._items.popleft()
            logger.warning(f"Playback queue full, dropped: '{dropped[:40]}'")

        self._items.append(text)

        if self._worker is None:
            self._worker = asyncio.get_running_loop().create_task(self._drain())
            self._notify(True)
        return True

    async def _drain(self) -> None:
        """Single worker: play items one at a time until the queue is empty."""
        try:
            while self._items:
                text = self._items.popleft()
                self.current = text
                try:
                    await self.synthesizer.speak(text, self.voice)
                    self.played += 1
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    self.failed += 1
                    logger.error(f"Playback failed for '{text[:40]}': {e}")
                finally:
                    self.current = None
        finally:
            self._worker = None
            self._notify(False)

    async def join(self) -> None:
        """Wait until the queue has drained."""
        while self._worker is not None:
            await asyncio.wait([self._worker])

    def clear(self) -> None:
        """Drop waiting items; the item playing now runs to completion."""
        self._items.clear()

    async def close(self) -> None:
        """Reject new items, drop waiting ones and let the current one finish."""
        self._closed = True
        self.clear()
        await self.join()

    def _notify(self, speaking: bool) -> None:
        for callback in list(self._listeners):
            try:
                callback(speaking)
            except Exception as e:
                logger.error(f"Speaking listener error: {e}")

    def __len__(self) -> int:
        return len(self._items)
