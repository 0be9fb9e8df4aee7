"""
Translation Relay

Turns the transcript store into translated output:

- Finals: each new history tail is translated once and appended to a bounded
  list of TranslatedEntry records (optionally spoken through the playback queue).
- Partials: every change of the current partial (or of the target language)
  issues a new translation for the live preview.

Partial requests race each other. Each one captures a generation number when
issued and its result is applied only if no newer request has been issued
since; the in-flight call itself is never cancelled, just ignored.

Final translations run concurrently but are applied in arrival order, and
an entry is inserted only if its id is not present yet, so duplicate delivery
of a final never produces a second entry.
"""

import asyncio
import logging
from collections import OrderedDict
from collections.abc import Callable, Coroutine
from typing import Any, Protocol

from ..client import TranscriptStore
from ..config import TARGET_LANG, TRANSLATED_LIMIT
from ..core.models import TranscriptEvent, TranslatedEntry, TranslationResult

logger = logging.getLogger(__name__)


class Translator(Protocol):
    async def translate(self, text: str, target_lang: str, source_lang: str) -> TranslationResult:
        ...


class SpeechQueue(Protocol):
    voice: str

    def enqueue(self, text: str) -> bool:
        ...


class TranslationRelay:
    """Consumer that translates transcript state for one target language."""

    def __init__(
        self,
        store: TranscriptStore,
        translator: Translator,
        playback: SpeechQueue | None = None,
        target_lang: str = TARGET_LANG,
        auto_speak: bool = False,
        max_entries: int = TRANSLATED_LIMIT,
    ):
        """
        Initialize translation relay.

        Args:
            store: Transcript state to follow
            translator: Translation collaborator
            playback: Queue that receives translated finals when auto_speak is on
            target_lang: Target language code
            auto_speak: Speak each translated final
            max_entries: Maximum translated entries to keep (oldest removed first)
        """
        self.store = store
        self.translator = translator
        self.playback = playback
        self.target_lang = target_lang
        self.auto_speak = auto_speak
        self.max_entries = max_entries

        self.last_processed_id = ""
        self.live_partial = ""

        self._entries: OrderedDict[str, TranslatedEntry] = OrderedDict()
        self._partial_generation = 0
        self._clear_epoch = 0
        self._last_final_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()
        self._listeners: list[Callable[["TranslationRelay"], None]] = []
        self._closed = False

        store.on_history(self._on_history)
        store.on_partial(self._on_partial)
        store.on_clear(self._on_clear)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def entries(self) -> list[TranslatedEntry]:
        """Translated finals, oldest first."""
        return list(self._entries.values())

    @property
    def latest_entry(self) -> TranslatedEntry | None:
        if self._entries:
            return self._entries[next(reversed(self._entries))]
        return None

    @property
    def partial_generation(self) -> int:
        return self._partial_generation

    @property
    def pending(self) -> int:
        """Number of translation requests still in flight."""
        return len(self._tasks)

    def on_change(self, callback: Callable[["TranslationRelay"], None]) -> None:
        self._listeners.append(callback)

    # ------------------------------------------------------------------
    # User controls
    # ------------------------------------------------------------------

    def set_target_language(self, target_lang: str) -> None:
        """Switch language; the live preview is re-requested in the new language."""
        if target_lang == self.target_lang:
            return
        self.target_lang = target_lang
        logger.info(f"Target language: {target_lang}")
        self._request_partial(self.store.current_partial)

    def set_auto_speak(self, enabled: bool) -> None:
        self.auto_speak = enabled
        self._notify()

    def set_voice(self, voice: str) -> None:
        if self.playback is not None:
            self.playback.voice = voice

    def clear(self) -> None:
        """Drop translations and the live preview; in-flight results are discarded."""
        self._entries.clear()
        self.last_processed_id = ""
        self._partial_generation += 1
        self._clear_epoch += 1
        self.live_partial = ""
        logger.info("Translation state cleared")
        self._notify()

    # ------------------------------------------------------------------
    # Store callbacks
    # ------------------------------------------------------------------

    def _on_history(self, store: TranscriptStore) -> None:
        if self._closed:
            return
        latest = store.latest
        if latest is None or latest.id == self.last_processed_id:
            return

        self.last_processed_id = latest.id
        self._set_live("")

        previous = self._last_final_task
        task = self._spawn(
            self._translate_final(latest, self.target_lang, self._clear_epoch, previous)
        )
        self._last_final_task = task

    def _on_partial(self, store: TranscriptStore) -> None:
        if self._closed:
            return
        self._request_partial(store.current_partial)

    def _on_clear(self, store: TranscriptStore) -> None:
        self.clear()

    # ------------------------------------------------------------------
    # Translation flows
    # ------------------------------------------------------------------

    def _request_partial(self, partial: TranscriptEvent | None) -> None:
        self._partial_generation += 1
        generation = self._partial_generation

        if partial is None or not partial.text:
            self._set_live("")
            return

        self._spawn(self._translate_partial(partial, self.target_lang, generation))

    async def _translate_partial(
        self, partial: TranscriptEvent, target_lang: str, generation: int
    ) -> None:
        result = await self._translate(partial.text, target_lang, partial.source_lang)

        if generation != self._partial_generation or self._closed:
            logger.debug(f"[STALE] partial {partial.id} (gen {generation}) discarded")
            return
        self._set_live(result.text)

    async def _translate_final(
        self,
        event: TranscriptEvent,
        target_lang: str,
        epoch: int,
        previous: asyncio.Task | None,
    ) -> None:
        result = await self._translate(event.text, target_lang, event.source_lang)

        # Apply in arrival order
        if previous is not None and not previous.done():
            await asyncio.wait([previous])

        if epoch != self._clear_epoch or self._closed:
            logger.debug(f"[STALE] final {event.id} finished after clear, discarded")
            return

        if event.id in self._entries:
            logger.debug(f"[DUPLICATE] final {event.id} already translated")
            return

        self._entries[event.id] = TranslatedEntry(
            id=event.id,
            text=result.text,
            source_lang=event.source_lang,
            is_offline=result.is_offline,
        )
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

        logger.debug(f"[TRANSLATED] {event.id} = '{result.text[:50]}'")
        self._notify()

        if self.auto_speak and self.playback is not None:
            self.playback.enqueue(result.text)

    async def _translate(self, text: str, target_lang: str, source_lang: str) -> TranslationResult:
        try:
            return await self.translator.translate(text, target_lang, source_lang)
        except Exception as e:
            logger.error(f"Translator error, using original text: {e}")
            return TranslationResult(text=text, is_offline=True)

    # ------------------------------------------------------------------
    # Task bookkeeping
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task is self._last_final_task:
            self._last_final_task = None
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Translation task failed: {task.exception()}")

    async def wait_idle(self) -> None:
        """Wait until every in-flight translation has been applied or discarded."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Stop applying results and wait for in-flight calls to settle."""
        self._closed = True
        await self.wait_idle()
        self._listeners.clear()

    def _set_live(self, text: str) -> None:
        if text == self.live_partial:
            return
        self.live_partial = text
        self._notify()

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback(self)
            except Exception as e:
                logger.error(f"Relay listener error: {e}")

    def __repr__(self) -> str:
        return f"TranslationRelay({self.target_lang!r}, {len(self._entries)} entries)"
