"""
Transcript Store

Local state derived from channel events. Every consumer keeps its own store;
stores on different processes converge because they apply the same events.

Event handling:
  partial -> replaces the current partial
  final   -> appended to history (oldest evicted past the cap), partial cleared
  clear   -> history and partial reset

History is keyed by event id, so a final delivered twice is kept once.
"""

import logging
from collections import OrderedDict
from collections.abc import Callable

from ..config import HISTORY_LIMIT
from ..core.models import ClearEvent, TranscriptEvent

logger = logging.getLogger(__name__)

ChangeCallback = Callable[["TranscriptStore"], None]


class TranscriptStore:
    """
    Bounded history of final events plus the current partial.

    Simple API:
        store = TranscriptStore()
        bus.subscribe(store.apply)
        store.on_history(lambda s: render(s.history))
    """

    def __init__(self, max_history: int = HISTORY_LIMIT):
        """
        Initialize transcript store.

        Args:
            max_history: Maximum final events to keep (oldest removed first)
        """
        # OrderedDict preserves insertion order
        self._history: OrderedDict[str, TranscriptEvent] = OrderedDict()
        self._max_history = max_history
        self._partial: TranscriptEvent | None = None
        self._history_listeners: list[ChangeCallback] = []
        self._partial_listeners: list[ChangeCallback] = []
        self._clear_listeners: list[ChangeCallback] = []

    def apply(self, event: TranscriptEvent | ClearEvent) -> None:
        """Apply one channel event. Suitable as an EventBus subscriber."""
        if isinstance(event, ClearEvent):
            self.clear()
        elif event.kind == "partial":
            self._set_partial(event)
        else:
            self._append_final(event)

    def _set_partial(self, event: TranscriptEvent) -> None:
        self._partial = event
        self._notify(self._partial_listeners)

    def _append_final(self, event: TranscriptEvent) -> None:
        if event.id in self._history:
            logger.debug(f"[DUPLICATE] {event.id} ignored")
        else:
            self._history[event.id] = event
            logger.debug(f"[FINAL] {event.id} = '{event.text[:50]}'")

            # Enforce max history (remove oldest)
            while len(self._history) > self._max_history:
                self._history.popitem(last=False)

            self._notify(self._history_listeners)

        if self._partial is not None:
            self._partial = None
            self._notify(self._partial_listeners)

    def clear(self) -> None:
        """Reset history and partial."""
        self._history.clear()
        self._partial = None
        self._notify(self._clear_listeners)
        self._notify(self._history_listeners)
        self._notify(self._partial_listeners)

    def on_history(self, callback: ChangeCallback) -> None:
        self._history_listeners.append(callback)

    def on_partial(self, callback: ChangeCallback) -> None:
        self._partial_listeners.append(callback)

    def on_clear(self, callback: ChangeCallback) -> None:
        self._clear_listeners.append(callback)

    def _notify(self, listeners: list[ChangeCallback]) -> None:
        for callback in list(listeners):
            try:
                callback(self)
            except Exception as e:
                logger.error(f"Transcript listener error: {e}", exc_info=True)

    @property
    def history(self) -> list[TranscriptEvent]:
        """Final events in arrival order."""
        return list(self._history.values())

    @property
    def current_partial(self) -> TranscriptEvent | None:
        return self._partial

    @property
    def latest(self) -> TranscriptEvent | None:
        """Most recent final event, or None if history is empty."""
        if self._history:
            return self._history[next(reversed(self._history))]
        return None

    @property
    def max_history(self) -> int:
        return self._max_history

    @property
    def is_empty(self) -> bool:
        return not self._history and self._partial is None

    def __len__(self) -> int:
        return len(self._history)

    def __repr__(self) -> str:
        return f"TranscriptStore({len(self)} finals, partial={self._partial is not None})"
