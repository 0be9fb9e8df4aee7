"""
Wire Models for the Orbit Channel

Defines the messages carried on the pub/sub channel and the derived records
kept by consumers.

Protocol (JSON, camelCase field names):
- {"kind": "partial", "id": "p-<ms>", "timestamp": <ms>, "sourceLang": "en-US", "text": "..."}
- {"kind": "final", "id": "f-<ms>-<rand>", "timestamp": <ms>, "sourceLang": "en-US", "text": "..."}
- {"kind": "clear"}

Optional fields on transcript events: "speakerGender" (male|female|neutral)
and "isOffline" (bool).
"""

import json
import random
import string
import time
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

SpeakerGender = Literal["male", "female", "neutral"]

# Alphabet used for the final-id disambiguator
_BASE36 = string.digits + string.ascii_lowercase


def now_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


def partial_event_id(timestamp: int) -> str:
    """
    Id for a partial event.

    Derived from the timestamp alone, so two partials in the same millisecond
    share an id. Partials carry no identity downstream (the live preview is
    replaced wholesale), so this is tolerated; see DESIGN.md.
    """
    return f"p-{timestamp}"


def final_event_id(timestamp: int, rng: random.Random | None = None) -> str:
    """Id for a final event: timestamp plus a 4-char random base-36 suffix."""
    rng = rng or random
    suffix = "".join(rng.choice(_BASE36) for _ in range(4))
    return f"f-{timestamp}-{suffix}"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_wire(self) -> dict[str, Any]:
        """Serialize with wire (camelCase) names, omitting unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        return json.dumps(self.to_wire())


class TranscriptEvent(_WireModel):
    """A partial or final transcription fragment."""

    kind: Literal["partial", "final"]
    id: str
    timestamp: int
    source_lang: str = Field(alias="sourceLang")
    text: str
    speaker_gender: SpeakerGender | None = Field(default=None, alias="speakerGender")
    is_offline: bool | None = Field(default=None, alias="isOffline")

    @classmethod
    def partial(
        cls,
        text: str,
        source_lang: str,
        timestamp: int | None = None,
        speaker_gender: SpeakerGender | None = None,
        is_offline: bool | None = None,
    ) -> "TranscriptEvent":
        """Create a partial event with a timestamp-derived id."""
        ts = now_ms() if timestamp is None else timestamp
        return cls(
            kind="partial",
            id=partial_event_id(ts),
            timestamp=ts,
            source_lang=source_lang,
            text=text,
            speaker_gender=speaker_gender,
            is_offline=is_offline,
        )

    @classmethod
    def final(
        cls,
        text: str,
        source_lang: str,
        timestamp: int | None = None,
        speaker_gender: SpeakerGender | None = None,
        is_offline: bool | None = None,
        rng: random.Random | None = None,
    ) -> "TranscriptEvent":
        """Create a final event with a collision-resistant id."""
        ts = now_ms() if timestamp is None else timestamp
        return cls(
            kind="final",
            id=final_event_id(ts, rng),
            timestamp=ts,
            source_lang=source_lang,
            text=text,
            speaker_gender=speaker_gender,
            is_offline=is_offline,
        )

    @property
    def is_final(self) -> bool:
        return self.kind == "final"


class ClearEvent(_WireModel):
    """Resets all derived state on every attached consumer."""

    kind: Literal["clear"] = "clear"


ChannelEvent = Annotated[Union[TranscriptEvent, ClearEvent], Field(discriminator="kind")]

_event_adapter: TypeAdapter = TypeAdapter(ChannelEvent)


def parse_event(data: str | bytes | dict[str, Any]) -> TranscriptEvent | ClearEvent:
    """
    Parse a channel message.

    Args:
        data: JSON text or an already-decoded dict

    Returns:
        TranscriptEvent or ClearEvent

    Raises:
        ValueError: If the message is not valid JSON or does not match a known kind
    """
    if isinstance(data, (str, bytes)):
        return _event_adapter.validate_json(data)
    return _event_adapter.validate_python(data)


class TranslatedEntry(_WireModel):
    """Translation of one final event. Immutable once created."""

    id: str
    text: str
    source_lang: str = Field(alias="sourceLang")
    is_offline: bool = Field(default=False, alias="isOffline")


class TranslationResult(_WireModel):
    """Result returned by the translation collaborator."""

    text: str
    is_offline: bool = Field(default=False, alias="isOffline")


__all__ = [
    "ChannelEvent",
    "ClearEvent",
    "SpeakerGender",
    "TranscriptEvent",
    "TranslatedEntry",
    "TranslationResult",
    "final_event_id",
    "now_ms",
    "parse_event",
    "partial_event_id",
]
