"""Shared fixtures and fakes for Orbit tests."""

import asyncio
import random

import pytest
import pytest_asyncio

from orbit.bus import ChannelHub, EventBus, LocalTransport
from orbit.capture.engine import RecognitionEngine, RecognitionError, RecognitionResult, ResultSegment
from orbit.core.errors import EngineStartError, PlaybackError
from orbit.core.models import TranslationResult
from orbit.playback.synthesizer import SpeechSynthesizer

CHANNEL = "orbit_test"


class FakeEngine(RecognitionEngine):
    """Engine driven by the test: call fire_* to simulate callbacks."""

    def __init__(self, fail_start: bool = False):
        super().__init__()
        self.fail_start = fail_start
        self.start_calls = 0
        self.stop_calls = 0

    @property
    def name(self) -> str:
        return "Fake"

    def start(self) -> None:
        self.start_calls += 1
        if self.fail_start:
            raise EngineStartError("boom")

    def stop(self) -> None:
        self.stop_calls += 1

    def fire_started(self):
        self._emit("started")

    def fire_result(self, interim: list[str] = (), final: list[str] = ()):
        segments = [ResultSegment(t, is_final=False) for t in interim]
        segments += [ResultSegment(t, is_final=True) for t in final]
        self._emit("result", RecognitionResult(segments=segments))

    def fire_error(self, code: str):
        self._emit("error", RecognitionError(code))

    def fire_ended(self):
        self._emit("ended")


class FakeTranslator:
    """Translator whose calls can be held open per text."""

    def __init__(self, mapping: dict[str, str] | None = None):
        self.mapping = mapping or {}
        self.calls: list[tuple[str, str, str]] = []
        self.gates: dict[str, asyncio.Event] = {}
        self.fail_on: set[str] = set()

    def hold(self, text: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[text] = gate
        return gate

    async def translate(self, text: str, target_lang: str, source_lang: str) -> TranslationResult:
        self.calls.append((text, target_lang, source_lang))
        gate = self.gates.get(text)
        if gate is not None:
            await gate.wait()
        if text in self.fail_on:
            raise RuntimeError("translator exploded")
        return TranslationResult(text=self.mapping.get(text, f"{text} [{target_lang}]"))


class FakeSynthesizer(SpeechSynthesizer):
    """Records playback start/end and tracks concurrent playbacks."""

    def __init__(self):
        self.log: list[tuple[str, str]] = []
        self.voices: list[str] = []
        self.active = 0
        self.max_active = 0
        self.gates: dict[str, asyncio.Event] = {}
        self.fail_on: set[str] = set()

    def hold(self, text: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[text] = gate
        return gate

    async def speak(self, text: str, voice: str = "Zephyr") -> None:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.log.append(("start", text))
        self.voices.append(voice)
        try:
            gate = self.gates.get(text)
            if gate is not None:
                await gate.wait()
            else:
                await asyncio.sleep(0)
            if text in self.fail_on:
                raise PlaybackError("synthesis failed")
        finally:
            self.active -= 1
            self.log.append(("end", text))

    @property
    def played(self) -> list[str]:
        return [text for event, text in self.log if event == "end"]


async def settle(rounds: int = 10) -> None:
    """Let scheduled callbacks and ready tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def hub():
    return ChannelHub()


@pytest_asyncio.fixture
async def bus(hub):
    channel = EventBus(CHANNEL, LocalTransport(CHANNEL, hub))
    await channel.open()
    yield channel
    await channel.close()


@pytest_asyncio.fixture
async def remote_bus(hub):
    channel = EventBus(CHANNEL, LocalTransport(CHANNEL, hub))
    await channel.open()
    yield channel
    await channel.close()


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def translator():
    return FakeTranslator()


@pytest.fixture
def synthesizer():
    return FakeSynthesizer()


@pytest.fixture
def rng():
    return random.Random(42)
