"""
Orbit command line.

  python -m orbit serve --port 8765
  python -m orbit transcribe --asr-uri ws://localhost:8000/stream --source en-US
  python -m orbit receive --target es --auto-speak
"""

import argparse
import asyncio
import contextlib
import logging

from . import __version__
from .audio import MicrophoneAudioSource, MicrophoneLevelMonitor
from .bus import EventBus, WebSocketTransport
from .capture import StreamingASREngine
from .config import (
    CHANNEL_NAME,
    CHANNEL_URL,
    DEFAULT_VOICE,
    SOURCE_LANG,
    SOURCE_LANGUAGES,
    TARGET_LANG,
    TARGET_LANGUAGES,
    TRANSLATE_URL,
    TTS_URL,
    TTS_VOICES,
)
from .core.network import NetworkMonitor
from .playback import HttpSpeechSynthesizer
from .station import Station, StationConfig
from .translation import TranslationClient, TranslationRelay
from .utils import set_log_level, setup_logging

logger = logging.getLogger("orbit")


def _make_bus(args) -> EventBus:
    transport = WebSocketTransport(
        args.channel,
        url=args.channel_url,
        on_connected=lambda ok: logger.info("Channel %s", "connected" if ok else "disconnected"),
    )
    return EventBus(args.channel, transport)


def health_url(base_url: str) -> str:
    """Map a service or relay URL to its HTTP health endpoint."""
    if base_url.startswith("ws"):
        base_url = "http" + base_url[2:]
    return f"{base_url.rstrip('/')}/health"


async def run_transcriber(args) -> None:
    """Publish microphone transcripts until interrupted."""
    config = StationConfig(
        channel_name=args.channel,
        source_lang=args.source,
        speaker_gender=args.gender,
    )
    engine_factory = lambda: StreamingASREngine(  # noqa: E731
        args.asr_uri, lambda: MicrophoneAudioSource(args.device)
    )
    level_monitor = MicrophoneLevelMonitor(args.device) if args.levels else None

    station = Station(
        _make_bus(args),
        config=config,
        engine_factory=engine_factory,
        level_monitor=level_monitor,
        network=NetworkMonitor(probe_url=health_url(args.channel_url)),
    )
    station.capture.on_status(lambda status: logger.info(f"Status: {status}"))

    async with station:
        station.start_capture()
        with contextlib.suppress(asyncio.CancelledError):
            await asyncio.Event().wait()


async def run_receiver(args) -> None:
    """Log translated output until interrupted."""
    network = NetworkMonitor(probe_url=health_url(args.translate_url))
    translator = TranslationClient(url=args.translate_url, network=network)
    synthesizer = HttpSpeechSynthesizer(url=args.tts_url) if args.auto_speak else None

    config = StationConfig(
        channel_name=args.channel,
        target_lang=args.target,
        voice=args.voice,
        auto_speak=args.auto_speak,
    )
    station = Station(
        _make_bus(args),
        config=config,
        translator=translator,
        synthesizer=synthesizer,
        network=network,
    )

    printed: set[str] = set()

    def on_relay_change(relay: TranslationRelay) -> None:
        for entry in relay.entries:
            if entry.id not in printed:
                printed.add(entry.id)
                logger.info(f"[{entry.source_lang} -> {relay.target_lang}] {entry.text}")
        if relay.live_partial:
            logger.debug(f"... {relay.live_partial}")

    station.relay.on_change(on_relay_change)
    station.store.on_clear(lambda _store: printed.clear())

    try:
        async with station:
            with contextlib.suppress(asyncio.CancelledError):
                await asyncio.Event().wait()
    finally:
        await translator.close()
        if synthesizer is not None:
            await synthesizer.close()


def serve(args) -> None:
    import uvicorn

    from .bus.server import create_app

    logger.info(f"Channel relay v{__version__} on {args.host}:{args.port}")
    uvicorn.run(create_app(), host=args.host, port=args.port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="orbit", description=f"Orbit v{__version__}")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve_parser = sub.add_parser("serve", help="Run the channel relay server")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8765, help="Bind port")

    for name, help_text in (
        ("transcribe", "Publish microphone transcripts"),
        ("receive", "Translate and speak channel transcripts"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--channel", default=CHANNEL_NAME, help=f"Channel name (default: {CHANNEL_NAME})")
        p.add_argument("--channel-url", default=CHANNEL_URL, help="Relay server URL")

        if name == "transcribe":
            p.add_argument("--asr-uri", default="ws://localhost:8000/stream", help="Streaming ASR URI")
            p.add_argument("--source", default=SOURCE_LANG, choices=sorted(SOURCE_LANGUAGES))
            p.add_argument("--gender", default="neutral", choices=["male", "female", "neutral"])
            p.add_argument("--device", type=int, help="Microphone device index")
            p.add_argument("--levels", action="store_true", help="Sample microphone levels")
        else:
            p.add_argument("--target", default=TARGET_LANG, choices=sorted(TARGET_LANGUAGES))
            p.add_argument("--auto-speak", action="store_true", help="Speak translated finals")
            p.add_argument("--voice", default=DEFAULT_VOICE, choices=sorted(TTS_VOICES))
            p.add_argument("--translate-url", default=TRANSLATE_URL, help="Translation service URL")
            p.add_argument("--tts-url", default=TTS_URL, help="Speech synthesis service URL")

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging()
    if args.debug:
        set_log_level("DEBUG")

    if args.command == "serve":
        serve(args)
        return

    runner = run_transcriber if args.command == "transcribe" else run_receiver
    try:
        asyncio.run(runner(args))
    except KeyboardInterrupt:
        logger.info("Stopped")


if __name__ == "__main__":
    main()
