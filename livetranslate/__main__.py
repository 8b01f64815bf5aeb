"""Run a live translation session from the default microphone and log every event."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, Optional, Sequence

from .audio.recorder import CaptureError, CaptureLoop
from .metrics import serve_metrics
from .pipeline import PipelineController
from .schemas import Failure, FinalText, PipelineEvent, TranscriptState, Translation
from .settings import BACKENDS, TASKS, PipelineSettings

LOGGER = logging.getLogger("livetranslate")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="livetranslate",
        description="Live speech recognition and translation from the default microphone.",
    )
    parser.add_argument("--backend", choices=BACKENDS, help="Inference strategy (default: LIVETRANSLATE_BACKEND).")
    parser.add_argument("--task", choices=TASKS, help="recognize only, or recognize and translate.")
    parser.add_argument("--no-proofreading", action="store_true", help="Skip context-aware correction.")
    parser.add_argument(
        "--no-sentence-buffer",
        action="store_true",
        help="Translate each chunk's text directly instead of waiting for complete sentences.",
    )
    parser.add_argument("--duration", type=float, help="Stop after this many seconds (default: until Ctrl-C).")
    parser.add_argument("--log-level", help="Logging level (default: LOG_LEVEL or INFO).")
    parser.add_argument("--metrics-port", type=int, help="Expose Prometheus metrics on this port.")
    return parser


def settings_from_args(args: argparse.Namespace) -> PipelineSettings:
    overrides: Dict[str, Any] = {}
    if args.backend:
        overrides["backend"] = args.backend
    if args.task:
        overrides["task"] = args.task
    if args.no_proofreading:
        overrides["proofreading"] = False
    if args.no_sentence_buffer:
        overrides["sentence_buffered"] = False
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.metrics_port is not None:
        overrides["metrics_port"] = args.metrics_port
    return PipelineSettings(**overrides)


def log_event(event: PipelineEvent) -> None:
    if isinstance(event, Failure):
        level = logging.ERROR if event.fatal else logging.WARNING
        LOGGER.log(level, "failure [%s]: %s", event.stage or "pipeline", event.message)
    elif isinstance(event, (FinalText, Translation)):
        LOGGER.info("%s: %s", event.kind, event.text)
    elif isinstance(event, TranscriptState):
        LOGGER.info("transcript: %s | pending: %s", " ".join(event.completed[-3:]), event.pending)
    else:
        LOGGER.info("%s", event.model_dump_json())


async def run(settings: PipelineSettings, duration: Optional[float] = None) -> int:
    controller = PipelineController.from_settings(settings, log_event)
    if not await controller.start_session():
        await controller.close()
        return 1

    loop = asyncio.get_running_loop()
    done = asyncio.Event()
    errors: list[CaptureError] = []

    def on_error(exc: CaptureError) -> None:
        errors.append(exc)
        loop.call_soon_threadsafe(done.set)

    capture = CaptureLoop.from_settings(
        settings,
        lambda chunk: loop.call_soon_threadsafe(controller.submit, chunk),
        on_error=on_error,
    )
    capture.start()
    try:
        await asyncio.wait_for(done.wait(), timeout=duration)
    except asyncio.TimeoutError:
        pass
    finally:
        await asyncio.to_thread(capture.stop)
        await controller.close()
    return 1 if errors else 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if settings.metrics_port:
        serve_metrics(settings.metrics_port)
        LOGGER.info("Metrics exporter listening on :%d", settings.metrics_port)
    try:
        return asyncio.run(run(settings, args.duration))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
