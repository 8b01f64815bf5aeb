"""Inference backends: one chunk of audio in, recognized and/or translated text out."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..audio.types import AudioChunk
from ..settings import PipelineSettings
from .network import ApiError, CloudClient
from .whisper_engine import WhisperEngine

LOGGER = logging.getLogger("livetranslate.backends")

ProgressCallback = Callable[[str, float], None]


class Task(str, Enum):
    RECOGNIZE = "recognize"
    TRANSLATE = "translate"


@dataclass(slots=True)
class InferenceResult:
    source_text: Optional[str] = None
    translated_text: Optional[str] = None


class InferenceBackend:
    """Strategy interface selected once per session.

    ``direct`` backends produce final text per chunk. Two-stage backends only
    recognize; the controller sends their text through buffering, proofreading
    and :meth:`translate`.
    """

    name = "backend"
    direct = True

    def __init__(self) -> None:
        self.label = self.name

    async def load(self, on_progress: Optional[ProgressCallback] = None) -> str:
        return self.label

    async def infer(self, chunk: AudioChunk, task: Task) -> InferenceResult:
        raise NotImplementedError

    async def translate(self, text: str) -> str:
        raise NotImplementedError(f"{self.name} does not translate text")

    async def close(self) -> None:
        return None


class OnDeviceDirectBackend(InferenceBackend):
    name = "on-device-direct"

    def __init__(self, engine: WhisperEngine, *, language: str | None = None) -> None:
        super().__init__()
        self.engine = engine
        self.language = language

    async def load(self, on_progress: Optional[ProgressCallback] = None) -> str:
        loop = asyncio.get_running_loop()

        def report(resource: str, fraction: float) -> None:
            if on_progress:
                loop.call_soon_threadsafe(on_progress, resource, fraction)

        device = await asyncio.to_thread(self.engine.load, report)
        self.label = f"on-device ({device})"
        return self.label

    async def infer(self, chunk: AudioChunk, task: Task) -> InferenceResult:
        whisper_task = "translate" if task is Task.TRANSLATE else "transcribe"
        text = await asyncio.to_thread(
            self.engine.run, chunk.samples, task=whisper_task, language=self.language
        )
        if task is Task.TRANSLATE:
            return InferenceResult(translated_text=text)
        return InferenceResult(source_text=text)


class CloudDirectBackend(InferenceBackend):
    name = "cloud-direct"

    def __init__(self, client: CloudClient) -> None:
        super().__init__()
        self.client = client
        self.label = "cloud (OpenAI)"

    async def load(self, on_progress: Optional[ProgressCallback] = None) -> str:
        return _require_key(self.client, self.label)

    async def infer(self, chunk: AudioChunk, task: Task) -> InferenceResult:
        if task is Task.TRANSLATE:
            return InferenceResult(translated_text=await self.client.translate_audio(chunk))
        text = await self.client.transcribe(chunk, model=self.client.settings.cloud_direct_model)
        return InferenceResult(source_text=text)

    async def close(self) -> None:
        await self.client.close()


class CloudTwoStageBackend(InferenceBackend):
    name = "cloud-two-stage"
    direct = False

    def __init__(self, client: CloudClient, *, language: str | None = None) -> None:
        super().__init__()
        self.client = client
        self.language = language
        self.label = "cloud (OpenAI)"

    async def load(self, on_progress: Optional[ProgressCallback] = None) -> str:
        return _require_key(self.client, self.label)

    async def infer(self, chunk: AudioChunk, task: Task) -> InferenceResult:
        text = await self.client.transcribe(chunk, language=self.language)
        return InferenceResult(source_text=text)

    async def translate(self, text: str) -> str:
        return await self.client.translate_text(text)

    async def close(self) -> None:
        await self.client.close()


def _require_key(client: CloudClient, label: str) -> str:
    if not client.configured:
        raise ApiError("OpenAI API key required; set OPENAI_API_KEY")
    return label


def create_backend(
    settings: PipelineSettings,
    *,
    client: Optional[CloudClient] = None,
    engine: Optional[WhisperEngine] = None,
) -> InferenceBackend:
    """Build the strategy named by ``settings.backend``.
    """
    LOGGER.info("Using %s backend", settings.backend)
    if settings.backend == "on-device-direct":
        return OnDeviceDirectBackend(engine or WhisperEngine(settings), language=settings.source_language)
    client = client or CloudClient(settings)
    if settings.backend == "cloud-direct":
        return CloudDirectBackend(client)
    return CloudTwoStageBackend(client, language=settings.source_language)


__all__ = [
    "CloudDirectBackend",
    "CloudTwoStageBackend",
    "InferenceBackend",
    "InferenceResult",
    "OnDeviceDirectBackend",
    "Task",
    "create_backend",
]
