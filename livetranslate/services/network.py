"""OpenAI client helpers for the cloud recognition and text collaborators."""

from __future__ import annotations

import io
import logging
from typing import Any, Optional

import openai
import soundfile as sf
from openai import NOT_GIVEN, AsyncOpenAI

from ..audio.types import AudioChunk
from ..settings import PipelineSettings

LOGGER = logging.getLogger("livetranslate.network")


class ApiError(Exception):
    pass


def encode_wav(chunk: AudioChunk) -> bytes:
    buffer = io.BytesIO()
    samples = chunk.samples.clip(-1.0, 1.0)
    sf.write(buffer, samples, chunk.sample_rate, format="WAV", subtype="PCM_16")
    return buffer.getvalue()


class CloudClient:
    def __init__(self, settings: PipelineSettings, *, client: Optional[AsyncOpenAI] = None) -> None:
        self.settings = settings
        if client is None and settings.openai_api_key:
            client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
                timeout=settings.request_timeout,
                max_retries=0,
            )
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None

    def _api(self) -> AsyncOpenAI:
        if self._client is None:
            raise ApiError("OpenAI API key required; set OPENAI_API_KEY")
        return self._client

    async def transcribe(self, chunk: AudioChunk, *, model: str | None = None, language: str | None = None) -> str:
        """Recognize ``chunk`` as source-language text."""
        payload = encode_wav(chunk)
        LOGGER.debug("Uploading %.2fs chunk %d for transcription", chunk.duration_s, chunk.sequence)
        try:
            result = await self._api().audio.transcriptions.create(
                model=model or self.settings.transcribe_model,
                file=("audio.wav", payload, "audio/wav"),
                language=language or NOT_GIVEN,
                response_format="json",
            )
        except openai.APIStatusError as exc:
            raise ApiError(f"Transcribe error: {exc.status_code} {exc.message}") from exc
        except (openai.APIError, ValueError) as exc:
            raise ApiError(f"Transcribe error: {exc}") from exc
        return _text_field(result, "Transcribe")

    async def translate_audio(self, chunk: AudioChunk) -> str:
        payload = encode_wav(chunk)
        LOGGER.debug("Uploading %.2fs chunk %d for translation", chunk.duration_s, chunk.sequence)
        try:
            result = await self._api().audio.translations.create(
                model=self.settings.cloud_direct_model,
                file=("audio.wav", payload, "audio/wav"),
                response_format="json",
            )
        except openai.APIStatusError as exc:
            raise ApiError(f"API error: {exc.status_code} {exc.message}") from exc
        except (openai.APIError, ValueError) as exc:
            raise ApiError(f"API error: {exc}") from exc
        return _text_field(result, "Translate")

    async def complete(
        self,
        *,
        model: str,
        system: str,
        user: str,
        temperature: float = 0.0,
        max_tokens: int = 1000,
        json_mode: bool = False,
    ) -> str:
        """Run one chat completion and return the stripped message content."""
        try:
            result = await self._api().chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
                response_format={"type": "json_object"} if json_mode else NOT_GIVEN,
            )
        except openai.APIStatusError as exc:
            raise ApiError(f"Completion error: {exc.status_code} {exc.message}") from exc
        except (openai.APIError, ValueError) as exc:
            raise ApiError(f"Completion error: {exc}") from exc
        choices = getattr(result, "choices", None) or []
        if not choices:
            raise ApiError("Completion error: response has no choices")
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        return content.strip() if isinstance(content, str) else ""

    async def translate_text(self, text: str) -> str:
        source = self.settings.source_language_name
        target = self.settings.target_language_name
        return await self.complete(
            model=self.settings.translate_model,
            system=(
                f"Translate the following {source} text to {target}. "
                f"Output ONLY the {target} translation, nothing else."
            ),
            user=text,
            temperature=0.3,
            max_tokens=500,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()


def _text_field(result: Any, label: str) -> str:
    text = getattr(result, "text", None)
    if not isinstance(text, str):
        raise ApiError(f"{label} error: malformed response")
    return text


__all__ = ["ApiError", "CloudClient", "encode_wav"]
