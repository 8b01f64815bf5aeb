"""Pipeline settings resolved from the environment."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field, field_validator

BACKENDS = ("on-device-direct", "cloud-direct", "cloud-two-stage")
TASKS = ("recognize", "translate")


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    return int(raw) if raw else None


class PipelineSettings(BaseModel):
    backend: str = Field(default_factory=lambda: os.getenv("LIVETRANSLATE_BACKEND", "cloud-two-stage"))
    task: str = Field(default_factory=lambda: os.getenv("LIVETRANSLATE_TASK", "translate"))
    source_language: str = Field(default_factory=lambda: os.getenv("SOURCE_LANGUAGE", "ko"))
    source_language_name: str = Field(default_factory=lambda: os.getenv("SOURCE_LANGUAGE_NAME", "Korean"))
    target_language_name: str = Field(default_factory=lambda: os.getenv("TARGET_LANGUAGE_NAME", "English"))

    openai_api_key: str | None = Field(default_factory=lambda: os.getenv("OPENAI_API_KEY"))
    openai_base_url: str | None = Field(default_factory=lambda: os.getenv("OPENAI_BASE_URL"))
    request_timeout: float = Field(default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT", "30")))
    cloud_direct_model: str = Field(default_factory=lambda: os.getenv("CLOUD_DIRECT_MODEL", "whisper-1"))
    transcribe_model: str = Field(default_factory=lambda: os.getenv("TRANSCRIBE_MODEL", "gpt-4o-transcribe"))
    translate_model: str = Field(default_factory=lambda: os.getenv("TRANSLATE_MODEL", "gpt-4.1"))
    sentence_buffered: bool = Field(default_factory=lambda: _flag("SENTENCE_BUFFERED", "true"))
    sentence_model: str = Field(default_factory=lambda: os.getenv("SENTENCE_MODEL", "gpt-4.1"))
    proofreading: bool = Field(default_factory=lambda: _flag("PROOFREADING", "true"))
    proofread_model: str = Field(default_factory=lambda: os.getenv("PROOFREAD_MODEL", "gpt-4.1"))
    proofread_context_size: int = Field(
        default_factory=lambda: int(os.getenv("PROOFREAD_CONTEXT_SIZE", "20")), ge=1
    )

    whisper_model: str = Field(default_factory=lambda: os.getenv("WHISPER_MODEL", "small"))
    whisper_device: str = Field(default_factory=lambda: os.getenv("WHISPER_DEVICE", "auto"))
    whisper_compute_type: str = Field(default_factory=lambda: os.getenv("WHISPER_COMPUTE_TYPE", "default"))
    whisper_beam_size: int = Field(default_factory=lambda: int(os.getenv("WHISPER_BEAM_SIZE", "5")), ge=1)

    sample_rate: int = Field(default=16000)
    channels: int = Field(default=1)
    cloud_chunk_seconds: float = Field(default_factory=lambda: float(os.getenv("CLOUD_CHUNK_SECONDS", "1.5")))
    local_chunk_seconds: float = Field(default_factory=lambda: float(os.getenv("LOCAL_CHUNK_SECONDS", "2.0")))

    silence_threshold: float = Field(default_factory=lambda: float(os.getenv("SILENCE_THRESHOLD", "0.01")))
    speech_threshold: float = Field(default_factory=lambda: float(os.getenv("SPEECH_THRESHOLD", "0.04")))
    gate_frame_ms: int = Field(default=100, gt=0)
    min_speech_frames: int = Field(default=2, ge=1)

    recent_outputs_size: int = Field(default=10, ge=1)
    duplicate_limit: int = Field(default=2, ge=1)

    queue_max: int = Field(default_factory=lambda: int(os.getenv("QUEUE_MAX", "8")), ge=0)

    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    metrics_port: int | None = Field(default_factory=lambda: _optional_int("METRICS_PORT"))

    @field_validator("backend")
    @classmethod
    def _known_backend(cls, value: str) -> str:
        if value not in BACKENDS:
            raise ValueError(f"backend must be one of {', '.join(BACKENDS)}")
        return value

    @field_validator("task")
    @classmethod
    def _known_task(cls, value: str) -> str:
        if value not in TASKS:
            raise ValueError(f"task must be one of {', '.join(TASKS)}")
        return value

    @property
    def is_cloud(self) -> bool:
        return self.backend != "on-device-direct"

    @property
    def chunk_seconds(self) -> float:
        return self.cloud_chunk_seconds if self.is_cloud else self.local_chunk_seconds


@lru_cache()
def get_settings() -> PipelineSettings:
    return PipelineSettings()
