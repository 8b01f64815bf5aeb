"""Dataclasses shared between the capture loop and the pipeline controller."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Union

import numpy as np


@dataclass(slots=True, frozen=True)
class AudioChunk:
    """Fixed-duration mono float32 buffer, normalized to [-1, 1]."""

    samples: np.ndarray
    sample_rate: int
    sequence: int = 0
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        samples = np.array(self.samples, dtype=np.float32)
        samples.setflags(write=False)
        object.__setattr__(self, "samples", samples)

    @classmethod
    def from_pcm(
        cls,
        pcm: np.ndarray,
        sample_rate: int,
        *,
        sequence: int = 0,
        captured_at: datetime | None = None,
    ) -> "AudioChunk":
        data = np.asarray(pcm)
        if data.ndim > 1:
            data = data[:, 0]
        if data.dtype == np.int16:
            samples = data.astype(np.float32) / 32768.0
        else:
            samples = data
        return cls(
            samples=samples,
            sample_rate=sample_rate,
            sequence=sequence,
            captured_at=captured_at or datetime.now(timezone.utc),
        )

    @property
    def duration_s(self) -> float:
        return len(self.samples) / float(self.sample_rate) if self.sample_rate else 0.0


@dataclass(slots=True, frozen=True)
class StartSession:
    kind: str = field(default="start-session", init=False)


@dataclass(slots=True, frozen=True)
class StopSession:
    kind: str = field(default="stop-session", init=False)


@dataclass(slots=True, frozen=True)
class ChunkMessage:
    audio: AudioChunk
    kind: str = field(default="chunk", init=False)


ControllerMessage = Union[StartSession, StopSession, ChunkMessage]
