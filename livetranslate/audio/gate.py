"""Cheap energy gate deciding whether a chunk is worth an inference call."""

from __future__ import annotations

import numpy as np


class ChunkGate:
    """Rejects silent chunks and chunks without sustained speech energy.

    A chunk passes when its overall RMS reaches ``silence_threshold`` and at
    least ``min_speech_frames`` frames of ``frame_ms`` each have an RMS above
    ``speech_threshold``. Both thresholds apply to samples normalized to [-1, 1].
    """

    def __init__(
        self,
        sample_rate: int,
        *,
        silence_threshold: float = 0.01,
        speech_threshold: float = 0.04,
        frame_ms: int = 100,
        min_speech_frames: int = 2,
    ) -> None:
        self.sample_rate = sample_rate
        self.silence_threshold = float(silence_threshold)
        self.speech_threshold = float(speech_threshold)
        self.frame_len = max(1, int(sample_rate * frame_ms / 1000))
        self.min_speech_frames = max(1, int(min_speech_frames))

    @classmethod
    def from_settings(cls, settings) -> "ChunkGate":
        return cls(
            settings.sample_rate,
            silence_threshold=settings.silence_threshold,
            speech_threshold=settings.speech_threshold,
            frame_ms=settings.gate_frame_ms,
            min_speech_frames=settings.min_speech_frames,
        )

    def accepts(self, samples: np.ndarray) -> bool:
        data = np.asarray(samples, dtype=np.float32)
        if data.size == 0:
            return False
        if self.rms(data) < self.silence_threshold:
            return False
        return self.speech_frames(data) >= self.min_speech_frames

    def speech_frames(self, samples: np.ndarray) -> int:
        data = np.asarray(samples, dtype=np.float32)
        count = data.size // self.frame_len
        if count == 0:
            return 0
        frames = data[: count * self.frame_len].reshape(count, self.frame_len)
        frame_rms = np.sqrt(np.mean(np.square(frames, dtype=np.float64), axis=1))
        return int(np.count_nonzero(frame_rms > self.speech_threshold))

    @staticmethod
    def rms(samples: np.ndarray) -> float:
        data = np.asarray(samples, dtype=np.float32)
        if data.size == 0:
            return 0.0
        return float(np.sqrt(np.mean(np.square(data, dtype=np.float64))))
