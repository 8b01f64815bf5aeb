"""Lazy faster-whisper loader for on-device recognition and translation."""

from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Iterable, Optional

import numpy as np

from ..settings import PipelineSettings

LOGGER = logging.getLogger("livetranslate.whisper")

ProgressCallback = Callable[[str, float], None]


class EngineError(Exception):
    pass


class WhisperEngine:
    """Thin wrapper that loads Whisper on demand."""

    def __init__(self, settings: PipelineSettings) -> None:
        self.settings = settings
        self._lock = threading.Lock()
        self._model = None
        self.device: str | None = None

    @property
    def loaded(self) -> bool:
        return self._model is not None

    def load(self, on_progress: Optional[ProgressCallback] = None) -> str:
        """Download and load the model once; returns the resolved device."""
        if self._model is not None:
            return self.device or "cpu"
        with self._lock:
            if self._model is None:
                self._model = self._build_model(on_progress)
        return self.device or "cpu"

    def _build_model(self, on_progress: Optional[ProgressCallback]):
        from faster_whisper import WhisperModel, download_model

        name = self.settings.whisper_model
        report = on_progress or (lambda resource, fraction: None)
        self.device = self._resolve_device(self.settings.whisper_device)
        report(name, 0.0)
        try:
            path = name if os.path.isdir(name) else download_model(name)
            report(name, 0.5)
            model = WhisperModel(
                path,
                device=self.device,
                compute_type=self.settings.whisper_compute_type,
            )
        except Exception as exc:  # pragma: no cover - hardware/env dep
            LOGGER.error("Failed to load Whisper model '%s': %s", name, exc)
            raise EngineError(f"Failed to load Whisper model '{name}': {exc}") from exc
        report(name, 1.0)
        LOGGER.info("Whisper model '%s' loaded on %s", name, self.device)
        return model

    @staticmethod
    def _resolve_device(requested: str) -> str:
        if requested != "auto":
            return requested
        import ctranslate2

        return "cuda" if ctranslate2.get_cuda_device_count() > 0 else "cpu"

    def run(self, audio: np.ndarray, *, task: str = "translate", language: str | None = None) -> str:
        """Run one blocking inference call; ``task`` is ``transcribe`` or ``translate``."""
        if self._model is None:
            raise EngineError("Model not loaded")
        try:
            segments, _info = self._model.transcribe(
                np.asarray(audio, dtype=np.float32),
                language=language,
                task=task,
                beam_size=self.settings.whisper_beam_size,
                condition_on_previous_text=False,
            )
            return _join_segments(segments)
        except Exception as exc:
            raise EngineError(f"Transcription failed: {exc}") from exc


def _join_segments(segments: Iterable) -> str:
    pieces = [getattr(segment, "text", "").strip() for segment in segments]
    return " ".join(piece for piece in pieces if piece).strip()


__all__ = ["EngineError", "WhisperEngine"]
