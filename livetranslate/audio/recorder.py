"""Microphone capture loop producing back-to-back fixed-duration chunks."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

import numpy as np

from .types import AudioChunk

LOGGER = logging.getLogger("livetranslate.capture")

StreamFactory = Callable[[int, int], Any]


class CaptureError(Exception):
    pass


class CaptureLoop:
    """Record ``chunk_seconds`` of audio at a time on a background thread.

    The next read starts as soon as the previous chunk has been handed to
    ``on_chunk``, so ``on_chunk`` must return quickly (hand the chunk to an event
    loop, not process it). ``stream_factory(sample_rate, channels)`` must return
    an object with ``start``, ``read(frames) -> (data, overflowed)``, ``stop``
    and ``close``; by default a ``sounddevice.InputStream`` is opened.
    """

    def __init__(
        self,
        on_chunk: Callable[[AudioChunk], None],
        *,
        sample_rate: int = 16000,
        chunk_seconds: float = 1.5,
        channels: int = 1,
        stream_factory: Optional[StreamFactory] = None,
        on_error: Optional[Callable[[CaptureError], None]] = None,
    ) -> None:
        self.on_chunk = on_chunk
        self.sample_rate = sample_rate
        self.chunk_seconds = chunk_seconds
        self.channels = channels
        self.frames = max(1, int(sample_rate * chunk_seconds))
        self.stream_factory = stream_factory
        self.on_error = on_error
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()
        self._sequence = 0

    @classmethod
    def from_settings(cls, settings, on_chunk: Callable[[AudioChunk], None], **kwargs: Any) -> "CaptureLoop":
        return cls(
            on_chunk,
            sample_rate=settings.sample_rate,
            chunk_seconds=settings.chunk_seconds,
            channels=settings.channels,
            **kwargs,
        )

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="livetranslate-capture", daemon=True)
        self._thread.start()
        LOGGER.info("Capture started (%.1fs chunks at %d Hz)", self.chunk_seconds, self.sample_rate)

    def stop(self, timeout: float | None = None) -> None:
        """Stop after the chunk being recorded is handed off."""
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=timeout if timeout is not None else self.chunk_seconds + 2)
        self._thread = None
        LOGGER.info("Capture stopped after %d chunk(s)", self._sequence)

    def _loop(self) -> None:
        try:
            stream = self._open_stream()
        except CaptureError as exc:
            self._fail(exc)
            return
        try:
            stream.start()
            while not self._stop.is_set():
                self._handoff(self._read(stream))
        except CaptureError as exc:
            self._fail(exc)
        finally:
            self._close_stream(stream)

    def _open_stream(self) -> Any:
        if self.stream_factory is not None:
            return self.stream_factory(self.sample_rate, self.channels)
        try:
            import sounddevice as sd
        except (ImportError, OSError) as exc:
            raise CaptureError(f"sounddevice unavailable: {exc}") from exc
        try:
            return sd.InputStream(samplerate=self.sample_rate, channels=self.channels, dtype="float32")
        except Exception as exc:
            raise CaptureError(f"Unable to open input stream: {exc}") from exc

    def _read(self, stream: Any) -> np.ndarray:
        try:
            data, overflowed = stream.read(self.frames)
        except Exception as exc:
            raise CaptureError(f"Audio read failed: {exc}") from exc
        if overflowed:
            LOGGER.warning("Input overflow while recording chunk %d", self._sequence)
        return np.asarray(data)

    def _handoff(self, data: np.ndarray) -> None:
        chunk = AudioChunk.from_pcm(data, self.sample_rate, sequence=self._sequence)
        self._sequence += 1
        self.on_chunk(chunk)

    def _close_stream(self, stream: Any) -> None:
        try:
            stream.stop()
            stream.close()
        except Exception as exc:
            LOGGER.warning("Error closing input stream: %s", exc)

    def _fail(self, exc: CaptureError) -> None:
        LOGGER.error("Capture failed: %s", exc)
        if self.on_error:
            self.on_error(exc)


__all__ = ["CaptureError", "CaptureLoop"]
