import threading
import time

import numpy as np

from livetranslate.audio.recorder import CaptureError, CaptureLoop
from livetranslate.settings import PipelineSettings


class FakeStream:
    def __init__(self, fail_after=None):
        self.fail_after = fail_after
        self.reads = 0
        self.started = False
        self.closed = False

    def start(self):
        self.started = True

    def read(self, frames):
        if self.fail_after is not None and self.reads >= self.fail_after:
            raise OSError("device unplugged")
        self.reads += 1
        time.sleep(0.001)
        return np.full((frames, 1), 0.1, dtype=np.float32), False

    def stop(self):
        pass

    def close(self):
        self.closed = True


def test_chunks_are_numbered_back_to_back():
    stream = FakeStream()
    chunks = []
    enough = threading.Event()

    def on_chunk(chunk):
        chunks.append(chunk)
        if len(chunks) >= 3:
            enough.set()

    capture = CaptureLoop(on_chunk, sample_rate=16_000, chunk_seconds=0.1, stream_factory=lambda rate, ch: stream)
    capture.start()
    assert enough.wait(timeout=2)
    capture.stop()

    assert capture.running is False
    assert stream.started and stream.closed
    assert [chunk.sequence for chunk in chunks] == list(range(len(chunks)))
    assert all(len(chunk.samples) == 1600 for chunk in chunks)
    assert chunks[0].samples.dtype == np.float32
    assert len(chunks) == stream.reads


def test_read_failure_is_reported():
    errors = []
    reported = threading.Event()

    def on_error(exc):
        errors.append(exc)
        reported.set()

    stream = FakeStream(fail_after=1)
    capture = CaptureLoop(
        lambda chunk: None,
        chunk_seconds=0.1,
        stream_factory=lambda rate, ch: stream,
        on_error=on_error,
    )
    capture.start()
    assert reported.wait(timeout=2)
    capture.stop()

    assert isinstance(errors[0], CaptureError)
    assert "device unplugged" in str(errors[0])
    assert stream.closed


def test_open_failure_is_reported():
    errors = []

    def factory(rate, channels):
        raise CaptureError("no input device")

    capture = CaptureLoop(lambda chunk: None, stream_factory=factory, on_error=errors.append)
    capture.start()
    capture.stop()

    assert [str(exc) for exc in errors] == ["no input device"]


def test_chunk_length_follows_backend():
    cloud = CaptureLoop.from_settings(PipelineSettings(backend="cloud-two-stage"), lambda chunk: None)
    local = CaptureLoop.from_settings(PipelineSettings(backend="on-device-direct"), lambda chunk: None)
    assert cloud.frames == 24_000
    assert local.frames == 32_000
