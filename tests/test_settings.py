import pytest
from pydantic import ValidationError

from livetranslate.settings import PipelineSettings, get_settings


def test_defaults():
    settings = PipelineSettings(backend="cloud-two-stage", task="translate")
    assert settings.sample_rate == 16_000
    assert settings.silence_threshold == 0.01
    assert settings.speech_threshold == 0.04
    assert settings.duplicate_limit == 2
    assert settings.is_cloud
    assert settings.chunk_seconds == 1.5


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("LIVETRANSLATE_BACKEND", "on-device-direct")
    monkeypatch.setenv("PROOFREADING", "0")
    monkeypatch.setenv("QUEUE_MAX", "3")
    monkeypatch.setenv("METRICS_PORT", "9100")
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.backend == "on-device-direct"
        assert settings.proofreading is False
        assert settings.queue_max == 3
        assert settings.metrics_port == 9100
        assert settings.chunk_seconds == 2.0
        assert get_settings() is settings
    finally:
        get_settings.cache_clear()


def test_unknown_backend_is_rejected():
    with pytest.raises(ValidationError):
        PipelineSettings(backend="carrier-pigeon")


def test_unknown_task_is_rejected():
    with pytest.raises(ValidationError):
        PipelineSettings(task="summarize")
