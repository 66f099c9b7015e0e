"""
Tests for configuration loading.
"""

import logging

import pytest

import loopstream.config as config_module
from loopstream.config import StreamClientConfig, get_config, reload_config, setup_logging


@pytest.fixture(autouse=True)
def reset_global_config():
    config_module._config = None
    yield
    config_module._config = None


def test_defaults():
    config = StreamClientConfig()
    assert config.base_url == "http://127.0.0.1:7700"
    assert config.token is None
    assert config.initial_backoff_ms == 1000
    assert config.backoff_multiplier == 2.0
    assert config.max_backoff_ms == 30000
    assert config.backoff_jitter == 0.0


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("LOOPSTREAM_BASE_URL", "http://10.0.0.5:7700")
    monkeypatch.setenv("LOOPSTREAM_TOKEN", "abc")
    monkeypatch.setenv("LOOPSTREAM_MAX_BACKOFF_MS", "5000")

    config = StreamClientConfig()

    assert config.base_url == "http://10.0.0.5:7700"
    assert config.token == "abc"
    assert config.max_backoff_ms == 5000


def test_invalid_jitter_rejected():
    with pytest.raises(ValueError):
        StreamClientConfig(backoff_jitter=2)


def test_get_config_is_cached():
    assert get_config() is get_config()


def test_reload_config(monkeypatch):
    first = get_config()
    monkeypatch.setenv("LOOPSTREAM_TOKEN", "fresh")

    second = reload_config()

    assert second is not first
    assert second.token == "fresh"


def test_debug_logging_level():
    setup_logging(StreamClientConfig(debug=True))
    assert logging.getLogger("loopstream").level == logging.DEBUG
    logging.getLogger("loopstream").setLevel(logging.NOTSET)


def test_quiet_http_loggers():
    setup_logging(StreamClientConfig(debug=False))
    assert logging.getLogger("httpx").level == logging.WARNING
