import logging

import pytest

import config


def test_configure_logging_installs_standard_format(monkeypatch):
    calls = []
    monkeypatch.setattr(config.logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    config.configure_logging("DEBUG")

    assert len(calls) == 1
    assert calls[0]["level"] == "DEBUG"
    assert calls[0]["format"] == config.LOG_FORMAT
    assert isinstance(calls[0]["handlers"][0], logging.StreamHandler)


def test_configure_logging_defaults_to_env_level(monkeypatch):
    calls = []
    monkeypatch.setattr(config.logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    config.configure_logging()

    assert calls[0]["level"] == config.LOG_LEVEL


@pytest.mark.parametrize("name", ["short", "medium", "long"])
def test_horizon_table_is_complete(name):
    assert set(config.HORIZONS[name]) == {"window", "rsi_period", "adx_period"}
    assert config.DEFAULT_HORIZON in config.HORIZONS
    assert config.DEFAULT_RANGE in config.RANGES
