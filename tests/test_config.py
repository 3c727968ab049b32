"""Signals configuration tests"""

import json

import pytest

from messenger_sales_bot.core.config import ConfigError, load_config
from messenger_sales_bot.core.models import DEFAULT_TOPICS


def test_defaults_without_file():
    config = load_config()
    assert config.debounce_seconds == 3.0
    assert config.debounce_max_wait_seconds is None
    assert config.timezone == "America/Mexico_City"
    assert config.history_window == 3
    assert config.topics == DEFAULT_TOPICS


def test_missing_file_uses_defaults(tmp_path):
    config = load_config(tmp_path / "missing.json")
    assert config.debounce_seconds == 3.0


def test_values_from_file(tmp_path):
    path = tmp_path / "signals.json"
    path.write_text(json.dumps({"debounce_seconds": 5, "debounce_max_wait_seconds": 8}), encoding="utf-8")

    config = load_config(path)

    assert config.debounce_seconds == 5.0
    assert config.debounce_max_wait_seconds == 8.0


def test_environment_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "signals.json"
    path.write_text(json.dumps({"debounce_seconds": 5}), encoding="utf-8")
    monkeypatch.setenv("DEBOUNCE_SECONDS", "2.5")
    monkeypatch.setenv("AI_MODEL", "claude-test")

    config = load_config(path)

    assert config.debounce_seconds == 2.5
    assert config.classifier_model == "claude-test"


def test_invalid_json(tmp_path):
    path = tmp_path / "signals.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_invalid_value(monkeypatch):
    monkeypatch.setenv("DEBOUNCE_SECONDS", "-1")
    with pytest.raises(ConfigError):
        load_config()


def test_unknown_timezone(monkeypatch):
    monkeypatch.setenv("SIGNALS_TIMEZONE", "Mars/Olympus")
    with pytest.raises(ConfigError):
        load_config()
