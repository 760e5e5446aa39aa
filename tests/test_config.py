# tests/test_config.py
from pathlib import Path

import pytest

from jobradar.config import PACKAGED_TEMPLATES_DIR, load_settings
from jobradar.errors import ConfigError


def test_defaults():
    settings = load_settings({})

    assert settings.service_url == ""
    assert settings.timeout == 60.0
    assert settings.batch_delay == 1.0
    assert settings.sink == "json"
    assert settings.store_dir == Path("data")
    assert settings.templates_dir == PACKAGED_TEMPLATES_DIR
    with pytest.raises(ConfigError, match="SECRETARY_SERVICE_URL"):
        settings.require_service_url()


def test_values_from_env(tmp_path):
    settings = load_settings(
        {
            "SECRETARY_SERVICE_URL": " https://secretary.example.org/api/ ",
            "SECRETARY_SERVICE_API_KEY": "k",
            "JOBRADAR_TIMEOUT": "120",
            "JOBRADAR_BATCH_DELAY": "0",
            "JOBRADAR_SINK": "Sheets",
            "JOBRADAR_SHEET_ID": "abc",
            "JOBRADAR_TEMPLATES_DIR": str(tmp_path),
        }
    )

    assert settings.require_service_url() == "https://secretary.example.org/api"
    assert settings.timeout == 120.0
    assert settings.batch_delay == 0.0
    assert settings.sink == "sheets"
    assert settings.sheet_id == "abc"
    assert settings.templates_dir == tmp_path


def test_reads_process_environment(monkeypatch):
    monkeypatch.setenv("SECRETARY_SERVICE_URL", "https://s.example.org")
    assert load_settings().service_url == "https://s.example.org"


@pytest.mark.parametrize(
    "env",
    [
        {"JOBRADAR_TIMEOUT": "soon"},
        {"JOBRADAR_BATCH_DELAY": "-1"},
        {"JOBRADAR_SINK": "postgres"},
    ],
)
def test_invalid_values(env):
    with pytest.raises(ConfigError):
        load_settings(env)
