"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `tests/test_config.py`.
Pruebas de configuración del cliente.

Componentes detectados:
  - test_load_config_defaults
  - test_load_config_reads_environment
  - test_yaml_file_is_overridden_by_environment
  - test_load_config_rejects_invalid_url
  - test_load_config_rejects_non_mapping_yaml
  - test_lowercase_environment_variable_beats_yaml

======================== ENGLISH ========================
File: `tests/test_config.py`.
Client configuration tests.
"""

from pathlib import Path

import pytest

from votesphere.config import ClientSettings, load_config

ENV_KEYS = (
    "VOTESPHERE_API_URL",
    "VOTESPHERE_REQUEST_TIMEOUT_SECONDS",
    "VOTESPHERE_LOG_LEVEL",
    "VOTESPHERE_STORAGE_PATH",
    "VOTESPHERE_TOKEN_FILE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_load_config_defaults():
    """Español: Función test_load_config_defaults del módulo tests/test_config.py.

    English: Defaults point at a local API with a 10 s timeout.
    """
    settings = load_config()

    assert settings.API_URL == "http://localhost:5656/api"
    assert settings.REQUEST_TIMEOUT_SECONDS == 10.0
    assert settings.LOG_LEVEL == "INFO"
    assert settings.token_file_path == Path(".votesphere") / "ballot_token.json"


def test_load_config_reads_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("VOTESPHERE_API_URL", "https://vote.example.com/api/")
    monkeypatch.setenv("VOTESPHERE_LOG_LEVEL", "debug")
    monkeypatch.setenv("VOTESPHERE_STORAGE_PATH", str(tmp_path))

    settings = load_config()

    assert settings.API_URL == "https://vote.example.com/api"
    assert settings.LOG_LEVEL == "DEBUG"
    assert settings.STORAGE_PATH == Path(tmp_path)


def test_yaml_file_is_overridden_by_environment(monkeypatch, tmp_path):
    config_path = tmp_path / "client.yaml"
    config_path.write_text(
        "api_url: https://yaml.example.com/api\nrequest_timeout_seconds: 4\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("VOTESPHERE_REQUEST_TIMEOUT_SECONDS", "7")

    settings = load_config(config_path)

    assert settings.API_URL == "https://yaml.example.com/api"
    assert settings.REQUEST_TIMEOUT_SECONDS == 7.0


def test_load_config_rejects_invalid_url(monkeypatch):
    monkeypatch.setenv("VOTESPHERE_API_URL", "not a url")

    with pytest.raises(ValueError):
        load_config()


def test_load_config_rejects_non_positive_timeout(monkeypatch):
    monkeypatch.setenv("VOTESPHERE_REQUEST_TIMEOUT_SECONDS", "0")

    with pytest.raises(ValueError):
        load_config()


def test_load_config_rejects_non_mapping_yaml(tmp_path):
    config_path = tmp_path / "client.yaml"
    config_path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(config_path)


def test_load_config_requires_existing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_lowercase_environment_variable_beats_yaml(monkeypatch, tmp_path):
    config_path = tmp_path / "client.yaml"
    config_path.write_text("request_timeout_seconds: 4\n", encoding="utf-8")
    monkeypatch.setenv("votesphere_request_timeout_seconds", "7")

    settings = load_config(config_path)

    assert settings.REQUEST_TIMEOUT_SECONDS == 7.0


def test_dotenv_is_loaded_once_through_environment():
    assert ClientSettings.model_config.get("env_file") is None
