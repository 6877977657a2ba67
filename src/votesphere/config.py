# Config Module
# AUTO-DOC-INDEX
#
# ES: Índice rápido
#   1) Propósito del módulo
#   2) Componentes principales
#   3) Puntos de extensión
#
# EN: Quick index
#   1) Module purpose
#   2) Main components
#   3) Extension points
#
# Secciones / Sections:
#   - Configuración / Configuration
#   - Lógica principal / Core logic
#   - Integraciones / Integrations

"""Configuración validada del cliente VoteSphere.

Validated VoteSphere client configuration.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import AnyUrl, Field, TypeAdapter, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .config_loader import load_yaml_config

ENV_PREFIX = "VOTESPHERE_"
_ENV_PATH = Path(".env")
_ENV_LOCAL_PATH = Path(".env.local")
load_dotenv(_ENV_PATH, override=False)
load_dotenv(_ENV_LOCAL_PATH, override=False)

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class ClientSettings(BaseSettings):
    """Variables de entorno y archivo .env del cliente.

    English: Environment variables and .env file for the client.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        extra="ignore",
    )

    API_URL: str = "http://localhost:5656/api"
    REQUEST_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)
    LOG_LEVEL: str = "INFO"
    STORAGE_PATH: Path = Path(".votesphere")
    TOKEN_FILE: str = "ballot_token.json"

    @field_validator("API_URL")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        """Validate URLs without changing the stored type."""
        TypeAdapter(AnyUrl).validate_python(value)
        return value.rstrip("/")

    @field_validator("LOG_LEVEL")
    @classmethod
    def _validate_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return normalized

    @property
    def token_file_path(self) -> Path:
        return self.STORAGE_PATH / self.TOKEN_FILE


def _file_overrides(config_path: Optional[str | Path]) -> Dict[str, Any]:
    """Valores del YAML que el entorno no sobreescribe.

    English: YAML values not shadowed by an environment variable.
    """
    if not config_path:
        return {}
    raw = load_yaml_config(config_path, required=True)
    # pydantic-settings compara nombres sin distinguir mayúsculas.
    # English: pydantic-settings matches env names case-insensitively.
    env_names = {key.upper() for key in os.environ}
    overrides: Dict[str, Any] = {}
    for key, value in raw.items():
        name = str(key).upper()
        if f"{ENV_PREFIX}{name}" in env_names:
            continue
        overrides[name] = value
    return overrides


def load_config(config_path: Optional[str | Path] = None) -> ClientSettings:
    """/** Carga y valida configuración, fallando con detalle. / Load and validate configuration, failing with details. **/"""
    try:
        return ClientSettings(**_file_overrides(config_path))
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc
