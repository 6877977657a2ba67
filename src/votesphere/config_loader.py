"""Cargador YAML opcional para la configuración del cliente.
Bilingual: Optional YAML loader for the client configuration.

Provides a single entry point for reading the YAML file passed with
``--config``; values are later merged under environment variables.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml

logger = structlog.get_logger(__name__)


def load_yaml_config(
    path: str | Path,
    *,
    defaults: Optional[Dict[str, Any]] = None,
    required: bool = False,
) -> Dict[str, Any]:
    """Load a YAML configuration file and merge with optional defaults.
    Bilingual: Carga un archivo YAML y lo fusiona con defaults opcionales.

    Args:
        path: Relative or absolute path to the YAML file.
        defaults: Default values to merge under the loaded config.
        required: If True, raise FileNotFoundError when file is missing.

    Returns:
        Merged configuration dictionary. Never returns None.

    Raises:
        FileNotFoundError: When ``required=True`` and the file does not exist.
        ValueError: When the YAML file contains syntax errors or is not a mapping.
    """
    defaults = defaults or {}
    resolved = Path(path)
    if not resolved.is_absolute():
        resolved = Path.cwd() / resolved

    if not resolved.exists():
        if required:
            raise FileNotFoundError(
                f"Configuration file not found / Archivo de configuracion no encontrado: {resolved}"
            )
        logger.info("config_file_missing", path=str(resolved))
        return dict(defaults)

    try:
        payload = yaml.safe_load(resolved.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(
            f"YAML syntax error in / Error de sintaxis YAML en {resolved}: {exc}"
        ) from exc

    if payload is None:
        logger.warning("config_file_empty", path=str(resolved))
        return dict(defaults)

    if not isinstance(payload, dict):
        raise ValueError(
            f"Config file must be a YAML mapping / "
            f"Archivo de config debe ser un mapa YAML: {resolved}"
        )

    merged: Dict[str, Any] = {**defaults, **payload}
    logger.info("config_file_loaded", path=str(resolved), keys=len(merged))
    return merged
