# Token Store Module
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

"""Ranura persistente del token de papeleta.

Persistence slot for the ballot token.
"""

from __future__ import annotations

import json
import shutil
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol

import structlog

logger = structlog.get_logger(__name__)

BALLOT_TOKEN_KEY = "ballotToken"


class TokenStore(Protocol):
    """Capacidad clave-valor inyectada en la sesión.

    English: Key-value capability injected into the session controller.
    """

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def clear(self, key: str) -> None: ...


class MemoryTokenStore:
    """Almacén en memoria / In-memory store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def clear(self, key: str) -> None:
        self._values.pop(key, None)


def write_atomic(path: Path, content: bytes) -> None:
    """Escritura atómica usando archivo temporal.

    English: Atomic write using a temporary file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(delete=False, dir=str(path.parent)) as tmp_file:
        tmp_file.write(content)
        temp_name = tmp_file.name
    shutil.move(temp_name, path)


class FileTokenStore:
    """Almacén respaldado por un archivo JSON.

    English: Store backed by a JSON object file. A corrupt or unreadable file
    is logged and treated as empty so the voter can re-verify.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("token_store_unreadable", path=str(self.path), error=str(exc))
            return {}
        if not isinstance(data, dict):
            logger.warning("token_store_not_mapping", path=str(self.path))
            return {}
        return {str(key): str(value) for key, value in data.items() if value is not None}

    def _write(self, values: Dict[str, str]) -> None:
        write_atomic(
            self.path,
            json.dumps(values, ensure_ascii=False, indent=2).encode("utf-8"),
        )

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        values = self._read()
        values[key] = value
        self._write(values)
        logger.debug("token_store_set", path=str(self.path), key=key)

    def clear(self, key: str) -> None:
        values = self._read()
        if key not in values:
            return
        del values[key]
        self._write(values)
        logger.debug("token_store_cleared", path=str(self.path), key=key)
