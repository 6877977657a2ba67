"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `conftest.py`.
Configuración global de pytest: ruta `src/` y bloqueo de red real.

Componentes detectados:
  - block_network

======================== ENGLISH ========================
File: `conftest.py`.
Global pytest setup: `src/` on the path and real network access blocked.

Detected components:
  - block_network
"""

from __future__ import annotations

from pathlib import Path
import socket
import sys
from typing import Any

import pytest

REPO_ROOT = Path(__file__).resolve().parent
SRC_ROOT = REPO_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))


@pytest.fixture(autouse=True)
def block_network(monkeypatch: pytest.MonkeyPatch) -> None:
    """Impide conexiones de red reales en tests.

    English:
        Prevents real network connections in tests.
    """

    def guarded_connect(*args: Any, **kwargs: Any) -> None:
        raise RuntimeError("Network access is disabled during tests.")

    def guarded_create_connection(*args: Any, **kwargs: Any) -> None:
        raise RuntimeError("Network access is disabled during tests.")

    monkeypatch.setattr(socket.socket, "connect", guarded_connect, raising=True)
    monkeypatch.setattr(socket, "create_connection", guarded_create_connection, raising=True)
