"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/votesphere/logging.py`.
Configuración de structlog y enmascarado de tokens de papeleta.

Componentes detectados:
  - setup_logging
  - redact_token
  - redact_sensitive_fields
  - redact_query_tokens
  - TokenQueryFilter
  - bind_session

======================== ENGLISH ========================
File: `src/votesphere/logging.py`.
structlog setup and ballot token masking.

Detected components:
  - setup_logging
  - redact_token
  - redact_sensitive_fields
  - redact_query_tokens
  - TokenQueryFilter
  - bind_session
"""

from __future__ import annotations

import logging
import re
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, MutableMapping, Optional

import structlog

SENSITIVE_KEYS = frozenset({"token", "ballot_token", "ballotToken", "otp"})
# Loggers de terceros que escriben URLs completas / Third-party loggers that print full URLs.
QUIET_LOGGERS = ("httpx", "httpcore")
_TOKEN_QUERY = re.compile(r"(?i)\b(token|ballotToken|otp)=([^&\s\"']+)")
_VISIBLE_SUFFIX = 4


def redact_token(value: Optional[str]) -> str:
    """Enmascara un token dejando visibles los últimos caracteres.

    English: Mask a token, keeping only its last characters visible.
    """
    if not value:
        return "[NONE]"
    if len(value) <= _VISIBLE_SUFFIX * 2:
        return "[REDACTED]"
    return f"[REDACTED]...{value[-_VISIBLE_SUFFIX:]}"


def redact_sensitive_fields(
    _logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Procesador structlog que oculta tokens y OTPs.

    English: structlog processor hiding tokens and OTPs.
    """
    for key in SENSITIVE_KEYS.intersection(event_dict):
        value = event_dict[key]
        event_dict[key] = redact_token(value if isinstance(value, str) else None)
    return event_dict


def redact_query_tokens(text: str) -> str:
    """Enmascara ``token=...`` en URLs / Mask ``token=...`` in URLs."""
    return _TOKEN_QUERY.sub(lambda match: f"{match.group(1)}={redact_token(match.group(2))}", text)


class TokenQueryFilter(logging.Filter):
    """Filtro que oculta tokens en registros stdlib / Filter hiding tokens in stdlib records."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = str(record.getMessage())
        redacted = redact_query_tokens(message)
        if redacted != message:
            record.msg = redacted
            record.args = ()
        return True


def setup_logging(log_level: str, storage_path: Path) -> structlog.BoundLogger:
    """Configura structlog y handlers de consola/archivo.

    English: Configure structlog and console/file handlers.
    """
    log_dir = storage_path / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    file_handler = TimedRotatingFileHandler(
        log_dir / "votesphere.log",
        when="midnight",
        backupCount=30,
        encoding="utf-8",
    )
    console_handler = logging.StreamHandler()
    token_filter = TokenQueryFilter()
    file_handler.addFilter(token_filter)
    console_handler.addFilter(token_filter)

    # httpx registra la URL completa (con ?token=) en INFO.
    # English: httpx logs the full URL (with ?token=) at INFO.
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.basicConfig(
        level=log_level.upper(),
        handlers=[file_handler, console_handler],
        format="%(message)s",
    )

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_sensitive_fields,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(log_level.upper())
        ),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger()


def bind_session(
    logger: structlog.BoundLogger,
    token: Optional[str] = None,
    state: Optional[str] = None,
) -> structlog.BoundLogger:
    """Adjunta contexto estándar de la sesión al logger.

    English: Bind standard session context to the logger. The token is
    always bound in masked form.
    """
    context: dict[str, Any] = {}
    if token:
        context["token_ref"] = redact_token(token)
    if state:
        context["state"] = state
    return logger.bind(**context)
