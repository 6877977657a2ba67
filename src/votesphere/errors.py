# Errors Module
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

"""Taxonomía de errores de la sesión de papeleta y su clasificación.

Ballot session error taxonomy and server-error classification.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

# Códigos estructurados aceptados antes de caer al matching por texto. /
# Structured codes honoured before falling back to message matching.
CODE_TOKEN_INVALID = "BALLOT_TOKEN_INVALID"
CODE_TOKEN_USED = "BALLOT_TOKEN_USED"
CODE_WINDOW_CLOSED = "VOTING_WINDOW_CLOSED"

ALREADY_USED_MARKER = "already used"
WINDOW_CLOSED_MARKER = "not open for voting"

INVALID_TOKEN_STATUSES = frozenset({400, 401})


class ApiError(Exception):
    """Error de transporte o HTTP devuelto por la API.

    English: Transport or HTTP error reported by the API. ``status_code`` is
    ``None`` when no response was received (connection error, timeout).
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        payload: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}

    @property
    def code(self) -> Optional[str]:
        code = self.payload.get("code")
        return str(code) if code else None

    @classmethod
    def from_payload(cls, status_code: int, payload: Dict[str, Any]) -> "ApiError":
        message = payload.get("error") or payload.get("message") or f"HTTP {status_code}"
        return cls(str(message), status_code=status_code, payload=payload)


class BallotError(Exception):
    """Base de los errores de la sesión de papeleta.

    English: Base class for ballot session errors. ``fatal`` errors end the
    session: the persisted token is purged and the voter must re-verify.
    """

    fatal = False
    default_message = "Ballot error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NoTokenError(BallotError):
    fatal = True
    default_message = "No ballot token found. Please verify your identity first."


class LoadError(BallotError):
    default_message = "Failed to load ballot"


class InvalidTokenError(BallotError):
    fatal = True
    default_message = "Invalid or expired ballot token. Please verify again."


class ConsumedTokenError(InvalidTokenError):
    default_message = "This ballot has already been used. You can only vote once."


class IncompleteBallotError(BallotError):
    """Faltan cargos por votar; nunca llega a la red.

    English: Not every position has a selection. Raised locally, before any
    network call.
    """

    def __init__(self, missing_positions: Sequence[str], message: str | None = None) -> None:
        self.missing_positions: List[str] = list(missing_positions)
        super().__init__(message or f"Please vote for: {', '.join(self.missing_positions)}")


class WindowClosedError(BallotError):
    """La ventana de votación cerró para uno o más cargos."""

    def __init__(
        self,
        closed_positions: Sequence[str] = (),
        *,
        hint: str | None = None,
        message: str | None = None,
    ) -> None:
        self.closed_positions: List[str] = list(closed_positions)
        self.hint = hint
        if message is None:
            if self.closed_positions:
                message = (
                    f"Voting window closed for: {', '.join(self.closed_positions)}. "
                    "Contact administrator to extend voting time."
                )
            else:
                message = "Voting is not open for one or more positions."
                if hint:
                    message = f"{message} {hint}"
        super().__init__(message)


class SubmissionInFlightError(BallotError):
    default_message = "Submission already in progress"


class GenericSubmitError(BallotError):
    default_message = "Failed to cast vote"


class SessionStateError(BallotError):
    """Operación no permitida en el estado actual de la sesión.

    English: Operation not allowed in the current session state.
    """


def _matches(message: str | None, marker: str) -> bool:
    return bool(message) and marker in message.casefold()


def _closed_position_names(payload: Dict[str, Any]) -> List[str]:
    names: List[str] = []
    for entry in payload.get("closedPositions") or []:
        if isinstance(entry, dict) and entry.get("name"):
            names.append(str(entry["name"]))
        elif isinstance(entry, str) and entry:
            names.append(entry)
    return names


def classify_load_failure(error: ApiError) -> BallotError:
    """Clasifica un fallo de ``GET /vote/ballot``.

    English: 400/401 (or an explicit token code) means the token is invalid
    or expired; anything else is a retryable load error.
    """
    if error.code in (CODE_TOKEN_INVALID, CODE_TOKEN_USED):
        return InvalidTokenError()
    if error.status_code in INVALID_TOKEN_STATUSES:
        return InvalidTokenError()
    return LoadError(f"Failed to load ballot: {error.message}")


def classify_submit_failure(error: ApiError) -> BallotError:
    """Clasifica un rechazo de ``POST /vote``.

    English: Structured ``code`` first, then case-insensitive substring
    matching on the server message for backends that only send free text.
    """
    code = error.code
    payload = error.payload
    if code == CODE_TOKEN_USED or (
        error.status_code == 400 and _matches(error.message, ALREADY_USED_MARKER)
    ):
        return ConsumedTokenError()
    if code == CODE_WINDOW_CLOSED or (
        error.status_code == 400 and _matches(error.message, WINDOW_CLOSED_MARKER)
    ):
        hint = payload.get("hint")
        return WindowClosedError(
            _closed_position_names(payload),
            hint=str(hint) if hint else None,
        )
    if code == CODE_TOKEN_INVALID or error.status_code == 401:
        return InvalidTokenError()
    if error.status_code is None:
        return GenericSubmitError(f"Failed to cast vote: {error.message}")
    return GenericSubmitError(payload.get("error") or GenericSubmitError.default_message)
