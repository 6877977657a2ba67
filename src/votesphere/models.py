"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/votesphere/models.py`.
Estados de la sesión y resultado de un envío.

Componentes detectados:
  - SessionState
  - SubmissionOutcome
  - SubmissionResult

======================== ENGLISH ========================
File: `src/votesphere/models.py`.
Session states and the outcome of one submit attempt.

Detected components:
  - SessionState
  - SubmissionOutcome
  - SubmissionResult
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .errors import BallotError
from .schemas import VoteSelection


class SessionState(str, Enum):
    """Estados de la sesión de papeleta.

    English: Ballot session states.
    """

    IDLE = "idle"
    LOADING = "loading"
    LOAD_FAILED = "load_failed"
    NO_ELECTIONS = "no_elections"
    EMPTY = "empty"
    READY = "ready"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    REDIRECTING = "redirecting"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.NO_ELECTIONS, SessionState.SUBMITTED, SessionState.REDIRECTING)

    @property
    def is_interactive(self) -> bool:
        return self in (SessionState.READY, SessionState.EMPTY)


class SubmissionOutcome(str, Enum):
    SUBMITTED = "submitted"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class SubmissionResult:
    """Resultado terminal de un intento de envío.

    Attributes:
        outcome (SubmissionOutcome): Éxito, cancelación o fallo.
        votes (Tuple[VoteSelection, ...]): Votos enviados (o que se intentó enviar).
        message (str): Mensaje para el votante.
        error (Optional[BallotError]): Error clasificado cuando ``outcome`` es FAILED.

    English:
        Terminal outcome of one submit attempt.
    """

    outcome: SubmissionOutcome
    votes: Tuple[VoteSelection, ...] = ()
    message: str = ""
    error: Optional[BallotError] = None

    @property
    def ok(self) -> bool:
        return self.outcome is SubmissionOutcome.SUBMITTED
