"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/votesphere/session.py`.
Controlador de la sesión de papeleta: convierte un token opaco en un
conjunto de votos por cargo y lo envía una sola vez.

Componentes detectados:
  - BallotSession

Notas:
- Toda la lógica crítica (doble voto, ventanas de votación) vive en el
  servidor; aquí sólo se clasifican sus rechazos.

======================== ENGLISH ========================
File: `src/votesphere/session.py`.
Ballot session controller: turns an opaque token into a per-position vote
set and submits it exactly once.

Detected components:
  - BallotSession

Notes:
- Correctness-critical checks (double voting, voting windows) live on the
  server; this module only classifies its rejections.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Tuple

import structlog

from .errors import (
    ApiError,
    IncompleteBallotError,
    NoTokenError,
    SessionStateError,
    SubmissionInFlightError,
    WindowClosedError,
    classify_load_failure,
    classify_submit_failure,
)
from .logging import bind_session
from .models import SessionState, SubmissionOutcome, SubmissionResult
from .schemas import Ballot, Candidate, Position, VoteSelection
from .token_store import BALLOT_TOKEN_KEY, TokenStore

NO_CANDIDATES_ADVISORY = "No approved candidates available for voting yet."
VOTE_RECORDED_MESSAGE = "Your vote has been recorded. Thank you!"
CANCELLED_MESSAGE = "Submission cancelled."

Listener = Callable[[SessionState, "BallotSession"], None]


class BallotApiClient(Protocol):
    async def fetch_ballot(self, token: str) -> Ballot: ...

    async def cast_vote(self, token: str, votes: Iterable[VoteSelection]) -> Dict[str, Any]: ...


class BallotSession:
    """Máquina de estados de una papeleta.

    English: Ballot state machine::

        IDLE -> LOADING -> {NO_ELECTIONS | EMPTY | READY | LOAD_FAILED}
        READY -> SUBMITTING -> {SUBMITTED | READY}
        any -> REDIRECTING when the token is missing, invalid or consumed

    The navigation token takes precedence over the persisted one. Once the
    session clears the persisted token it never reads the slot again.
    """

    def __init__(
        self,
        api: BallotApiClient,
        store: TokenStore,
        *,
        navigation_token: Optional[str] = None,
        token_key: str = BALLOT_TOKEN_KEY,
    ) -> None:
        self._api = api
        self._store = store
        self._navigation_token = navigation_token
        self._token_key = token_key
        self._token: Optional[str] = None
        self._token_purged = False
        self._ballot: Optional[Ballot] = None
        self._selections: Dict[str, str] = {}
        self._state = SessionState.IDLE
        self._current_step = 0
        self._listeners: List[Listener] = []
        self._alive = True
        self._logger = structlog.get_logger(__name__)

        self.advisory: Optional[str] = None
        self.closed_positions: List[str] = []
        self.last_error: Optional[Exception] = None
        self.last_result: Optional[SubmissionResult] = None

    # ------------------------------------------------------------------
    # Estado / State
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def ballot(self) -> Optional[Ballot]:
        return self._ballot

    @property
    def positions(self) -> List[Position]:
        return list(self._ballot.positions) if self._ballot else []

    @property
    def needs_verification(self) -> bool:
        return self._state is SessionState.REDIRECTING

    @property
    def is_alive(self) -> bool:
        return self._alive

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registra un observador de transiciones; devuelve la baja.

        English: Register a state listener; returns its unsubscribe callable.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        """Desacopla la vista; resultados tardíos ya no notifican.

        English: Detach the consuming view. In-flight calls still complete and
        still update the token slot, but listeners are no longer called.
        """
        self._alive = False
        self._listeners.clear()
        self._logger.debug("session_closed", state=self._state.value)

    def _notify(self) -> None:
        if not self._alive:
            return
        for listener in list(self._listeners):
            listener(self._state, self)

    def _transition(self, new_state: SessionState) -> None:
        previous = self._state
        self._state = new_state
        bind_session(self._logger, self._token, new_state.value).info(
            "session_transition", previous=previous.value
        )
        self._notify()

    def _restore(self, state: SessionState) -> None:
        """Vuelve a ``state`` tras un fallo que no es ``ApiError``.

        English: Return to ``state`` after a non-``ApiError`` failure. Listeners
        are not called; one of them may be the failure being unwound.
        """
        previous = self._state
        self._state = state
        self._logger.warning("session_state_restored", previous=previous.value, state=state.value)

    # ------------------------------------------------------------------
    # Token
    # ------------------------------------------------------------------

    def resolve_token(self) -> Optional[str]:
        """Token de navegación primero, ranura persistente como respaldo.

        English: Navigation token first, persisted slot as fallback.
        """
        if self._token_purged:
            return None
        return self._navigation_token or self._store.get(self._token_key)

    def _purge_token(self) -> None:
        self._store.clear(self._token_key)
        self._token_purged = True
        self._navigation_token = None
        self._logger.info("ballot_token_purged")

    # ------------------------------------------------------------------
    # Carga / Load
    # ------------------------------------------------------------------

    async def load(self) -> SessionState:
        """Resuelve el token y descarga la papeleta una sola vez.

        English: Resolve the token and fetch the ballot exactly once. Allowed
        from ``IDLE`` and, after a retryable failure, ``LOAD_FAILED``.

        Raises:
            NoTokenError: No token available; nothing was fetched.
            InvalidTokenError: Server rejected the token; it was purged.
            LoadError: Any other failure; the token is left untouched.
            SessionStateError: The ballot is already loaded or the session ended.
        """
        if self._state not in (SessionState.IDLE, SessionState.LOAD_FAILED):
            raise SessionStateError(f"Cannot load ballot in state {self._state.value}")

        token = self.resolve_token()
        if not token:
            error = NoTokenError()
            self.last_error = error
            self._transition(SessionState.REDIRECTING)
            raise error

        self._token = token
        self.advisory = None
        try:
            self._transition(SessionState.LOADING)
            ballot = await self._api.fetch_ballot(token)
        except ApiError as exc:
            error = classify_load_failure(exc)
            self.last_error = error
            if error.fatal:
                self._purge_token()
                self._transition(SessionState.REDIRECTING)
            else:
                self._transition(SessionState.LOAD_FAILED)
            raise error from exc
        except BaseException:
            # Cancelación o fallo inesperado: la carga debe poder reintentarse.
            # English: cancellation or unexpected failure; load stays retryable.
            self._restore(SessionState.LOAD_FAILED)
            raise

        self._ballot = ballot
        self.last_error = None
        if not ballot.positions:
            self._transition(SessionState.NO_ELECTIONS)
        elif not ballot.candidates:
            self.advisory = NO_CANDIDATES_ADVISORY
            self._transition(SessionState.EMPTY)
        else:
            self._transition(SessionState.READY)
        return self._state

    # ------------------------------------------------------------------
    # Selección / Selection
    # ------------------------------------------------------------------

    def candidates_for(self, position_id: str) -> List[Candidate]:
        return self._ballot.candidates_for(position_id) if self._ballot else []

    @property
    def selections(self) -> Dict[str, str]:
        return dict(self._selections)

    def select_candidate(self, position_id: str, candidate_id: str) -> Optional[str]:
        """Alterna la selección de un candidato para un cargo.

        English: Toggle a candidate for a position. Re-selecting the current
        candidate removes the entry; any other candidate replaces it. Ids not
        offered on this ballot are ignored. Returns the resulting selection.
        """
        if not self._state.is_interactive:
            raise SessionStateError(f"Cannot change selections in state {self._state.value}")

        offered = {candidate.id for candidate in self.candidates_for(position_id)}
        if candidate_id not in offered:
            self._logger.warning(
                "selection_ignored",
                position_id=position_id,
                candidate_id=candidate_id,
            )
            return self._selections.get(position_id)

        if self._selections.get(position_id) == candidate_id:
            del self._selections[position_id]
        else:
            self._selections[position_id] = candidate_id
        self._notify()
        return self._selections.get(position_id)

    @property
    def voted_count(self) -> int:
        return len(self._selections)

    @property
    def total_positions(self) -> int:
        return len(self._ballot.positions) if self._ballot else 0

    @property
    def progress(self) -> float:
        """Fracción de cargos votados en [0, 1]; 0 sin cargos."""
        total = self.total_positions
        if total == 0:
            return 0.0
        return len(self._selections) / total

    @property
    def progress_percent(self) -> float:
        return self.progress * 100

    def missing_positions(self) -> List[Position]:
        return [position for position in self.positions if position.id not in self._selections]

    @property
    def is_complete(self) -> bool:
        return self.total_positions > 0 and not self.missing_positions()

    def vote_entries(self) -> Tuple[VoteSelection, ...]:
        return tuple(
            VoteSelection(position_id=position.id, candidate_id=self._selections[position.id])
            for position in self.positions
            if position.id in self._selections
        )

    # ------------------------------------------------------------------
    # Navegación por pasos / Step navigation
    # ------------------------------------------------------------------

    @property
    def current_step(self) -> int:
        return self._current_step

    @property
    def current_position(self) -> Optional[Position]:
        positions = self.positions
        if not positions:
            return None
        return positions[self._current_step]

    def go_to_step(self, index: int) -> Position:
        positions = self.positions
        if not 0 <= index < len(positions):
            raise IndexError(f"Step {index} out of range (0..{len(positions) - 1})")
        self._current_step = index
        self._notify()
        return positions[index]

    def next_step(self) -> int:
        if self._current_step < self.total_positions - 1:
            self.go_to_step(self._current_step + 1)
        return self._current_step

    def previous_step(self) -> int:
        if self._current_step > 0:
            self.go_to_step(self._current_step - 1)
        return self._current_step

    def step_status(self, index: int) -> str:
        position = self.positions[index]
        if index == self._current_step:
            return "active"
        if position.id in self._selections:
            return "voted"
        if index < self._current_step:
            return "completed"
        return "pending"

    # ------------------------------------------------------------------
    # Envío / Submission
    # ------------------------------------------------------------------

    async def submit(self, confirm: Optional[Callable[[], bool]] = None) -> SubmissionResult:
        """Emite el voto una sola vez.

        English: Cast the vote exactly once. Local preconditions are checked
        before any network call; a second call while one is pending raises
        ``SubmissionInFlightError`` instead of issuing another request.

        Raises:
            SubmissionInFlightError: A submission is already pending.
            SessionStateError: The session already ended.
            IncompleteBallotError: Some positions have no selection.
            ConsumedTokenError / InvalidTokenError: Token purged, re-verify.
            WindowClosedError: Selections kept; retry after the window is extended.
            GenericSubmitError: Selections kept; retry allowed.
        """
        if self._state is SessionState.SUBMITTING:
            raise SubmissionInFlightError()
        if self._state in (SessionState.SUBMITTED, SessionState.REDIRECTING):
            raise SessionStateError(f"Cannot submit in state {self._state.value}")

        if not self.is_complete:
            missing = [position.name for position in self.missing_positions()]
            error = (
                IncompleteBallotError(missing)
                if missing
                else IncompleteBallotError([], "There are no positions open for voting.")
            )
            self.last_error = error
            raise error

        if confirm is not None and not confirm():
            self.last_result = SubmissionResult(SubmissionOutcome.CANCELLED, message=CANCELLED_MESSAGE)
            return self.last_result

        votes = self.vote_entries()
        token = self._token
        self.closed_positions = []
        previous = self._state
        try:
            self._transition(SessionState.SUBMITTING)
            await self._api.cast_vote(token, votes)
        except ApiError as exc:
            error = classify_submit_failure(exc)
            self.last_error = error
            self.last_result = SubmissionResult(
                SubmissionOutcome.FAILED, votes, message=error.message, error=error
            )
            if error.fatal:
                self._purge_token()
                self._transition(SessionState.REDIRECTING)
            else:
                if isinstance(error, WindowClosedError):
                    self.closed_positions = list(error.closed_positions)
                self._transition(SessionState.READY)
            raise error from exc
        except BaseException:
            # Sin respuesta del servidor: selecciones y token intactos.
            # English: no server verdict; selections and token are kept.
            self._restore(previous)
            raise

        self._purge_token()
        self.last_error = None
        self.last_result = SubmissionResult(
            SubmissionOutcome.SUBMITTED, votes, message=VOTE_RECORDED_MESSAGE
        )
        self._transition(SessionState.SUBMITTED)
        return self.last_result
