"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `tests/test_session_load.py`.
Pruebas de resolución de token y carga de la papeleta.

======================== ENGLISH ========================
File: `tests/test_session_load.py`.
Token resolution and ballot loading tests.
"""

from __future__ import annotations

import asyncio

import pytest

from ballot_fakes import TOKEN, FakeBallotApi, ballot_payload
from votesphere.errors import (
    ApiError,
    IncompleteBallotError,
    InvalidTokenError,
    LoadError,
    NoTokenError,
    SessionStateError,
)
from votesphere.models import SessionState
from votesphere.schemas import parse_ballot
from votesphere.session import NO_CANDIDATES_ADVISORY, BallotSession
from votesphere.token_store import BALLOT_TOKEN_KEY, MemoryTokenStore


def test_load_uses_persisted_token(store, fake_api) -> None:
    session = BallotSession(fake_api, store)

    state = asyncio.run(session.load())

    assert state is SessionState.READY
    assert fake_api.fetch_calls == [TOKEN]
    assert session.total_positions == 2
    assert [candidate.id for candidate in session.candidates_for("pos-2")] == ["cand-2a", "cand-2b"]


def test_navigation_token_takes_precedence(store, fake_api) -> None:
    session = BallotSession(fake_api, store, navigation_token="tok-from-navigation")

    asyncio.run(session.load())

    assert fake_api.fetch_calls == ["tok-from-navigation"]


def test_missing_token_redirects_without_fetch(fake_api) -> None:
    """Español: Sin token no se descarga nada y se pide re-verificación.

    English: Without a token nothing is fetched and re-verification is requested.
    """
    session = BallotSession(fake_api, MemoryTokenStore())

    with pytest.raises(NoTokenError):
        asyncio.run(session.load())

    assert fake_api.fetch_calls == []
    assert session.state is SessionState.REDIRECTING
    assert session.needs_verification


def test_empty_positions_reports_no_elections(store) -> None:
    """Escenario C / Scenario C."""
    api = FakeBallotApi(parse_ballot({"positions": [], "candidates": []}))
    session = BallotSession(api, store)

    state = asyncio.run(session.load())

    assert state is SessionState.NO_ELECTIONS
    assert state.is_terminal
    with pytest.raises(SessionStateError):
        session.select_candidate("pos-1", "cand-1a")
    with pytest.raises(IncompleteBallotError):
        asyncio.run(session.submit())
    assert api.cast_calls == []


def test_position_without_candidates_is_empty_state(store) -> None:
    """Escenario D / Scenario D."""
    api = FakeBallotApi(parse_ballot(ballot_payload(positions=1, candidates_per_position=0)))
    session = BallotSession(api, store)

    state = asyncio.run(session.load())

    assert state is SessionState.EMPTY
    assert session.advisory == NO_CANDIDATES_ADVISORY
    assert session.select_candidate("pos-1", "cand-1a") is None
    assert session.progress == 0.0
    with pytest.raises(IncompleteBallotError) as excinfo:
        asyncio.run(session.submit())
    assert excinfo.value.missing_positions == ["President"]
    assert api.cast_calls == []
    assert session.state is SessionState.EMPTY


@pytest.mark.parametrize("status_code", [400, 401])
def test_invalid_token_at_load_purges_and_redirects(store, status_code) -> None:
    api = FakeBallotApi(
        fetch_error=ApiError("Invalid ballot token", status_code=status_code, payload={"error": "Invalid ballot token"})
    )
    session = BallotSession(api, store)

    with pytest.raises(InvalidTokenError):
        asyncio.run(session.load())

    assert session.state is SessionState.REDIRECTING
    assert store.get(BALLOT_TOKEN_KEY) is None
    assert session.resolve_token() is None


def test_other_load_failure_is_retryable(store) -> None:
    ballot = parse_ballot(ballot_payload())
    api = FakeBallotApi(ballot, fetch_error=ApiError("Internal error", status_code=500))
    session = BallotSession(api, store)

    with pytest.raises(LoadError):
        asyncio.run(session.load())

    assert session.state is SessionState.LOAD_FAILED
    assert store.get(BALLOT_TOKEN_KEY) == TOKEN

    api.fetch_error = None
    assert asyncio.run(session.load()) is SessionState.READY
    assert api.fetch_calls == [TOKEN, TOKEN]


def test_transport_failure_is_retryable(store) -> None:
    api = FakeBallotApi(fetch_error=ApiError("Request failed: timed out"))
    session = BallotSession(api, store)

    with pytest.raises(LoadError):
        asyncio.run(session.load())

    assert store.get(BALLOT_TOKEN_KEY) == TOKEN


def test_ballot_is_not_refetched_mid_session(store, fake_api) -> None:
    session = BallotSession(fake_api, store)
    asyncio.run(session.load())

    with pytest.raises(SessionStateError):
        asyncio.run(session.load())

    assert len(fake_api.fetch_calls) == 1


def test_unexpected_load_failure_is_retryable(store) -> None:
    api = FakeBallotApi(fetch_error=RuntimeError("decoder crashed"))
    session = BallotSession(api, store)

    with pytest.raises(RuntimeError):
        asyncio.run(session.load())

    assert session.state is SessionState.LOAD_FAILED
    assert store.get(BALLOT_TOKEN_KEY) == TOKEN

    api.fetch_error = None
    assert asyncio.run(session.load()) is SessionState.READY
