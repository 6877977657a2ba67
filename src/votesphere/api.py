# Api Module
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

"""Cliente HTTP de las APIs de papeleta y verificación.

HTTP client for the ballot and verification APIs. Calls are never retried
automatically; every retry is initiated by the voter.
"""

from __future__ import annotations

import time
from typing import Any, Dict, Iterable, Optional

import httpx
import structlog

from . import __version__
from .config import ClientSettings
from .errors import ApiError
from .schemas import Ballot, CastVoteRequest, VoteSelection, parse_ballot

logger = structlog.get_logger(__name__)


def build_client(settings: Optional[ClientSettings] = None) -> httpx.AsyncClient:
    """Construye un cliente HTTP con base URL y timeout global.

    English: Build an HTTP client with base URL and a global timeout.
    """
    settings = settings or ClientSettings()
    return httpx.AsyncClient(
        base_url=settings.API_URL,
        headers={
            "Content-Type": "application/json",
            "User-Agent": f"VoteSphereClient/{__version__}",
        },
        timeout=httpx.Timeout(settings.REQUEST_TIMEOUT_SECONDS),
    )


def _decode_json(response: httpx.Response) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {"data": payload}


async def _send(
    client: httpx.AsyncClient,
    method: str,
    path: str,
    **kwargs: Any,
) -> Dict[str, Any]:
    """Envía una petición y traduce fallos a ``ApiError``.

    English: Send a request and translate failures into ``ApiError``.
    """
    start = time.monotonic()
    try:
        response = await client.request(method, path, **kwargs)
    except httpx.RequestError as exc:
        elapsed = time.monotonic() - start
        logger.warning(
            "api_request_error",
            method=method,
            path=path,
            elapsed_seconds=round(elapsed, 3),
            error=str(exc),
        )
        raise ApiError(f"Request failed: {exc}") from exc

    elapsed = time.monotonic() - start
    payload = _decode_json(response)
    if response.status_code >= 400:
        logger.warning(
            "api_response_error",
            method=method,
            path=path,
            status_code=response.status_code,
            elapsed_seconds=round(elapsed, 3),
            error=payload.get("error"),
        )
        raise ApiError.from_payload(response.status_code, payload)

    logger.info(
        "api_response_ok",
        method=method,
        path=path,
        status_code=response.status_code,
        elapsed_seconds=round(elapsed, 3),
    )
    return payload


class BallotApi:
    """Operaciones ``fetch ballot`` y ``cast vote``.

    English: ``fetch ballot`` and ``cast vote`` operations.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch_ballot(self, token: str) -> Ballot:
        payload = await _send(self._client, "GET", "/vote/ballot", params={"token": token})
        try:
            return parse_ballot(payload)
        except ValueError as exc:
            logger.error("ballot_payload_invalid", error=str(exc))
            raise ApiError("Malformed ballot payload", status_code=200, payload=payload) from exc

    async def cast_vote(self, token: str, votes: Iterable[VoteSelection]) -> Dict[str, Any]:
        body = CastVoteRequest(token=token, votes=list(votes))
        return await _send(self._client, "POST", "/vote", json=body.to_payload())


class VerificationApi:
    """Flujo OTP que emite tokens de papeleta.

    English: OTP flow that issues ballot tokens.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def request_otp(self, reg_no: str) -> Dict[str, Any]:
        return await _send(self._client, "POST", "/verify/request-otp", json={"reg_no": reg_no})

    async def confirm_otp(self, reg_no: str, otp: str) -> Dict[str, Any]:
        return await _send(
            self._client,
            "POST",
            "/verify/confirm",
            json={"reg_no": reg_no, "otp": otp},
        )
