"""Flujo de re-verificación que emite y guarda el token de papeleta.

Re-verification flow that issues and stores the ballot token.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

import structlog

from .errors import InvalidTokenError
from .logging import redact_token
from .token_store import BALLOT_TOKEN_KEY, TokenStore

logger = structlog.get_logger(__name__)


class VerificationApiClient(Protocol):
    async def request_otp(self, reg_no: str) -> Dict[str, Any]: ...

    async def confirm_otp(self, reg_no: str, otp: str) -> Dict[str, Any]: ...


def _extract_token(payload: Dict[str, Any]) -> Optional[str]:
    token = payload.get("ballotToken") or payload.get("token")
    return str(token) if token else None


class VerificationFlow:
    """Solicita OTP y canjea el código por un token de papeleta.

    English: Request an OTP and exchange it for a ballot token. The token is
    written to the persistence slot read by ``BallotSession``.
    """

    def __init__(
        self,
        api: VerificationApiClient,
        store: TokenStore,
        *,
        token_key: str = BALLOT_TOKEN_KEY,
    ) -> None:
        self._api = api
        self._store = store
        self._token_key = token_key

    async def request_otp(self, reg_no: str) -> str:
        payload = await self._api.request_otp(reg_no.strip())
        logger.info("otp_requested", reg_no=reg_no.strip())
        return str(payload.get("message") or "OTP sent.")

    async def confirm(self, reg_no: str, otp: str) -> str:
        payload = await self._api.confirm_otp(reg_no.strip(), otp.strip())
        token = _extract_token(payload)
        if not token:
            raise InvalidTokenError("Verification succeeded but no ballot token was issued.")
        self._store.set(self._token_key, token)
        logger.info("ballot_token_stored", reg_no=reg_no.strip(), token_ref=redact_token(token))
        return token
