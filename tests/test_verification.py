"""Pruebas del flujo de re-verificación.

Re-verification flow tests.
"""

from __future__ import annotations

import asyncio

import pytest

from votesphere.errors import InvalidTokenError
from votesphere.token_store import BALLOT_TOKEN_KEY, MemoryTokenStore
from votesphere.verification import VerificationFlow


class FakeVerificationApi:
    def __init__(self, confirm_payload):
        self.confirm_payload = confirm_payload
        self.calls = []

    async def request_otp(self, reg_no):
        self.calls.append(("request", reg_no))
        return {"message": "OTP sent to your registered email"}

    async def confirm_otp(self, reg_no, otp):
        self.calls.append(("confirm", reg_no, otp))
        return self.confirm_payload


def test_confirm_stores_ballot_token() -> None:
    store = MemoryTokenStore()
    api = FakeVerificationApi({"ballotToken": "tok-9"})
    flow = VerificationFlow(api, store)

    message = asyncio.run(flow.request_otp(" S12345 "))
    token = asyncio.run(flow.confirm("S12345", " 493021"))

    assert message == "OTP sent to your registered email"
    assert token == "tok-9"
    assert store.get(BALLOT_TOKEN_KEY) == "tok-9"
    assert api.calls == [("request", "S12345"), ("confirm", "S12345", "493021")]


def test_confirm_accepts_token_field() -> None:
    store = MemoryTokenStore()
    flow = VerificationFlow(FakeVerificationApi({"token": "tok-10"}), store)

    assert asyncio.run(flow.confirm("S1", "1")) == "tok-10"


def test_confirm_without_token_raises() -> None:
    store = MemoryTokenStore()
    flow = VerificationFlow(FakeVerificationApi({"message": "verified"}), store)

    with pytest.raises(InvalidTokenError):
        asyncio.run(flow.confirm("S1", "1"))

    assert store.get(BALLOT_TOKEN_KEY) is None
