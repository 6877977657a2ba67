"""Fixtures compartidas / Shared fixtures."""

from __future__ import annotations

import pytest

from ballot_fakes import TOKEN, FakeBallotApi
from votesphere.token_store import BALLOT_TOKEN_KEY, MemoryTokenStore


@pytest.fixture
def store() -> MemoryTokenStore:
    return MemoryTokenStore({BALLOT_TOKEN_KEY: TOKEN})


@pytest.fixture
def fake_api() -> FakeBallotApi:
    return FakeBallotApi()
