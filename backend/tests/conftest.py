"""Shared fixtures: temporary database, mock provider and static identities."""

from collections.abc import Callable
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Any

import pytest

import chat_gateway.db.repository as repo_module
from chat_gateway.admission import AdmissionController, InMemoryRateLimiter
from chat_gateway.chat import TurnOrchestrator
from chat_gateway.db import get_engine, init_db
from helpers import ProviderStub, StaticIdentityResolver, make_llm


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    original_engine = repo_module._engine
    repo_module._engine = None

    with TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        engine = get_engine(db_path)
        yield engine
        engine.dispose()
        repo_module._engine = original_engine


@pytest.fixture
def provider() -> ProviderStub:
    """Provider answering 200 with a short reply and no usage block."""
    return ProviderStub()


@pytest.fixture
def identity() -> StaticIdentityResolver:
    return StaticIdentityResolver({"valid-token": "user-123"})


@pytest.fixture
def make_orchestrator(
    temp_db, identity
) -> Callable[..., TurnOrchestrator]:
    """Factory building an orchestrator over the temp database."""

    def _make(
        stub: ProviderStub | None,
        rate_limiter: InMemoryRateLimiter | None = None,
        **kwargs: Any,
    ) -> TurnOrchestrator:
        admission = AdmissionController(
            rate_limiter
            if rate_limiter is not None
            else InMemoryRateLimiter(max_requests=20, window_seconds=60),
            max_guest_messages=12,
            max_auth_messages=40,
        )
        return TurnOrchestrator(
            admission=admission,
            identity=identity,
            llm=make_llm(stub) if stub is not None else None,
            **kwargs,
        )

    return _make
