"""Shared pytest fixtures for the chatbot test suite.

Provides reusable fixtures for:
- Test settings (in-memory ledger, no .env file)
- A fake identity verifier accepting a single token
- An in-memory credit ledger driven by a controllable clock
- A mocked model gateway
- Flask app / test client wired with all of the above
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from app import create_app
from app.config import Settings
from app.models.responses import UserIdentity
from app.services.credit_ledger import InMemoryCreditLedger
from app.services.identity_service import IdentityVerifier
from app.services.llm_service import CompletionResult, LLMService
from app.utils.exceptions import UnauthorizedError

VALID_TOKEN = "valid-token"
USER_ID = "6f1c2a4e-0000-4000-8000-000000000001"


class FakeClock:
    """Controllable clock for the in-memory ledger."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_settings(**overrides) -> Settings:
    values = {
        "CREDIT_LEDGER_BACKEND": "memory",
        "SUPABASE_URL": "https://project.supabase.co",
        "SUPABASE_ANON_KEY": "anon-key",
        "OPENAI_API_KEY": "sk-test-key",
        "LOG_LEVEL": "WARNING",
        "LOG_FORMAT": "console",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(clock):
    return InMemoryCreditLedger(max_credits=10, window=timedelta(hours=24), clock=clock)


@pytest.fixture
def identity_verifier():
    """Verifier accepting only VALID_TOKEN."""
    verifier = MagicMock(spec=IdentityVerifier)

    def resolve(token):
        if token == VALID_TOKEN:
            return UserIdentity(id=USER_ID, email="lector@example.com")
        raise UnauthorizedError()

    verifier.resolve_user.side_effect = resolve
    return verifier


@pytest.fixture
def llm():
    service = MagicMock(spec=LLMService)
    service.complete.return_value = CompletionResult(
        content="¡Este mes llegan nuevas series de superhéroes y un crossover muy esperado!",
        model="gpt-3.5-turbo",
        finish_reason="stop",
    )
    return service


@pytest.fixture
def app(settings, identity_verifier, ledger, llm):
    """Create a Flask application instance for testing."""
    app = create_app(
        settings,
        identity_verifier=identity_verifier,
        credit_ledger=ledger,
        llm_service=llm,
    )
    app.config["TESTING"] = True
    yield app


@pytest.fixture
def client(app):
    """Create a Flask test client."""
    return app.test_client()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {VALID_TOKEN}"}
