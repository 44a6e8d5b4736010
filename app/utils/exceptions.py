"""Custom exception hierarchy for the chatbot application.

All application-specific exceptions inherit from ChatbotError, which
carries the HTTP status and knows the JSON body the caller receives.
Raw dependency errors are logged, never copied into a body.

Hierarchy:
    ChatbotError (base)
    ├── ClientError                 — Caller mistakes, reported verbatim
    │   ├── BadRequestError         — 400 invalid / missing message
    │   └── UnauthorizedError       — 401 missing or rejected credential
    ├── QuotaExceededError          — 429 no credits left in the window
    └── DependencyError             — 500 collaborator failures
        ├── CreditLedgerError       — Credit RPC unreachable / erroring
        ├── IdentityProviderError   — Auth API unreachable / erroring
        └── LLMServiceError         — Model provider failure
"""
from __future__ import annotations

from typing import Any

from app.prompts.templates import APOLOGY_RESPONSE


class ChatbotError(Exception):
    """Base exception for the chatbot application."""

    def __init__(self, message: str, status_code: int = 500) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

    def to_body(self) -> dict[str, Any]:
        """JSON body returned to the caller for this error."""
        return {"error": self.message}


# ── Client Errors ─────────────────────────────────────────────────────

class ClientError(ChatbotError):
    """Raised for malformed or unauthenticated requests."""


class BadRequestError(ClientError):
    """Raised when the request body carries no usable message."""

    def __init__(self, message: str = "Message is required") -> None:
        super().__init__(message, status_code=400)


class UnauthorizedError(ClientError):
    """Raised when the bearer credential is missing or rejected."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, status_code=401)


# ── Quota ─────────────────────────────────────────────────────────────

class QuotaExceededError(ChatbotError):
    """Raised when the ledger refuses to spend a credit."""

    def __init__(self, message: str, credits: int = 0) -> None:
        self.credits = credits
        super().__init__(message, status_code=429)

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message, "credits": self.credits}


# ── Dependency Errors ─────────────────────────────────────────────────

class DependencyError(ChatbotError):
    """Raised when an external collaborator fails.

    The `message` is for logs only; callers get `to_body()`.
    """

    def __init__(self, message: str, upstream_status: int | None = None) -> None:
        self.upstream_status = upstream_status
        super().__init__(message, status_code=500)

    def to_body(self) -> dict[str, Any]:
        return {"response": APOLOGY_RESPONSE}


class CreditLedgerError(DependencyError):
    """Raised when the credit ledger cannot be reached or misbehaves."""

    def to_body(self) -> dict[str, Any]:
        return {"error": "Error checking credits"}


class IdentityProviderError(DependencyError):
    """Raised when the identity provider cannot be reached or misbehaves."""


class LLMServiceError(DependencyError):
    """Raised when the language model provider fails."""
