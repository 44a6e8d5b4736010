"""Pydantic models for collaborator results and API response serialization."""
from __future__ import annotations

from pydantic import BaseModel, Field


class UserIdentity(BaseModel):
    """Caller resolved from a bearer credential.

    Attributes:
        id: Stable user identifier issued by the identity provider.
        email: Account e-mail, when the provider returns one.
    """
    id: str = Field(..., min_length=1, description="User identifier")
    email: str | None = None


class CreditConsumption(BaseModel):
    """Outcome of one atomic consume-credit call.

    Attributes:
        success: Whether a credit was spent.
        credits: Remaining balance after the call.
        message: Ledger explanation, set when `success` is false.
    """
    success: bool
    credits: int = Field(..., ge=0, description="Remaining credits")
    message: str | None = None


class ChatResponse(BaseModel):
    """Outgoing chatbot reply.

    Attributes:
        response: The assistant's (or degraded-mode) reply text.
        credits: Remaining credits after this call.
    """
    response: str = Field(..., description="Assistant response text")
    credits: int | None = Field(default=None, description="Remaining credits")

    def to_body(self) -> dict:
        return self.model_dump(exclude_none=True)


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Machine-actionable error message")
