"""Chat request handler — the credit-limited chatbot flow.

Every POST to the chatbot goes through `ChatHandler.handle`:

    Authenticate → Validate input → Consume credit
        → Degraded reply (no model key)  |  Model call
        → Respond

The handler holds no mutable state. Per-user serialization of credit
spending is the ledger's job, so many worker threads can share one
handler instance.

A credit is spent before the model is called and is not refunded if
the call fails.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from pydantic import ValidationError

from app.models.requests import ChatRequest
from app.models.responses import ChatResponse, CreditConsumption, UserIdentity
from app.prompts.templates import (
    APOLOGY_RESPONSE,
    DEGRADED_RESPONSE,
    FALLBACK_REPLY,
    QUOTA_EXCEEDED_MESSAGE,
    SYSTEM_PROMPT,
)
from app.services.credit_ledger import CreditLedger
from app.services.identity_service import IdentityVerifier
from app.services.llm_service import LLMService
from app.utils.exceptions import (
    BadRequestError,
    ChatbotError,
    ClientError,
    CreditLedgerError,
    DependencyError,
    QuotaExceededError,
    UnauthorizedError,
)
from app.utils.sanitizer import extract_bearer_token, sanitize_user_input

logger = structlog.get_logger(__name__)


@dataclass
class ChatResult:
    """HTTP status and JSON body produced for one request."""
    status_code: int
    body: dict[str, Any]


class ChatHandler:
    """Runs one chatbot request from credential to reply.

    Args:
        identity_verifier: Resolves bearer tokens to users.
        credit_ledger: Atomic per-user credit store.
        llm_service: Model gateway, or None to run in degraded mode.
        temperature: Sampling temperature for the model call.
        max_tokens: Max tokens for the model reply.
    """

    def __init__(
        self,
        identity_verifier: IdentityVerifier,
        credit_ledger: CreditLedger,
        llm_service: LLMService | None = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> None:
        self._identity = identity_verifier
        self._ledger = credit_ledger
        self._llm = llm_service
        self._temperature = temperature
        self._max_tokens = max_tokens

    @property
    def degraded(self) -> bool:
        """Whether replies are canned because no model is configured."""
        return self._llm is None

    def handle(self, authorization: str | None, payload: Any) -> ChatResult:
        """Process one chatbot request.

        Args:
            authorization: Raw ``Authorization`` header value, if any.
            payload: Parsed JSON body, or None when the body was not JSON.

        Returns:
            ChatResult with the status code and JSON body to send. Never raises.
        """
        try:
            user = self._authenticate(authorization)
            message = self._validate(payload)
            consumption = self._consume_credit(user)

            if self._llm is None:
                logger.info("degraded_response", user_id=user.id, credits=consumption.credits)
                return self._ok(DEGRADED_RESPONSE, consumption.credits)

            result = self._llm.complete(
                SYSTEM_PROMPT,
                message,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
            return self._ok(result.reply_text(FALLBACK_REPLY), consumption.credits)

        except ClientError as e:
            logger.info("chat_rejected", status_code=e.status_code, reason=e.message)
            return ChatResult(e.status_code, e.to_body())
        except QuotaExceededError as e:
            logger.info("quota_exceeded", credits=e.credits)
            return ChatResult(e.status_code, e.to_body())
        except DependencyError as e:
            logger.error(
                "dependency_failure",
                error=e.message,
                error_type=type(e).__name__,
                upstream_status=e.upstream_status,
            )
            return ChatResult(e.status_code, e.to_body())
        except Exception as e:
            logger.error(
                "chat_unexpected_error",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return ChatResult(500, {"response": APOLOGY_RESPONSE})

    # ── Steps ─────────────────────────────────────────────────────────

    def _authenticate(self, authorization: str | None) -> UserIdentity:
        if not authorization:
            raise UnauthorizedError("No authorization header")

        token = extract_bearer_token(authorization)
        if token is None:
            raise UnauthorizedError()

        user = self._identity.resolve_user(token)
        structlog.contextvars.bind_contextvars(user_id=user.id)
        return user

    @staticmethod
    def _validate(payload: Any) -> str:
        if not isinstance(payload, dict):
            raise BadRequestError()
        try:
            req = ChatRequest.model_validate(payload)
            return sanitize_user_input(req.message)
        except (ValidationError, ValueError) as e:
            raise BadRequestError() from e

    def _consume_credit(self, user: UserIdentity) -> CreditConsumption:
        try:
            consumption = self._ledger.consume_credit(user.id)
        except ChatbotError:
            raise
        except Exception as e:
            raise CreditLedgerError(f"Credit ledger failed: {e}") from e

        if not consumption.success:
            raise QuotaExceededError(
                consumption.message or QUOTA_EXCEEDED_MESSAGE,
                credits=consumption.credits,
            )

        logger.info("credit_consumed", user_id=user.id, credits=consumption.credits)
        return consumption

    @staticmethod
    def _ok(reply: str, credits: int) -> ChatResult:
        return ChatResult(200, ChatResponse(response=reply, credits=credits).to_body())
