"""OpenAI-compatible chat completion gateway.

Handles all communication with the model provider's
``/chat/completions`` endpoint:
- Single-shot completion with a system prompt and one user message
- Typed parsing of the provider's JSON into CompletionResult
- One normalization rule for turning a result into reply text
- Structured logging of every call

The gateway never retries: a failed call is reported immediately as
LLMServiceError and the caller decides what the user sees.

Usage:
    from app.services.llm_service import LLMService

    service = LLMService(api_key="...", model="gpt-3.5-turbo")
    result = service.complete(SYSTEM_PROMPT, "Hola", temperature=0.7, max_tokens=500)
    text = result.reply_text(FALLBACK_REPLY)
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from app.utils.exceptions import LLMServiceError

logger = structlog.get_logger(__name__)


@dataclass
class CompletionResult:
    """Structured response from the model provider.

    `content` is the text of the first choice, or None when the provider
    returned no choices or a choice without text.
    """
    content: str | None = None
    model: str = ""
    usage: dict[str, int] = field(default_factory=dict)
    finish_reason: str = ""

    def reply_text(self, fallback: str) -> str:
        """Text to show the user: the first completion, or `fallback`."""
        if self.content and self.content.strip():
            return self.content.strip()
        return fallback


class LLMService:
    """Client for an OpenAI-compatible chat completions API.

    Args:
        api_key: Provider API key.
        model: Model identifier (e.g., "gpt-3.5-turbo").
        base_url: API base URL.
        timeout: HTTP request timeout in seconds.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-3.5-turbo",
        base_url: str = "https://api.openai.com/v1",
        timeout: int = 30,
    ) -> None:
        self._model = model
        self._base_url = base_url.rstrip("/")

        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout, connect=10),
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    # ── Core API ──────────────────────────────────────────────────────

    def complete(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> CompletionResult:
        """Generate a reply to `user_message` under `system_prompt`.

        Args:
            system_prompt: Persona / instructions sent as the system message.
            user_message: The (sanitized) user message.
            temperature: Sampling temperature (0.0–2.0).
            max_tokens: Maximum tokens in the response.

        Returns:
            Parsed CompletionResult.

        Raises:
            LLMServiceError: On any non-2xx status, timeout, transport
                error or non-JSON body.
        """
        payload: dict[str, Any] = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        return self._send_request(payload)

    # ── Request Handling ──────────────────────────────────────────────

    def _send_request(self, payload: dict[str, Any]) -> CompletionResult:
        logger.info(
            "llm_request",
            model=self._model,
            messages_count=len(payload["messages"]),
            max_tokens=payload["max_tokens"],
        )

        start = time.monotonic()
        try:
            response = self._client.post("/chat/completions", json=payload)
        except httpx.TimeoutException as e:
            logger.error("llm_timeout", error=str(e))
            raise LLMServiceError("Model provider request timed out") from e
        except httpx.HTTPError as e:
            logger.error("llm_transport_error", error=str(e))
            raise LLMServiceError(f"Model provider unreachable: {e}") from e
        duration_ms = round((time.monotonic() - start) * 1000)

        if response.status_code >= 300:
            logger.error(
                "llm_error",
                status=response.status_code,
                body=response.text[:500],
                duration_ms=duration_ms,
            )
            raise LLMServiceError(
                f"Model provider error: {response.status_code}",
                upstream_status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error("llm_invalid_json", error=str(e), duration_ms=duration_ms)
            raise LLMServiceError("Model provider returned invalid JSON") from e

        result = self._parse_response(data)

        logger.info(
            "llm_response",
            model=result.model,
            has_content=bool(result.content),
            finish_reason=result.finish_reason,
            duration_ms=duration_ms,
            usage=result.usage,
        )
        return result

    # ── Response Parsing ──────────────────────────────────────────────

    def _parse_response(self, data: Any) -> CompletionResult:
        """Parse the raw provider JSON into a CompletionResult.

        Every shape funnels through here; missing or oddly typed fields
        yield an empty `content` rather than an exception.
        """
        if not isinstance(data, dict):
            return CompletionResult(model=self._model)

        choices = data.get("choices")
        choice = choices[0] if isinstance(choices, list) and choices else {}
        if not isinstance(choice, dict):
            choice = {}

        message = choice.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            content = None

        usage = data.get("usage")
        if not isinstance(usage, dict):
            usage = {}
        usage_info = {
            "prompt_tokens": usage.get("prompt_tokens", 0),
            "completion_tokens": usage.get("completion_tokens", 0),
            "total_tokens": usage.get("total_tokens", 0),
        }

        return CompletionResult(
            content=content,
            model=data.get("model", self._model),
            usage=usage_info,
            finish_reason=choice.get("finish_reason") or "",
        )
