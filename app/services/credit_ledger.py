"""Per-user chatbot credit ledger.

A ledger owns every user's credit balance and exposes one operation,
`consume_credit`, which atomically spends a credit if one is available.
Balances are capped at `max_credits` and refilled when the user's
window (24 hours by default) has elapsed since it was opened.

Two implementations:
- SupabaseCreditLedger: calls the ``consume_chatbot_credit`` Postgres
  function through PostgREST with the service-role key. The function
  performs a single conditional update under a row lock, so concurrent
  handler processes can never overdraw a balance.
- InMemoryCreditLedger: process-local table guarded by a lock, for local
  development and tests. Only safe with a single process.

Usage:
    from app.services.credit_ledger import InMemoryCreditLedger

    ledger = InMemoryCreditLedger(max_credits=10)
    result = ledger.consume_credit("user-1")   # success=True, credits=9
"""
from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx
import structlog
from pydantic import ValidationError

from app.models.responses import CreditConsumption
from app.prompts.templates import QUOTA_EXCEEDED_MESSAGE
from app.utils.exceptions import CreditLedgerError

logger = structlog.get_logger(__name__)


class CreditLedger(ABC):
    """Contract every credit ledger implements."""

    @abstractmethod
    def consume_credit(self, user_id: str) -> CreditConsumption:
        """Spend one credit for `user_id` if any is left.

        Must be atomic with respect to concurrent calls for the same user.

        Raises:
            CreditLedgerError: The ledger could not answer.
        """

    def close(self) -> None:
        """Release any resources held by the ledger."""


# ══════════════════════════════════════════════════════════════════════
# Supabase (PostgREST RPC)
# ══════════════════════════════════════════════════════════════════════

class SupabaseCreditLedger(CreditLedger):
    """Ledger backed by a Postgres function exposed through PostgREST.

    Args:
        base_url: Supabase project URL (no trailing slash).
        service_role_key: Privileged key; bypasses row-level security.
        rpc_name: Name of the Postgres function to call.
        timeout: HTTP request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str,
        service_role_key: str,
        rpc_name: str = "consume_chatbot_credit",
        timeout: int = 30,
    ) -> None:
        self._rpc_path = f"/rest/v1/rpc/{rpc_name}"
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout, connect=10),
            headers={
                "apikey": service_role_key,
                "Authorization": f"Bearer {service_role_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    def close(self) -> None:
        self._client.close()

    def consume_credit(self, user_id: str) -> CreditConsumption:
        start = time.monotonic()
        try:
            response = self._client.post(self._rpc_path, json={"p_user_id": user_id})
        except httpx.HTTPError as e:
            logger.error("credit_rpc_transport_error", user_id=user_id, error=str(e))
            raise CreditLedgerError(f"Credit ledger unreachable: {e}") from e

        duration_ms = round((time.monotonic() - start) * 1000)

        if response.status_code >= 300:
            logger.error(
                "credit_rpc_error",
                user_id=user_id,
                status=response.status_code,
                body=response.text[:200],
                duration_ms=duration_ms,
            )
            raise CreditLedgerError(
                f"Credit ledger error: {response.status_code}",
                upstream_status=response.status_code,
            )

        try:
            result = self._parse_result(response.json())
        except (ValueError, ValidationError) as e:
            logger.error("credit_rpc_payload_invalid", user_id=user_id, error=str(e))
            raise CreditLedgerError(f"Malformed credit ledger response: {e}") from e

        logger.info(
            "credit_rpc_result",
            user_id=user_id,
            success=result.success,
            credits=result.credits,
            duration_ms=duration_ms,
        )
        return result

    @staticmethod
    def _parse_result(data: Any) -> CreditConsumption:
        """Normalize the RPC payload into a CreditConsumption.

        PostgREST returns a bare JSON object for ``returns json`` functions
        and a one-row array for ``returns table`` functions; both are accepted.
        """
        if isinstance(data, list):
            if len(data) != 1:
                raise ValueError(f"expected one row, got {len(data)}")
            data = data[0]
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        return CreditConsumption.model_validate(data)


# ══════════════════════════════════════════════════════════════════════
# In-memory
# ══════════════════════════════════════════════════════════════════════

@dataclass
class CreditRecord:
    """Balance of one user inside the current window."""
    credits: int
    window_start: datetime


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryCreditLedger(CreditLedger):
    """Thread-safe process-local ledger.

    Args:
        max_credits: Credits granted per window.
        window: Length of the reset window.
        clock: Callable returning the current aware datetime (tests inject one).
    """

    def __init__(
        self,
        max_credits: int = 10,
        window: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._max_credits = max_credits
        self._window = window
        self._clock = clock
        self._records: dict[str, CreditRecord] = {}
        self._lock = threading.Lock()

    def consume_credit(self, user_id: str) -> CreditConsumption:
        with self._lock:
            now = self._clock()
            record = self._records.get(user_id)

            if record is None or now - record.window_start >= self._window:
                record = CreditRecord(credits=self._max_credits, window_start=now)
                self._records[user_id] = record

            if record.credits <= 0:
                logger.info("credit_exhausted", user_id=user_id)
                return CreditConsumption(
                    success=False,
                    credits=0,
                    message=QUOTA_EXCEEDED_MESSAGE,
                )

            record.credits -= 1
            remaining = record.credits

        logger.debug("credit_consumed", user_id=user_id, credits=remaining)
        return CreditConsumption(success=True, credits=remaining)

    def balance(self, user_id: str) -> int:
        """Current balance of `user_id` without spending anything."""
        with self._lock:
            record = self._records.get(user_id)
            if record is None or self._clock() - record.window_start >= self._window:
                return self._max_credits
            return record.credits
