"""Identity verification against the Supabase Auth REST API.

Resolves a bearer credential to a stable user identifier by calling
``GET /auth/v1/user`` with the caller's token. The provider owns token
validation (signature, expiry, revocation); this module only maps its
answer onto `UserIdentity` or the error taxonomy.

Usage:
    from app.services.identity_service import IdentityVerifier

    verifier = IdentityVerifier(base_url="https://xyz.supabase.co", api_key="anon-key")
    user = verifier.resolve_user(token)
"""
from __future__ import annotations

import time

import httpx
import structlog
from pydantic import ValidationError

from app.models.responses import UserIdentity
from app.utils.exceptions import IdentityProviderError, UnauthorizedError

logger = structlog.get_logger(__name__)

# Provider statuses meaning "this token does not identify anyone"
REJECTED_STATUS_CODES = {400, 401, 403, 404}


class IdentityVerifier:
    """Client for the identity provider's user-lookup endpoint.

    Args:
        base_url: Supabase project URL (no trailing slash).
        api_key: Public (anon) project key, sent as the ``apikey`` header.
        timeout: HTTP request timeout in seconds.
    """

    def __init__(self, base_url: str, api_key: str, timeout: int = 30) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout, connect=10),
            headers={
                "apikey": api_key,
                "Accept": "application/json",
            },
        )

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def resolve_user(self, token: str) -> UserIdentity:
        """Exchange a bearer token for the user it belongs to.

        Args:
            token: The raw bearer credential (without the ``Bearer`` prefix).

        Returns:
            The resolved UserIdentity.

        Raises:
            UnauthorizedError: The provider rejected the token.
            IdentityProviderError: The provider is unreachable or misbehaving.
        """
        start = time.monotonic()
        try:
            response = self._client.get(
                "/auth/v1/user",
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TimeoutException as e:
            logger.error("identity_timeout", error=str(e))
            raise IdentityProviderError("Identity provider timed out") from e
        except httpx.HTTPError as e:
            logger.error("identity_transport_error", error=str(e))
            raise IdentityProviderError(f"Identity provider unreachable: {e}") from e

        duration_ms = round((time.monotonic() - start) * 1000)

        if response.status_code in REJECTED_STATUS_CODES:
            logger.info("identity_rejected", status=response.status_code, duration_ms=duration_ms)
            raise UnauthorizedError()

        if response.status_code >= 300:
            logger.error(
                "identity_error",
                status=response.status_code,
                body=response.text[:200],
                duration_ms=duration_ms,
            )
            raise IdentityProviderError(
                f"Identity provider error: {response.status_code}",
                upstream_status=response.status_code,
            )

        try:
            user = UserIdentity.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            # A 2xx without a usable user id means the token resolved to nobody
            logger.warning("identity_payload_invalid", error=str(e))
            raise UnauthorizedError() from e

        logger.debug("identity_resolved", user_id=user.id, duration_ms=duration_ms)
        return user
