"""Unit tests for the identity verifier."""
import json
from unittest.mock import MagicMock, patch

import httpx
import pytest

from app.models.responses import UserIdentity
from app.services.identity_service import IdentityVerifier
from app.utils.exceptions import IdentityProviderError, UnauthorizedError


@pytest.fixture
def verifier():
    service = IdentityVerifier(base_url="https://project.supabase.co", api_key="anon-key")
    yield service
    service.close()


def _mock_httpx_response(data, status_code=200):
    resp = MagicMock(spec=httpx.Response)
    resp.status_code = status_code
    resp.json.return_value = data
    resp.text = json.dumps(data)
    return resp


class TestResolveUser:
    """Tests for IdentityVerifier.resolve_user."""

    def test_valid_token_resolves_user(self, verifier):
        data = {"id": "user-42", "email": "ana@example.com", "role": "authenticated"}
        with patch.object(verifier._client, "get", return_value=_mock_httpx_response(data)) as mock_get:
            user = verifier.resolve_user("jwt-token")

        assert user == UserIdentity(id="user-42", email="ana@example.com")
        mock_get.assert_called_once_with(
            "/auth/v1/user",
            headers={"Authorization": "Bearer jwt-token"},
        )

    def test_anon_key_sent_as_apikey(self, verifier):
        assert verifier._client.headers["apikey"] == "anon-key"

    @pytest.mark.parametrize("status", [400, 401, 403, 404])
    def test_rejected_token_is_unauthorized(self, verifier, status):
        resp = _mock_httpx_response({"msg": "invalid JWT"}, status_code=status)
        with patch.object(verifier._client, "get", return_value=resp):
            with pytest.raises(UnauthorizedError) as exc_info:
                verifier.resolve_user("expired")
        assert exc_info.value.status_code == 401
        assert exc_info.value.to_body() == {"error": "Unauthorized"}

    def test_payload_without_id_is_unauthorized(self, verifier):
        with patch.object(verifier._client, "get", return_value=_mock_httpx_response({"email": "x@y.z"})):
            with pytest.raises(UnauthorizedError):
                verifier.resolve_user("anon-key-as-token")

    def test_server_error_raises_provider_error(self, verifier):
        resp = _mock_httpx_response({"error": "boom"}, status_code=503)
        with patch.object(verifier._client, "get", return_value=resp):
            with pytest.raises(IdentityProviderError) as exc_info:
                verifier.resolve_user("token")
        assert exc_info.value.upstream_status == 503

    def test_timeout_raises_provider_error(self, verifier):
        with patch.object(verifier._client, "get", side_effect=httpx.ReadTimeout("slow")):
            with pytest.raises(IdentityProviderError, match="timed out"):
                verifier.resolve_user("token")

    def test_connection_error_raises_provider_error(self, verifier):
        with patch.object(verifier._client, "get", side_effect=httpx.ConnectError("refused")):
            with pytest.raises(IdentityProviderError, match="unreachable"):
                verifier.resolve_user("token")
