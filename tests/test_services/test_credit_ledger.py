"""Unit tests for the credit ledgers."""
import json
import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import httpx
import pytest

from app.models.responses import CreditConsumption
from app.services.credit_ledger import InMemoryCreditLedger, SupabaseCreditLedger
from app.utils.exceptions import CreditLedgerError


def _mock_httpx_response(data, status_code=200):
    """Create a mock httpx.Response."""
    resp = MagicMock(spec=httpx.Response)
    resp.status_code = status_code
    resp.json.return_value = data
    resp.text = json.dumps(data)
    return resp


class TestInMemoryLedger:
    """Tests for InMemoryCreditLedger.consume_credit."""

    def test_first_call_opens_full_window(self, ledger):
        result = ledger.consume_credit("user-1")
        assert result == CreditConsumption(success=True, credits=9)

    @pytest.mark.parametrize("spent", [1, 4, 10])
    def test_balance_after_n_consumptions(self, ledger, spent):
        for _ in range(spent):
            ledger.consume_credit("user-1")
        assert ledger.balance("user-1") == 10 - spent

    def test_exhausted_balance_is_refused(self, ledger):
        for _ in range(10):
            assert ledger.consume_credit("user-1").success is True

        result = ledger.consume_credit("user-1")

        assert result.success is False
        assert result.credits == 0
        assert "24 horas" in result.message

    def test_refusals_do_not_go_negative(self, ledger):
        for _ in range(15):
            ledger.consume_credit("user-1")
        assert ledger.balance("user-1") == 0

    def test_users_are_independent(self, ledger):
        for _ in range(10):
            ledger.consume_credit("user-1")
        assert ledger.consume_credit("user-2").credits == 9

    def test_window_reset_restores_credits(self, ledger, clock):
        for _ in range(10):
            ledger.consume_credit("user-1")

        clock.advance(hours=23, minutes=59)
        assert ledger.consume_credit("user-1").success is False

        clock.advance(minutes=1)
        result = ledger.consume_credit("user-1")
        assert result.success is True
        assert result.credits == 9

    def test_window_is_anchored_at_first_use(self, ledger, clock):
        ledger.consume_credit("user-1")
        clock.advance(hours=12)
        ledger.consume_credit("user-1")
        clock.advance(hours=12)
        # 24h after the first call the whole balance comes back
        assert ledger.consume_credit("user-1").credits == 9

    def test_balance_of_unknown_user_is_full(self, ledger):
        assert ledger.balance("nobody") == 10

    def test_concurrent_consumption_never_overdraws(self, ledger):
        for _ in range(9):
            ledger.consume_credit("user-1")

        barrier = threading.Barrier(8)

        def spend():
            barrier.wait()
            return ledger.consume_credit("user-1")

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: spend(), range(8)))

        assert sum(r.success for r in results) == 1
        assert all(r.credits == 0 for r in results)

    def test_concurrent_full_balance_spent_exactly_once(self):
        ledger = InMemoryCreditLedger(max_credits=10)
        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(lambda _: ledger.consume_credit("user-1"), range(40)))

        assert sum(r.success for r in results) == 10
        assert sorted(r.credits for r in results if r.success) == list(range(10))


@pytest.fixture
def supabase_ledger():
    ledger = SupabaseCreditLedger(
        base_url="https://project.supabase.co/",
        service_role_key="service-role-key",
    )
    yield ledger
    ledger.close()


class TestSupabaseLedger:
    """Tests for SupabaseCreditLedger.consume_credit."""

    def test_posts_to_rpc_with_user_id(self, supabase_ledger):
        resp = _mock_httpx_response({"success": True, "credits": 7})
        with patch.object(supabase_ledger._client, "post", return_value=resp) as mock_post:
            result = supabase_ledger.consume_credit("user-1")

        assert result == CreditConsumption(success=True, credits=7)
        mock_post.assert_called_once_with(
            "/rest/v1/rpc/consume_chatbot_credit",
            json={"p_user_id": "user-1"},
        )

    def test_sends_service_role_credentials(self, supabase_ledger):
        headers = supabase_ledger._client.headers
        assert headers["apikey"] == "service-role-key"
        assert headers["Authorization"] == "Bearer service-role-key"

    def test_quota_exhausted_payload(self, supabase_ledger):
        resp = _mock_httpx_response(
            {"success": False, "credits": 0, "message": "Sin créditos"}
        )
        with patch.object(supabase_ledger._client, "post", return_value=resp):
            result = supabase_ledger.consume_credit("user-1")

        assert result.success is False
        assert result.credits == 0
        assert result.message == "Sin créditos"

    def test_single_row_array_payload(self, supabase_ledger):
        resp = _mock_httpx_response([{"success": True, "credits": 3}])
        with patch.object(supabase_ledger._client, "post", return_value=resp):
            assert supabase_ledger.consume_credit("user-1").credits == 3

    def test_http_error_raises(self, supabase_ledger):
        resp = _mock_httpx_response({"message": "permission denied"}, status_code=403)
        with patch.object(supabase_ledger._client, "post", return_value=resp):
            with pytest.raises(CreditLedgerError) as exc_info:
                supabase_ledger.consume_credit("user-1")
        assert exc_info.value.upstream_status == 403

    def test_transport_error_raises(self, supabase_ledger):
        with patch.object(
            supabase_ledger._client, "post", side_effect=httpx.ConnectError("refused")
        ):
            with pytest.raises(CreditLedgerError, match="unreachable"):
                supabase_ledger.consume_credit("user-1")

    @pytest.mark.parametrize("payload", [None, [], "ok", {"success": True}, {"credits": -1, "success": True}])
    def test_malformed_payload_raises(self, supabase_ledger, payload):
        resp = _mock_httpx_response(payload)
        with patch.object(supabase_ledger._client, "post", return_value=resp):
            with pytest.raises(CreditLedgerError, match="Malformed"):
                supabase_ledger.consume_credit("user-1")
