"""Tests for the health endpoint."""
from app import create_app

from conftest import make_settings


def test_health_reports_enabled_llm(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.get_json() == {
        "status": "healthy",
        "version": "1.0.0",
        "llm": "enabled",
        "credit_ledger": "memory",
    }
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


def test_health_reports_degraded_mode(identity_verifier, ledger):
    app = create_app(
        make_settings(OPENAI_API_KEY=""),
        identity_verifier=identity_verifier,
        credit_ledger=ledger,
    )

    body = app.test_client().get("/health").get_json()

    assert body["status"] == "degraded"
    assert body["llm"] == "disabled"


def test_unknown_route_is_json_404(client):
    resp = client.get("/posts")

    assert resp.status_code == 404
    assert resp.get_json() == {"error": "Not found"}
