"""Health check endpoint.

Exposes GET /health describing how the chatbot is configured. It never
calls the identity provider, the ledger or the model provider, so it is
cheap enough for load-balancer probes.

Response format:
    {
        "status": "healthy" | "degraded",
        "version": "1.0.0",
        "llm": "enabled" | "disabled",
        "credit_ledger": "supabase" | "memory"
    }
"""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify

health_bp = Blueprint("health", __name__)

APP_VERSION = "1.0.0"


@health_bp.route("/health", methods=["GET"])
def health_check():
    """Application health check endpoint.

    Returns:
        200 always; ``status`` is "degraded" when no model API key is set.
    """
    settings = current_app.config["SETTINGS"]
    handler = current_app.config["CHAT_HANDLER"]

    return jsonify({
        "status": "degraded" if handler.degraded else "healthy",
        "version": APP_VERSION,
        "llm": "disabled" if handler.degraded else "enabled",
        "credit_ledger": settings.CREDIT_LEDGER_BACKEND,
    })
