"""Chat blueprint — the chatbot endpoint.

Routes:
    POST /chatbot               → Ask the assistant (spends one credit)
    POST /functions/v1/chatbot  → Same, at the widget's edge-function path
    POST /                      → Same, for single-function deployments

OPTIONS on any path is answered by the CORS middleware.
"""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

chat_bp = Blueprint("chat", __name__)


@chat_bp.route("/", methods=["POST"])
@chat_bp.route("/chatbot", methods=["POST"])
@chat_bp.route("/functions/v1/chatbot", methods=["POST"])
def chat():
    """Answer a chatbot message for an authenticated user.

    Request:
        Authorization: Bearer <token>
        { "message": "¿Qué hay de nuevo en el mundo del cómic?" }

    Response JSON (200):
        { "response": "...", "credits": 9 }

    Errors:
        400 { "error": "Message is required" }
        401 { "error": "No authorization header" | "Unauthorized" }
        429 { "error": "...", "credits": 0 }
        500 { "error": "Error checking credits" } | { "response": "<apology>" }
    """
    payload = request.get_json(force=True, silent=True)

    handler = current_app.config["CHAT_HANDLER"]
    result = handler.handle(request.headers.get("Authorization"), payload)

    return jsonify(result.body), result.status_code
