"""Global Flask error handlers for consistent JSON error responses.

The widget only ever parses JSON, so anything that escapes a view still
comes back as a JSON object with either an ``error`` field or, for
unexpected failures, a human-readable ``response`` apology.

Usage:
    from app.middleware.error_handlers import register_error_handlers
    register_error_handlers(app)
"""
from __future__ import annotations

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

import structlog

from app.models.responses import ErrorResponse
from app.prompts.templates import APOLOGY_RESPONSE

logger = structlog.get_logger(__name__)


def _error_response(message: str, code: int):
    """Create a standardized JSON error response.

    Args:
        message: Error message for the ``error`` field.
        code: HTTP status code.

    Returns:
        Tuple of (response, status_code).
    """
    return jsonify(ErrorResponse(error=message).model_dump()), code


def register_error_handlers(app: Flask) -> None:
    """Register global error handlers on the Flask app.

    Args:
        app: Flask application instance.
    """

    # ── Standard HTTP Errors ──────────────────────────────────────────

    @app.errorhandler(400)
    def bad_request(e):
        return _error_response("Bad request", 400)

    @app.errorhandler(404)
    def not_found(e):
        return _error_response("Not found", 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return _error_response("Method not allowed", 405)

    # ── Catch-all for unexpected Werkzeug HTTP exceptions ─────────────

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        """Catch any HTTPException not explicitly handled above."""
        return _error_response(e.description or "Unknown error", e.code or 500)

    # ── Catch-all for truly unhandled exceptions ──────────────────────

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        """Last resort handler for unhandled exceptions."""
        logger.error(
            "unexpected_error",
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )
        return jsonify({"response": APOLOGY_RESPONSE}), 500
