"""Cross-origin configuration for the chatbot widget.

The widget is served from the forum's origin while the API lives on its
own host, so every response carries the same permissive CORS headers,
preflights and errors included.

Usage:
    from app.middleware.cors import init_cors
    init_cors(app)
"""
from __future__ import annotations

from flask import Flask, request
from flask_cors import CORS

ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
ALLOWED_HEADERS = ["Content-Type", "Authorization", "X-Client-Info", "Apikey"]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": ", ".join(ALLOWED_METHODS),
    "Access-Control-Allow-Headers": ", ".join(ALLOWED_HEADERS),
}


def init_cors(app: Flask) -> None:
    """Register CORS handling on the Flask app.

    flask-cors adds Vary / Expose-Headers handling; the hooks below make
    the allow-* header set unconditional and answer every OPTIONS request.

    Args:
        app: Flask application instance.
    """

    @app.before_request
    def short_circuit_preflight():
        """Answer any OPTIONS request with an empty 200."""
        if request.method == "OPTIONS":
            return app.response_class(status=200)
        return None

    # after_request hooks run in reverse order: this one must be registered
    # before flask-cors so it runs last and replaces any header it added
    @app.after_request
    def apply_cors_headers(response):
        """Attach the full CORS header set to every response."""
        for name, value in CORS_HEADERS.items():
            response.headers[name] = value
        return response

    CORS(
        app,
        resources={r"/*": {"origins": "*"}},
        methods=ALLOWED_METHODS,
        allow_headers=ALLOWED_HEADERS,
        expose_headers=["X-Request-ID"],
    )
