"""Request ID middleware for log correlation.

Every request gets an X-Request-ID: the client's header when it sends
one, a fresh UUID otherwise. The id is bound into structlog's context
together with the method and path, so each log line of a chatbot call
(identity check, credit spend, model call) can be joined back up.

Usage:
    from app.middleware.request_id import init_request_id_middleware
    init_request_id_middleware(app)
"""
from __future__ import annotations

import time
import uuid

import structlog
from flask import Flask, g, request

MAX_REQUEST_ID_LENGTH = 128


def init_request_id_middleware(app: Flask) -> None:
    """Register before/after hooks for request ID tracing.

    Args:
        app: Flask application instance.
    """
    logger = structlog.get_logger(__name__)

    @app.before_request
    def inject_request_id() -> None:
        """Inject request ID into Flask's g object and structlog context."""
        request_id = request.headers.get("X-Request-ID", "")[:MAX_REQUEST_ID_LENGTH] or str(uuid.uuid4())
        g.request_id = request_id
        g.request_started = time.monotonic()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.path,
        )

        logger.debug("request_started")

    @app.after_request
    def attach_request_id(response):
        """Attach request ID to response headers and log completion."""
        response.headers["X-Request-ID"] = g.get("request_id", "unknown")

        started = g.get("request_started")
        logger.info(
            "request_completed",
            status=response.status_code,
            duration_ms=round((time.monotonic() - started) * 1000) if started else None,
        )
        return response
