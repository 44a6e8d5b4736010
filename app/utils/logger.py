"""Structured logging configuration using structlog.

Provides centralized logging setup with:
- JSON output in production, colored console output in development
- Automatic request_id binding via contextvars
- Timestamp, log level, and logger name on every log line
- Exception formatting

Never pass bearer tokens or API keys as log fields.

Usage:
    from app.utils.logger import setup_logging

    setup_logging(log_level="INFO", log_format="json")

    import structlog
    logger = structlog.get_logger(__name__)
    logger.info("credit_consumed", user_id="...", credits=9)
"""
from __future__ import annotations

import logging

import structlog


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Configure structlog for the entire application.

    Args:
        log_level: Logging level — DEBUG, INFO, WARNING, ERROR, CRITICAL.
        log_format: Output format — 'json' for production, 'console' for dev.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,       # request_id, method, path
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Third-party libraries (httpx, werkzeug) log through stdlib
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
