"""Comics/manga/art forum chatbot — Flask Application Package.

This is the main application package. The `create_app()` factory function
initializes the Flask application with configuration, logging,
middleware, the chatbot's collaborators, and blueprints.
"""
from __future__ import annotations

import structlog
from flask import Flask

from app.config import get_settings, Settings
from app.utils.logger import setup_logging
from app.middleware.request_id import init_request_id_middleware
from app.middleware.cors import init_cors
from app.middleware.error_handlers import register_error_handlers


def create_app(
    settings: Settings | None = None,
    *,
    identity_verifier=None,
    credit_ledger=None,
    llm_service=None,
) -> Flask:
    """Application factory pattern.

    Creates and configures the Flask application with:
    - Pydantic-based configuration (loaded, or injected by the caller)
    - Structured logging (structlog)
    - Request ID middleware
    - CORS for the chatbot widget
    - Global error handlers
    - Chatbot collaborators (identity, credit ledger, model gateway)
    - Blueprint registration (health, chat)

    Args:
        settings: Settings to use instead of the cached environment settings.
        identity_verifier: Pre-built IdentityVerifier (tests inject fakes).
        credit_ledger: Pre-built CreditLedger.
        llm_service: Pre-built LLMService; ignored in degraded mode.

    Returns:
        Configured Flask application instance.
    """
    settings = settings or get_settings()

    # ── Logging (must be first so all subsequent logs are formatted) ──
    setup_logging(log_level=settings.LOG_LEVEL, log_format=settings.LOG_FORMAT)
    logger = structlog.get_logger(__name__)

    # ── Flask app ─────────────────────────────────────────────────────
    app = Flask(__name__)
    app.config["FLASK_DEBUG"] = settings.FLASK_DEBUG
    app.config["SETTINGS"] = settings
    app.json.ensure_ascii = False

    # ── Middleware ─────────────────────────────────────────────────────
    init_request_id_middleware(app)
    init_cors(app)
    register_error_handlers(app)

    # ── Services ──────────────────────────────────────────────────────
    _init_services(
        app,
        settings,
        identity_verifier=identity_verifier,
        credit_ledger=credit_ledger,
        llm_service=llm_service,
    )

    # ── Blueprints ────────────────────────────────────────────────────
    from app.routes.health import health_bp
    from app.routes.chat import chat_bp
    app.register_blueprint(health_bp)
    app.register_blueprint(chat_bp)

    logger.info(
        "app_started",
        env=settings.FLASK_ENV,
        model=settings.OPENAI_MODEL,
        llm_enabled=settings.llm_enabled,
        credit_ledger=settings.CREDIT_LEDGER_BACKEND,
        log_level=settings.LOG_LEVEL,
    )

    return app


def _init_services(
    app: Flask,
    settings: Settings,
    *,
    identity_verifier=None,
    credit_ledger=None,
    llm_service=None,
) -> None:
    """Build the chatbot's collaborators and the chat handler.

    Everything is created once per process and stored on `app.config`
    for access via `current_app`.

    Args:
        app: Flask application instance.
        settings: Application settings.
    """
    from datetime import timedelta

    from app.services.chat_handler import ChatHandler
    from app.services.credit_ledger import InMemoryCreditLedger, SupabaseCreditLedger
    from app.services.identity_service import IdentityVerifier
    from app.services.llm_service import LLMService

    logger = structlog.get_logger(__name__)
    logger.info("initializing_services")

    if identity_verifier is None:
        identity_verifier = IdentityVerifier(
            base_url=settings.SUPABASE_URL,
            api_key=settings.SUPABASE_ANON_KEY,
            timeout=settings.HTTP_TIMEOUT,
        )

    if credit_ledger is None:
        if settings.CREDIT_LEDGER_BACKEND == "memory":
            logger.warning("in_memory_credit_ledger", reason="balances are per-process and lost on restart")
            credit_ledger = InMemoryCreditLedger(
                max_credits=settings.MAX_CREDITS,
                window=timedelta(hours=settings.CREDIT_WINDOW_HOURS),
            )
        else:
            credit_ledger = SupabaseCreditLedger(
                base_url=settings.SUPABASE_URL,
                service_role_key=settings.SUPABASE_SERVICE_ROLE_KEY,
                rpc_name=settings.CREDIT_RPC_NAME,
                timeout=settings.HTTP_TIMEOUT,
            )

    if not settings.llm_enabled:
        logger.warning("llm_disabled", reason="OPENAI_API_KEY not configured, serving degraded replies")
        llm_service = None
    elif llm_service is None:
        llm_service = LLMService(
            api_key=settings.OPENAI_API_KEY,
            model=settings.OPENAI_MODEL,
            base_url=settings.OPENAI_BASE_URL,
            timeout=settings.HTTP_TIMEOUT,
        )

    handler = ChatHandler(
        identity_verifier,
        credit_ledger,
        llm_service,
        temperature=settings.CHAT_TEMPERATURE,
        max_tokens=settings.CHAT_MAX_TOKENS,
    )

    app.config["IDENTITY_VERIFIER"] = identity_verifier
    app.config["CREDIT_LEDGER"] = credit_ledger
    app.config["LLM_SERVICE"] = llm_service
    app.config["CHAT_HANDLER"] = handler

    logger.info("services_initialized", degraded=handler.degraded)
