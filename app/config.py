"""Centralized application configuration using Pydantic Settings.

Loads configuration from environment variables and `.env` file with
full validation, type coercion, and sensible defaults. The resulting
`Settings` object is created once per process and injected into the
application factory; nothing else reads the environment directly.

Usage:
    from app.config import get_settings

    settings = get_settings()  # cached singleton
    print(settings.OPENAI_MODEL)
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Values shipped in example .env files that must never count as a real key
PLACEHOLDER_KEYS = {"", "sk-xxxxx", "your-api-key-here", "changeme"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file.

    Optional:
        OPENAI_API_KEY: When missing, the chatbot runs in degraded mode and
            answers with a fixed informative message.

    Required:
        SUPABASE_URL, SUPABASE_ANON_KEY: identity checks use Supabase Auth.

    Required with the ``supabase`` ledger backend:
        SUPABASE_SERVICE_ROLE_KEY.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # silently ignore unknown env vars
    )

    # ── Flask ──────────────────────────────────────────────────────────
    FLASK_ENV: str = Field(default="development", description="Flask environment (development/production)")
    FLASK_DEBUG: bool = Field(default=False, description="Enable Flask debug mode")

    # ── Language model provider ───────────────────────────────────────
    OPENAI_API_KEY: str = Field(default="", description="Model provider API key (empty → degraded mode)")
    OPENAI_BASE_URL: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI-compatible API base URL",
    )
    OPENAI_MODEL: str = Field(default="gpt-3.5-turbo", description="Chat completion model identifier")
    CHAT_TEMPERATURE: float = Field(default=0.7, ge=0.0, le=2.0, description="Sampling temperature")
    CHAT_MAX_TOKENS: int = Field(default=500, ge=1, le=4096, description="Max tokens in a generated reply")

    # ── Identity provider / credit ledger (Supabase) ──────────────────
    SUPABASE_URL: str = Field(default="", description="Supabase project URL")
    SUPABASE_ANON_KEY: str = Field(default="", description="Public (anon) key used for auth calls")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(
        default="",
        description="Service-role key used for the credit RPC (bypasses row-level security)",
    )

    # ── Credits ───────────────────────────────────────────────────────
    CREDIT_LEDGER_BACKEND: str = Field(default="supabase", description="'supabase' or 'memory'")
    CREDIT_RPC_NAME: str = Field(default="consume_chatbot_credit", description="Postgres function consuming a credit")
    MAX_CREDITS: int = Field(default=10, ge=1, description="Credits granted per window")
    CREDIT_WINDOW_HOURS: int = Field(default=24, ge=1, description="Credit reset window (hours)")

    # ── HTTP Client ───────────────────────────────────────────────────
    HTTP_TIMEOUT: int = Field(default=30, ge=1, le=120, description="Outbound HTTP request timeout (seconds)")

    # ── Logging ───────────────────────────────────────────────────────
    LOG_LEVEL: str = Field(default="INFO", description="Logging level (DEBUG/INFO/WARNING/ERROR)")
    LOG_FORMAT: str = Field(default="json", description="Log output format ('json' for prod, 'console' for dev)")

    # ── Derived ───────────────────────────────────────────────────────

    @property
    def llm_enabled(self) -> bool:
        """Whether a model API key is configured (otherwise degraded mode)."""
        return self.OPENAI_API_KEY not in PLACEHOLDER_KEYS

    # ── Validators ────────────────────────────────────────────────────

    @field_validator("OPENAI_API_KEY", "SUPABASE_ANON_KEY", "SUPABASE_SERVICE_ROLE_KEY")
    @classmethod
    def strip_keys(cls, v: str) -> str:
        return v.strip()

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate log level."""
        v = v.upper().strip()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}, got '{v}'")
        return v

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        v = v.lower().strip()
        if v not in ("json", "console"):
            raise ValueError("LOG_FORMAT must be 'json' or 'console'")
        return v

    @field_validator("CREDIT_LEDGER_BACKEND")
    @classmethod
    def validate_ledger_backend(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in ("supabase", "memory"):
            raise ValueError("CREDIT_LEDGER_BACKEND must be 'supabase' or 'memory'")
        return v

    @field_validator("OPENAI_BASE_URL", "SUPABASE_URL")
    @classmethod
    def validate_urls(cls, v: str) -> str:
        """Ensure base URLs don't have trailing slashes."""
        return v.strip().rstrip("/")

    @model_validator(mode="after")
    def validate_supabase(self) -> "Settings":
        """Fail fast when Supabase credentials are missing.

        Identity checks always go to Supabase Auth, so the URL and anon key
        are needed with either ledger backend. The service-role key is only
        used by the Supabase ledger.
        """
        missing = [name for name in ("SUPABASE_URL", "SUPABASE_ANON_KEY") if not getattr(self, name)]
        if missing:
            raise ValueError(f"{', '.join(missing)} must be set to verify users with Supabase Auth.")
        if self.CREDIT_LEDGER_BACKEND == "supabase" and not self.SUPABASE_SERVICE_ROLE_KEY:
            raise ValueError(
                "SUPABASE_SERVICE_ROLE_KEY must be set when CREDIT_LEDGER_BACKEND is 'supabase'. "
                "Set CREDIT_LEDGER_BACKEND=memory for local development."
            )
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton Settings instance.

    Uses `lru_cache` so the `.env` file is only read once.
    Call this everywhere instead of instantiating Settings directly.
    """
    return Settings()
