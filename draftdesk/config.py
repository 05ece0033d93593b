"""
Settings for the draftdesk API and queue worker.

Values come from environment variables or a .env file. The web process
and the standalone worker read the same settings, so they agree on the
queue database and provider.
"""

import os
import sys

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


TRUTHY = {"true", "1", "yes", "on"}


class AppConfig(BaseSettings):
    """
    draftdesk settings. Names match the environment variables.

    Invalid values fail at import time, before the app or worker starts.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True
    )

    # ===== Generation Provider (Ollama Cloud) =====
    OLLAMA_CLOUD_API_KEY: str | None = Field(
        default=None,
        description="Provider credential. Without it the worker idles and health reports unconfigured."
    )

    OLLAMA_CLOUD_URL: str = Field(
        default="https://api.ollama.com",
        description="Provider base URL"
    )

    OLLAMA_CLOUD_MODEL: str = Field(
        default="deepseek-v3.2",
        description="Model identifier used for draft and polish stages"
    )

    PROVIDER_TIMEOUT_SECONDS: float = Field(
        default=60.0,
        gt=0,
        le=600,
        description="Timeout for a single generation call"
    )

    PROVIDER_MAX_RETRIES: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per provider call (retryable errors only)"
    )

    PROVIDER_RETRY_DELAY_SECONDS: float = Field(
        default=2.0,
        ge=0,
        description="Base delay for exponential backoff between provider attempts"
    )

    HEALTH_TIMEOUT_SECONDS: float = Field(
        default=5.0,
        gt=0,
        le=30,
        description="Timeout for the provider health probe"
    )

    # ===== Queue Worker =====
    AI_WORKER_ENABLED: bool = Field(
        default=True,
        description="Start the background queue worker with the web app"
    )

    WORKER_POLL_INTERVAL: int = Field(
        default=10,
        ge=1,
        le=3600,
        description="Seconds between worker ticks"
    )

    @field_validator('AI_WORKER_ENABLED', 'DEV_MODE', 'DEBUG', mode='before')
    @classmethod
    def parse_bool_string(cls, v):
        """Parse boolean from string values (container env vars are strings)."""
        if isinstance(v, str):
            return v.strip().lower() in TRUTHY
        return bool(v)

    # ===== Queue Storage =====
    QUEUE_DB_PATH: str = Field(
        default="ai_queue.db",
        description="Path to the SQLite database holding queue items"
    )

    Storage_Path: str | None = Field(
        default=None,
        alias="STORAGE_PATH",
        description="Persistent volume directory. If set, the queue database lives there."
    )

    @property
    def queue_db_path(self) -> str:
        """Get queue DB path, using persistent storage if available."""
        if self.Storage_Path:
            return os.path.join(self.Storage_Path, os.path.basename(self.QUEUE_DB_PATH))
        return self.QUEUE_DB_PATH

    # ===== Input Limits =====
    MAX_DOCUMENT_CHARS: int = Field(
        default=8000,
        ge=500,
        le=100_000,
        description="Parsed document text is truncated to this many characters"
    )

    MAX_INSTRUCTIONS_LENGTH: int = Field(
        default=2000,
        ge=1,
        description="Maximum length of editor instructions"
    )

    OCR_LANGUAGES: str = Field(
        default="eng",
        description="Tesseract language packs used for image documents (e.g. 'hrv+eng')"
    )

    # ===== Runtime =====
    ENVIRONMENT: str = Field(
        default="development",
        description="Deployment name shown in startup logs (development, staging, production)"
    )

    DEBUG: bool = Field(
        default=True,
        description="Include exception details in error responses"
    )

    DEV_MODE: bool = Field(
        default=True,
        description="Bypass API key auth when no keys are configured"
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Level for the draftdesk stdlib logger; the in-memory buffer keeps everything"
    )

    API_HOST: str = Field(
        default="0.0.0.0",
        description="Bind address for `python -m draftdesk.api.main`"
    )

    API_PORT: int = Field(
        default=8000,
        ge=1024,
        le=65535,
        description="Port for `python -m draftdesk.api.main`"
    )

    # ===== Admin API Access =====
    API_KEYS: str | None = Field(
        default=None,
        description="Comma-separated admin API keys. Leave unset with DEV_MODE=true to disable auth locally."
    )

    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of origins accepted on write endpoints. Use '*' for all (dev only)."
    )

    APP_BASE_URL: str = Field(
        default="http://localhost:8000",
        description="Base URL of the admin console"
    )

    RATE_LIMIT_PER_MINUTE: int = Field(
        default=60,
        ge=0,
        le=10000,
        description="Max API requests per minute per API key (0 = unlimited)"
    )

    @property
    def api_keys_list(self) -> list[str]:
        """API_KEYS split on commas, blanks dropped."""
        if not self.API_KEYS:
            return []
        return [k.strip() for k in self.API_KEYS.split(",") if k.strip()]

    @property
    def allowed_origins_list(self) -> list[str]:
        """Get list of allowed origins.

        In production (DEV_MODE=false), '*' is not allowed and
        falls back to APP_BASE_URL.
        """
        if self.ALLOWED_ORIGINS == "*":
            if self.DEV_MODE:
                return ["*"]
            print(
                "WARNING: ALLOWED_ORIGINS='*' is not accepted in production. "
                f"Using APP_BASE_URL ({self.APP_BASE_URL}) instead.",
                file=sys.stderr
            )
            return [self.APP_BASE_URL]
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def auth_required(self) -> bool:
        """Auth is skipped only in dev mode with no keys configured."""
        return bool(self.api_keys_list) or not self.DEV_MODE

    # ===== Derived =====

    @property
    def provider_configured(self) -> bool:
        """Check if the generation provider has a credential."""
        return bool(self.OLLAMA_CLOUD_API_KEY)


# Shared settings instance; tests build their own AppConfig
config = AppConfig()


if __name__ == "__main__":
    print(f"Provider: {config.OLLAMA_CLOUD_URL} ({config.OLLAMA_CLOUD_MODEL})")
    print(f"Provider configured: {'✓' if config.provider_configured else '✗'}")
    print(f"Queue DB: {config.queue_db_path}")
    print(f"Worker: {'enabled' if config.AI_WORKER_ENABLED else 'disabled'} "
          f"(every {config.WORKER_POLL_INTERVAL}s)")
