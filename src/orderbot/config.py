"""
Application configuration.

Uses pydantic-settings to load values from environment variables / .env file.
All secrets (backend keys, bot token, DB password) come from .env — never hardcoded.
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore unknown env vars
    )

    # ── Hosted backend ────────────────────────────────────────
    backend_url: str = "http://localhost:54321"
    backend_anon_key: str = ""
    backend_timeout: float = 30.0

    # ── Query cache ───────────────────────────────────────────
    # "memory"   — process-local cache (single instance, tests)
    # "postgres" — UNLOGGED cache table shared by all instances
    cache_backend: Literal["memory", "postgres"] = "memory"
    cache_ttl: int = 300

    postgres_db: str = "postgres"
    postgres_user: str = "postgres"
    postgres_password: str = "password"
    postgres_host: str = "localhost"
    postgres_port: int = 5432

    @property
    def database_url(self) -> str:
        """Async SQLAlchemy connection string for asyncpg."""
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # ── Telegram ──────────────────────────────────────────────
    telegram_bot_token: str = ""

    # Comma-separated "telegram_id:supplier_access_token" pairs.
    # Example: SUPPLIER_TELEGRAM_TOKENS=610379797:eyJhbGciOi...,123456789:eyJ...
    supplier_telegram_tokens: str = ""

    @property
    def supplier_tokens(self) -> dict[int, str]:
        """Parsed mapping of Telegram user ID → backend access token."""
        result: dict[int, str] = {}
        for pair in self.supplier_telegram_tokens.split(","):
            if ":" not in pair:
                continue
            tg_id, token = pair.split(":", 1)
            if tg_id.strip() and token.strip():
                result[int(tg_id.strip())] = token.strip()
        return result

    # ── Wizard HTTP API ───────────────────────────────────────
    api_host: str = "127.0.0.1"
    api_port: int = 8080

    # ── App ───────────────────────────────────────────────────
    log_level: str = "INFO"
    debug: bool = False


# Singleton — import this wherever config is needed
settings = Settings()
