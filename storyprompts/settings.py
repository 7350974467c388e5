"""Application settings using Pydantic BaseSettings."""

import os
import re

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_async_database_url() -> str:
    """Get database URL converted for asyncpg driver."""
    url = os.environ.get("DATABASE_URL", settings.database_url)
    # Convert postgres:// to postgresql+asyncpg:// for SQLAlchemy async
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql://") and "+asyncpg" not in url:
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    # asyncpg doesn't support sslmode, it uses ssl parameter
    if "sslmode=" in url:
        url = re.sub(r'[?&]sslmode=[^&]*', '', url)
        url = url.rstrip('?&')
    return url


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Postgres (SQLite works for local dev and tests)
    database_url: str = "sqlite+aiosqlite:///./storyprompts.db"

    # Redis (optional, enables the shared cache/rate limiter)
    redis_url: str = "redis://localhost:6379/0"
    redis_enabled: bool = False

    # LLM (Gemini)
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    api_v1_prefix: str = "/api/v1"

    # Result cache
    prompt_cache_ttl_seconds: int = 3600  # personalised generation
    daily_prompt_cache_ttl_seconds: int = 86400
    cache_window_seconds: int = 300  # fingerprint time bucket width
    cache_max_entries: int = 1000
    cache_purge_interval_seconds: int = 60

    # Generation rate limit (fixed window per identity)
    generation_rate_limit_requests: int = 10
    generation_rate_limit_window_seconds: int = 60
    follow_up_throttle_seconds: int = 5

    # Generation retries
    generation_max_attempts: int = 3
    generation_backoff_seconds: float = 1.0
    generation_timeout_seconds: float = 15.0
    min_generated_prompt_length: int = 10

    # Chapter progression
    chapter_completion_threshold: float = 0.8
    selection_max_attempts: int = 3

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
