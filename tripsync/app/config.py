"""Typed settings configuration - single source of truth."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Document store
    store_backend: Literal["memory", "sql"] = "memory"
    database_url: str | None = None
    create_tables_on_startup: bool = False

    # Auth
    default_tenant_id: str = "dev-tenant"

    # Transactions
    transaction_max_attempts: int = 5
    transaction_timeout_ms: int = 5000

    # Retry jitter (milliseconds)
    transaction_retry_jitter_min_ms: int = 20
    transaction_retry_jitter_max_ms: int = 100

    # Route geometry
    polyline_precision: int = 5


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
