"""Typed settings configuration - single source of truth."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Console settings loaded from environment variables (prefix KDOC_)."""

    model_config = SettingsConfigDict(
        env_prefix="KDOC_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Remote document store
    store_base_url: str = "http://127.0.0.1:8080"
    request_timeout_s: float = 15.0

    # Retry envelope
    retry_count: int = 1
    retry_base_delay_ms: int = 250

    # Debounce windows (milliseconds)
    draft_debounce_ms: int = 250
    image_fetch_debounce_ms: int = 260

    # Durable local storage
    storage_backend: Literal["memory", "file", "redis"] = "file"
    storage_path: str = ".kdoc/local_state.json"
    storage_namespace: str = "voicebot.webhost"
    redis_url: str | None = None

    # Images
    max_image_upload_mb: int = 15

    # Search
    search_top_k_default: int = 5

    # Export
    export_source: str = "voicebot_web_host"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
