"""
Configuration and settings for the member console.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the API and the worker."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/_functions")
    log_level: str = Field(default="INFO")

    # Database (Postgres expected)
    database_url: Optional[str] = Field(default=None)

    # Queue (Redis)
    redis_url: Optional[str] = Field(default=None)
    redis_queue_key: str = Field(default="member_console:import_jobs")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)
    embedded_worker: bool = Field(default=False)

    # Headless platform REST API
    platform_base_url: str = Field(default="https://www.wixapis.com")
    platform_request_timeout: float = Field(default=30.0)
    platform_max_retries: int = Field(default=2)

    # Admin routes require "Authorization: Bearer <admin_token>" when set.
    admin_token: Optional[str] = Field(default=None)

    # Sites inserted at startup when the registry is empty,
    # e.g. [{"siteName": "...", "siteId": "...", "apiKey": "..."}]
    managed_sites: list[dict] = Field(default_factory=list)

    # Bulk import pacing
    import_delay_seconds: float = Field(default=1.0, ge=0)
    import_poll_interval_seconds: float = Field(default=0.5, gt=0)
    worker_poll_interval_seconds: float = Field(default=2.0, gt=0)
    stale_job_timeout_seconds: float = Field(default=900.0)

    # Member deletion
    contact_delete_delay_seconds: float = Field(default=5.0, ge=0)

    # Contact form
    contact_rate_limit: int = Field(default=5)
    contact_rate_window_seconds: int = Field(default=3600)
    contact_min_message_length: int = Field(default=10)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
