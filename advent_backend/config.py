"""
Configuration and settings for the advent calendar backend.

Every entry point (API, worker helpers and operator scripts) reads its
configuration through `get_settings()`; values come from the environment,
then `.env` and `.env.test` in the working directory.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service and scripts."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.test"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")
    app_version: str = Field(default="2.0.0")

    # Hosted Postgres (Supabase) via SQLAlchemy URL
    database_url: Optional[str] = None

    # Hosted auth (Supabase)
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None

    # Key-value namespace for chat sessions (Redis)
    redis_url: Optional[str] = None
    kv_key_prefix: str = Field(default="harper-advent:")

    # S3-compatible storage (Supabase Storage S3 endpoint)
    storage_endpoint: Optional[str] = None
    storage_region: Optional[str] = None
    storage_bucket: str = Field(default="photos")
    storage_access_key_id: Optional[str] = None
    storage_secret_access_key: Optional[str] = None

    # Third-party services reported by the health check
    openai_api_key: Optional[str] = None
    firebase_api_key: Optional[str] = None

    # Push notifications (service account JSON for firebase-admin)
    firebase_credentials: Optional[str] = None
    notification_icon: str = Field(default="/icon-192x192.png")
    notification_app_url: str = Field(default="/")

    # Operator scripts
    photos_dir: str = Field(default="public/photos")
    d1_database_name: str = Field(default="harper-advent-sessions")
    d1_migration_file: str = Field(
        default="supabase/migrations/001_session_events.sql"
    )

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="ADVENT_USE_IN_MEMORY_BACKENDS"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
