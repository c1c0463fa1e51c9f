"""
Centralized configuration for the Mirrorcut backend.

All settings are loaded from environment variables with sensible defaults.
Module-specific settings should be namespaced (e.g., SUPABASE_*, STORAGE_*).
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Mirrorcut API"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = ""
    supabase_db_url: str = ""  # direct Postgres URI, migrations only

    # Object storage
    storage_bucket: str = "images"

    # Scheduled cleanup (sent by the scheduler as a bearer token)
    cron_secret: str = ""

    # Frontend URLs (for redirects)
    frontend_url: str = "http://localhost:5173"

    # Anonymous sessions
    session_cookie_name: str = "session_id"
    session_header_name: str = "X-Session-Id"

    # Uploads
    max_upload_size: int = 50 * 1024 * 1024
    warn_upload_size: int = 25 * 1024 * 1024

    # Identity merge
    merge_max_attempts: int = 2


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
