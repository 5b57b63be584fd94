"""
Application configuration loaded from environment variables.
"""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Gemini API
    gemini_api_key: str = ""
    gemini_base_url: str = "https://generativelanguage.googleapis.com"
    style_transfer_model: str = "gemini-2.0-flash-exp"  # must support IMAGE response modality
    suggestion_model: str = "gemini-2.0-flash"

    # Timeouts
    api_timeout_seconds: int = 120

    # File upload
    max_upload_bytes: int = 10 * 1024 * 1024

    # Form sessions
    session_cookie_name: str = "alchemist_session"
    session_ttl_seconds: int = 3600
    session_cleanup_interval_seconds: int = 300


@lru_cache
def get_settings() -> Settings:
    return Settings()
