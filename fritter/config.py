"""
Configuration and settings for the Fritter backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Database (any SQLAlchemy URL; Postgres in production)
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, alias="FRITTER_USE_IN_MEMORY_BACKENDS"
    )

    # Signed-cookie sessions
    session_secret: str = Field(
        default="fritter-dev-secret", alias="FRITTER_SESSION_SECRET"
    )
    session_cookie: str = Field(default="fritter_session")

    # Content and age rules
    max_freet_length: int = Field(default=280)
    minimum_age: int = Field(default=15)
    adult_age: int = Field(default=18)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
