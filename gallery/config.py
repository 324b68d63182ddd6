"""
Configuration and settings for the gallery service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Hosted backend (PostgREST + GoTrue). The NEXT_PUBLIC_ names are what
    # the deployment platform injects for the browser build.
    supabase_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
    )
    supabase_anon_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY"
        ),
    )
    request_timeout_seconds: float = Field(default=10.0)

    # Direct connection to the provider's Postgres (or any SQLAlchemy URL)
    database_url: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False,
        validation_alias="GALLERY_USE_IN_MEMORY_BACKENDS",
    )

    # Gallery behaviour
    image_limit: int = Field(default=20, ge=1)
    caption_preview_count: int = Field(default=2, ge=0)
    vote_mode: Literal["votes", "likes"] = Field(default="votes")
    session_cookie_name: str = Field(default="session_token")

    # Account created at startup when running on in-memory backends
    demo_email: Optional[str] = Field(default=None)
    demo_password: Optional[str] = Field(default=None)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
