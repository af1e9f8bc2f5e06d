"""
Configuration and settings for the gallery backend.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RuntimeMode(str, Enum):
    """Where resources are persisted for the life of the process."""

    LOCAL = "local"
    HOSTED = "hosted"


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Runtime mode detection. GALLERY_RUNTIME_MODE wins when set; otherwise
    # a VERCEL marker or APP_ENV=production selects hosted mode.
    gallery_runtime_mode: Optional[RuntimeMode] = Field(default=None)
    app_env: str = Field(default="development")
    vercel: Optional[str] = Field(default=None)

    # Local development storage
    data_dir: str = Field(default="data")
    uploads_dir: str = Field(default="public/uploads")

    # Gateway tuning
    blob_write_attempts: int = Field(default=3, ge=1)
    blob_list_limit: int = Field(default=100, ge=1, le=1000)

    # S3-compatible blob storage
    blob_bucket: Optional[str] = Field(default=None)
    blob_region: Optional[str] = Field(default=None)
    blob_endpoint: Optional[str] = Field(default=None)
    blob_public_base_url: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)


def resolve_runtime_mode(settings: Settings) -> RuntimeMode:
    if settings.gallery_runtime_mode is not None:
        return settings.gallery_runtime_mode
    if settings.vercel or settings.app_env.lower() == "production":
        return RuntimeMode.HOSTED
    return RuntimeMode.LOCAL


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
