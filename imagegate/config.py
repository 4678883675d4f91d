"""Application configuration for the image gateway."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic settings sourced from environment variables."""

    cache_folder: Path = Field(
        default=Path("./data/cache"),
        description="Root of the file tree mirrored with every served image.",
    )
    stored_width: int = Field(
        default=0,
        ge=0,
        description="Maximum width of stored originals; 0 leaves the axis unbounded.",
    )
    stored_height: int = Field(
        default=0,
        ge=0,
        description="Maximum height of stored originals; 0 leaves the axis unbounded.",
    )
    max_variant_size: int = Field(
        default=4096,
        ge=1,
        description="Upper bound applied to each axis of a requested size directive.",
    )
    database_url: str = Field(default="sqlite:///./data/imagegate.db")
    database_pool_size: int = Field(
        default=5,
        ge=1,
        description="Connection pool size; ignored for SQLite URLs.",
    )
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    model_config = SettingsConfigDict(
        env_prefix="IMAGEGATE_",
        env_file=".env",
        case_sensitive=False,
        frozen=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""
    settings = Settings()
    settings.cache_folder.mkdir(parents=True, exist_ok=True)
    return settings
