"""Configuration management.

Uses pydantic-settings for type-safe configuration from environment variables.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    All settings can be overridden via environment variables.
    Prefix: STUDIO_
    """

    model_config = SettingsConfigDict(
        env_prefix="STUDIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # DuckDB
    duckdb_path: str = Field(
        default=":memory:",
        description="Path to DuckDB database file, or :memory: for in-memory",
    )
    duckdb_memory_limit: str = Field(
        default="2GB",
        description="Memory limit for DuckDB",
    )
    duckdb_threads: int | None = Field(
        default=None,
        description="Number of threads for DuckDB (unset = engine default)",
    )
    enable_httpfs: bool = Field(
        default=True,
        description="Install and load httpfs before reading remote URLs",
    )

    # Field catalog
    catalog_version: str = Field(default="v1")

    # Staging
    staging_table: str = Field(
        default="studio_current",
        description="Base name of the staging table; generations append _g<id>",
    )
    projected_view: str = Field(
        default="filters_attributes",
        description="Name of the stable alias view over the current generation",
    )
    retain_generations: int = Field(
        default=2,
        ge=1,
        description="Published generations kept queryable (current + previous)",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["console", "json"] = Field(default="console")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
