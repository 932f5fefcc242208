"""Engine configuration loaded from environment variables."""

from __future__ import annotations

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables with TYPINGS_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="TYPINGS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    debug: bool = False
    structured_logging: bool = False

    # Repository layout
    types_directory: str = "types"
    not_needed_manifest: str = "notNeededPackages.json"

    # Git
    source_branch: str = "master"
    source_remote: str = "origin"

    # npm registry
    registry_url: str = "https://registry.npmjs.org"
    downloads_url: str = "https://api.npmjs.org/downloads"
    registry_timeout: float = 30.0
    registry_concurrency: int = Field(default=10, ge=1)
    registry_max_retries: int = Field(default=3, ge=0)
    retry_backoff_base: float = 2.0
    retry_max_delay: float = 60.0

    # Search index
    search_index_head_size: int = Field(default=100, ge=0)

    @field_validator("types_directory")
    @classmethod
    def strip_slashes(cls, v: str) -> str:
        v = v.strip().strip("/\\")
        if not v or "/" in v or "\\" in v:
            raise ValueError("types_directory must be a single top-level directory name")
        return v

    @field_validator("registry_url", "downloads_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment, with optional overrides for testing."""
    settings = Settings(**overrides)  # type: ignore[arg-type]

    if settings.debug:
        logger.info("Loaded settings (types directory: %s)", settings.types_directory)

    return settings
