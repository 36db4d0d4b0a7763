"""Application configuration loaded via Pydantic settings."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed configuration sourced from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DOC_REPOSITORY_LOG_LEVEL: str = Field(default="info")
    DOC_REPOSITORY_LOG_DIR: Path | None = Field(default=None)
    DOC_REPOSITORY_LOG_SCHEMA_VERSION: str = Field(default="1.0.0")

    # Upper bound applied to ``take`` in every paging call
    DOC_REPOSITORY_MAX_PAGE_SIZE: int = Field(default=100, ge=1)

    # Store selection
    DOC_REPOSITORY_BACKEND: Literal["tinydb", "mongo"] = Field(default="tinydb")
    DATA_DIR: Path = Field(default=Path("data"))
    TINYDB_PATH: Path | None = Field(default=None)
    MONGO_URI: str = Field(default="mongodb://localhost:27017")
    MONGO_DATABASE: str = Field(default="documents")


settings = Settings()


__all__ = ["Settings", "settings"]
