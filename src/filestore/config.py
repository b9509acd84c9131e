"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env files.
Values are read once at process start; the store does not hot-reload them.
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from filestore.types import StoreConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Optional:
        STORAGE_DIR: Root directory holding index.json and blobs/
        MAX_FILES: Maximum number of stored files
        MAX_STORAGE_BYTES: Maximum total size of stored files
        AUTO_CLEANUP: Whether eviction passes run at all
        RETENTION_DAYS: Age after which a file is always evicted
        LOG_LEVEL: Logging level
        LOG_FILE: Optional JSON-lines log file
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    STORAGE_DIR: Path = Field(
        default=Path(".filestore"), description="Root directory for the store"
    )

    # Capacity and retention
    MAX_FILES: int = Field(default=100, ge=1, description="Maximum number of files")
    MAX_STORAGE_BYTES: int = Field(
        default=500 * 1024 * 1024, ge=1, description="Maximum total bytes"
    )
    AUTO_CLEANUP: bool = Field(default=True, description="Enable eviction passes")
    RETENTION_DAYS: float = Field(
        default=30.0, gt=0.0, description="Retention period in days"
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON log file path")

    @property
    def retention_period(self) -> timedelta:
        """Retention as a timedelta."""
        return timedelta(days=self.RETENTION_DAYS)

    def store_config(self) -> StoreConfig:
        """Build the store's capacity/retention limits."""
        return StoreConfig(
            max_files=self.MAX_FILES,
            max_storage_bytes=self.MAX_STORAGE_BYTES,
            auto_cleanup=self.AUTO_CLEANUP,
            retention_period=self.retention_period,
        )

    def ensure_directories(self) -> None:
        """Create the storage directory if it doesn't exist."""
        self.STORAGE_DIR.mkdir(parents=True, exist_ok=True)

    def display(self) -> dict[str, str | int | float | bool | None]:
        """Return settings for display."""
        return {
            "STORAGE_DIR": str(self.STORAGE_DIR),
            "MAX_FILES": self.MAX_FILES,
            "MAX_STORAGE_BYTES": self.MAX_STORAGE_BYTES,
            "AUTO_CLEANUP": self.AUTO_CLEANUP,
            "RETENTION_DAYS": self.RETENTION_DAYS,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
