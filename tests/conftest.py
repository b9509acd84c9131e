"""
Pytest configuration and fixtures for file store tests.
"""

from __future__ import annotations

import os
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import AsyncGenerator, Generator
from unittest.mock import patch

import pytest

from filestore.config import Settings, clear_settings_cache
from filestore.manager import FileManager
from filestore.types import FileCategory, FileRecord, StoreConfig

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_record(
    file_id: str,
    size: int = 10,
    category: FileCategory = FileCategory.ORIGINAL,
    name: str | None = None,
    uploaded_minutes: float = 0,
    accessed_minutes: float | None = None,
) -> FileRecord:
    """Build a record with timestamps offset from BASE_TIME."""
    uploaded_at = BASE_TIME + timedelta(minutes=uploaded_minutes)
    accessed = uploaded_minutes if accessed_minutes is None else accessed_minutes
    return FileRecord(
        id=file_id,
        name=name or f"{file_id}.pdf",
        size=size,
        mime_type="application/pdf",
        category=category,
        uploaded_at=uploaded_at,
        last_accessed=BASE_TIME + timedelta(minutes=accessed),
        content_ref=f"blobs/{file_id}.bin",
    )


async def set_timestamps(
    manager: FileManager,
    file_id: str,
    uploaded_at: datetime,
    last_accessed: datetime | None = None,
) -> None:
    """Rewrite a stored record's timestamps in place."""

    def update(records: dict[str, FileRecord]) -> None:
        records[file_id] = replace(
            records[file_id],
            uploaded_at=uploaded_at,
            last_accessed=last_accessed or uploaded_at,
        )

    await manager.index.mutate(update)


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def mock_env_vars(temp_dir: Path) -> Generator[dict[str, str], None, None]:
    """Provide environment variables pointing the store at temp_dir."""
    env_vars = {
        "STORAGE_DIR": str(temp_dir / "store"),
        "MAX_FILES": "50",
        "MAX_STORAGE_BYTES": "1048576",
        "AUTO_CLEANUP": "true",
        "RETENTION_DAYS": "7",
        "LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def mock_settings(mock_env_vars: dict[str, str]) -> Generator[Settings, None, None]:
    """Provide a Settings instance loaded from mock_env_vars."""
    from filestore.config import get_settings

    settings = get_settings()
    settings.ensure_directories()
    yield settings
    clear_settings_cache()


@pytest.fixture
def store_config() -> StoreConfig:
    """Generous limits so tests only hit eviction when they mean to."""
    return StoreConfig(
        max_files=100,
        max_storage_bytes=10 * 1024 * 1024,
        auto_cleanup=True,
        retention_period=timedelta(days=30),
    )


@pytest.fixture
async def file_manager(
    temp_dir: Path, store_config: StoreConfig
) -> AsyncGenerator[FileManager, None]:
    """Create an opened file manager for testing."""
    manager = FileManager(temp_dir / "store", store_config)
    await manager.open()
    yield manager
    await manager.close()


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
