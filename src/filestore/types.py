"""
Core types for the file store.

This module defines the data structures shared by every layer:
- Enums for file categories and listing sort options
- Frozen dataclasses for records and configuration (FileRecord, StoreConfig)
- Result dataclasses (StoredFile, StorageInfo)
- Helper functions for ID generation and timestamps
"""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from uuid6 import uuid7

from filestore.exceptions import ConfigurationError, InvalidCategoryError


def generate_id(prefix: str = "file") -> str:
    """Generate a time-ordered unique ID using UUID7.

    UUID7 combines a millisecond timestamp with random bits, so IDs sort by
    creation time and never collide without coordination.

    Args:
        prefix: Optional prefix for the ID.

    Returns:
        A unique ID string, optionally prefixed.
    """
    uid = str(uuid7())
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, assuming UTC when no offset is present."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class FileCategory(str, Enum):
    """What produced a stored artifact."""

    ORIGINAL = "original"
    COMPRESSED = "compressed"
    CONVERTED = "converted"
    OCR = "ocr"
    AI_PROCESSED = "ai-processed"

    @classmethod
    def parse(cls, value: FileCategory | str) -> FileCategory:
        """Coerce a string to a category.

        Raises:
            InvalidCategoryError: If value is not a supported category.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidCategoryError(
                "Unsupported file category",
                context={"category": value, "allowed": [c.value for c in cls]},
            ) from None


class SortKey(str, Enum):
    """Fields a file listing can be ordered by."""

    NAME = "name"
    SIZE = "size"
    UPLOADED_AT = "uploaded_at"
    LAST_ACCESSED = "last_accessed"


class SortOrder(str, Enum):
    """Listing direction."""

    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class FileRecord:
    """Immutable index entry describing one stored artifact.

    The only field that changes over a record's life is last_accessed,
    which is replaced (not mutated) on every successful read.
    """

    id: str
    name: str
    size: int  # Byte length of the blob, fixed at store time
    mime_type: str
    category: FileCategory
    uploaded_at: datetime
    last_accessed: datetime

    processing_details: Any = None  # Opaque caller data, never interpreted
    content_ref: str = field(default="", repr=False)  # Blob location, internal only

    @classmethod
    def create(
        cls,
        name: str,
        size: int,
        mime_type: str,
        category: FileCategory,
        processing_details: Any = None,
        file_id: str | None = None,
    ) -> FileRecord:
        """Factory method to create a record with auto-generated ID and timestamps."""
        now = utc_now()
        return cls(
            id=file_id or generate_id("file"),
            name=name,
            size=size,
            mime_type=mime_type,
            category=category,
            uploaded_at=now,
            last_accessed=now,
            processing_details=processing_details,
        )

    def touched(self, at: datetime | None = None) -> FileRecord:
        """Return a copy with last_accessed bumped, never earlier than uploaded_at."""
        at = at or utc_now()
        return replace(self, last_accessed=max(at, self.uploaded_at, self.last_accessed))

    def detached(self) -> FileRecord:
        """Return a copy whose processing_details shares nothing with this one."""
        if self.processing_details is None:
            return self
        return replace(self, processing_details=copy.deepcopy(self.processing_details))

    def to_dict(self) -> dict[str, Any]:
        """Public representation (no content reference)."""
        return {
            "id": self.id,
            "name": self.name,
            "size": self.size,
            "mime_type": self.mime_type,
            "category": self.category.value,
            "processing_details": self.processing_details,
            "uploaded_at": self.uploaded_at.isoformat(),
            "last_accessed": self.last_accessed.isoformat(),
        }

    def to_index_entry(self) -> dict[str, Any]:
        """Durable representation written to the index file."""
        entry = self.to_dict()
        entry["content_ref"] = self.content_ref
        return entry

    @classmethod
    def from_index_entry(cls, entry: dict[str, Any]) -> FileRecord:
        """Rebuild a record from its durable representation."""
        return cls(
            id=entry["id"],
            name=entry["name"],
            size=int(entry["size"]),
            mime_type=entry["mime_type"],
            category=FileCategory.parse(entry["category"]),
            uploaded_at=parse_timestamp(entry["uploaded_at"]),
            last_accessed=parse_timestamp(entry["last_accessed"]),
            processing_details=entry.get("processing_details"),
            content_ref=entry.get("content_ref", ""),
        )


@dataclass(frozen=True)
class StoredFile:
    """A record together with its content, as returned by a read."""

    record: FileRecord
    content: bytes

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def size(self) -> int:
        return self.record.size


@dataclass(frozen=True)
class StoreConfig:
    """Capacity and retention limits, fixed at startup."""

    max_files: int = 100
    max_storage_bytes: int = 500 * 1024 * 1024  # 500 MiB
    auto_cleanup: bool = True
    retention_period: timedelta = timedelta(days=30)

    def __post_init__(self) -> None:
        if self.max_files < 1:
            raise ConfigurationError(
                "max_files must be at least 1", context={"max_files": self.max_files}
            )
        if self.max_storage_bytes < 1:
            raise ConfigurationError(
                "max_storage_bytes must be at least 1",
                context={"max_storage_bytes": self.max_storage_bytes},
            )
        if self.retention_period <= timedelta(0):
            raise ConfigurationError(
                "retention_period must be positive",
                context={"retention_period": str(self.retention_period)},
            )


@dataclass(frozen=True)
class StorageInfo:
    """Aggregate statistics over the index."""

    total_files: int
    total_size: int
    files_by_category: dict[str, int]
    oldest_file: datetime | None = None
    newest_file: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["oldest_file"] = self.oldest_file.isoformat() if self.oldest_file else None
        data["newest_file"] = self.newest_file.isoformat() if self.newest_file else None
        return data
