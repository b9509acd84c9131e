"""
filestore - persistent file store with retention-based eviction.

Stores binary artifacts (original uploads, compressed/converted/OCR/AI
outputs) on local disk with a JSON index, and reclaims space by age,
file count and total size.
"""

from __future__ import annotations

__version__ = "0.1.0"

from filestore.exceptions import (
    ContentMissingError,
    FileStoreError,
    InvalidCategoryError,
    NotFoundError,
    PersistenceError,
    RecordNotFoundError,
)
from filestore.manager import FileManager
from filestore.types import (
    FileCategory,
    FileRecord,
    SortKey,
    SortOrder,
    StorageInfo,
    StoreConfig,
    StoredFile,
)

__all__ = [
    "__version__",
    "ContentMissingError",
    "FileCategory",
    "FileManager",
    "FileRecord",
    "FileStoreError",
    "InvalidCategoryError",
    "NotFoundError",
    "PersistenceError",
    "RecordNotFoundError",
    "SortKey",
    "SortOrder",
    "StorageInfo",
    "StoreConfig",
    "StoredFile",
]
