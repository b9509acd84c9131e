"""
Custom exception hierarchy for the file store.

All exceptions inherit from FileStoreError, which provides optional context
for structured error handling and logging.
"""

from __future__ import annotations

from typing import Any


class FileStoreError(Exception):
    """Base exception for all file store errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(FileStoreError):
    """Raised when store configuration is invalid.

    Examples:
        - Non-positive MAX_FILES or MAX_STORAGE_BYTES
        - Unusable STORAGE_DIR
    """

    pass


class NotFoundError(FileStoreError):
    """Raised when a requested identifier does not exist.

    Context should include:
        - file_id: The identifier that was looked up
    """

    pass


class RecordNotFoundError(NotFoundError):
    """Raised when the index has no entry for an identifier."""

    pass


class BlobNotFoundError(NotFoundError):
    """Raised when the blob store has no content for an identifier."""

    pass


class ContentMissingError(FileStoreError):
    """Raised when an index entry exists but its blob is gone.

    This is a data-integrity fault. The record is not served; the next
    cleanup pass drops it from the index.

    Context should include:
        - file_id: The identifier of the damaged record
        - content_ref: Where the blob was expected
    """

    pass


class InvalidCategoryError(FileStoreError):
    """Raised when a category is not one of the supported file categories.

    Context should include:
        - category: The rejected value
        - allowed: The accepted values
    """

    pass


class PersistenceError(FileStoreError):
    """Raised when the durable medium rejects a write.

    The in-memory index is rolled back before this is raised, so memory
    never diverges from what is on disk.

    Context should include:
        - path: The file that could not be written
        - error: The underlying OS error
    """

    pass
