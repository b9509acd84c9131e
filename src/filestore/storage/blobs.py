"""
File-backed blob storage.

Each blob lives at ``<root>/blobs/<file_id>.bin``. The directory is flat;
the store targets hundreds of files, not millions. The blob store knows
nothing about metadata, it only maps an ID to bytes on disk.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Collection

from filestore.exceptions import BlobNotFoundError, PersistenceError
from filestore.logging import get_logger

logger = get_logger(__name__)

BLOB_SUFFIX = ".bin"
_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]+$")


class BlobStore:
    """Write-once, read-many, delete-once content storage keyed by file ID."""

    def __init__(self, root_dir: str | Path) -> None:
        """Initialize blob store.

        Args:
            root_dir: Store root; blobs go in its ``blobs/`` subdirectory.
        """
        self.root_dir = Path(root_dir)
        self.blobs_dir = self.root_dir / "blobs"

    def init(self) -> None:
        """Create the blob directory and remove leftover partial writes."""
        self.blobs_dir.mkdir(parents=True, exist_ok=True)
        for tmp in self.blobs_dir.glob("*.tmp"):
            tmp.unlink(missing_ok=True)

    def path_for(self, file_id: str) -> Path:
        """Get the blob path for a file ID."""
        if not _SAFE_ID.match(file_id):
            raise ValueError(f"Invalid file id: {file_id!r}")
        return self.blobs_dir / f"{file_id}{BLOB_SUFFIX}"

    def content_ref(self, file_id: str) -> str:
        """Blob location relative to the store root, as recorded in the index."""
        return self.path_for(file_id).relative_to(self.root_dir).as_posix()

    def write(self, file_id: str, content: bytes) -> str:
        """Persist content for an ID.

        The write goes to a temp file first and is moved into place, so an
        overwrite never leaves a half-written blob behind.

        Returns:
            Content reference relative to the store root.

        Raises:
            PersistenceError: If the filesystem rejects the write.
        """
        path = self.path_for(file_id)
        tmp = path.with_suffix(".tmp")
        try:
            self.blobs_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp, "wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise PersistenceError(
                "Failed to write blob",
                context={"file_id": file_id, "path": str(path), "error": str(e)},
            ) from e

        logger.debug("Stored blob", file_id=file_id, size=len(content))
        return self.content_ref(file_id)

    def read(self, file_id: str) -> bytes:
        """Read the full content for an ID.

        Raises:
            BlobNotFoundError: If no blob exists for the ID.
        """
        path = self.path_for(file_id)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise BlobNotFoundError(
                "Blob not found", context={"file_id": file_id, "path": str(path)}
            ) from None

    def delete(self, file_id: str) -> bool:
        """Delete the blob for an ID.

        Deleting a missing blob is not an error, so a partially failed
        removal can simply be retried.

        Returns:
            True if a blob was removed, False if there was none.

        Raises:
            PersistenceError: If the blob exists but cannot be removed.
        """
        path = self.path_for(file_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise PersistenceError(
                "Failed to delete blob",
                context={"file_id": file_id, "path": str(path), "error": str(e)},
            ) from e
        logger.debug("Deleted blob", file_id=file_id)
        return True

    def exists(self, file_id: str) -> bool:
        """Check whether a blob exists for an ID."""
        return self.path_for(file_id).is_file()

    def size(self, file_id: str) -> int | None:
        """Byte length of the blob on disk, or None if it is missing."""
        try:
            return self.path_for(file_id).stat().st_size
        except FileNotFoundError:
            return None

    def ids(self) -> list[str]:
        """List the IDs of every blob on disk."""
        return sorted(path.stem for path in self._blob_paths())

    def _blob_paths(self) -> list[Path]:
        if not self.blobs_dir.exists():
            return []
        return list(self.blobs_dir.glob(f"*{BLOB_SUFFIX}"))

    def _unlink(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise PersistenceError(
                "Failed to delete blob",
                context={"path": str(path), "error": str(e)},
            ) from e
        return True

    def remove_unreferenced(self, keep: Collection[str]) -> list[str]:
        """Delete blob files whose stem is not in keep.

        Works from the files on disk, so names that are not valid IDs are
        removed too. A file that cannot be removed is logged and skipped.

        Returns:
            Stems of the blobs removed.
        """
        removed: list[str] = []
        for path in sorted(self._blob_paths()):
            if path.stem in keep:
                continue
            try:
                if self._unlink(path):
                    removed.append(path.stem)
            except PersistenceError:
                logger.exception("Could not remove unreferenced blob", path=str(path))
        return removed

    def clear(self) -> int:
        """Delete every blob, including ones the index no longer references.

        Returns:
            Number of blobs removed.

        Raises:
            PersistenceError: If a blob file cannot be removed.
        """
        return sum(1 for path in self._blob_paths() if self._unlink(path))
