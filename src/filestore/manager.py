"""
File manager service.

The public face of the store. Composes the blob store, the index, the
eviction policy and the query views into the operations request handlers
call: store, fetch, delete, list, statistics, clear and cleanup.

One FileManager is built at process start (``FileManager.from_settings``)
and passed to whatever needs it; there is no module-level instance.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path
from typing import Any

from filestore.config import Settings
from filestore.eviction import EvictionReport, plan_eviction
from filestore.exceptions import (
    BlobNotFoundError,
    ContentMissingError,
    PersistenceError,
    RecordNotFoundError,
)
from filestore.logging import get_logger, log_context
from filestore.query import aggregate, list_records, search_records
from filestore.storage import BlobStore, IndexStore, freeze_details
from filestore.types import (
    FileCategory,
    FileRecord,
    SortKey,
    SortOrder,
    StorageInfo,
    StoreConfig,
    StoredFile,
    generate_id,
)

logger = get_logger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


class FileManager:
    """Persistent file store with retention-based eviction.

    Stores content under ``root_dir/blobs`` and metadata in
    ``root_dir/index.json``. Writes that change what exists (store, cleanup,
    clear) run one at a time; index updates are additionally serialised by
    the IndexStore itself.
    """

    def __init__(self, root_dir: str | Path, config: StoreConfig | None = None) -> None:
        """Initialize file manager.

        Args:
            root_dir: Directory holding the index and blobs.
            config: Capacity and retention limits. Defaults to StoreConfig().
        """
        self.root_dir = Path(root_dir)
        self.config = config or StoreConfig()
        self.blobs = BlobStore(self.root_dir)
        self.index = IndexStore(self.root_dir)
        self._write_lock = asyncio.Lock()
        self._opened = False

    @classmethod
    def from_settings(cls, settings: Settings) -> FileManager:
        """Build a manager from application settings."""
        return cls(settings.STORAGE_DIR, settings.store_config())

    async def open(self) -> None:
        """Create directories and load the index. Safe to call more than once."""
        if self._opened:
            return
        self.root_dir.mkdir(parents=True, exist_ok=True)
        self.blobs.init()
        self.index.load()
        self._opened = True
        logger.info(
            "File store opened",
            root_dir=str(self.root_dir),
            files=len(self.index),
            max_files=self.config.max_files,
            max_storage_bytes=self.config.max_storage_bytes,
            auto_cleanup=self.config.auto_cleanup,
        )

    async def close(self) -> None:
        """Release the store. Every mutation is already on disk."""
        if self._opened:
            logger.info("File store closed", root_dir=str(self.root_dir))
        self._opened = False

    async def __aenter__(self) -> FileManager:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def store_file(
        self,
        content: bytes,
        category: FileCategory | str,
        name: str | None = None,
        mime_type: str | None = None,
        processing_details: Any = None,
    ) -> FileRecord:
        """Store content and index it.

        Cleanup runs first, so the new file is measured against the limits
        after old content has been reclaimed.

        Args:
            content: Raw bytes to store.
            category: One of the FileCategory values.
            name: Display name. Defaults to the generated ID.
            mime_type: Declared content type.
            processing_details: Opaque JSON-serialisable data kept with the record.

        Returns:
            The new FileRecord (without content).

        Raises:
            InvalidCategoryError: If category is unsupported. Nothing is written.
            PersistenceError: If processing_details is not JSON-serialisable
                (nothing is written), or the blob or the index could not be written.
        """
        category = FileCategory.parse(category)
        processing_details = freeze_details(processing_details)
        content = bytes(content)
        file_id = generate_id("file")

        with log_context(operation="store", file_id=file_id):
            async with self._write_lock:
                await self._cleanup_locked()

                content_ref = self.blobs.write(file_id, content)
                record = replace(
                    FileRecord.create(
                        name=name or file_id,
                        size=len(content),
                        mime_type=mime_type or DEFAULT_MIME_TYPE,
                        category=category,
                        processing_details=processing_details,
                        file_id=file_id,
                    ),
                    content_ref=content_ref,
                )

                def insert(records: dict[str, FileRecord]) -> None:
                    records[record.id] = record

                try:
                    await self.index.mutate(insert)
                except PersistenceError:
                    self.blobs.delete(file_id)
                    raise

            logger.info(
                "Stored file",
                name=record.name,
                size=record.size,
                category=category.value,
            )
            return record.detached()

    async def delete_file(self, file_id: str) -> bool:
        """Delete a file's blob and index entry.

        Returns:
            True if the file existed, False otherwise. A missing ID is not an error.

        Raises:
            PersistenceError: If the blob or index could not be updated.
        """
        with log_context(operation="delete", file_id=file_id):
            if self.index.get(file_id) is None:
                return False

            self.blobs.delete(file_id)
            existed = await self.index.mutate(lambda records: records.pop(file_id, None) is not None)
            if existed:
                logger.info("Deleted file")
            return existed

    async def clear_all(self) -> int:
        """Remove every record and every blob.

        Returns:
            Number of records removed.
        """
        with log_context(operation="clear"):
            async with self._write_lock:

                def drop_all(records: dict[str, FileRecord]) -> int:
                    count = len(records)
                    records.clear()
                    return count

                count = await self.index.mutate(drop_all)
                blobs_removed = self.blobs.clear()

            logger.info("Cleared store", records=count, blobs=blobs_removed)
            return count

    async def cleanup(self) -> EvictionReport:
        """Apply the eviction policy.

        Idempotent and safe to call from an external scheduler. Does
        nothing when auto_cleanup is disabled.

        Returns:
            EvictionReport describing what was removed.
        """
        with log_context(operation="cleanup"):
            async with self._write_lock:
                return await self._cleanup_locked()

    async def _cleanup_locked(self) -> EvictionReport:
        if not self.config.auto_cleanup:
            return EvictionReport(skipped=True)

        report = EvictionReport()
        records = self.index.records()

        # Index entries whose blob is gone or truncated are never served
        intact: list[FileRecord] = []
        for record in records:
            if self.blobs.size(record.id) == record.size:
                intact.append(record)
            else:
                logger.error(
                    "Dropping record with missing or damaged content",
                    file_id=record.id,
                    content_ref=record.content_ref,
                )
                report.missing_content.append(record.id)

        plan = plan_eviction(intact, self.config)

        deleted: set[str] = set()
        for file_id in plan.file_ids:
            try:
                self.blobs.delete(file_id)
            except PersistenceError:
                logger.exception("Blob delete failed, will retry next cleanup", file_id=file_id)
                report.failed.append(file_id)
                continue
            deleted.add(file_id)

        to_drop = deleted | set(report.missing_content)
        if to_drop:

            def drop(records: dict[str, FileRecord]) -> None:
                for file_id in to_drop:
                    records.pop(file_id, None)

            await self.index.mutate(drop)

        # Blobs with no index entry: a store interrupted before its index
        # write, or content left behind by a discarded index
        report.orphaned = self.blobs.remove_unreferenced(self.index.ids())
        if report.orphaned:
            logger.warning("Removed unreferenced blobs", count=len(report.orphaned))

        report.expired = [i for i in plan.expired if i in deleted]
        report.over_count = [i for i in plan.over_count if i in deleted]
        report.over_size = [i for i in plan.over_size if i in deleted]

        if report.removed or report.failed or report.orphaned:
            logger.info(
                "Cleanup finished",
                expired=len(report.expired),
                over_count=len(report.over_count),
                over_size=len(report.over_size),
                missing_content=len(report.missing_content),
                failed=len(report.failed),
                orphaned=len(report.orphaned),
            )
        return report

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_file(self, file_id: str) -> StoredFile:
        """Fetch a file's record and content, bumping last_accessed.

        Raises:
            RecordNotFoundError: If no record exists for the ID.
            ContentMissingError: If the record exists but its blob is missing
                or does not match the recorded size.
        """
        with log_context(operation="get", file_id=file_id):
            record = self.index.get(file_id)
            if record is None:
                raise RecordNotFoundError("File not found", context={"file_id": file_id})

            try:
                content = self.blobs.read(file_id)
            except BlobNotFoundError:
                logger.error("Content missing for indexed file", content_ref=record.content_ref)
                raise ContentMissingError(
                    "File content missing",
                    context={"file_id": file_id, "content_ref": record.content_ref},
                ) from None

            if len(content) != record.size:
                logger.error(
                    "Content size does not match index",
                    expected=record.size,
                    actual=len(content),
                )
                raise ContentMissingError(
                    "File content damaged",
                    context={"file_id": file_id, "content_ref": record.content_ref},
                )

            def touch(records: dict[str, FileRecord]) -> FileRecord | None:
                current = records.get(file_id)
                if current is None:
                    return None
                records[file_id] = current.touched()
                return records[file_id]

            updated = await self.index.mutate(touch)
            if updated is None:
                # Deleted between the lookup and the bump
                raise RecordNotFoundError("File not found", context={"file_id": file_id})

            logger.debug("Served file", size=updated.size)
            return StoredFile(record=updated.detached(), content=content)

    async def get_record(self, file_id: str) -> FileRecord:
        """Fetch a record without reading content or bumping last_accessed.

        Raises:
            RecordNotFoundError: If no record exists for the ID.
        """
        record = self.index.get(file_id)
        if record is None:
            raise RecordNotFoundError("File not found", context={"file_id": file_id})
        return record

    async def list_files(
        self,
        category: FileCategory | str | None = None,
        sort_by: SortKey | str = SortKey.UPLOADED_AT,
        sort_order: SortOrder | str = SortOrder.DESC,
        search: str | None = None,
    ) -> list[FileRecord]:
        """List records, newest upload first by default."""
        return list_records(
            self.index.records(),
            category=category,
            sort_by=sort_by,
            sort_order=sort_order,
            search=search,
        )

    async def search_files(self, query: str) -> list[FileRecord]:
        """Records whose name contains query (case-insensitive)."""
        return search_records(self.index.records(), query)

    async def files_by_category(self, category: FileCategory | str) -> list[FileRecord]:
        """Records of one category, in index order."""
        wanted = FileCategory.parse(category)
        return [r for r in self.index.records() if r.category == wanted]

    async def get_storage_info(self) -> StorageInfo:
        """Totals, per-category counts and upload time range."""
        return aggregate(self.index.records())
