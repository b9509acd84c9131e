"""
Durable index of file records.

The index is the single source of truth for what exists. It is loaded
lazily into memory and the whole collection is rewritten to
``<root>/index.json`` on every mutation. The file is pretty-printed JSON so
it can be diffed and inspected by hand.

Mutations are serialised with an asyncio.Lock: two callers can never
interleave their load-mutate-persist phases.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any, Callable, TypeVar

import orjson

from filestore.exceptions import InvalidCategoryError, PersistenceError
from filestore.logging import get_logger
from filestore.types import FileRecord, utc_now

logger = get_logger(__name__)

INDEX_FILENAME = "index.json"
INDEX_VERSION = 1

T = TypeVar("T")


def freeze_details(value: Any) -> Any:
    """Normalise processing details to exactly what a reload would return.

    Tuples become lists, datetimes become ISO strings, and the result
    shares no objects with the caller's value.

    Raises:
        PersistenceError: If the value cannot be encoded as JSON.
    """
    if value is None:
        return None
    try:
        return orjson.loads(orjson.dumps(value))
    except orjson.JSONEncodeError as e:
        raise PersistenceError(
            "Processing details are not JSON-serialisable",
            context={"type": type(value).__name__, "error": str(e)},
        ) from e


class IndexStore:
    """In-memory map of file ID to FileRecord, persisted on every change."""

    def __init__(self, root_dir: str | Path) -> None:
        """Initialize index store.

        Args:
            root_dir: Store root; the index is written to ``index.json`` inside it.
        """
        self.root_dir = Path(root_dir)
        self.path = self.root_dir / INDEX_FILENAME
        self._records: dict[str, FileRecord] | None = None
        self._lock = asyncio.Lock()

    def load(self) -> None:
        """Load the persisted index into memory.

        A missing index is a first run. An unreadable one is moved aside and
        replaced by an empty collection. Neither case raises.
        """
        if self._records is not None:
            return

        if not self.path.exists():
            logger.info("No index found, starting empty", path=str(self.path))
            self._records = {}
            return

        try:
            document = orjson.loads(self.path.read_bytes())
            entries = document.get("records", []) if isinstance(document, dict) else document
            records = [FileRecord.from_index_entry(entry) for entry in entries]
        except (
            OSError, orjson.JSONDecodeError, InvalidCategoryError, KeyError, TypeError, ValueError
        ) as e:
            backup = self.path.with_name(
                f"{self.path.name}.corrupt-{utc_now().strftime('%Y%m%dT%H%M%S')}"
            )
            logger.warning(
                "Index unreadable, starting empty",
                path=str(self.path),
                backup=str(backup),
                error=str(e),
            )
            try:
                os.replace(self.path, backup)
            except OSError:
                logger.exception("Could not move unreadable index aside", path=str(self.path))
            self._records = {}
            return

        self._records = {record.id: record for record in records}
        logger.info("Index loaded", path=str(self.path), records=len(self._records))

    def _ensure_loaded(self) -> dict[str, FileRecord]:
        self.load()
        assert self._records is not None
        return self._records

    def _persist(self, records: dict[str, FileRecord]) -> None:
        """Write the full collection to disk atomically.

        Raises:
            PersistenceError: If serialization or the write fails.
        """
        document: dict[str, Any] = {
            "version": INDEX_VERSION,
            "records": [record.to_index_entry() for record in records.values()],
        }
        tmp = self.path.with_suffix(".json.tmp")
        try:
            payload = orjson.dumps(document, option=orjson.OPT_INDENT_2)
            self.root_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp, "wb") as f:
                f.write(payload)
                f.write(b"\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except (OSError, orjson.JSONEncodeError) as e:
            tmp.unlink(missing_ok=True)
            raise PersistenceError(
                "Failed to persist index",
                context={"path": str(self.path), "error": str(e)},
            ) from e

    async def mutate(self, fn: Callable[[dict[str, FileRecord]], T]) -> T:
        """Apply a change to the index and persist it.

        ``fn`` receives the live record dict and may add, replace or remove
        entries. The change is committed only once it is on disk; if the
        write fails the in-memory dict is restored to its prior state.

        Args:
            fn: Mutation to apply. Its return value is passed through.

        Returns:
            Whatever ``fn`` returned.

        Raises:
            PersistenceError: If the index could not be written.
        """
        async with self._lock:
            records = self._ensure_loaded()
            snapshot = dict(records)
            try:
                result = fn(records)
                self._persist(records)
            except Exception as e:
                records.clear()
                records.update(snapshot)
                if isinstance(e, PersistenceError):
                    logger.error("Index write failed, rolled back", records=len(records))
                raise
            return result

    def get(self, file_id: str) -> FileRecord | None:
        """Look up a record by ID. The result is a detached copy."""
        record = self._ensure_loaded().get(file_id)
        return record.detached() if record is not None else None

    def records(self) -> list[FileRecord]:
        """Return detached copies of all records in insertion order."""
        return [record.detached() for record in self._ensure_loaded().values()]

    def ids(self) -> set[str]:
        """IDs of every indexed record."""
        return set(self._ensure_loaded())

    def __len__(self) -> int:
        return len(self._ensure_loaded())

    def __contains__(self, file_id: object) -> bool:
        return file_id in self._ensure_loaded()
