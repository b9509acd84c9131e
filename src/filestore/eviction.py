"""
Eviction policy for the file store.

Decides which records must go, given the current records and the store
limits. Three passes run in order, each over what the previous one left:

1. Expiry: anything uploaded longer ago than the retention period.
2. Count cap: least recently accessed first until at most max_files remain.
   Ties on last_accessed go to the older upload.
3. Size cap: largest first until the total fits max_storage_bytes.
   Ties on size go to the less recently accessed record.

The size pass evicts by size, not recency, so space comes back with as few
removals as possible. Keep it that way unless the product rule changes.

Planning is pure; FileManager.cleanup() applies the plan.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from filestore.types import FileRecord, StoreConfig, utc_now


@dataclass(frozen=True)
class EvictionPlan:
    """IDs selected for removal, grouped by the pass that selected them."""

    expired: tuple[str, ...] = ()
    over_count: tuple[str, ...] = ()
    over_size: tuple[str, ...] = ()

    @property
    def file_ids(self) -> tuple[str, ...]:
        """All selected IDs in pass order."""
        return self.expired + self.over_count + self.over_size

    def __len__(self) -> int:
        return len(self.file_ids)

    def __bool__(self) -> bool:
        return bool(self.file_ids)


@dataclass
class EvictionReport:
    """Outcome of one cleanup() run."""

    expired: list[str] = field(default_factory=list)
    over_count: list[str] = field(default_factory=list)
    over_size: list[str] = field(default_factory=list)
    missing_content: list[str] = field(default_factory=list)  # Dropped by the integrity sweep
    failed: list[str] = field(default_factory=list)  # Kept for retry on the next run
    orphaned: list[str] = field(default_factory=list)  # Blob files with no index entry
    skipped: bool = False  # auto_cleanup disabled

    @property
    def removed(self) -> list[str]:
        """Every ID actually removed from the index."""
        return self.missing_content + self.expired + self.over_count + self.over_size

    def to_dict(self) -> dict[str, object]:
        return {
            "skipped": self.skipped,
            "removed": len(self.removed),
            "expired": list(self.expired),
            "over_count": list(self.over_count),
            "over_size": list(self.over_size),
            "missing_content": list(self.missing_content),
            "failed": list(self.failed),
            "orphaned": list(self.orphaned),
        }


def _expiry_pass(
    records: list[FileRecord], config: StoreConfig, now: datetime
) -> list[FileRecord]:
    return [r for r in records if now - r.uploaded_at > config.retention_period]


def _count_cap_pass(records: list[FileRecord], config: StoreConfig) -> list[FileRecord]:
    excess = len(records) - config.max_files
    if excess <= 0:
        return []
    by_recency = sorted(records, key=lambda r: (r.last_accessed, r.uploaded_at))
    return by_recency[:excess]


def _size_cap_pass(records: list[FileRecord], config: StoreConfig) -> list[FileRecord]:
    total = sum(r.size for r in records)
    if total <= config.max_storage_bytes:
        return []

    selected: list[FileRecord] = []
    for record in sorted(records, key=lambda r: (-r.size, r.last_accessed)):
        if total <= config.max_storage_bytes:
            break
        selected.append(record)
        total -= record.size
    return selected


def plan_eviction(
    records: Iterable[FileRecord],
    config: StoreConfig,
    now: datetime | None = None,
) -> EvictionPlan:
    """Select the records to evict.

    Args:
        records: Current index contents.
        config: Store limits.
        now: Reference time for the expiry pass (defaults to current UTC time).

    Returns:
        EvictionPlan with the IDs chosen by each pass.
    """
    now = now or utc_now()
    survivors = list(records)

    expired = _expiry_pass(survivors, config, now)
    gone = {r.id for r in expired}
    survivors = [r for r in survivors if r.id not in gone]

    over_count = _count_cap_pass(survivors, config)
    gone = {r.id for r in over_count}
    survivors = [r for r in survivors if r.id not in gone]

    over_size = _size_cap_pass(survivors, config)

    return EvictionPlan(
        expired=tuple(r.id for r in expired),
        over_count=tuple(r.id for r in over_count),
        over_size=tuple(r.id for r in over_size),
    )
