"""
Read-only views over the index: filtering, sorting, search and statistics.

Every function takes a list of records and returns new objects; nothing
here touches the store.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Callable, Iterable

from filestore.types import FileCategory, FileRecord, SortKey, SortOrder, StorageInfo

_SORT_KEYS: dict[SortKey, Callable[[FileRecord], Any]] = {
    SortKey.NAME: lambda r: r.name.lower(),
    SortKey.SIZE: lambda r: r.size,
    SortKey.UPLOADED_AT: lambda r: r.uploaded_at,
    SortKey.LAST_ACCESSED: lambda r: r.last_accessed,
}


def list_records(
    records: Iterable[FileRecord],
    category: FileCategory | str | None = None,
    sort_by: SortKey | str = SortKey.UPLOADED_AT,
    sort_order: SortOrder | str = SortOrder.DESC,
    search: str | None = None,
) -> list[FileRecord]:
    """Filter and order records.

    Args:
        records: Records to view.
        category: Keep only this category.
        sort_by: Field to order by.
        sort_order: asc or desc.
        search: Case-insensitive substring the name must contain.

    Returns:
        A new list; equal keys keep their index order.
    """
    result = list(records)

    if category is not None:
        wanted = FileCategory.parse(category)
        result = [r for r in result if r.category == wanted]

    if search:
        needle = search.lower()
        result = [r for r in result if needle in r.name.lower()]

    key = _SORT_KEYS[SortKey(sort_by)]
    result.sort(key=key, reverse=SortOrder(sort_order) == SortOrder.DESC)
    return result


def search_records(records: Iterable[FileRecord], query: str) -> list[FileRecord]:
    """Records whose name contains query, case-insensitively, in index order."""
    needle = query.lower()
    return [r for r in records if needle in r.name.lower()]


def aggregate(records: Iterable[FileRecord]) -> StorageInfo:
    """Compute totals, per-category counts and the upload time range."""
    records = list(records)
    if not records:
        return StorageInfo(total_files=0, total_size=0, files_by_category={})

    by_category = Counter(r.category.value for r in records)
    uploaded = [r.uploaded_at for r in records]

    return StorageInfo(
        total_files=len(records),
        total_size=sum(r.size for r in records),
        files_by_category=dict(by_category),
        oldest_file=min(uploaded),
        newest_file=max(uploaded),
    )
