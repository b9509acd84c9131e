"""Display helpers for file sizes and timestamps."""

from __future__ import annotations

from datetime import datetime

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def format_file_size(num_bytes: int) -> str:
    """Human-readable size using 1024-byte units.

    Examples:
        0 -> "0 Bytes", 1536 -> "1.5 KB", 5 * 1024**3 -> "5 GB"
    """
    if num_bytes <= 0:
        return "0 Bytes"
    exponent = 0
    while num_bytes >= 1024 ** (exponent + 1) and exponent < len(_SIZE_UNITS) - 1:
        exponent += 1
    value = round(num_bytes / 1024**exponent, 2)
    # Drop trailing zeros: 1.50 -> 1.5, 2.00 -> 2
    return f"{value:g} {_SIZE_UNITS[exponent]}"


def format_timestamp(value: datetime) -> str:
    """Local date plus hour:minute, e.g. "2026-10-18 14:05"."""
    return value.astimezone().strftime("%Y-%m-%d %H:%M")
