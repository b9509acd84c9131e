"""Utility modules for the file store."""

from filestore.utils.formatting import format_file_size, format_timestamp

__all__ = [
    "format_file_size",
    "format_timestamp",
]
