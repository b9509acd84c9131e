"""
Tests for display formatting helpers.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from filestore.utils import format_file_size, format_timestamp


class TestFormatFileSize:
    """Test human-readable sizes."""

    @pytest.mark.parametrize(
        "num_bytes,expected",
        [
            (0, "0 Bytes"),
            (1, "1 Bytes"),
            (1023, "1023 Bytes"),
            (1024, "1 KB"),
            (1536, "1.5 KB"),
            (10 * 1024 * 1024, "10 MB"),
            (5 * 1024**3, "5 GB"),
            (int(1.25 * 1024**2), "1.25 MB"),
        ],
    )
    def test_units(self, num_bytes: int, expected: str) -> None:
        """Test unit selection and trailing-zero trimming."""
        assert format_file_size(num_bytes) == expected

    def test_caps_at_gigabytes(self) -> None:
        """Test that terabyte values are still shown in GB."""
        assert format_file_size(2 * 1024**4) == "2048 GB"

    def test_negative_is_zero(self) -> None:
        """Test that nonsense input does not crash."""
        assert format_file_size(-5) == "0 Bytes"


class TestFormatTimestamp:
    """Test timestamp display."""

    def test_minute_precision_local_time(self) -> None:
        """Test the date/time layout in local time."""
        value = datetime(2026, 3, 14, 15, 9, 26, tzinfo=timezone.utc)

        expected = value.astimezone().strftime("%Y-%m-%d %H:%M")

        assert format_timestamp(value) == expected
        assert len(format_timestamp(value)) == len("2026-03-14 15:09")
