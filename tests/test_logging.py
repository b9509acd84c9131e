"""
Tests for structured logging.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from filestore.logging import (
    JSONFormatter,
    get_file_id,
    get_logger,
    get_operation,
    log_context,
    setup_logging,
)


def _record(message: str, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("filestore.test", logging.INFO, __file__, 1, message, (), None)
    if extra:
        record.extra = extra
    return record


class TestLogContext:
    """Test scoped context variables."""

    def test_nested_context_restores(self) -> None:
        """Test that inner scopes restore outer values on exit."""
        assert get_operation() is None

        with log_context(operation="cleanup"):
            with log_context(file_id="file_abc"):
                assert get_operation() == "cleanup"
                assert get_file_id() == "file_abc"
            assert get_file_id() is None
            assert get_operation() == "cleanup"

        assert get_operation() is None


class TestJSONFormatter:
    """Test machine-readable log lines."""

    def test_includes_context_and_extra(self) -> None:
        """Test that operation, file ID and keyword extras appear."""
        formatter = JSONFormatter()

        with log_context(operation="store", file_id="file_abc"):
            line = formatter.format(_record("Stored file", size=12))

        payload = json.loads(line)
        assert payload["message"] == "Stored file"
        assert payload["level"] == "INFO"
        assert payload["operation"] == "store"
        assert payload["file_id"] == "file_abc"
        assert payload["extra"] == {"size": 12}

    def test_without_context(self) -> None:
        """Test that absent context keys are omitted."""
        payload = json.loads(JSONFormatter().format(_record("hello")))

        assert "operation" not in payload
        assert "file_id" not in payload


class TestSetupLogging:
    """Test handler configuration."""

    def test_file_handler_writes_json_lines(self, temp_dir: Path) -> None:
        """Test that ContextLogger kwargs land in the JSON log file."""
        log_file = temp_dir / "logs" / "filestore.jsonl"
        setup_logging("DEBUG", log_file, console_output=False)
        logger = get_logger("tests.logging")

        with log_context(operation="delete", file_id="file_xyz"):
            logger.info("Deleted file", bytes_freed=42)

        for handler in logging.getLogger("filestore").handlers:
            handler.flush()

        lines = log_file.read_text().strip().splitlines()
        payload = json.loads(lines[-1])
        assert payload["logger"] == "filestore.tests.logging"
        assert payload["operation"] == "delete"
        assert payload["extra"]["bytes_freed"] == 42
        assert payload["extra"]["file_id"] == "file_xyz"

        setup_logging("WARNING", console_output=False)
