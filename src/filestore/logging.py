"""
Structured logging for the file store.

Provides:
- Context variables for the current operation and file ID (using contextvars)
- JSONFormatter for machine-readable logs to file
- RichHandler for pretty console output
- ContextLogger wrapper that attaches keyword context to all log calls
- setup_logging() that configures both file and console handlers
- log_context() context manager for scoped context
- get_logger() factory
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

_operation_var: ContextVar[str | None] = ContextVar("operation", default=None)
_file_id_var: ContextVar[str | None] = ContextVar("file_id", default=None)


def get_operation() -> str | None:
    """Get the current store operation from context."""
    return _operation_var.get()


def get_file_id() -> str | None:
    """Get the current file ID from context."""
    return _file_id_var.get()


@contextmanager
def log_context(
    operation: str | None = None,
    file_id: str | None = None,
) -> Generator[None, None, None]:
    """Context manager for scoped logging context.

    Args:
        operation: Store operation name (e.g. "store", "cleanup").
        file_id: File ID the operation concerns.

    Yields:
        None. Context variables are set for the duration of the context.
    """
    old_operation = _operation_var.get()
    old_file_id = _file_id_var.get()

    try:
        if operation is not None:
            _operation_var.set(operation)
        if file_id is not None:
            _file_id_var.set(file_id)
        yield
    finally:
        _operation_var.set(old_operation)
        _file_id_var.set(old_file_id)


class JSONFormatter(logging.Formatter):
    """JSON formatter for machine-readable log files.

    Produces JSON Lines format with structured context.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON."""
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        operation = get_operation()
        file_id = get_file_id()
        if operation:
            log_obj["operation"] = operation
        if file_id:
            log_obj["file_id"] = file_id

        if hasattr(record, "extra"):
            log_obj["extra"] = record.extra

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


class ContextRichHandler(RichHandler):
    """Rich handler that prefixes console lines with the current operation."""

    def get_level_text(self, record: logging.LogRecord) -> Text:
        level_text = super().get_level_text(record)

        parts: list[str] = []
        operation = get_operation()
        file_id = get_file_id()

        if operation:
            parts.append(f"[cyan]{operation}[/cyan]")
        if file_id:
            # Random tail of the uuid7
            parts.append(f"[dim]{file_id[-8:]}[/dim]")

        if parts:
            prefix = " ".join(parts)
            return Text.from_markup(f"{level_text} {prefix}")

        return level_text


class ContextLogger:
    """Logger wrapper that attaches the scoped operation and file ID.

    Keyword arguments become fields of a structured ``extra`` dict, e.g.
    ``logger.info("Stored file", size=12)``.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _log(self, level: int, msg: str, exc_info: bool = False, **fields: Any) -> None:
        extra: dict[str, Any] = {}
        operation = get_operation()
        file_id = get_file_id()
        if operation:
            extra["operation"] = operation
        if file_id:
            extra["file_id"] = file_id
        # Explicit file_id= overrides the scoped one
        extra.update(fields)
        self._logger.log(level, msg, exc_info=exc_info, extra={"extra": extra})

    def debug(self, msg: str, **fields: Any) -> None:
        self._log(logging.DEBUG, msg, **fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._log(logging.INFO, msg, **fields)

    def warning(self, msg: str, **fields: Any) -> None:
        self._log(logging.WARNING, msg, **fields)

    def error(self, msg: str, exc_info: bool = False, **fields: Any) -> None:
        self._log(logging.ERROR, msg, exc_info=exc_info, **fields)

    def exception(self, msg: str, **fields: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._log(logging.ERROR, msg, exc_info=True, **fields)


_setup_done: bool = False


def setup_logging(
    log_level: str = "INFO",
    log_file: Path | None = None,
    console_output: bool = True,
) -> None:
    """Set up logging with JSON file handler and rich console handler.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Path to log file. If None, only console logging is enabled.
        console_output: Whether to enable console output.
    """
    global _setup_done

    root_logger = logging.getLogger("filestore")
    root_logger.setLevel(getattr(logging, log_level.upper()))
    root_logger.handlers.clear()

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        file_handler.setLevel(logging.DEBUG)
        root_logger.addHandler(file_handler)

    if console_output:
        rich_handler = ContextRichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            markup=True,
        )
        rich_handler.setLevel(getattr(logging, log_level.upper()))
        root_logger.addHandler(rich_handler)

    root_logger.propagate = False

    _setup_done = True


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger.

    Args:
        name: Logger name (usually __name__).

    Returns:
        ContextLogger wrapper around the standard logger.
    """
    if not _setup_done:
        setup_logging()

    if not name.startswith("filestore"):
        name = f"filestore.{name}"

    return ContextLogger(logging.getLogger(name))
