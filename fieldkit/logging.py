"""Logging utilities for fieldkit.

Provides a structured JSON logging option and a helper that turns field or
model change events into log records.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from fieldkit.events import MODIFIED_CHANGE, VALID_CHANGE
from fieldkit.settings import get_settings

__all__ = [
    "CHANGES_LOGGER",
    "setup_logging",
    "JSONFormatter",
    "log_changes",
]

PACKAGE_LOGGER = "fieldkit"
CHANGES_LOGGER = "fieldkit.changes"
EVENTS_LOGGER = "fieldkit.events"

_RESERVED = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Formatter that outputs log records as JSON.

    Example output:
        {"timestamp": "2025-01-15T10:30:00.123Z", "level": "DEBUG",
         "logger": "fieldkit.field", "message": "Validation of 'sku' changed to False"}
    """

    def __init__(
        self,
        include_fields: Optional[List[str]] = None,
        exclude_fields: Optional[List[str]] = None,
    ):
        """Initialize JSON formatter.

        Args:
            include_fields: Extra fields to include (from record.__dict__)
            exclude_fields: Fields to exclude from output
        """
        super().__init__()
        self.include_fields = include_fields or []
        self.exclude_fields = exclude_fields or []

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for field in self.include_fields:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        extra_attrs = {
            k: v
            for k, v in record.__dict__.items()
            if k not in _RESERVED and k not in self.exclude_fields and k not in self.include_fields
        }
        if extra_attrs:
            log_data["extra"] = extra_attrs

        return json.dumps(log_data, default=str)


def log_changes(
    target: Any,
    logger: Optional[logging.Logger] = None,
    level: int = logging.INFO,
) -> Callable[[], None]:
    """Log every validChange/modifiedChange emitted by a field or model.

    Records carry ``event``, ``source`` and ``state`` as extra attributes,
    and the error descriptors when validation failed.

    Args:
        target: Field or Model instance
        logger: Logger to write to (defaults to ``fieldkit.changes``)
        level: Log level for the records

    Returns:
        Callable that detaches the listeners
    """
    log = logger or logging.getLogger(CHANGES_LOGGER)
    label = getattr(target, "name", "") or type(target).__name__

    def on_valid(is_valid: Optional[bool], source: Any) -> None:
        extra: Dict[str, Any] = {"event": VALID_CHANGE, "source": label, "state": is_valid}
        if is_valid is False and isinstance(source.validation, list):
            extra["errors"] = [error.to_dict() for error in source.validation]
        log.log(level, "%s validation is now %s", label, is_valid, extra=extra)

    def on_modified(is_dirty: bool, source: Any) -> None:
        extra = {"event": MODIFIED_CHANGE, "source": label, "state": is_dirty}
        log.log(level, "%s is now %s", label, "modified" if is_dirty else "clean", extra=extra)

    target.on(VALID_CHANGE, on_valid)
    target.on(MODIFIED_CHANGE, on_modified)

    def detach() -> None:
        target.off(VALID_CHANGE, on_valid)
        target.off(MODIFIED_CHANGE, on_modified)

    return detach


def setup_logging(
    verbose: bool = False,
    json_format: bool = False,
    log_file: Optional[str] = None,
    changes_level: int = logging.INFO,
) -> logging.Logger:
    """Attach handlers to the ``fieldkit`` logger tree.

    Internal modules log at DEBUG and are shown only with ``verbose``.
    Records written by ``log_changes`` go to ``fieldkit.changes`` and are
    shown from ``changes_level`` up. When ``log_events`` is enabled in
    ``.fieldkit.yaml``, event dispatch debug lines are shown as well. The
    root logger is left alone.

    Args:
        verbose: Show fieldkit's internal debug logging
        json_format: Use JSON output format (for log aggregation)
        log_file: Optional file path to write logs to
        changes_level: Minimum level for ``fieldkit.changes`` records

    Returns:
        The configured ``fieldkit`` logger
    """
    if json_format:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    package_logger.propagate = False

    # Remove existing handlers to avoid duplicates
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
        handler.close()

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    logging.getLogger(CHANGES_LOGGER).setLevel(changes_level)
    events_level = logging.DEBUG if get_settings().log_events else logging.NOTSET
    logging.getLogger(EVENTS_LOGGER).setLevel(events_level)
    return package_logger
