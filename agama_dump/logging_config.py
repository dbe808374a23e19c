"""Logging configuration.

All diagnostics are written to standard error so that the JSON snapshot
can be piped from standard output untouched.

Example:
    >>> from agama_dump.logging_config import get_logger, setup_logging
    >>> setup_logging(log_level="DEBUG")
    >>> logger = get_logger(__name__)
    >>> logger.info("Downloading /api/software/config")
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import MutableMapping
from datetime import datetime, timezone
from typing import Any

PACKAGE_LOGGER = "agama_dump"

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%H:%M:%S"

# attributes set by logging.LogRecord itself, everything else came in via "extra"
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Format log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class LoggerAdapter(logging.LoggerAdapter):
    """Logger adapter merging fixed context (e.g. the server URL) into ``extra``."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **(kwargs.get("extra") or {})}
        return msg, kwargs


def setup_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    log_file: str | None = None,
) -> None:
    """Configure the package logger.

    Args:
        log_level: Logging level name.
        json_format: Emit JSON lines instead of plain text.
        log_file: Optional file receiving a copy of all log lines.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    formatter: logging.Formatter = (
        JSONFormatter() if json_format else logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    # Reduce noise from httpx (unless debugging)
    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    logging.getLogger("httpx").setLevel(library_level)
    logging.getLogger("httpcore").setLevel(library_level)


def get_logger(name: str) -> logging.Logger:
    """Return a logger, nested under the package logger."""
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
