# src/logging/logger.py — v3
"""Logging setup for the ``depcontext`` logger tree.

Two formats: ``json`` (one object per line, for log shippers) and
``text`` (for terminals). Both read the request context bound through
``logging.context.request_context`` so every line produced while serving
a validation or aggregation names the user, resource and fingerprint.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from depcontext.logging.context import get_context

if TYPE_CHECKING:
    from depcontext.config.settings import Settings

ROOT_LOGGER = "depcontext"


def _timestamp(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class JsonFormatter(logging.Formatter):
    """One JSON object per line; request context under ``context``."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": _timestamp(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        bound = get_context().as_dict()
        if bound:
            payload["context"] = bound
        if record.exc_info and record.exc_info[1] is not None:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)
        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """``<time> [LEVEL] logger [operation] (user=...) - message``."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        line = f"{_timestamp(record):%Y-%m-%d %H:%M:%S} [{record.levelname:8s}] {record.name}"
        if ctx.operation:
            line += f" [{ctx.operation}]"
        if ctx.user_id:
            line += f" (user={ctx.user_id})"
        line += f" - {record.getMessage()}"
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: Path | str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> logging.Logger:
    """Install handlers on the ``depcontext`` logger. Safe to call again.

    Args:
        level: DEBUG, INFO, WARNING or ERROR.
        log_format: ``json`` or ``text``.
        log_file: Optional file, rotated by size; stderr is always used.
        rotation: Size that triggers rotation (e.g. "10MB").
        retention: Rotated files to keep.

    Returns:
        The configured ``depcontext`` logger.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter: logging.Formatter = JsonFormatter() if log_format == "json" else TextFormatter()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        from depcontext.logging.handlers import create_rotating_handler

        handlers.append(create_rotating_handler(log_file, rotation=rotation, retention=retention))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def setup_logging_from_settings(settings: Settings, verbose: bool = False) -> logging.Logger:
    """``setup_logging`` driven by the LOG_* settings; ``verbose`` forces DEBUG."""
    return setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
