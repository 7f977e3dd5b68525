"""Logging configuration for RetroForge.

Provides a setup function, a module-level logger factory and a helper
for masking API keys before they reach any log line.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import threading
from datetime import datetime, timezone
from typing import Any

DEFAULT_FORMAT = "%(levelname)-5s | %(name)-18s | %(message)s"
VERBOSE_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)-18s | %(message)s"
ROOT_LOGGER = "retroforge"
_SETUP_LOCK = threading.Lock()


class JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter for machine-readable aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        operation = getattr(record, "operation", None)
        if operation:
            payload["operation"] = operation
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def mask_api_key(api_key: str | None, visible: int = 4) -> str:
    """Return *api_key* with everything past the first *visible* chars hidden.

    Args:
        api_key: The secret to mask.  ``None`` and ``""`` become ``"<none>"``.
        visible: Number of leading characters kept in clear text.

    Returns:
        A log-safe representation such as ``"abcd..."``.
    """
    if not api_key:
        return "<none>"
    return f"{api_key[:visible]}..."


def _formatter(json_logs: bool, fmt: str) -> logging.Formatter:
    return JsonFormatter() if json_logs else logging.Formatter(fmt)


def _console_handler(root: logging.Logger) -> logging.Handler:
    """Return the single stderr handler on *root*, creating it if needed."""
    console = [
        handler
        for handler in root.handlers
        if type(handler) is logging.StreamHandler
        and getattr(handler, "stream", None) is sys.stderr
    ]
    for duplicate in console[1:]:
        root.removeHandler(duplicate)
    if console:
        return console[0]
    handler = logging.StreamHandler(sys.stderr)
    root.addHandler(handler)
    return handler


def _file_handler(root: logging.Logger, log_file: str) -> logging.Handler:
    """Return the handler writing to *log_file*, creating it if needed."""
    wanted = os.path.abspath(log_file)
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == wanted:
            return handler
    handler = logging.FileHandler(wanted, encoding="utf-8")
    root.addHandler(handler)
    return handler


def setup_logging(
    level: int = logging.INFO,
    verbose: bool = False,
    log_file: str | None = None,
    json_logs: bool = False,
) -> None:
    """Attach console (and optionally file) handlers to the ``retroforge`` logger.

    Safe to call more than once: handlers already present are reconfigured
    in place instead of being added again.

    Args:
        level: Threshold for the package logger.
        verbose: Prefix console lines with a timestamp.
        log_file: Also append every record to this file.
        json_logs: Format records as JSON objects instead of text.
    """
    with _SETUP_LOCK:
        root = logging.getLogger(ROOT_LOGGER)
        root.setLevel(level)
        console_fmt = VERBOSE_FORMAT if verbose else DEFAULT_FORMAT
        _console_handler(root).setFormatter(_formatter(json_logs, console_fmt))
        if log_file:
            _file_handler(root, str(log_file)).setFormatter(
                _formatter(json_logs, VERBOSE_FORMAT)
            )


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a RetroForge module.

    Args:
        name: Module name (e.g., ``"client"``, ``"jobs"``).

    Returns:
        A logger instance under the ``retroforge`` namespace.
    """
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
