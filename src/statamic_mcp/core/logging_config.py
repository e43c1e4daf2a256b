"""Structured logging configuration with automatic context injection.

Records emitted anywhere under the ``statamic_mcp`` logger pick up the
current correlation id and client id, so a response envelope can be joined
to its log lines.

Logs always go to stderr: stdout carries the MCP stdio transport.

Usage:
    from statamic_mcp.core.logging_config import configure_logging, get_logger

    configure_logging(level="DEBUG", format="structured")
    logger = get_logger(__name__)
"""

from __future__ import annotations

import json
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO, Union

from statamic_mcp.core.context import (
    get_access_context,
    get_client_id,
    get_correlation_id,
    get_start_time,
)

__all__ = [
    "ContextFilter",
    "StructuredFormatter",
    "HumanReadableFormatter",
    "LastResortStreamHandler",
    "write_last_resort",
    "configure_logging",
    "get_logger",
]

ROOT_LOGGER = "statamic_mcp"


def write_last_resort(message: str) -> None:
    """Write a single line to the interpreter's original stderr.

    Used when the configured log sink itself fails. Never raises.
    """
    stream = sys.__stderr__
    if stream is None:
        return
    try:
        stream.write(f"[statamic-mcp] log sink failure: {message}\n")
        stream.flush()
    except (OSError, ValueError):
        pass


class ContextFilter(logging.Filter):
    """Logging filter that injects request context into log records.

    Adds ``correlation_id``, ``client_id``, ``access_mode`` and
    ``elapsed_ms`` to every record passing through the handler.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        record.client_id = get_client_id() or "anonymous"
        record.access_mode = get_access_context().mode

        start_time = get_start_time()
        if start_time > 0:
            record.elapsed_ms = round((time.time() - start_time) * 1000, 2)
        else:
            record.elapsed_ms = 0.0
        return True


class StructuredFormatter(logging.Formatter):
    """JSON-structured log formatter for machine-readable output.

    Example output:
        {"timestamp":"2025-01-15T10:30:45.123+00:00","level":"INFO",
         "logger":"statamic_mcp.tools","message":"MCP Tool Started",
         "correlation_id":"mcp_a1b2c3d4e5f6","extra":{"tool":"statamic-blueprints"}}
    """

    _standard_attrs = frozenset(
        {
            "name",
            "msg",
            "args",
            "levelname",
            "levelno",
            "pathname",
            "filename",
            "module",
            "lineno",
            "funcName",
            "created",
            "msecs",
            "relativeCreated",
            "thread",
            "threadName",
            "processName",
            "process",
            "taskName",
            "message",
            "exc_info",
            "exc_text",
            "stack_info",
            "correlation_id",
            "client_id",
            "access_mode",
            "elapsed_ms",
        }
    )

    def __init__(self, *, include_extra: bool = True, include_exception: bool = True):
        super().__init__()
        self.include_extra = include_extra
        self.include_exception = include_exception

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "-"),
            "client_id": getattr(record, "client_id", "anonymous"),
            "access_mode": getattr(record, "access_mode", "cli"),
            "elapsed_ms": getattr(record, "elapsed_ms", 0.0),
        }

        if self.include_exception and record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            extra = {}
            for key, value in record.__dict__.items():
                if key in self._standard_attrs:
                    continue
                try:
                    json.dumps(value)
                    extra[key] = value
                except (TypeError, ValueError):
                    extra[key] = str(value)
            if extra:
                log_entry["extra"] = extra

        return json.dumps(log_entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable formatter with context prefix.

    Produces logs in format:
        2025-01-15 10:30:45 [INFO] [mcp_a1b2c3] tools: MCP Tool Started
    """

    def __init__(self, *, include_timestamp: bool = True, include_location: bool = False):
        super().__init__()
        self.include_timestamp = include_timestamp
        self.include_location = include_location

    def format(self, record: logging.LogRecord) -> str:
        parts = []
        if self.include_timestamp:
            parts.append(datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S"))

        parts.append(f"[{record.levelname}]")

        corr_id = getattr(record, "correlation_id", "-")
        if corr_id and corr_id != "-":
            parts.append(f"[{corr_id}]")

        logger_name = record.name
        if logger_name.startswith(f"{ROOT_LOGGER}."):
            logger_name = logger_name[len(ROOT_LOGGER) + 1 :]
        parts.append(f"{logger_name}:")
        parts.append(record.getMessage())

        if self.include_location:
            parts.append(f"({record.filename}:{record.lineno})")

        result = " ".join(parts)
        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)
        return result


class LastResortStreamHandler(logging.StreamHandler):
    """Stream handler whose emission failures go to the original stderr.

    The stdlib default prints a full traceback for every failed emit; a broken
    sink here produces one short line and the invocation carries on.
    """

    def handleError(self, record: logging.LogRecord) -> None:
        exc = sys.exc_info()[1]
        write_last_resort(f"{type(exc).__name__ if exc else 'Error'} while logging {record.name}")


def configure_logging(
    *,
    level: Union[int, str] = logging.INFO,
    format: str = "human",
    stream: Optional[TextIO] = None,
    add_context: bool = True,
) -> logging.Logger:
    """Configure the root statamic_mcp logger.

    Args:
        level: Log level (default: INFO)
        format: Output format ("structured" for JSON, "human" for readable)
        stream: Output stream (default: stderr)
        add_context: Add ContextFilter for automatic context injection

    Returns:
        Configured root logger for statamic_mcp
    """
    if isinstance(level, str):
        level = level.upper()

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = LastResortStreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    if format == "structured":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(HumanReadableFormatter())
    if add_context:
        handler.addFilter(ContextFilter())

    logger.addHandler(handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the statamic_mcp namespace."""
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
