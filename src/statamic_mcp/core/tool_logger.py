"""
Correlation logger for tool invocations.

Each invocation gets a correlation id at start; every record it produces
(start, success, failure, performance and cache events) carries that id so
operators can join a response envelope to its log lines.

Arguments are sanitized before they are logged: values under sensitive keys
are replaced with a redaction marker and very long strings are truncated.
Failure records hold the exception class and source location; those stay in
the log sink and are never copied into a response.

Logging must never break an invocation. If the sink raises, the record is
reported once on the interpreter's original stderr and the call continues.
"""

import logging
import traceback
from typing import Any, Dict, Mapping, Optional

from statamic_mcp.core.context import generate_correlation_id
from statamic_mcp.core.errors import safe_exception_message
from statamic_mcp.core.logging_config import write_last_resort

SENSITIVE_KEYS = frozenset(
    {
        "password",
        "token",
        "secret",
        "key",
        "api_key",
        "access_token",
        "refresh_token",
        "private_key",
    }
)

REDACTION_MARKER = "[REDACTED]"
TRUNCATION_MARKER = "... [TRUNCATED]"
MAX_STRING_LENGTH = 1000

# Invocations slower than this get a performance warning (seconds)
PERFORMANCE_THRESHOLD = 5.0


def sanitize_arguments(arguments: Any) -> Any:
    """Return a log-safe copy of tool arguments.

    Keys matching ``SENSITIVE_KEYS`` (case-insensitive) are redacted, strings
    longer than ``MAX_STRING_LENGTH`` are truncated, and nested mappings and
    sequences are processed recursively. Applying it twice gives the same
    result as applying it once.

    Example:
        >>> sanitize_arguments({"password": "x", "nested": {"token": "y", "ok": "z"}})
        {'password': '[REDACTED]', 'nested': {'token': '[REDACTED]', 'ok': 'z'}}
    """
    if isinstance(arguments, Mapping):
        sanitized: Dict[Any, Any] = {}
        for key, value in arguments.items():
            if str(key).lower() in SENSITIVE_KEYS:
                sanitized[key] = REDACTION_MARKER
            else:
                sanitized[key] = sanitize_arguments(value)
        return sanitized
    if isinstance(arguments, (list, tuple)):
        return [sanitize_arguments(item) for item in arguments]
    if isinstance(arguments, str) and len(arguments) > MAX_STRING_LENGTH:
        return arguments[:MAX_STRING_LENGTH] + TRUNCATION_MARKER
    return arguments


def describe_exception(error: BaseException) -> Dict[str, Any]:
    """Exception class, message and innermost source location."""
    info: Dict[str, Any] = {
        "message": safe_exception_message(error),
        "class": type(error).__name__,
        "code": getattr(getattr(error, "code", None), "value", None),
    }
    frames = traceback.extract_tb(error.__traceback__) if error.__traceback__ else []
    if frames:
        info["file"] = frames[-1].filename
        info["line"] = frames[-1].lineno
    return info


class ToolLogger:
    """Structured logger for tool invocations.

    Records go to the ``statamic_mcp.tools`` logger with the fields in
    ``extra`` so the structured formatter emits them as JSON.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("statamic_mcp.tools")

    def _emit(self, level: int, message: str, fields: Dict[str, Any], exc_info: bool = False) -> None:
        try:
            self._logger.log(level, message, extra={"mcp": fields}, exc_info=exc_info)
        except Exception as e:  # the sink is external; fall back to stderr
            write_last_resort(f"{message}: {type(e).__name__}: {e}")

    def tool_started(self, tool: str, arguments: Mapping[str, Any]) -> str:
        """Log the start of an invocation and return its correlation id."""
        correlation_id = generate_correlation_id()
        self._emit(
            logging.INFO,
            "MCP Tool Started",
            {
                "tool": tool,
                "correlation_id": correlation_id,
                "arguments": sanitize_arguments(dict(arguments)),
            },
        )
        return correlation_id

    def tool_success(
        self,
        tool: str,
        correlation_id: str,
        duration: float,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._emit(
            logging.INFO,
            "MCP Tool Completed",
            {
                "tool": tool,
                "correlation_id": correlation_id,
                "duration_ms": round(duration * 1000, 2),
                "metadata": dict(metadata or {}),
            },
        )

    def tool_failed(
        self,
        tool: str,
        correlation_id: str,
        error: BaseException,
        duration: float,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> None:
        fields = {
            "tool": tool,
            "correlation_id": correlation_id,
            "duration_ms": round(duration * 1000, 2),
            "error": describe_exception(error),
            "metadata": dict(metadata or {}),
        }
        try:
            fields["trace"] = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        except Exception as e:  # formatting a hostile exception can itself fail
            fields["trace"] = f"<unavailable: {type(e).__name__}>"
        self._emit(logging.ERROR, "MCP Tool Failed", fields)

    def performance_warning(self, tool: str, message: str, duration: float) -> None:
        self._emit(
            logging.WARNING,
            "MCP Tool Performance Warning",
            {
                "tool": tool,
                "message": message,
                "duration_ms": round(duration * 1000, 2),
                "threshold_ms": PERFORMANCE_THRESHOLD * 1000,
            },
        )

    def security_warning(self, tool: str, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self._emit(
            logging.WARNING,
            "MCP Security Warning",
            {"tool": tool, "message": message, "context": sanitize_arguments(dict(context or {}))},
        )

    def cache_event(self, tool: str, event: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self._emit(
            logging.DEBUG,
            "MCP Cache Event",
            {"tool": tool, "event": event, "context": dict(context or {})},
        )


_tool_logger = ToolLogger()


def get_tool_logger() -> ToolLogger:
    """Get the process-wide tool logger."""
    return _tool_logger
