"""
Audit logging for Statamic MCP operations.

Audit records are written to a dedicated ``statamic_mcp.audit`` logger so
they can be routed and retained separately from operational logs. Every
event carries the correlation id and client id of the invocation that
produced it; arguments are sanitized before they are recorded.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from statamic_mcp.core.context import get_access_context, get_client_id, get_correlation_id
from statamic_mcp.core.errors import safe_exception_message
from statamic_mcp.core.logging_config import write_last_resort
from statamic_mcp.core.tool_logger import sanitize_arguments


class AuditEventType(Enum):
    """Types of audit events."""

    OPERATION_STARTED = "operation_started"
    OPERATION_COMPLETED = "operation_completed"
    OPERATION_FAILED = "operation_failed"
    AUTH_FAILURE = "auth_failure"
    PERMISSION_DENIED = "permission_denied"
    RATE_LIMIT = "rate_limit"
    SECURITY_INCIDENT = "security_incident"


_EVENT_MESSAGES = {
    AuditEventType.OPERATION_STARTED: "MCP Operation Started",
    AuditEventType.OPERATION_COMPLETED: "MCP Operation Completed",
    AuditEventType.OPERATION_FAILED: "MCP Operation Failed",
    AuditEventType.AUTH_FAILURE: "MCP Authentication Failed",
    AuditEventType.PERMISSION_DENIED: "MCP Permission Denied",
    AuditEventType.RATE_LIMIT: "MCP Rate Limit Exceeded",
    AuditEventType.SECURITY_INCIDENT: "MCP Security Incident",
}


@dataclass
class AuditEvent:
    """Structured audit event."""

    event_type: AuditEventType
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    correlation_id: Optional[str] = None
    client_id: Optional[str] = None
    user: Optional[str] = None
    context: Optional[str] = None

    def __post_init__(self) -> None:
        """Auto-populate identity fields from the request context if not set."""
        if self.correlation_id is None:
            self.correlation_id = get_correlation_id() or None
        if self.client_id is None:
            ctx_client = get_client_id()
            if ctx_client and ctx_client != "anonymous":
                self.client_id = ctx_client
        access = get_access_context()
        if self.user is None:
            self.user = access.user
        if self.context is None:
            self.context = access.mode

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "user": self.user,
            "context": self.context,
            "details": self.details,
        }
        if self.correlation_id:
            result["correlation_id"] = self.correlation_id
        if self.client_id:
            result["client_id"] = self.client_id
        return result


class AuditLogger:
    """
    Structured audit logging for router operations and security events.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("statamic_mcp.audit")

    def log(self, event: AuditEvent) -> None:
        level = logging.WARNING if event.event_type in (
            AuditEventType.OPERATION_FAILED,
            AuditEventType.AUTH_FAILURE,
            AuditEventType.PERMISSION_DENIED,
            AuditEventType.RATE_LIMIT,
            AuditEventType.SECURITY_INCIDENT,
        ) else logging.INFO
        message = _EVENT_MESSAGES[event.event_type]
        try:
            self._logger.log(level, message, extra={"audit": event.to_dict()})
        except Exception as e:  # audit sink is external
            write_last_resort(f"{message}: {type(e).__name__}: {e}")

    def operation_started(self, tool: str, action: str, arguments: Mapping[str, Any]) -> None:
        self.log(
            AuditEvent(
                event_type=AuditEventType.OPERATION_STARTED,
                details={
                    "tool": tool,
                    "action": action,
                    "arguments": sanitize_arguments(dict(arguments)),
                },
            )
        )

    def operation_completed(self, tool: str, action: str, duration: float) -> None:
        self.log(
            AuditEvent(
                event_type=AuditEventType.OPERATION_COMPLETED,
                details={
                    "tool": tool,
                    "action": action,
                    "duration_ms": round(duration * 1000, 2),
                },
            )
        )

    def operation_failed(self, tool: str, action: str, error: BaseException, duration: float) -> None:
        self.log(
            AuditEvent(
                event_type=AuditEventType.OPERATION_FAILED,
                details={
                    "tool": tool,
                    "action": action,
                    "error": safe_exception_message(error),
                    "error_class": type(error).__name__,
                    "duration_ms": round(duration * 1000, 2),
                },
            )
        )


_audit = AuditLogger()


def get_audit_logger() -> AuditLogger:
    """Get the global audit logger."""
    return _audit


def audit_log(event_type: str, **details: Any) -> None:
    """
    Convenience function for audit logging.

    Args:
        event_type: Value of an ``AuditEventType``; unknown values are
            recorded as security incidents with the original name kept
        **details: Additional details to include in the audit log
    """
    try:
        event_enum = AuditEventType(event_type)
    except ValueError:
        event_enum = AuditEventType.SECURITY_INCIDENT
        details["original_event_type"] = event_type

    _audit.log(AuditEvent(event_type=event_enum, details=details))
