"""
Standard response envelope for Statamic MCP tool operations.

Response Schema Contract
========================

Every tool and router returns the same JSON object:

    {
        "success": bool,        # Required
        "data": {...},          # Present iff success
        "error": "CODE",        # Present iff failure: machine code
        "errors": ["..."],      # Present iff failure: human messages
        "details": {...}?,      # Failure context (validation_errors, suggestions, ...)
        "warnings": ["..."],    # Always present, may be empty
        "meta": {               # Always present
            "tool": "statamic-blueprints",
            "timestamp": "2025-01-15T10:30:45+00:00",
            "statamic_version": "5.4.0",
            "laravel_version": "11.9.2",
            "correlation_id": "mcp_abc123"?
        }
    }

Envelopes may carry a few top-level extras next to the contract keys (for
example ``simulation`` and ``would_execute`` on dry-run results).

Key Principle:
    - ``success=True`` means the operation executed correctly, even when the
      result is empty.
    - ``success=False`` always carries at least one message in ``errors``.
    - Business data lives in ``data``, operational context in ``meta``.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from statamic_mcp.core.context import get_correlation_id
from statamic_mcp.core.errors import ErrorCode, not_found_code
from statamic_mcp.core.runtime import get_runtime_versions

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 500


def utc_timestamp() -> str:
    """Current time as an ISO-8601 string in UTC."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ResponseMeta:
    """Metadata attached to every envelope.

    Attributes:
        tool: Name of the tool or router that produced the response
        timestamp: ISO-8601 creation time
        statamic_version: Version of the wrapped CMS, or "unknown"
        laravel_version: Version of the wrapped framework, or "unknown"
        extra: Additional keys merged into the serialized meta
    """

    tool: str = ""
    timestamp: str = field(default_factory=utc_timestamp)
    statamic_version: str = "unknown"
    laravel_version: str = "unknown"
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        meta: Dict[str, Any] = {
            "tool": self.tool,
            "timestamp": self.timestamp,
            "statamic_version": self.statamic_version,
            "laravel_version": self.laravel_version,
        }
        meta.update(self.extra)
        return meta


@dataclass
class ToolResponse:
    """
    Standard response structure for MCP tool operations.

    Attributes:
        success: Whether the operation completed successfully
        data: Primary payload (serialized only on success)
        error: Machine-readable code (serialized only on failure)
        errors: Human-readable messages (serialized only on failure)
        details: Failure context (serialized only on failure, when set)
        warnings: Non-fatal issues
        meta: Response metadata
        extra: Top-level keys serialized next to the contract keys
    """

    success: bool
    data: Any = field(default_factory=dict)
    error: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    meta: ResponseMeta = field(default_factory=ResponseMeta)
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": self.success}
        if self.success:
            payload["data"] = self.data if self.data is not None else {}
        else:
            payload["error"] = self.error or ErrorCode.INTERNAL_ERROR.value
            payload["errors"] = list(self.errors) or [ErrorCode.INTERNAL_ERROR.message]
            if self.details:
                payload["details"] = dict(self.details)
        payload["warnings"] = list(self.warnings)
        payload["meta"] = self.meta.to_dict()
        for key, value in self.extra.items():
            payload.setdefault(key, value)
        return payload


def build_meta(
    tool: Optional[str] = None,
    *,
    extra: Optional[Mapping[str, Any]] = None,
    auto_inject_correlation_id: bool = True,
) -> ResponseMeta:
    """Construct envelope metadata with the current runtime versions.

    Args:
        tool: Tool name recorded in ``meta.tool``
        extra: Additional keys merged into the serialized meta
        auto_inject_correlation_id: Copy the correlation id from the request
            context when one is set
    """
    statamic_version, laravel_version = get_runtime_versions()
    meta_extra: Dict[str, Any] = {}
    if auto_inject_correlation_id:
        correlation_id = get_correlation_id()
        if correlation_id:
            meta_extra["correlation_id"] = correlation_id
    if extra:
        meta_extra.update(dict(extra))

    return ResponseMeta(
        tool=tool or "",
        statamic_version=statamic_version,
        laravel_version=laravel_version,
        extra=meta_extra,
    )


def success_response(
    data: Any = None,
    *,
    tool: Optional[str] = None,
    warnings: Optional[Sequence[str]] = None,
    meta: Optional[Mapping[str, Any]] = None,
    extra: Optional[Mapping[str, Any]] = None,
) -> ToolResponse:
    """Create a standardized success response.

    Args:
        data: Primary payload (``{}`` when None)
        tool: Tool name for ``meta.tool``
        warnings: Non-fatal issues
        meta: Extra metadata merged into ``meta``
        extra: Top-level keys added next to the contract keys
    """
    return ToolResponse(
        success=True,
        data={} if data is None else data,
        warnings=list(warnings or []),
        meta=build_meta(tool, extra=meta),
        extra=dict(extra or {}),
    )


def error_response(
    error: Union[ErrorCode, str],
    *,
    message: Optional[str] = None,
    code: Optional[str] = None,
    data: Optional[Mapping[str, Any]] = None,
    tool: Optional[str] = None,
    warnings: Optional[Sequence[str]] = None,
    meta: Optional[Mapping[str, Any]] = None,
    extra: Optional[Mapping[str, Any]] = None,
) -> ToolResponse:
    """Create a standardized error response.

    Args:
        error: An ``ErrorCode`` or a free-form message. A plain message is
            classified as ``INTERNAL_ERROR``.
        message: Human message overriding the code's fixed message
        code: Machine code overriding the ``ErrorCode`` value (router-level
            codes such as ``safety_protocol_required``)
        data: Failure context, emitted under ``details``
        tool: Tool name for ``meta.tool``
        warnings: Non-fatal issues
        meta: Extra metadata merged into ``meta``
        extra: Top-level keys added next to the contract keys

    Example:
        >>> error_response(ErrorCode.NOT_FOUND).to_dict()["errors"]
        ['Resource not found']
        >>> error_response("Disk on fire").to_dict()["error"]
        'INTERNAL_ERROR'
    """
    if isinstance(error, ErrorCode):
        error_code = error
        text = message or error.message
    else:
        error_code = ErrorCode.INTERNAL_ERROR
        text = message or str(error) or error_code.message

    return ToolResponse(
        success=False,
        error=code or error_code.value,
        errors=[text],
        details=dict(data or {}),
        warnings=list(warnings or []),
        meta=build_meta(tool, extra=meta),
        extra=dict(extra or {}),
    )


# ---------------------------------------------------------------------------
# Specialized Error Helpers
# ---------------------------------------------------------------------------


def validation_error(
    field_errors: Union[Mapping[str, Any], Sequence[str]],
    *,
    message: Optional[str] = None,
    tool: Optional[str] = None,
) -> ToolResponse:
    """Create a validation error response (HTTP 400 analog).

    Example:
        >>> validation_error({"handle": ["The handle field is required."]})
    """
    if isinstance(field_errors, Mapping):
        errors: Any = dict(field_errors)
    else:
        errors = list(field_errors)
    return error_response(
        ErrorCode.VALIDATION_ERROR,
        message=message,
        data={"validation_errors": errors},
        tool=tool,
    )


def not_found(
    resource: str,
    identifier: Optional[str] = None,
    suggestions: Optional[Sequence[str]] = None,
    *,
    tool: Optional[str] = None,
) -> ToolResponse:
    """Create a not found error response (HTTP 404 analog).

    The code is the resource-specific variant when one exists
    (``entry`` -> ``ENTRY_NOT_FOUND``), otherwise ``NOT_FOUND``.
    """
    error_code = not_found_code(resource)
    label = resource.replace("_", " ").capitalize()
    text = f"{label} '{identifier}' not found" if identifier else f"{label} not found"

    data: Dict[str, Any] = {"resource": resource}
    if identifier is not None:
        data["identifier"] = identifier
    if suggestions:
        data["suggestions"] = list(suggestions)

    return error_response(error_code, message=text, data=data, tool=tool)


def permission_denied(
    operation: str,
    resource: Optional[str] = None,
    required_permissions: Optional[Sequence[str]] = None,
    *,
    tool: Optional[str] = None,
) -> ToolResponse:
    """Create a permission denied response (HTTP 403 analog)."""
    data: Dict[str, Any] = {"operation": operation}
    if resource:
        data["resource"] = resource
    if required_permissions:
        data["required_permissions"] = list(required_permissions)

    target = f" on {resource}" if resource else ""
    return error_response(
        ErrorCode.PERMISSION_DENIED,
        message=f"Permission denied: cannot {operation}{target}",
        data=data,
        tool=tool,
    )


def security_error(
    error_code: ErrorCode,
    details: Optional[str] = None,
    *,
    tool: Optional[str] = None,
) -> ToolResponse:
    """Create a security error response; the incident is flagged in meta."""
    data = {"details": details} if details else None
    return error_response(
        error_code,
        data=data,
        tool=tool,
        meta={"security_incident": True, "logged": True},
    )


def rate_limited(
    retry_after: float,
    limit: int,
    *,
    tool: Optional[str] = None,
) -> ToolResponse:
    """Create a rate limit error response (HTTP 429 analog)."""
    retry = max(1, int(round(retry_after)))
    return error_response(
        ErrorCode.RATE_LIMITED,
        message=f"Rate limit exceeded. Try again in {retry} seconds.",
        data={"retry_after": retry, "limit": limit},
        tool=tool,
    )


def is_envelope(result: Any) -> bool:
    """True when a mapping already follows the envelope contract."""
    return isinstance(result, Mapping) and "success" in result and "meta" in result


def sanitize_error_message(
    message: str,
    prefix: str = "",
    max_length: int = MAX_ERROR_MESSAGE_LENGTH,
) -> str:
    """
    Make an exception message safe to hand back to a remote caller.

    Null bytes are stripped, the prefix applied, and the result capped at
    ``max_length`` characters (with a trailing ``...`` when cut).
    """
    text = f"{prefix}{message or ''}".replace("\x00", "")
    if len(text) > max_length:
        text = text[: max_length - 3] + "..."
    return text
