"""
Error taxonomy for Statamic MCP tools.

Every failure surfaced to a caller is classified by one ``ErrorCode``. The
code's value is its own name, its human message is fixed (never
interpolated), and it suggests an HTTP status class:

    400  malformed input, invalid blueprints, security violations
    401  authentication
    403  forbidden / permission denied
    404  every not-found variant
    409  conflicts
    429  rate limiting
    500  everything else

Operations raise ``StatamicMCPError`` subclasses; the tool boundary turns
them into error envelopes carrying the matching code.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Machine-readable error codes for MCP tool responses."""

    # General errors
    INVALID_INPUT = "INVALID_INPUT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # Resource errors
    BLUEPRINT_NOT_FOUND = "BLUEPRINT_NOT_FOUND"
    BLUEPRINT_INVALID = "BLUEPRINT_INVALID"
    COLLECTION_NOT_FOUND = "COLLECTION_NOT_FOUND"
    ENTRY_NOT_FOUND = "ENTRY_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    ROLE_NOT_FOUND = "ROLE_NOT_FOUND"
    ASSET_NOT_FOUND = "ASSET_NOT_FOUND"
    FORM_NOT_FOUND = "FORM_NOT_FOUND"
    TAXONOMY_NOT_FOUND = "TAXONOMY_NOT_FOUND"
    TERM_NOT_FOUND = "TERM_NOT_FOUND"
    NAVIGATION_NOT_FOUND = "NAVIGATION_NOT_FOUND"
    GLOBAL_NOT_FOUND = "GLOBAL_NOT_FOUND"

    # Operation errors
    CREATION_FAILED = "CREATION_FAILED"
    UPDATE_FAILED = "UPDATE_FAILED"
    DELETION_FAILED = "DELETION_FAILED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    DEPENDENCY_ERROR = "DEPENDENCY_ERROR"
    CACHE_ERROR = "CACHE_ERROR"
    FILE_SYSTEM_ERROR = "FILE_SYSTEM_ERROR"
    TEMPLATE_ERROR = "TEMPLATE_ERROR"
    SCHEMA_ERROR = "SCHEMA_ERROR"

    # Security errors
    PATH_TRAVERSAL = "PATH_TRAVERSAL"
    MALICIOUS_INPUT = "MALICIOUS_INPUT"
    UNSAFE_OPERATION = "UNSAFE_OPERATION"

    @property
    def message(self) -> str:
        """Fixed human-readable message for this code."""
        return _MESSAGES[self]

    @property
    def http_status(self) -> int:
        """Suggested HTTP status code for this code."""
        if self.is_not_found:
            return 404
        return _HTTP_STATUS.get(self, 500)

    @property
    def is_not_found(self) -> bool:
        return self.value.endswith("NOT_FOUND")

    @property
    def is_security(self) -> bool:
        return self in _SECURITY_CODES


_MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.INVALID_INPUT: "The provided input is invalid",
    ErrorCode.VALIDATION_ERROR: "Input validation failed",
    ErrorCode.UNAUTHORIZED: "Authentication required",
    ErrorCode.FORBIDDEN: "Access denied",
    ErrorCode.NOT_FOUND: "Resource not found",
    ErrorCode.CONFLICT: "Resource already exists or conflicts with existing data",
    ErrorCode.RATE_LIMITED: "Too many requests - rate limit exceeded",
    ErrorCode.INTERNAL_ERROR: "An internal error occurred",
    ErrorCode.BLUEPRINT_NOT_FOUND: "Blueprint not found",
    ErrorCode.BLUEPRINT_INVALID: "Blueprint configuration is invalid",
    ErrorCode.COLLECTION_NOT_FOUND: "Collection not found",
    ErrorCode.ENTRY_NOT_FOUND: "Entry not found",
    ErrorCode.USER_NOT_FOUND: "User not found",
    ErrorCode.ROLE_NOT_FOUND: "Role not found",
    ErrorCode.ASSET_NOT_FOUND: "Asset not found",
    ErrorCode.FORM_NOT_FOUND: "Form not found",
    ErrorCode.TAXONOMY_NOT_FOUND: "Taxonomy not found",
    ErrorCode.TERM_NOT_FOUND: "Term not found",
    ErrorCode.NAVIGATION_NOT_FOUND: "Navigation not found",
    ErrorCode.GLOBAL_NOT_FOUND: "Global not found",
    ErrorCode.CREATION_FAILED: "Failed to create resource",
    ErrorCode.UPDATE_FAILED: "Failed to update resource",
    ErrorCode.DELETION_FAILED: "Failed to delete resource",
    ErrorCode.PERMISSION_DENIED: "Insufficient permissions for this operation",
    ErrorCode.DEPENDENCY_ERROR: "Operation blocked by dependent resources",
    ErrorCode.CACHE_ERROR: "Cache operation failed",
    ErrorCode.FILE_SYSTEM_ERROR: "File system operation failed",
    ErrorCode.TEMPLATE_ERROR: "Template processing error",
    ErrorCode.SCHEMA_ERROR: "Schema validation error",
    ErrorCode.PATH_TRAVERSAL: "Path traversal attempt detected",
    ErrorCode.MALICIOUS_INPUT: "Potentially malicious input detected",
    ErrorCode.UNSAFE_OPERATION: "Operation not permitted for security reasons",
}

_SECURITY_CODES = frozenset(
    {ErrorCode.PATH_TRAVERSAL, ErrorCode.MALICIOUS_INPUT, ErrorCode.UNSAFE_OPERATION}
)

_HTTP_STATUS: Dict[ErrorCode, int] = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.BLUEPRINT_INVALID: 400,
    ErrorCode.PATH_TRAVERSAL: 400,
    ErrorCode.MALICIOUS_INPUT: 400,
    ErrorCode.UNSAFE_OPERATION: 400,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.PERMISSION_DENIED: 403,
    ErrorCode.CONFLICT: 409,
    ErrorCode.RATE_LIMITED: 429,
}

# Resource kind -> not-found code
RESOURCE_NOT_FOUND_CODES: Dict[str, ErrorCode] = {
    "blueprint": ErrorCode.BLUEPRINT_NOT_FOUND,
    "collection": ErrorCode.COLLECTION_NOT_FOUND,
    "entry": ErrorCode.ENTRY_NOT_FOUND,
    "user": ErrorCode.USER_NOT_FOUND,
    "role": ErrorCode.ROLE_NOT_FOUND,
    "asset": ErrorCode.ASSET_NOT_FOUND,
    "form": ErrorCode.FORM_NOT_FOUND,
    "taxonomy": ErrorCode.TAXONOMY_NOT_FOUND,
    "term": ErrorCode.TERM_NOT_FOUND,
    "navigation": ErrorCode.NAVIGATION_NOT_FOUND,
    "global": ErrorCode.GLOBAL_NOT_FOUND,
}


def not_found_code(resource: str) -> ErrorCode:
    """Return the most specific not-found code for a resource kind."""
    key = resource.lower()
    if key in RESOURCE_NOT_FOUND_CODES:
        return RESOURCE_NOT_FOUND_CODES[key]
    return RESOURCE_NOT_FOUND_CODES.get(key.rstrip("s"), ErrorCode.NOT_FOUND)


def safe_exception_message(exc: BaseException) -> str:
    """Render an exception message, falling back to the class name.

    Used wherever a failure is turned into an envelope or a log record, so an
    exception whose ``__str__`` is empty or raises still produces text.
    """
    try:
        message = str(exc)
    except Exception:  # a broken __str__ must not escape the tool boundary
        return type(exc).__name__
    return message or type(exc).__name__


class StatamicMCPError(Exception):
    """Base class for failures raised inside tool operations.

    Attributes:
        code: Error taxonomy code surfaced in the envelope
        details: Optional machine-readable context
    """

    default_code = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(message or self.code.message)


class InvalidArgumentError(StatamicMCPError):
    """An argument is missing or has an unusable value."""

    default_code = ErrorCode.INVALID_INPUT


class ResourceNotFoundError(StatamicMCPError):
    """A named resource does not exist in the content store."""

    default_code = ErrorCode.NOT_FOUND

    def __init__(self, resource: str, identifier: str, *, suggestions=None):
        self.resource = resource
        self.identifier = identifier
        self.suggestions = list(suggestions or [])
        super().__init__(
            f"{resource.capitalize()} '{identifier}' not found",
            code=not_found_code(resource),
            details={"resource": resource, "identifier": identifier},
        )


class ResourceConflictError(StatamicMCPError):
    """A resource with the same handle already exists."""

    default_code = ErrorCode.CONFLICT


class PermissionDeniedError(StatamicMCPError):
    """The caller lacks a permission needed for the operation."""

    default_code = ErrorCode.PERMISSION_DENIED


class SecurityViolationError(StatamicMCPError):
    """Input tried to escape a sandbox or smuggle control characters."""

    default_code = ErrorCode.UNSAFE_OPERATION
