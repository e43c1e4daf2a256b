"""Request context for correlation and access control.

Every tool invocation runs inside a request context that carries:

- a correlation id joining the response envelope to its log records
- the client identifier (used for rate limiting buckets)
- the access context (CLI vs. web, principal permissions)

Context variables make these values safe to read from anywhere on the
thread (or task) handling the invocation without passing them around.

Usage:
    from statamic_mcp.core.context import (
        sync_request_context,
        get_correlation_id,
        access_scope,
    )

    with sync_request_context(client_id="claude") as ctx:
        print(ctx.correlation_id)  # e.g., "mcp_a1b2c3d4e5f6"

    with access_scope(AccessContext.web("editor", {"view entries"})):
        ...
"""

from __future__ import annotations

import secrets
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Generator, Iterable, Optional

__all__ = [
    "correlation_id_var",
    "client_id_var",
    "start_time_var",
    "access_context_var",
    "AccessContext",
    "RequestContext",
    "generate_correlation_id",
    "sync_request_context",
    "access_scope",
    "get_correlation_id",
    "get_client_id",
    "get_start_time",
    "get_access_context",
    "get_current_context",
]

# -----------------------------------------------------------------------------
# Context Variables
# -----------------------------------------------------------------------------

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
"""Correlation ID of the invocation currently being handled."""

client_id_var: ContextVar[str] = ContextVar("client_id", default="anonymous")
"""Identifier for the client making the request."""

start_time_var: ContextVar[float] = ContextVar("start_time", default=0.0)
"""Request start time as Unix timestamp."""


# -----------------------------------------------------------------------------
# Access Context
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class AccessContext:
    """Who is calling, and through which transport.

    The stdio transport is a trusted local process (``cli`` mode). The
    HTTP transport runs the same dispatch behind permission checks
    (``web`` mode); the principal's permissions are strings such as
    ``"delete entries"`` or ``"view blueprints"``.

    Attributes:
        mode: "cli" or "web"
        user: Principal identifier (email or API key label)
        permissions: Granted permission strings
        is_super: Super users bypass permission checks
    """

    mode: str = "cli"
    user: str = "cli"
    permissions: FrozenSet[str] = frozenset()
    is_super: bool = False

    @classmethod
    def cli(cls) -> "AccessContext":
        return cls()

    @classmethod
    def web(
        cls,
        user: str,
        permissions: Iterable[str] = (),
        *,
        is_super: bool = False,
    ) -> "AccessContext":
        return cls(
            mode="web",
            user=user,
            permissions=frozenset(permissions),
            is_super=is_super,
        )

    @property
    def is_web(self) -> bool:
        return self.mode == "web"

    def can(self, permission: str) -> bool:
        """Check a single permission string."""
        return self.is_super or permission in self.permissions


access_context_var: ContextVar[AccessContext] = ContextVar(
    "access_context", default=AccessContext()
)
"""Access context for the current invocation (defaults to trusted CLI)."""


# -----------------------------------------------------------------------------
# Correlation ID Generation
# -----------------------------------------------------------------------------


def generate_correlation_id(prefix: str = "mcp") -> str:
    """Generate a unique correlation ID with optional prefix.

    Format: {prefix}_{12_hex_chars}
    Example: "mcp_a1b2c3d4e5f6"

    Args:
        prefix: ID prefix (default: "mcp")

    Returns:
        Unique correlation ID string
    """
    return f"{prefix}_{secrets.token_hex(6)}"


# -----------------------------------------------------------------------------
# Request Context
# -----------------------------------------------------------------------------


@dataclass
class RequestContext:
    """Snapshot of the current request context.

    Attributes:
        correlation_id: Unique request identifier
        client_id: Client/user identifier
        start_time: Request start timestamp
        access: Access context of the caller
    """

    correlation_id: str = ""
    client_id: str = "anonymous"
    start_time: float = field(default_factory=time.time)
    access: AccessContext = field(default_factory=AccessContext)

    @property
    def elapsed_seconds(self) -> float:
        """Elapsed time since request start in seconds."""
        if self.start_time <= 0:
            return 0.0
        return time.time() - self.start_time

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "correlation_id": self.correlation_id,
            "client_id": self.client_id,
            "start_time": self.start_time,
            "elapsed_ms": round(self.elapsed_seconds * 1000, 2),
            "access_mode": self.access.mode,
        }


# -----------------------------------------------------------------------------
# Context Managers
# -----------------------------------------------------------------------------


@contextmanager
def sync_request_context(
    *,
    correlation_id: Optional[str] = None,
    client_id: Optional[str] = None,
) -> Generator[RequestContext, None, None]:
    """Set up request context variables for the duration of a with block.

    Args:
        correlation_id: Request ID (auto-generated if None)
        client_id: Client identifier (default: "anonymous")

    Yields:
        RequestContext snapshot
    """
    corr_id = correlation_id or generate_correlation_id()
    client = client_id or "anonymous"
    start = time.time()

    token_corr = correlation_id_var.set(corr_id)
    token_client = client_id_var.set(client)
    token_start = start_time_var.set(start)

    try:
        yield RequestContext(
            correlation_id=corr_id,
            client_id=client,
            start_time=start,
            access=access_context_var.get(),
        )
    finally:
        correlation_id_var.reset(token_corr)
        client_id_var.reset(token_client)
        start_time_var.reset(token_start)


@contextmanager
def access_scope(access: AccessContext) -> Generator[AccessContext, None, None]:
    """Run a block under the given access context.

    Example:
        with access_scope(AccessContext.web("editor@example.com", {"view entries"})):
            router.execute({"action": "list", "type": "entry"})
    """
    token = access_context_var.set(access)
    try:
        yield access
    finally:
        access_context_var.reset(token)


# -----------------------------------------------------------------------------
# Context Accessors
# -----------------------------------------------------------------------------


def get_correlation_id() -> str:
    """Get the current correlation ID, or empty string if not set."""
    return correlation_id_var.get()


def get_client_id() -> str:
    """Get the current client ID, or "anonymous" if not set."""
    return client_id_var.get()


def get_start_time() -> float:
    """Get the request start time, or 0.0 if not set."""
    return start_time_var.get()


def get_access_context() -> AccessContext:
    """Get the access context for the current invocation."""
    return access_context_var.get()


def get_current_context() -> RequestContext:
    """Get a snapshot of all current context values."""
    return RequestContext(
        correlation_id=get_correlation_id(),
        client_id=get_client_id(),
        start_time=get_start_time(),
        access=get_access_context(),
    )
