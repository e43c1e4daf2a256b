"""JSON output helpers for the CLI.

Commands print the same envelopes the MCP tools return, minified, so
scripts and assistants parse one format everywhere.
"""

import json
import sys
from typing import Any, Dict, NoReturn, Optional

from statamic_mcp.core.errors import ErrorCode
from statamic_mcp.core.responses import error_response, success_response


def emit(data: Any) -> None:
    """Emit JSON to stdout."""
    print(json.dumps(data, separators=(",", ":"), default=str))


def emit_success(data: Any, **kwargs: Any) -> None:
    emit(success_response(data, tool="cli", **kwargs).to_dict())


def emit_envelope(envelope: Dict[str, Any]) -> None:
    """Emit a tool envelope; failures go to stderr with exit code 1."""
    if envelope.get("success"):
        emit(envelope)
        return
    print(json.dumps(envelope, separators=(",", ":"), default=str), file=sys.stderr)
    sys.exit(1)


def emit_error(
    message: str,
    code: ErrorCode = ErrorCode.INVALID_INPUT,
    *,
    details: Optional[Dict[str, Any]] = None,
) -> NoReturn:
    """Emit an error envelope to stderr and exit with code 1."""
    response = error_response(code, message=message, data=details, tool="cli")
    print(json.dumps(response.to_dict(), separators=(",", ":"), default=str), file=sys.stderr)
    sys.exit(1)
