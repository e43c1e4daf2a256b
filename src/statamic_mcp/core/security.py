"""
Input hygiene and filesystem sandboxing for Statamic MCP tools.

Every path a tool touches must resolve inside an allowed base directory
(the site's project root, or an explicitly configured extra root). Handles
are normalized to Statamic's ``[a-z0-9_-]`` alphabet, and string arguments
carrying null bytes are rejected outright.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Final, Iterable, Optional, Sequence, Union

from statamic_mcp.core.errors import ErrorCode, InvalidArgumentError, SecurityViolationError

logger = logging.getLogger(__name__)

SUSPICIOUS_PATH_PATTERNS: Final[tuple] = (
    "../",
    "..\\",
    "%2e%2e%2f",
    "%2e%2e\\",
    "..%2f",
    "..%5c",
    "%2e%2e/",
    "..\\/",
)
"""Traversal sequences, raw and URL-encoded, checked case-insensitively."""

MAX_HANDLE_LENGTH: Final[int] = 128

_HANDLE_STRIP = re.compile(r"[^a-z0-9_-]")
_HANDLE_VALID = re.compile(r"^[a-z0-9][a-z0-9_-]*$")

PathLike = Union[str, os.PathLike]


def find_null_byte(value: Any, path: str = "") -> Optional[str]:
    """Return the dotted location of the first string containing a null byte.

    Recurses into mappings and sequences. Returns None when the value is clean.

    Example:
        >>> find_null_byte({"data": {"title": "a\\x00b"}})
        'data.title'
    """
    if isinstance(value, str):
        if "\x00" in value:
            return path or "<value>"
        return None
    if isinstance(value, dict):
        for key, item in value.items():
            if isinstance(key, str) and "\x00" in key:
                return f"{path}.{key!r}" if path else repr(key)
            found = find_null_byte(item, f"{path}.{key}" if path else str(key))
            if found:
                return found
    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            found = find_null_byte(item, f"{path}[{index}]")
            if found:
                return found
    return None


def contains_suspicious_patterns(path: str) -> bool:
    """True if a path string contains a raw or encoded traversal sequence."""
    lowered = path.lower()
    return any(pattern in lowered for pattern in SUSPICIOUS_PATH_PATTERNS)


def _is_within(candidate: Path, base: Path) -> bool:
    return candidate == base or base in candidate.parents


def resolve_within(base: PathLike, relative: PathLike) -> Path:
    """Resolve ``relative`` against ``base`` and require it to stay inside.

    The target does not need to exist (new files are created through this).

    Raises:
        SecurityViolationError: with PATH_TRAVERSAL when the result escapes base
    """
    if "\x00" in str(relative):
        raise SecurityViolationError("Null byte in path", code=ErrorCode.MALICIOUS_INPUT)

    base_path = Path(base).resolve()
    candidate = (base_path / Path(relative)).resolve()
    if not _is_within(candidate, base_path):
        logger.warning("Path traversal blocked: %s escapes %s", relative, base_path)
        raise SecurityViolationError(
            f"Path traversal attempt detected: {relative}",
            code=ErrorCode.PATH_TRAVERSAL,
        )
    return candidate


def validate_path(path: PathLike, allowed_bases: Iterable[PathLike]) -> Path:
    """Resolve an existing path and require it to sit under an allowed base.

    Raises:
        InvalidArgumentError: the path does not exist
        SecurityViolationError: with PATH_TRAVERSAL when outside every base
    """
    try:
        real = Path(path).resolve(strict=True)
    except (FileNotFoundError, RuntimeError):
        raise InvalidArgumentError(f"Path does not exist: {path}") from None

    for base in allowed_bases:
        try:
            real_base = Path(base).resolve(strict=True)
        except (FileNotFoundError, RuntimeError):
            continue
        if real != real_base and real_base in real.parents:
            return real

    raise SecurityViolationError(
        f"Path traversal attempt detected: {path}",
        code=ErrorCode.PATH_TRAVERSAL,
    )


def sanitize_filename(filename: str) -> str:
    """Strip separators, null bytes and relative components from a filename.

    Raises:
        InvalidArgumentError: nothing usable remains
    """
    cleaned = filename.replace("/", "").replace("\\", "").replace("\x00", "")
    while ".." in cleaned:
        cleaned = cleaned.replace("..", "")
    cleaned = cleaned.strip(" \t\n\r\x0b.")
    if not cleaned:
        raise InvalidArgumentError("Invalid filename after sanitization")
    return cleaned


def validate_file_extension(filename: str, allowed_extensions: Sequence[str]) -> str:
    """Return the lower-cased extension, raising if it is not allowed."""
    extension = Path(filename).suffix.lower().lstrip(".")
    if extension not in {ext.lower().lstrip(".") for ext in allowed_extensions}:
        raise InvalidArgumentError(f"File extension '{extension}' not allowed")
    return extension


def sanitize_handle(handle: str) -> str:
    """Normalize a handle to lower-case ``[a-z0-9_-]``."""
    return _HANDLE_STRIP.sub("", str(handle).lower())[:MAX_HANDLE_LENGTH]


def require_handle(handle: Any, field: str = "handle") -> str:
    """Validate a handle argument, returning it unchanged when valid.

    Raises:
        InvalidArgumentError: missing or containing disallowed characters
    """
    if not isinstance(handle, str) or not handle:
        raise InvalidArgumentError(f"Missing required parameter: {field}")
    if len(handle) > MAX_HANDLE_LENGTH or not _HANDLE_VALID.match(handle):
        raise InvalidArgumentError(
            f"Invalid {field} '{handle}': use lower-case letters, numbers, '-' and '_'",
            details={"suggested": sanitize_handle(handle)},
        )
    return handle
