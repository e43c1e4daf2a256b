"""
Base class for single-purpose tools.

Every invocation runs the same state machine:

    Start -> Validate -> Execute -> Wrap -> Respond

Start logs the sanitized arguments and obtains a correlation id. Validate
rejects null bytes, applies the compatibility shim to declared arguments and
checks required ones. Execute runs ``handle``. Wrap turns raw results into a
success envelope and passes envelopes through. Any exception is converted to
an error envelope here; nothing escapes ``execute``.
"""

import json
import logging
import time
import traceback
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from statamic_mcp.config import ServerConfig, get_config
from statamic_mcp.core.cache import ToolCache, get_tool_cache
from statamic_mcp.core.context import sync_request_context
from statamic_mcp.core.errors import (
    ErrorCode,
    InvalidArgumentError,
    ResourceNotFoundError,
    StatamicMCPError,
    safe_exception_message,
)
from statamic_mcp.core.responses import (
    ToolResponse,
    error_response,
    is_envelope,
    sanitize_error_message,
    security_error,
    success_response,
)
from statamic_mcp.core.security import find_null_byte
from statamic_mcp.core.tool_logger import PERFORMANCE_THRESHOLD, ToolLogger, get_tool_logger

logger = logging.getLogger(__name__)

# Version of the argument compatibility shim applied before validation
COMPAT_VERSION = "1"

ERROR_PREFIX = "Tool execution failed: "
PERFORMANCE_MESSAGE = "Tool execution exceeded 5 seconds"

JSON_TYPES = ("string", "integer", "number", "boolean", "object", "array")
_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off", ""})


@dataclass(frozen=True)
class ArgumentSpec:
    """One declared argument of a tool's input contract."""

    name: str
    type: str = "string"  # One of JSON_TYPES
    description: str = ""
    required: bool = False
    default: Any = None
    enum: Optional[Tuple[str, ...]] = None

    def to_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": self.type}
        if self.description:
            schema["description"] = self.description
        if self.default is not None:
            schema["default"] = self.default
        if self.enum:
            schema["enum"] = list(self.enum)
        return schema


def coerce_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"not a boolean: {value!r}")


def coerce_argument(spec: ArgumentSpec, value: Any) -> Any:
    """Apply the compatibility shim for one declared argument.

    Clients serialize booleans and numbers as strings and nested values as
    JSON text; those are converted to the declared type. Values that still
    do not fit raise ``InvalidArgumentError``.
    """
    try:
        if spec.type == "boolean":
            return coerce_boolean(value)
        if spec.type == "integer":
            if isinstance(value, bool):
                raise ValueError("boolean given")
            if isinstance(value, float) and value.is_integer():
                return int(value)
            if isinstance(value, str):
                return int(value.strip())
            if isinstance(value, int):
                return value
            raise ValueError("not an integer")
        if spec.type == "number":
            if isinstance(value, bool):
                raise ValueError("boolean given")
            if isinstance(value, str):
                return float(value.strip())
            if isinstance(value, (int, float)):
                return value
            raise ValueError("not a number")
        if spec.type in ("object", "array"):
            if isinstance(value, str):
                value = json.loads(value)
            expected = dict if spec.type == "object" else list
            if not isinstance(value, expected):
                raise ValueError(f"not an {spec.type}")
            return value
        if spec.type == "string" and isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(
            f"Invalid value for parameter '{spec.name}': expected {spec.type}",
            details={"field": spec.name, "expected": spec.type, "reason": str(exc)},
        ) from None
    return value


# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------


def get_argument(arguments: Mapping[str, Any], name: str, default: Any = None) -> Any:
    value = arguments.get(name)
    return default if value is None else value


def get_bool(arguments: Mapping[str, Any], name: str, default: bool = False) -> bool:
    value = arguments.get(name)
    if value is None:
        return default
    try:
        return coerce_boolean(value)
    except ValueError:
        return default


def get_int(
    arguments: Mapping[str, Any],
    name: str,
    default: int = 0,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
) -> int:
    """Integer argument clamped to ``[min_value, max_value]``."""
    value = arguments.get(name)
    try:
        result = int(value) if value is not None and not isinstance(value, bool) else default
    except (TypeError, ValueError):
        result = default
    if min_value is not None:
        result = max(min_value, result)
    if max_value is not None:
        result = min(max_value, result)
    return result


def compact(**kwargs: Any) -> Dict[str, Any]:
    """Keyword arguments with the unset (None) ones dropped."""
    return {key: value for key, value in kwargs.items() if value is not None}


def is_dry_run(arguments: Mapping[str, Any]) -> bool:
    return get_bool(arguments, "dry_run")


def require_arguments(arguments: Mapping[str, Any], names: Sequence[str]) -> None:
    """Raise ``InvalidArgumentError`` for the first missing argument."""
    for name in names:
        value = arguments.get(name)
        if value is None or value == "":
            raise InvalidArgumentError(f"Missing required parameter: {name}", details={"field": name})


# ---------------------------------------------------------------------------
# Base tool
# ---------------------------------------------------------------------------


class BaseTool:
    """Wraps one operation with validation, logging and envelope handling.

    Subclasses set ``name``, ``description``, ``domain`` and ``arguments``
    and implement ``handle``. ``handle`` returns raw data, a ``ToolResponse``
    or an envelope dict, or raises a ``StatamicMCPError``.
    """

    name: str = ""
    description: str = ""
    domain: str = ""
    arguments: Tuple[ArgumentSpec, ...] = ()
    read_only: bool = True

    def __init__(
        self,
        *,
        config: Optional[ServerConfig] = None,
        cache: Optional[ToolCache] = None,
        tool_logger: Optional[ToolLogger] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self._config = config
        self._cache = cache
        self.tool_logger = tool_logger or get_tool_logger()
        self._clock = clock

    @property
    def config(self) -> ServerConfig:
        return self._config or get_config()

    @property
    def cache(self) -> ToolCache:
        return self._cache or get_tool_cache()

    def argument_specs(self) -> Tuple[ArgumentSpec, ...]:
        return tuple(self.arguments)

    def schema(self) -> Dict[str, Any]:
        """JSON schema of the declared input contract."""
        specs = self.argument_specs()
        return {
            "type": "object",
            "properties": {spec.name: spec.to_schema() for spec in specs},
            "required": [spec.name for spec in specs if spec.required],
            "additionalProperties": True,
        }

    def handle(self, arguments: Dict[str, Any]) -> Any:
        raise NotImplementedError

    # -- Validate ------------------------------------------------------------

    def prepare_arguments(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """Apply defaults and the compatibility shim, then check required args.

        Undeclared arguments pass through untouched.
        """
        prepared = dict(arguments)
        for spec in self.argument_specs():
            value = prepared.get(spec.name)
            if value is None:
                if spec.default is not None:
                    prepared[spec.name] = spec.default
                continue
            value = coerce_argument(spec, value)
            if spec.enum and value not in spec.enum:
                raise InvalidArgumentError(
                    f"Invalid value for parameter '{spec.name}': must be one of {', '.join(spec.enum)}",
                    details={"field": spec.name, "allowed": list(spec.enum)},
                )
            prepared[spec.name] = value
        require_arguments(prepared, [spec.name for spec in self.argument_specs() if spec.required])
        return prepared

    # -- Wrap ----------------------------------------------------------------

    def wrap(self, result: Any) -> Dict[str, Any]:
        if isinstance(result, ToolResponse):
            return result.to_dict()
        if is_envelope(result):
            return dict(result)
        return success_response(result, tool=self.name).to_dict()

    # -- Failure -------------------------------------------------------------

    def _failure(self, exc: BaseException, code: ErrorCode, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        data = dict(details or {})
        if isinstance(exc, ResourceNotFoundError) and exc.suggestions:
            data["suggestions"] = exc.suggestions
        if self.config.is_local():
            data["debug"] = self._debug_info(exc)
        return error_response(
            code,
            message=sanitize_error_message(safe_exception_message(exc), prefix=ERROR_PREFIX),
            data=data,
            tool=self.name,
        ).to_dict()

    @staticmethod
    def _debug_info(exc: BaseException) -> Dict[str, Any]:
        frames = traceback.extract_tb(exc.__traceback__)
        last = frames[-1] if frames else None
        try:
            trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        except Exception as e:  # formatting a hostile exception can itself fail
            trace = f"<unavailable: {type(e).__name__}>"
        return {
            "exception": type(exc).__name__,
            "file": last.filename if last else None,
            "line": last.lineno if last else None,
            "trace": trace,
        }

    # -- Entry point -----------------------------------------------------------

    def execute(self, arguments: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Run the tool and always return an envelope dict."""
        raw = dict(arguments) if isinstance(arguments, Mapping) else {}
        correlation_id = self.tool_logger.tool_started(self.name, raw)
        start = self._clock()

        with sync_request_context(correlation_id=correlation_id):
            failure: Optional[BaseException] = None
            try:
                if arguments is not None and not isinstance(arguments, Mapping):
                    raise InvalidArgumentError("Arguments must be an object")
                null_path = find_null_byte(raw)
                if null_path is not None:
                    self.tool_logger.security_warning(self.name, "Null byte in arguments", {"field": null_path})
                    envelope = security_error(
                        ErrorCode.MALICIOUS_INPUT, f"Null byte in argument '{null_path}'", tool=self.name
                    ).to_dict()
                else:
                    envelope = self.wrap(self.handle(self.prepare_arguments(raw)))
            except StatamicMCPError as exc:
                failure = exc
                envelope = self._failure(exc, exc.code, exc.details)
            except TypeError as exc:
                failure = exc
                envelope = self._failure(exc, ErrorCode.INVALID_INPUT)
            except Exception as exc:
                failure = exc
                envelope = self._failure(exc, ErrorCode.INTERNAL_ERROR)

            duration = self._clock() - start
            if failure is not None:
                self.tool_logger.tool_failed(self.name, correlation_id, failure, duration)
            else:
                self.tool_logger.tool_success(
                    self.name, correlation_id, duration, {"success": bool(envelope.get("success"))}
                )
            if duration > PERFORMANCE_THRESHOLD:
                self.tool_logger.performance_warning(self.name, PERFORMANCE_MESSAGE, duration)

        return envelope

