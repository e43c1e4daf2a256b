"""
Base class for multi-action routers.

A router fronts a family of operations behind one schema with an ``action``
field. ``help``, ``discover`` and ``examples`` are answered from the
router's declarative tables without touching the store. Every other action
passes the access check, the rate limiter and the safety gate:

    destructive, no dry_run, no confirm  -> safety_protocol_required
    dry_run                              -> simulation, nothing executed
    otherwise                            -> type check, execute_action, audited

The gate is decided before the ``type`` argument is looked at, so an
unflagged destructive call is refused even when it is also malformed. A
dry run reports type and argument problems as warnings.

An action is destructive when its name is in ``DEFAULT_DESTRUCTIVE_ACTIONS``
or its ``ActionSpec`` says so. Routers add destructive actions through
their table; the default set cannot be switched off.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from statamic_mcp.core.context import get_access_context
from statamic_mcp.core.errors import ErrorCode, ResourceNotFoundError, StatamicMCPError, safe_exception_message
from statamic_mcp.core.observability import AuditLogger, audit_log, get_audit_logger
from statamic_mcp.core.rate_limit import RateLimitConfig, RateLimitManager, get_rate_limit_manager
from statamic_mcp.core.responses import (
    ToolResponse,
    error_response,
    is_envelope,
    permission_denied,
    rate_limited,
    sanitize_error_message,
    success_response,
    utc_timestamp,
    validation_error,
)
from statamic_mcp.store.base import ContentStore
from statamic_mcp.tools.base import ArgumentSpec, BaseTool, get_bool, require_arguments

logger = logging.getLogger(__name__)

DEFAULT_DESTRUCTIVE_ACTIONS = frozenset({"delete", "update", "create", "move", "rename"})
META_ACTIONS = ("help", "discover", "examples")
HELP_TOPICS = ("actions", "types", "examples", "safety", "patterns", "context")

SAFETY_ERROR_CODE = "safety_protocol_required"
ACTION_FAILED_PREFIX = "Action failed: "

# A simulation hook is static text, a static list, or a callable of the arguments
Hook = Union[None, str, Sequence[str], Callable[[Mapping[str, Any]], Any]]


@dataclass(frozen=True)
class ActionSpec:
    """Declarative description of one router action."""

    name: str
    description: str = ""
    purpose: str = ""
    required: Tuple[str, ...] = ()
    optional: Tuple[str, ...] = ()
    examples: Tuple[Mapping[str, Any], ...] = ()
    destructive: bool = False
    mutates: bool = False  # Writes without being destructive (copy, activate)
    requires_type: Optional[bool] = None  # Defaults to "router declares types"
    preview: Hook = None
    changes: Hook = None
    risks: Hook = None
    recommendations: Hook = None


@dataclass(frozen=True)
class TypeSpec:
    """A resource kind a router operates on."""

    name: str
    description: str = ""
    properties: Tuple[str, ...] = ()
    relationships: Tuple[str, ...] = ()
    examples: Tuple[Mapping[str, Any], ...] = ()


class ActionRouterError(StatamicMCPError):
    """The requested action is not one the router declares."""

    default_code = ErrorCode.VALIDATION_ERROR

    def __init__(self, action: str, allowed_actions: Sequence[str]):
        self.action = action
        self.allowed_actions = list(allowed_actions)
        super().__init__(
            f"Unknown action '{action}'. Allowed actions: {', '.join(self.allowed_actions)}",
            details={"action": action, "allowed_actions": self.allowed_actions},
        )


def _resolve_hook(hook: Hook, arguments: Mapping[str, Any]) -> Any:
    if callable(hook):
        return hook(arguments)
    if isinstance(hook, str):
        return hook
    return list(hook) if hook is not None else None


class BaseRouter(BaseTool):
    """Routes ``action`` to ``action_<name>`` methods behind the safety gate."""

    domain: str = ""
    actions: Tuple[ActionSpec, ...] = ()
    types: Tuple[TypeSpec, ...] = ()
    router_arguments: Tuple[ArgumentSpec, ...] = ()

    # Discovery and guidance content
    features: Tuple[str, ...] = ()
    primary_use: str = ""
    decision_tree: Mapping[str, Any] = {}
    context_awareness: Mapping[str, Any] = {}
    workflow_integration: Mapping[str, Any] = {}
    common_patterns: Mapping[str, Any] = {}
    related_tools: Tuple[str, ...] = ()
    dependencies: Mapping[str, str] = {"statamic/cms": "^5.0", "laravel/framework": "^11.0|^12.0"}

    def __init__(
        self,
        store: Optional[ContentStore] = None,
        *,
        audit_logger: Optional[AuditLogger] = None,
        rate_limiter: Optional[RateLimitManager] = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.store = store
        self.audit = audit_logger or get_audit_logger()
        self._rate_limiter = rate_limiter
        self._action_index = {spec.name: spec for spec in self.actions}

    @property
    def name(self) -> str:  # type: ignore[override]
        return f"statamic-{self.domain}"

    @property
    def description(self) -> str:  # type: ignore[override]
        return (
            f"Manage Statamic {self.domain}: {', '.join(self.action_names())}. "
            "Use action='help' for detailed guidance."
        )

    @property
    def rate_limiter(self) -> RateLimitManager:
        return self._rate_limiter or get_rate_limit_manager()

    def action_names(self) -> List[str]:
        return [spec.name for spec in self.actions]

    def type_names(self) -> List[str]:
        return [spec.name for spec in self.types]

    def is_destructive(self, action: str) -> bool:
        spec = self._action_index.get(action)
        return action in DEFAULT_DESTRUCTIVE_ACTIONS or bool(spec and spec.destructive)

    def destructive_actions(self) -> List[str]:
        return [name for name in self.action_names() if self.is_destructive(name)]

    # -- schema ----------------------------------------------------------------

    def argument_specs(self) -> Tuple[ArgumentSpec, ...]:
        specs = [
            ArgumentSpec("action", "string", "Action to perform", required=True),
        ]
        if self.types:
            specs.append(ArgumentSpec("type", "string", "Resource type"))
        specs.extend([
            ArgumentSpec("help_topic", "string", "Help topic when action='help'"),
            ArgumentSpec("dry_run", "boolean", "Preview the action without executing it"),
            ArgumentSpec("confirm", "boolean", "Confirm a destructive action"),
        ])
        specs.extend(self.router_arguments)
        return tuple(specs)

    def schema(self) -> Dict[str, Any]:
        schema = super().schema()
        properties = schema["properties"]
        properties["action"]["enum"] = self.action_names() + list(META_ACTIONS)
        if self.types:
            properties["type"]["enum"] = self.type_names()
        properties["help_topic"]["enum"] = list(HELP_TOPICS)
        return schema

    # -- dispatch --------------------------------------------------------------

    def handle(self, arguments: Dict[str, Any]) -> Any:
        action = str(arguments["action"]).strip().lower()
        arguments["action"] = action

        if action == "help":
            return self.provide_help(arguments)
        if action == "discover":
            return success_response(self.provide_discovery(), tool=self.name)
        if action == "examples":
            return success_response(self.provide_examples(), tool=self.name)

        spec = self._action_index.get(action)
        if spec is None:
            raise ActionRouterError(action, self.action_names() + list(META_ACTIONS))

        denied = self.check_access(action)
        if denied is not None:
            return denied

        throttled = self.check_rate_limit(action)
        if throttled is not None:
            return throttled

        return self.execute_with_safety(spec, arguments)

    def type_problem(self, spec: ActionSpec, arguments: Mapping[str, Any]) -> Optional[str]:
        """Return why the ``type`` argument is unusable for ``spec``, if it is."""
        requires_type = spec.requires_type if spec.requires_type is not None else bool(self.types)
        resource_type = arguments.get("type")
        if resource_type in (None, ""):
            return "Type is required for this action" if requires_type else None
        if self.types and resource_type not in self.type_names():
            return f"Unknown type '{resource_type}' for {self.domain}"
        return None

    def _check_type(self, spec: ActionSpec, arguments: Dict[str, Any]) -> Optional[ToolResponse]:
        problem = self.type_problem(spec, arguments)
        if problem is None:
            return None
        return validation_error(
            {"type": [f"Allowed types: {', '.join(self.type_names())}"]},
            message=problem,
            tool=self.name,
        )

    def execute_action(self, action: str, arguments: Dict[str, Any]) -> Any:
        """Run an action for real. Dispatches to ``action_<name>``."""
        handler = getattr(self, f"action_{action}", None)
        if handler is None:
            raise NotImplementedError(f"{type(self).__name__} has no handler for '{action}'")
        return handler(arguments)

    # -- access control --------------------------------------------------------

    def permission_for(self, action: str) -> str:
        return f"{action} {self.domain}"

    def check_access(self, action: str) -> Optional[ToolResponse]:
        """Web-mode checks. CLI callers are trusted."""
        access = get_access_context()
        security = self.config.security
        if not (access.is_web or security.force_web_mode):
            return None

        settings = self.config.tool_settings(self.domain)
        if not settings.web_enabled:
            audit_log("permission_denied", tool=self.name, action=action, reason="web_disabled")
            return error_response(
                ErrorCode.PERMISSION_DENIED,
                message=f"Permission denied: {self.domain.capitalize()} tool is disabled for web access",
                data={"domain": self.domain, "action": action},
                tool=self.name,
            )

        permission = self.permission_for(action)
        if security.require_permission and not access.can(permission):
            audit_log("permission_denied", tool=self.name, action=action, permission=permission)
            return permission_denied(action, self.domain, [permission], tool=self.name)
        return None

    def check_rate_limit(self, action: str) -> Optional[ToolResponse]:
        if not (get_access_context().is_web or self.config.security.force_web_mode):
            return None
        settings = self.config.tool_settings(self.domain)
        result = self.rate_limiter.check_limit(
            self.name,
            action,
            RateLimitConfig(requests_per_minute=settings.rate_limit, burst_limit=settings.burst),
        )
        if result.allowed:
            return None
        return rate_limited(result.reset_in, result.limit, tool=self.name)

    # -- safety protocol -------------------------------------------------------

    def execute_with_safety(self, spec: ActionSpec, arguments: Dict[str, Any]) -> Any:
        action = spec.name
        destructive = self.is_destructive(action)
        dry_run = get_bool(arguments, "dry_run")
        confirm = get_bool(arguments, "confirm")

        if destructive and not dry_run and not confirm and not self.config.is_testing():
            return self.safety_refusal(action)
        if dry_run:
            return self.simulate_action(spec, arguments)

        type_problem = self._check_type(spec, arguments)
        if type_problem is not None:
            return type_problem
        require_arguments(arguments, spec.required)
        return self._run_action(spec, arguments, destructive)

    def safety_refusal(self, action: str) -> ToolResponse:
        return error_response(
            ErrorCode.UNSAFE_OPERATION,
            code=SAFETY_ERROR_CODE,
            message=(
                f"Action '{action}' is destructive. "
                "Use dry_run=true to preview or confirm=true to execute."
            ),
            data={
                "action": action,
                "safety_guidance": {
                    "preview": "Add 'dry_run': true to see what would happen",
                    "execute": "Add 'confirm': true to proceed with changes",
                    "recommended": "Always test with dry_run first",
                },
            },
            tool=self.name,
        )

    def _run_action(self, spec: ActionSpec, arguments: Dict[str, Any], destructive: bool) -> Any:
        action = spec.name
        audited = self.config.tool_settings(self.domain).audit_logging
        execution_meta = {
            "action": action,
            "dry_run": False,
            "safety_checked": destructive,
            "executed_at": utc_timestamp(),
        }

        started = time.perf_counter()
        if audited:
            self.audit.operation_started(self.name, action, arguments)
        try:
            result = self.execute_action(action, arguments)
        except Exception as exc:
            duration = time.perf_counter() - started
            if audited:
                self.audit.operation_failed(self.name, action, exc, duration)
            return self._action_failure(exc, action, execution_meta)

        duration = time.perf_counter() - started
        if audited:
            self.audit.operation_completed(self.name, action, duration)

        envelope = self._with_execution_meta(result, execution_meta)
        if envelope.get("success") and (destructive or spec.mutates):
            self.invalidate_cache()
        return envelope

    def _action_failure(self, exc: Exception, action: str, execution_meta: Dict[str, Any]) -> ToolResponse:
        if isinstance(exc, StatamicMCPError):
            code, details = exc.code, dict(exc.details)
            logger.info("Action %s on %s failed: %s", action, self.name, safe_exception_message(exc))
        else:
            code, details = ErrorCode.INTERNAL_ERROR, {}
            logger.exception("Action %s on %s raised", action, self.name)
        if isinstance(exc, ResourceNotFoundError) and exc.suggestions:
            details["suggestions"] = exc.suggestions
        if self.config.is_local():
            details["debug"] = self._debug_info(exc)
        return error_response(
            code,
            message=sanitize_error_message(safe_exception_message(exc), prefix=ACTION_FAILED_PREFIX),
            data=details,
            tool=self.name,
            meta=execution_meta,
        )

    def _with_execution_meta(self, result: Any, execution_meta: Dict[str, Any]) -> Dict[str, Any]:
        if isinstance(result, ToolResponse):
            result.meta.extra.update(execution_meta)
            return result.to_dict()
        if is_envelope(result):
            envelope = dict(result)
            envelope["meta"] = {**envelope["meta"], **execution_meta}
            return envelope
        return success_response(result, tool=self.name, meta=execution_meta).to_dict()

    def invalidate_cache(self) -> int:
        """Drop this router's cache namespace after a mutation."""
        removed = self.cache.clear_tool(self.name)
        logger.debug("Invalidated %d cache entries for %s", removed, self.name)
        return removed

    # -- simulation ------------------------------------------------------------

    def describe_target(self, arguments: Mapping[str, Any]) -> str:
        resource_type = arguments.get("type") or self.domain
        handle = arguments.get("handle") or arguments.get("id") or arguments.get("path")
        return f"{resource_type} '{handle}'" if handle else str(resource_type)

    def action_preview(self, spec: ActionSpec, arguments: Mapping[str, Any]) -> str:
        resolved = _resolve_hook(spec.preview, arguments)
        if resolved:
            return str(resolved)
        return f"Would execute {spec.name} on {self.describe_target(arguments)}"

    def expected_changes(self, spec: ActionSpec, arguments: Mapping[str, Any]) -> List[str]:
        resolved = _resolve_hook(spec.changes, arguments)
        if resolved is not None:
            return [resolved] if isinstance(resolved, str) else list(resolved)
        if self.is_destructive(spec.name) or spec.mutates:
            return [f"{spec.name.capitalize()} {self.describe_target(arguments)}"]
        return ["No changes; read-only action"]

    def action_risks(self, spec: ActionSpec, arguments: Mapping[str, Any]) -> List[str]:
        resolved = _resolve_hook(spec.risks, arguments)
        if resolved is not None:
            return [resolved] if isinstance(resolved, str) else list(resolved)
        if self.is_destructive(spec.name):
            return ["Modifies site content or configuration; review before confirming"]
        return []

    def action_recommendations(self, spec: ActionSpec, arguments: Mapping[str, Any]) -> List[str]:
        resolved = _resolve_hook(spec.recommendations, arguments)
        if resolved is not None:
            return [resolved] if isinstance(resolved, str) else list(resolved)
        return ["Review the preview, then run again with confirm=true"]

    def simulate_action(self, spec: ActionSpec, arguments: Dict[str, Any]) -> ToolResponse:
        """Build a preview. Never calls ``execute_action``."""
        missing = [
            f"Missing required parameter: {name}"
            for name in spec.required
            if arguments.get(name) in (None, "")
        ]
        type_problem = self.type_problem(spec, arguments)
        if type_problem is not None:
            missing.insert(0, type_problem)
        data = {
            "preview": self.action_preview(spec, arguments),
            "changes": self.expected_changes(spec, arguments),
            "risks": self.action_risks(spec, arguments),
            "recommendations": self.action_recommendations(spec, arguments),
        }
        return success_response(
            data,
            tool=self.name,
            warnings=missing,
            meta={"action": spec.name, "dry_run": True, "simulated_at": utc_timestamp()},
            extra={"simulation": True, "would_execute": spec.name},
        )

    # -- help, discovery, examples ---------------------------------------------

    def provide_help(self, arguments: Mapping[str, Any]) -> ToolResponse:
        topic = arguments.get("help_topic")
        if topic:
            if topic not in HELP_TOPICS:
                return validation_error(
                    {"help_topic": [f"Allowed topics: {', '.join(HELP_TOPICS)}"]},
                    message=f"Unknown help topic '{topic}'",
                    tool=self.name,
                )
            return success_response({"topic": topic, topic: self.help_topic(topic)}, tool=self.name)

        return success_response(
            {
                "domain": self.domain,
                "overview": f"This router manages Statamic {self.domain} operations.",
                "actions": self.action_names(),
                "types": self.type_names(),
                "available_topics": {
                    "actions": "Available actions and their purposes",
                    "types": "Resource types and their properties",
                    "examples": "Common usage patterns and examples",
                    "safety": "Safety protocols and best practices",
                    "patterns": "Advanced patterns and workflows",
                    "context": "Context-aware guidance and decision trees",
                },
                "quick_start": {
                    "discovery": "Use action='discover' to explore capabilities",
                    "examples": "Use action='examples' for usage patterns",
                    "safety": "Always use dry_run=true for destructive operations first",
                },
            },
            tool=self.name,
        )

    def help_topic(self, topic: str) -> Any:
        if topic == "actions":
            return [self._action_help(spec) for spec in self.actions]
        if topic == "types":
            return [
                {
                    "name": spec.name,
                    "description": spec.description or "No description available",
                    "properties": list(spec.properties),
                    "relationships": list(spec.relationships),
                    "examples": [dict(e) for e in spec.examples],
                }
                for spec in self.types
            ]
        if topic == "examples":
            return dict(self.common_patterns)
        if topic == "safety":
            return {
                "protocols": {
                    "dry_run": "Always test destructive operations with dry_run=true first",
                    "confirmation": "Explicitly confirm destructive operations with confirm=true",
                    "backup": "Consider creating backups before major changes",
                },
                "destructive_actions": self.destructive_actions(),
                "best_practices": [
                    "Test in development environment first",
                    "Use dry_run to preview changes",
                    "Understand dependencies before deletion",
                ],
            }
        if topic == "patterns":
            return dict(self.workflow_integration)
        return dict(self.context_awareness)

    def _action_help(self, spec: ActionSpec) -> Dict[str, Any]:
        return {
            "name": spec.name,
            "description": spec.description or "No description available",
            "purpose": spec.purpose or "General operation",
            "destructive": self.is_destructive(spec.name),
            "required_fields": list(spec.required),
            "optional_fields": list(spec.optional),
            "examples": [dict(e) for e in spec.examples],
        }

    def provide_discovery(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "tool_name": self.name,
            "capabilities": {
                "actions": {spec.name: self._action_help(spec) for spec in self.actions},
                "types": self.type_names(),
                "features": list(self.features),
            },
            "agent_guidance": {
                "primary_use": self.primary_use,
                "decision_tree": dict(self.decision_tree),
                "context_awareness": dict(self.context_awareness),
            },
            "integration": {
                "workflows": dict(self.workflow_integration),
                "dependencies": dict(self.dependencies),
                "related_tools": list(self.related_tools),
            },
        }

    def provide_examples(self) -> Dict[str, Any]:
        target = {"action": "delete", "dry_run": True}
        if self.types:
            target["type"] = self.types[0].name
        target["handle"] = "example"
        return {
            "common_patterns": dict(self.common_patterns),
            "action_examples": {
                spec.name: [dict(e) for e in spec.examples] for spec in self.actions if spec.examples
            },
            "safety_examples": {
                "dry_run_example": {
                    "description": "Preview a delete operation",
                    "request": target,
                    "response_type": "simulation with preview and risks",
                },
                "confirmation_example": {
                    "description": "Execute after dry run confirmation",
                    "request": {**target, "dry_run": False, "confirm": True},
                    "response_type": "actual execution with metadata",
                },
            },
            "error_handling": {
                "validation_error": "Invalid input parameters",
                "not_found_error": "Resource does not exist",
                "permission_error": "Insufficient permissions",
                "safety_error": "Safety protocol violation",
            },
            "best_practices": [
                "Use action='help' for unfamiliar operations",
                "Test with dry_run before executing destructive actions",
                "Use action='discover' to understand capabilities",
            ],
        }

    # -- helpers for subclasses ------------------------------------------------

    def require_store(self) -> ContentStore:
        if self.store is None:
            raise StatamicMCPError("No content store configured", code=ErrorCode.DEPENDENCY_ERROR)
        return self.store
