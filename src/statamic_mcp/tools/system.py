"""System router: server info, health, cache control and tool discovery."""

import logging
import platform
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from mcp.server.fastmcp import FastMCP

from statamic_mcp.core.errors import InvalidArgumentError
from statamic_mcp.core.naming import canonical_tool
from statamic_mcp.core.runtime import UNKNOWN_VERSION, get_runtime_versions
from statamic_mcp.store.base import ContentStore
from statamic_mcp.tools.base import ArgumentSpec, BaseTool, compact, get_bool
from statamic_mcp.tools.router import ActionSpec, BaseRouter

logger = logging.getLogger(__name__)

INFO_TTL = 60

ToolRegistry = Callable[[], Sequence[BaseTool]]


def describe_tool(tool: BaseTool) -> Dict[str, Any]:
    """Discovery summary for one registered tool."""
    summary: Dict[str, Any] = {
        "name": tool.name,
        "description": tool.description,
        "domain": tool.domain,
    }
    if isinstance(tool, BaseRouter):
        summary["actions"] = tool.action_names()
        summary["types"] = tool.type_names()
        summary["destructive_actions"] = tool.destructive_actions()
    else:
        summary["read_only"] = tool.read_only
    return summary


class SystemRouter(BaseRouter):
    domain = "system"
    actions = (
        ActionSpec("info", "Server and runtime information", "Check versions and configuration",
                   examples=({"action": "info"},)),
        ActionSpec("health", "Health check", "Verify the store and cache are usable",
                   examples=({"action": "health"},)),
        ActionSpec("cache_status", "Cache statistics", "Inspect hit rates and entry counts",
                   examples=({"action": "cache_status"},)),
        ActionSpec("cache_clear", "Clear caches", "Drop cached tool results and optionally the Stache",
                   destructive=True, optional=("scope", "tool", "stache"),
                   examples=({"action": "cache_clear", "scope": "tool", "tool": "statamic-blueprints",
                              "confirm": True},),
                   risks=("The next discovery and scan calls recompute from scratch",
                          "Clearing the Stache makes the next site request slower")),
        ActionSpec("discover_tools", "List registered tools", "Find the right tool and its actions",
                   examples=({"action": "discover_tools"},)),
        ActionSpec("cache_warm", "Warm caches", "Precompute server info and tool discovery",
                   examples=({"action": "cache_warm"},)),
    )
    router_arguments = (
        ArgumentSpec("scope", "string", "Which cache to clear", default="all", enum=("all", "tool")),
        ArgumentSpec("tool", "string", "Tool namespace for scope=tool"),
        ArgumentSpec("stache", "boolean", "Also clear Statamic's Stache"),
    )
    features = ("server info", "health checks", "cache statistics", "cache clearing", "cache warming",
                "tool discovery")
    primary_use = "Inspect and maintain the MCP server and the site it manages"
    decision_tree = {
        "which tool does X": "action=discover_tools",
        "stale results": "action=cache_clear with confirm=true",
        "slow first calls": "action=cache_warm",
        "versions": "action=info",
    }
    context_awareness = {
        "caching": "Discovery and blueprint scans are cached; cache_status shows hit counts",
    }
    workflow_integration = {
        "troubleshooting": ["system health", "system cache_status", "system cache_clear"],
        "after_deploy": ["system cache_clear", "system cache_warm"],
    }
    related_tools = ("statamic-blueprints",)
    common_patterns = {
        "discover": {"action": "discover_tools"},
        "reset_caches": {"action": "cache_clear", "stache": True, "confirm": True},
    }

    def __init__(self, store: Optional[ContentStore] = None, *, registry: Optional[ToolRegistry] = None, **kwargs: Any):
        super().__init__(store, **kwargs)
        self.registry = registry

    def describe_target(self, arguments: Mapping[str, Any]) -> str:
        if arguments.get("action") == "cache_clear":
            scope = arguments.get("scope", "all")
            target = f"cache namespace '{arguments.get('tool')}'" if scope == "tool" else "all tool caches"
            return f"{target} and the Stache" if get_bool(arguments, "stache") else target
        return "server"

    def registered_tools(self) -> List[BaseTool]:
        return list(self.registry()) if self.registry is not None else [self]

    def _info(self) -> Dict[str, Any]:
        statamic_version, laravel_version = get_runtime_versions()
        config = self.config
        return {
            "server": {
                "name": config.server_name,
                "version": config.server_version,
                "environment": config.environment,
                "transport": config.transport,
            },
            "statamic": {
                "version": statamic_version,
                "laravel_version": laravel_version,
                "project_root": str(config.statamic.project_root),
                "store": self.store.name if self.store is not None else None,
            },
            "python": platform.python_version(),
            "tools": len(self.registered_tools()),
        }

    def action_info(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return self.cache.remember(self.name, "general", self._info, ttl=INFO_TTL)

    def action_health(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        checks: Dict[str, Any] = {}
        store_health = self.require_store().health()
        checks["store"] = store_health
        checks["cache"] = {"status": "healthy" if self.cache.enabled else "disabled", **self.cache.stats()}
        statamic_version, _ = get_runtime_versions()
        checks["runtime"] = {"status": "healthy" if statamic_version != UNKNOWN_VERSION else "degraded",
                             "statamic_version": statamic_version}
        healthy = store_health.get("status") == "healthy"
        return {"status": "healthy" if healthy else "degraded", "checks": checks}

    def action_cache_status(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "enabled": self.cache.enabled,
            "backend": self.cache.backend.name,
            "default_ttl": self.cache.default_ttl,
            "stats": self.cache.stats(),
        }

    def action_cache_clear(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        scope = arguments.get("scope", "all")
        result: Dict[str, Any] = {"scope": scope}
        if scope == "tool":
            tool = arguments.get("tool")
            if not tool:
                raise InvalidArgumentError("Missing required parameter: tool", details={"field": "tool"})
            result["tool"] = tool
            result["removed"] = self.cache.clear_tool(tool)
        else:
            self.cache.clear_all()
            result["cleared"] = True
        if get_bool(arguments, "stache"):
            self.require_store().clear_stache()
            result["stache_cleared"] = True
        return result

    def _discovery(self, tools: Sequence[BaseTool]) -> Dict[str, Any]:
        return {"tools": [describe_tool(tool) for tool in tools], "count": len(tools)}

    def action_discover_tools(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        tools = self.registered_tools()
        names = [tool.name for tool in tools]
        cached = self.cache.get_cached_discovery(self.name, names)
        if cached is not None:
            return {**cached, "cached": True}
        discovery = self._discovery(tools)
        self.cache.cache_discovery(self.name, discovery, names)
        return {**discovery, "cached": False}

    def action_cache_warm(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """Fill the info entry and recompute the discovery cache."""
        self.action_info(arguments)
        tools = self.registered_tools()
        self.cache.cache_discovery(self.name, self._discovery(tools), [tool.name for tool in tools])
        return {"enabled": self.cache.enabled, "warmed": ["info", "discovery"], "tools": len(tools)}


def register_system_router(mcp: FastMCP, router: SystemRouter) -> None:
    """Register the consolidated system tool."""

    @canonical_tool(mcp, canonical_name=router.name, description=router.description)
    def statamic_system(
        action: str,
        scope: Optional[str] = None,
        tool: Optional[str] = None,
        stache: Optional[bool] = None,
        help_topic: Optional[str] = None,
        dry_run: Optional[bool] = None,
        confirm: Optional[bool] = None,
    ) -> dict:
        """Inspect and maintain the server via the `action` parameter."""
        return router.execute(compact(
            action=action, scope=scope, tool=tool, stache=stache,
            help_topic=help_topic, dry_run=dry_run, confirm=confirm,
        ))

    logger.debug("Registered %s", router.name)
