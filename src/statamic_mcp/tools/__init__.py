"""Statamic MCP tools: action routers and single-purpose tools."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from .assets import AssetsRouter, register_assets_router
from .base import ArgumentSpec, BaseTool
from .blueprints import BlueprintsRouter, register_blueprints_router
from .content import ContentRouter, register_content_router
from .development import (
    AntlersValidateTool,
    BladeLintTool,
    register_antlers_validate_tool,
    register_blade_lint_tool,
)
from .router import ActionSpec, BaseRouter, TypeSpec
from .structures import StructuresRouter, register_structures_router
from .system import SystemRouter, register_system_router
from .users import UsersRouter, register_users_router

if TYPE_CHECKING:  # pragma: no cover - import-time typing only
    from mcp.server.fastmcp import FastMCP
    from statamic_mcp.config import ServerConfig
    from statamic_mcp.core.cache import ToolCache
    from statamic_mcp.store.base import ContentStore


_REGISTRARS: Dict[type, Callable[[Any, Any], None]] = {
    BlueprintsRouter: register_blueprints_router,
    ContentRouter: register_content_router,
    StructuresRouter: register_structures_router,
    AssetsRouter: register_assets_router,
    UsersRouter: register_users_router,
    SystemRouter: register_system_router,
    AntlersValidateTool: register_antlers_validate_tool,
    BladeLintTool: register_blade_lint_tool,
}


def build_tools(
    config: "ServerConfig",
    store: "ContentStore",
    cache: Optional["ToolCache"] = None,
) -> List[BaseTool]:
    """Instantiate every router and tool against one store and cache."""
    tools: List[BaseTool] = []
    shared = {"config": config, "cache": cache}
    tools.extend([
        BlueprintsRouter(store, **shared),
        ContentRouter(store, **shared),
        StructuresRouter(store, **shared),
        AssetsRouter(store, **shared),
        UsersRouter(store, **shared),
        SystemRouter(store, registry=lambda: tools, **shared),
        AntlersValidateTool(store, **shared),
        BladeLintTool(**shared),
    ])
    return tools


def register_tools(mcp: "FastMCP", tools: List[BaseTool]) -> None:
    """Register each tool with its explicit FastMCP signature."""
    for tool in tools:
        _REGISTRARS[type(tool)](mcp, tool)


__all__ = [
    "ActionSpec",
    "AntlersValidateTool",
    "ArgumentSpec",
    "AssetsRouter",
    "BaseRouter",
    "BaseTool",
    "BladeLintTool",
    "BlueprintsRouter",
    "ContentRouter",
    "StructuresRouter",
    "SystemRouter",
    "TypeSpec",
    "UsersRouter",
    "build_tools",
    "register_tools",
]
