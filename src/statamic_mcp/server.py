"""FastMCP server for statamic-mcp.

Exposes one consolidated router per Statamic domain (blueprints, content,
structures, assets, users, system), the template development tools and
the guide prompts.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from mcp.server.fastmcp import FastMCP

from statamic_mcp.config import ServerConfig, get_config
from statamic_mcp.core.cache import FileCacheBackend, MemoryCacheBackend, ToolCache, set_tool_cache
from statamic_mcp.core.observability import audit_log
from statamic_mcp.core.runtime import (
    UNKNOWN_VERSION,
    ComposerLockInspector,
    StaticRuntimeInspector,
    set_runtime_inspector,
)
from statamic_mcp.prompts import register_guide_prompts
from statamic_mcp.store import create_store
from statamic_mcp.tools import build_tools, register_tools

logger = logging.getLogger(__name__)

STDIO_TRANSPORT = "stdio"


def _init_runtime_inspector(config: ServerConfig) -> None:
    """Use configured versions when given, else read the site's composer.lock."""
    statamic = config.statamic
    if statamic.statamic_version or statamic.laravel_version:
        set_runtime_inspector(
            StaticRuntimeInspector(
                statamic=statamic.statamic_version or UNKNOWN_VERSION,
                laravel=statamic.laravel_version or UNKNOWN_VERSION,
            )
        )
        return
    set_runtime_inspector(ComposerLockInspector(statamic.project_root))


def build_cache(config: ServerConfig) -> ToolCache:
    """Create the tool cache described by ``[cache]``."""
    cache_config = config.cache
    if cache_config.backend == "file":
        backend = FileCacheBackend(cache_config.directory)
    else:
        if cache_config.backend != "memory":
            logger.warning("Unknown cache backend '%s'; using memory", cache_config.backend)
        backend = MemoryCacheBackend()
    return ToolCache(backend, enabled=cache_config.enabled, default_ttl=cache_config.default_ttl)


def create_server(config: Optional[ServerConfig] = None) -> FastMCP:
    """Create and configure the FastMCP server instance."""

    if config is None:
        config = get_config()

    config.setup_logging()
    _init_runtime_inspector(config)

    cache = build_cache(config)
    set_tool_cache(cache)
    store = create_store(config.statamic.store, config.statamic.project_root)

    mcp = FastMCP(name=config.server_name)

    tools = build_tools(config, store, cache)
    register_tools(mcp, tools)
    register_guide_prompts(mcp, config)

    logger.info(
        "Server created: %s v%s (%d tools, %s store)",
        config.server_name,
        config.server_version,
        len(tools),
        store.name,
    )
    return mcp


def main() -> None:
    """Main entry point for the statamic-mcp server."""

    try:
        config = get_config()
        if config.transport != STDIO_TRANSPORT and not config.security.force_web_mode:
            # Remote callers always go through the web-mode checks
            config.security.force_web_mode = True
        server = create_server(config)

        logger.info("Starting %s v%s over %s", config.server_name, config.server_version, config.transport)
        audit_log("operation_started", tool="server_start", version=config.server_version)

        server.run(transport=config.transport)

    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
        sys.exit(0)
    except BaseException as exc:
        logger.error("Server error: %s: %s", type(exc).__name__, exc)
        audit_log("operation_failed", tool="server_error", error=str(exc))
        sys.exit(1)


if __name__ == "__main__":
    main()
