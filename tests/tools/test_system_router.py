"""Tests for the system router."""

import pytest

from statamic_mcp.tools.development import BladeLintTool
from statamic_mcp.tools.system import SystemRouter, describe_tool


@pytest.fixture
def router(testing_config, memory_store, memory_cache):
    return SystemRouter(memory_store, config=testing_config, cache=memory_cache)


class TestInfo:
    """Info and health."""

    def test_info(self, router):
        """Info reports server and runtime versions."""
        result = router.execute({"action": "info"})
        data = result["data"]
        assert data["server"]["name"] == "statamic-mcp"
        assert data["server"]["environment"] == "testing"
        assert data["statamic"]["version"] == "5.4.0"
        assert data["statamic"]["laravel_version"] == "11.9.2"
        assert data["statamic"]["store"] == "memory"
        assert data["tools"] == 1

    def test_info_is_cached(self, router, memory_cache):
        """A second info call is served from the cache."""
        router.execute({"action": "info"})
        router.execute({"action": "info"})
        stats = memory_cache.stats()
        assert stats["misses"] == 1
        assert stats["hits"] == 1

    def test_health(self, router):
        """A memory store is healthy."""
        result = router.execute({"action": "health"})
        assert result["data"]["status"] == "healthy"
        assert result["data"]["checks"]["runtime"] == {"status": "healthy", "statamic_version": "5.4.0"}
        assert result["data"]["checks"]["cache"]["status"] == "healthy"

    def test_cache_status(self, router):
        """Cache status names the backend."""
        result = router.execute({"action": "cache_status"})
        assert result["data"]["backend"] == "memory"
        assert result["data"]["enabled"] is True


class TestCacheClear:
    """Cache clearing."""

    def test_clear_tool_scope(self, router, memory_cache):
        """A tool scope drops only that namespace."""
        memory_cache.remember("statamic-blueprints", "scan", lambda: {"total": 1})
        memory_cache.remember("statamic-content", "list", lambda: [])
        result = router.execute({"action": "cache_clear", "scope": "tool", "tool": "statamic-blueprints"})
        assert result["data"] == {"scope": "tool", "tool": "statamic-blueprints", "removed": 1}
        assert memory_cache.stats()["keys"] == 1

    def test_clear_all_and_stache(self, router, memory_store, memory_cache):
        """Clearing everything can include the Stache."""
        memory_cache.remember("statamic-content", "list", lambda: [])
        result = router.execute({"action": "cache_clear", "stache": True})
        assert result["data"] == {"scope": "all", "cleared": True, "stache_cleared": True}
        assert memory_store.stache_clears == 1
        assert memory_cache.stats()["keys"] == 0

    def test_tool_scope_needs_tool(self, router):
        """scope=tool requires the tool argument."""
        result = router.execute({"action": "cache_clear", "scope": "tool"})
        assert result["errors"] == ["Action failed: Missing required parameter: tool"]

    def test_unknown_scope(self, router):
        """Scopes outside the enum are rejected."""
        result = router.execute({"action": "cache_clear", "scope": "everything"})
        assert result["error"] == "INVALID_INPUT"

    def test_gated_in_production(self, production_config, memory_store, memory_cache):
        """Clearing caches needs confirmation in production."""
        router = SystemRouter(memory_store, config=production_config, cache=memory_cache)
        result = router.execute({"action": "cache_clear"})
        assert result["error"] == "safety_protocol_required"
        assert memory_store.stache_clears == 0

    def test_dry_run_preview(self, router, memory_store):
        """Previews describe what would be cleared."""
        result = router.execute({"action": "cache_clear", "stache": True, "dry_run": True})
        assert result["data"]["preview"] == "Would execute cache_clear on all tool caches and the Stache"
        assert memory_store.stache_clears == 0


class TestDiscoverTools:
    """Tool discovery."""

    def test_discovery_is_cached(self, testing_config, memory_store, memory_cache):
        """Discovery is cached until the registered tool set changes."""
        tools = []
        router = SystemRouter(memory_store, config=testing_config, cache=memory_cache, registry=lambda: tools)
        tools.append(router)

        first = router.execute({"action": "discover_tools"})
        assert first["data"]["cached"] is False
        assert first["data"]["count"] == 1

        second = router.execute({"action": "discover_tools"})
        assert second["data"]["cached"] is True

        tools.append(BladeLintTool(config=testing_config, cache=memory_cache))
        third = router.execute({"action": "discover_tools"})
        assert third["data"]["cached"] is False
        assert third["data"]["count"] == 2

    def test_describe_router(self, router):
        """Routers list their actions and destructive subset."""
        summary = describe_tool(router)
        assert summary["name"] == "statamic-system"
        assert summary["destructive_actions"] == ["cache_clear"]
        assert summary["types"] == []

    def test_describe_single_tool(self, testing_config):
        """Single-purpose tools report read_only instead of actions."""
        summary = describe_tool(BladeLintTool(config=testing_config))
        assert summary == {
            "name": "statamic.development.blade_lint",
            "description": BladeLintTool.description,
            "domain": "development",
            "read_only": True,
        }


class TestCacheWarm:
    """Cache warming."""

    def test_warm_fills_info_and_discovery(self, testing_config, memory_store, memory_cache):
        """After warming, info and discovery are served from the cache."""
        tools = []
        router = SystemRouter(memory_store, config=testing_config, cache=memory_cache, registry=lambda: tools)
        tools.append(router)

        result = router.execute({"action": "cache_warm"})
        assert result["data"] == {"enabled": True, "warmed": ["info", "discovery"], "tools": 1}

        discovery = router.execute({"action": "discover_tools"})
        assert discovery["data"]["cached"] is True
        assert discovery["data"]["count"] == 1

        router.execute({"action": "info"})
        assert memory_cache.stats()["hits"] == 2

    def test_warm_is_not_gated(self, production_config, memory_store, memory_cache):
        """Warming runs without confirmation in production."""
        router = SystemRouter(memory_store, config=production_config, cache=memory_cache)
        assert router.execute({"action": "cache_warm"})["success"] is True
