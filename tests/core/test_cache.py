"""Tests for the tool cache and its backends."""

import os

import pytest

from statamic_mcp.core.cache import (
    FileCacheBackend,
    MemoryCacheBackend,
    ToolCache,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestMemoryBackend:
    """Expiry behavior of the in-memory backend."""

    def test_expired_entries_are_misses(self):
        """Entries past their TTL are dropped on read."""
        clock = FakeClock()
        backend = MemoryCacheBackend(clock=clock)
        backend.put("k", {"value": 1}, ttl=10)
        assert backend.get("k") == {"value": 1}
        clock.now += 11
        assert backend.get("k") is None
        assert backend.keys() == []


class TestFileBackend:
    """JSON file backend."""

    def test_put_get_forget(self, tmp_path):
        """Values persist as files and can be forgotten."""
        backend = FileCacheBackend(tmp_path)
        backend.put("mcp_tool:x:general", {"value": [1, 2]}, ttl=60)
        assert backend.get("mcp_tool:x:general") == {"value": [1, 2]}
        assert backend.keys() == ["mcp_tool:x:general"]
        assert backend.forget("mcp_tool:x:general") is True
        assert backend.get("mcp_tool:x:general") is None

    def test_corrupt_file_is_a_miss(self, tmp_path):
        """Unparseable cache files are removed and read as misses."""
        backend = FileCacheBackend(tmp_path)
        backend.put("k", 1, ttl=60)
        path = backend._path("k")
        path.write_text("{not json", encoding="utf-8")
        assert backend.get("k") is None
        assert not path.exists()

    def test_flush(self, tmp_path):
        """Flush removes every entry."""
        backend = FileCacheBackend(tmp_path)
        backend.put("a", 1, ttl=60)
        backend.put("b", 2, ttl=60)
        backend.flush()
        assert backend.keys() == []


class TestRemember:
    """Plain memoization."""

    def test_computes_once(self, memory_cache):
        """The second call is served from cache."""
        calls = []

        def compute():
            calls.append(1)
            return {"answer": 42}

        assert memory_cache.remember("statamic-system", "general", compute) == {"answer": 42}
        assert memory_cache.remember("statamic-system", "general", compute) == {"answer": 42}
        assert len(calls) == 1
        stats = memory_cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1

    def test_disabled_always_computes(self):
        """A disabled cache bypasses storage."""
        cache = ToolCache(enabled=False)
        calls = []
        cache.remember("t", "general", lambda: calls.append(1))
        cache.remember("t", "general", lambda: calls.append(1))
        assert len(calls) == 2

    def test_malformed_entry_recomputes(self, memory_cache):
        """A value without the expected wrapper is treated as a miss."""
        memory_cache.backend.put(ToolCache.key("t", "general"), "garbage", ttl=60)
        assert memory_cache.remember("t", "general", lambda: "fresh") == "fresh"

    def test_backend_failure_does_not_raise(self):
        """Read and write failures fall back to computing."""

        class BrokenBackend(MemoryCacheBackend):
            def get(self, key):
                raise OSError("unavailable")

            def put(self, key, value, ttl):
                raise OSError("unavailable")

        cache = ToolCache(BrokenBackend())
        assert cache.remember("t", "general", lambda: 7) == 7


class TestDiscoveryCache:
    """Dependency and version invalidation."""

    def test_hit_with_same_dependencies(self, memory_cache):
        """Same dependency set (in any order) is a hit."""
        memory_cache.cache_discovery("statamic-system", ["a", "b"], dependencies=["x", "y"])
        assert memory_cache.get_cached_discovery("statamic-system", ["y", "x"]) == ["a", "b"]

    def test_dependencies_changed(self, memory_cache):
        """A different dependency set invalidates the entry."""
        memory_cache.cache_discovery("statamic-system", ["a"], dependencies=["x"])
        assert memory_cache.get_cached_discovery("statamic-system", ["x", "z"]) is None
        # The entry is gone, not just skipped
        assert memory_cache.get_cached_discovery("statamic-system", ["x"]) is None

    def test_version_changed(self):
        """A new runtime version invalidates the entry."""
        versions = iter(["5.4.0", "5.5.0"])
        cache = ToolCache(version_provider=lambda: next(versions))
        cache.cache_discovery("statamic-system", ["a"], dependencies=["x"])
        assert cache.get_cached_discovery("statamic-system", ["x"]) is None
        assert cache.stats()["invalidations"] == 1


class TestBlueprintScanCache:
    """File modification invalidation."""

    def test_unchanged_files_hit(self, memory_cache, tmp_path):
        """Scans are served while files are untouched."""
        blueprint = tmp_path / "article.yaml"
        blueprint.write_text("title: Article\n", encoding="utf-8")
        memory_cache.cache_blueprint_scan("statamic-blueprints", {"n": 1}, [str(blueprint)])
        assert memory_cache.get_cached_blueprint_scan("statamic-blueprints", [str(blueprint)]) == {"n": 1}

    def test_modified_file_invalidates(self, memory_cache, tmp_path):
        """A newer mtime invalidates the scan."""
        blueprint = tmp_path / "article.yaml"
        blueprint.write_text("title: Article\n", encoding="utf-8")
        memory_cache.cache_blueprint_scan("statamic-blueprints", {"n": 1}, [str(blueprint)])
        stat = blueprint.stat()
        os.utime(blueprint, (stat.st_atime, stat.st_mtime + 10))
        assert memory_cache.get_cached_blueprint_scan("statamic-blueprints", [str(blueprint)]) is None

    def test_new_untracked_file_invalidates(self, memory_cache, tmp_path):
        """A file that was not part of the scan invalidates it."""
        first = tmp_path / "a.yaml"
        first.write_text("a: 1\n", encoding="utf-8")
        memory_cache.cache_blueprint_scan("statamic-blueprints", {"n": 1}, [str(first)])
        second = tmp_path / "b.yaml"
        second.write_text("b: 1\n", encoding="utf-8")
        assert memory_cache.get_cached_blueprint_scan(
            "statamic-blueprints", [str(first), str(second)]
        ) is None

    def test_deleted_file_is_skipped(self, memory_cache, tmp_path):
        """Missing files are ignored on lookup."""
        blueprint = tmp_path / "article.yaml"
        blueprint.write_text("title: Article\n", encoding="utf-8")
        memory_cache.cache_blueprint_scan("statamic-blueprints", {"n": 1}, [str(blueprint)])
        gone = str(tmp_path / "gone.yaml")
        assert memory_cache.get_cached_blueprint_scan(
            "statamic-blueprints", [str(blueprint), gone]
        ) == {"n": 1}


class TestInvalidation:
    """Namespace and pattern clearing."""

    def test_clear_tool_only_touches_namespace(self, memory_cache):
        """Clearing one tool leaves other tools' entries."""
        memory_cache.remember("statamic-content", "general", lambda: 1)
        memory_cache.remember("statamic-content", "entries:blog", lambda: 2)
        memory_cache.remember("statamic-system", "general", lambda: 3)
        assert memory_cache.clear_tool("statamic-content") == 2
        assert memory_cache.backend.keys() == [ToolCache.key("statamic-system", "general")]

    def test_forget_matching(self, memory_cache):
        """Glob patterns match full keys."""
        memory_cache.cache_discovery("statamic-content", [1])
        memory_cache.cache_discovery("statamic-users", [2])
        memory_cache.remember("statamic-users", "general", lambda: 3)
        assert memory_cache.forget_matching("mcp_tool:statamic-*:discovery") == 2

    def test_clear_all(self, memory_cache):
        """Clearing everything empties the backend."""
        memory_cache.remember("a", "general", lambda: 1)
        memory_cache.clear_all()
        assert memory_cache.backend.keys() == []

    @pytest.mark.parametrize("tool", ["statamic.development.antlers_validate", "a[b]"])
    def test_clear_tool_escapes_glob_characters(self, memory_cache, tool):
        """Tool names with glob characters only clear their own namespace."""
        memory_cache.remember(tool, "general", lambda: 1)
        memory_cache.remember("other", "general", lambda: 2)
        assert memory_cache.clear_tool(tool) == 1
        assert memory_cache.backend.keys() == [ToolCache.key("other", "general")]
