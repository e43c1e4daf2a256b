"""Result caching for expensive tool operations.

Three access patterns sit on top of a generic key-value backend:

- ``remember``: plain memoization keyed by tool and operation.
- discovery cache: invalidated when the dependency set or the wrapped
  runtime version changes.
- blueprint-scan cache: invalidated when any scanned file's modification
  time moves past the one recorded at store time.

Keys follow ``mcp_tool:{tool}:{operation}``. The tool segment is a
namespace: ``clear_tool`` enumerates the backend and drops every key in it,
and ``forget_matching`` accepts glob patterns over full keys.

Reads never raise. A malformed or partially-written entry is a miss and
triggers recomputation. Concurrent misses on the same key may both compute
and store; the last writer wins.
"""

import fnmatch
import hashlib
import json
import logging
import os
import tempfile
import threading
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from filelock import FileLock

from statamic_mcp.core.runtime import get_runtime_versions
from statamic_mcp.core.tool_logger import ToolLogger, get_tool_logger

logger = logging.getLogger(__name__)

KEY_PREFIX = "mcp_tool"
DEFAULT_TTL = 300
DISCOVERY_TTL = 3600
BLUEPRINT_SCAN_TTL = 1800
LOCK_TIMEOUT = 10

# Operations cleared by name even when the backend cannot enumerate keys
KNOWN_OPERATIONS = ("discovery", "blueprint_scan", "template_scan", "general")


def get_cache_dir() -> Path:
    """Get the file cache directory path.

    Resolution order:
    1. STATAMIC_MCP_CACHE_DIR environment variable
    2. ~/.statamic-mcp/cache
    """
    if cache_dir := os.environ.get("STATAMIC_MCP_CACHE_DIR"):
        return Path(cache_dir)
    return Path.home() / ".statamic-mcp" / "cache"


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


class CacheBackend(Protocol):
    """Generic key-value cache with per-key ttl."""

    name: str

    def get(self, key: str) -> Any: ...

    def put(self, key: str, value: Any, ttl: int) -> None: ...

    def forget(self, key: str) -> bool: ...

    def flush(self) -> None: ...

    def keys(self) -> List[str]: ...


class MemoryCacheBackend:
    """In-process dict backend. ``get`` returns None for missing or expired keys."""

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def put(self, key: str, value: Any, ttl: int) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + ttl, value)

    def forget(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def flush(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> List[str]:
        now = self._clock()
        with self._lock:
            return [key for key, (expires_at, _) in self._entries.items() if expires_at > now]


class FileCacheBackend:
    """One JSON file per key under a directory.

    Values must be JSON-serializable. Files that cannot be read or parsed are
    treated as misses and removed.
    """

    name = "file"

    def __init__(self, cache_dir: Optional[Path] = None, clock: Callable[[], float] = time.time):
        self.cache_dir = Path(cache_dir) if cache_dir else get_cache_dir()
        self._clock = clock

    def ensure_dir(self) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _lock(self) -> FileLock:
        return FileLock(str(self.cache_dir / ".cache.lock"), timeout=LOCK_TIMEOUT)

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.cache_dir / f"{digest}.json"

    def _read(self, path: Path) -> Optional[Dict[str, Any]]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                entry = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            self._unlink(path)
            return None
        if not isinstance(entry, dict) or "key" not in entry or "expires_at" not in entry:
            self._unlink(path)
            return None
        return entry

    @staticmethod
    def _unlink(path: Path) -> bool:
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("Could not remove cache file %s: %s", path, e)
            return False

    def get(self, key: str) -> Any:
        path = self._path(key)
        entry = self._read(path)
        if entry is None:
            return None
        if entry.get("expires_at", 0) <= self._clock():
            self._unlink(path)
            return None
        return entry.get("value")

    def put(self, key: str, value: Any, ttl: int) -> None:
        self.ensure_dir()
        entry = {"key": key, "expires_at": self._clock() + ttl, "value": value}
        # Write to a temp file first so readers never see a partial entry
        with self._lock():
            fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(entry, f, default=str)
                os.replace(tmp_name, self._path(key))
            except BaseException:
                self._unlink(Path(tmp_name))
                raise

    def forget(self, key: str) -> bool:
        return self._unlink(self._path(key))

    def flush(self) -> None:
        if not self.cache_dir.exists():
            return
        with self._lock():
            for entry_file in self.cache_dir.glob("*.json"):
                self._unlink(entry_file)

    def keys(self) -> List[str]:
        if not self.cache_dir.exists():
            return []
        now = self._clock()
        found = []
        for entry_file in self.cache_dir.glob("*.json"):
            entry = self._read(entry_file)
            if entry is not None and entry.get("expires_at", 0) > now:
                found.append(entry["key"])
        return found


# ---------------------------------------------------------------------------
# Tool cache
# ---------------------------------------------------------------------------


@dataclass
class CacheStats:
    """Cache counters since process start."""

    backend: str
    enabled: bool
    hits: int = 0
    misses: int = 0
    stores: int = 0
    invalidations: int = 0
    keys: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _file_mtime(path: str) -> Optional[float]:
    try:
        return os.stat(path).st_mtime
    except OSError:
        return None


class ToolCache:
    """Caches tool results with dependency and file-mtime invalidation."""

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        *,
        enabled: bool = True,
        default_ttl: int = DEFAULT_TTL,
        version_provider: Optional[Callable[[], str]] = None,
        tool_logger: Optional[ToolLogger] = None,
    ):
        self.backend = backend if backend is not None else MemoryCacheBackend()
        self.enabled = enabled
        self.default_ttl = default_ttl
        self._version_provider = version_provider or (lambda: get_runtime_versions()[0])
        self._log = tool_logger or get_tool_logger()
        self._stats = CacheStats(backend=self.backend.name, enabled=enabled)

    @staticmethod
    def key(tool: str, operation: str) -> str:
        return f"{KEY_PREFIX}:{tool}:{operation}"

    # -- backend access that never raises ------------------------------------

    def _safe_get(self, tool: str, key: str) -> Any:
        self._log.cache_event(tool, "cache_lookup", {"key": key})
        try:
            return self.backend.get(key)
        except Exception as e:  # backend is an external collaborator
            logger.warning("Cache read failed for %s: %s", key, e)
            return None

    def _safe_put(self, tool: str, key: str, value: Any, ttl: int, **context: Any) -> None:
        try:
            self.backend.put(key, value, ttl)
        except Exception as e:
            logger.warning("Cache write failed for %s: %s", key, e)
            return
        self._stats.stores += 1
        self._log.cache_event(tool, "cache_store", {"key": key, "ttl": ttl, **context})

    def _miss(self, tool: str, key: str) -> None:
        self._stats.misses += 1
        self._log.cache_event(tool, "cache_miss", {"key": key})

    def _hit(self, tool: str, key: str) -> None:
        self._stats.hits += 1
        self._log.cache_event(tool, "cache_hit", {"key": key})

    def _invalidate(self, tool: str, operation: str, reason: str, **context: Any) -> None:
        key = self.key(tool, operation)
        self._stats.invalidations += 1
        self._log.cache_event(tool, "cache_invalidated", {"key": key, "reason": reason, **context})
        self.forget(tool, operation)

    # -- memoization ----------------------------------------------------------

    def remember(
        self,
        tool: str,
        operation: str,
        compute: Callable[[], Any],
        ttl: Optional[int] = None,
    ) -> Any:
        """Return the cached value for ``tool:operation`` or compute and store it."""
        if not self.enabled:
            return compute()

        key = self.key(tool, operation)
        cached = self._safe_get(tool, key)
        if isinstance(cached, dict) and "value" in cached:
            self._hit(tool, key)
            return cached["value"]

        self._miss(tool, key)
        value = compute()
        self._safe_put(tool, key, {"value": value, "cached_at": _now_iso()}, ttl or self.default_ttl)
        return value

    # -- discovery cache ------------------------------------------------------

    def cache_discovery(
        self,
        tool: str,
        result: Any,
        dependencies: Iterable[str] = (),
        ttl: int = DISCOVERY_TTL,
    ) -> Any:
        """Store a discovery result keyed on its dependency set and runtime version."""
        if not self.enabled:
            return result
        deps = sorted(str(d) for d in dependencies)
        entry = {
            "result": result,
            "cached_at": _now_iso(),
            "dependencies": deps,
            "statamic_version": self._version_provider(),
        }
        self._safe_put(tool, self.key(tool, "discovery"), entry, ttl, dependencies_count=len(deps))
        return result

    def get_cached_discovery(self, tool: str, dependencies: Iterable[str] = ()) -> Any:
        """Return the cached discovery result, or None when it must be recomputed."""
        if not self.enabled:
            return None

        key = self.key(tool, "discovery")
        cached = self._safe_get(tool, key)
        if not isinstance(cached, dict) or "result" not in cached:
            self._miss(tool, key)
            return None

        stored_deps = cached.get("dependencies")
        if not isinstance(stored_deps, list) or set(stored_deps) != {str(d) for d in dependencies}:
            self._invalidate(tool, "discovery", "dependencies_changed")
            return None

        if cached.get("statamic_version") != self._version_provider():
            self._invalidate(tool, "discovery", "version_changed")
            return None

        self._hit(tool, key)
        return cached["result"]

    # -- blueprint scan cache -------------------------------------------------

    def cache_blueprint_scan(
        self,
        tool: str,
        result: Any,
        file_paths: Sequence[str],
        ttl: int = BLUEPRINT_SCAN_TTL,
    ) -> Any:
        """Store a scan result with the modification times of the scanned files."""
        if not self.enabled:
            return result
        file_mtimes: Dict[str, float] = {}
        for path in file_paths:
            mtime = _file_mtime(str(path))
            if mtime is not None:
                file_mtimes[str(path)] = mtime
        entry = {"result": result, "cached_at": _now_iso(), "file_mtimes": file_mtimes}
        self._safe_put(tool, self.key(tool, "blueprint_scan"), entry, ttl, files_count=len(file_paths))
        return result

    def get_cached_blueprint_scan(self, tool: str, file_paths: Sequence[str]) -> Any:
        """Return the cached scan, or None if a scanned file changed or is untracked.

        Paths that no longer exist on disk are skipped.
        """
        if not self.enabled:
            return None

        key = self.key(tool, "blueprint_scan")
        cached = self._safe_get(tool, key)
        if not isinstance(cached, dict) or "result" not in cached:
            self._miss(tool, key)
            return None

        recorded = cached.get("file_mtimes")
        if not isinstance(recorded, dict):
            self._invalidate(tool, "blueprint_scan", "malformed_entry")
            return None

        for path in file_paths:
            current = _file_mtime(str(path))
            if current is None:
                continue
            stored = recorded.get(str(path))
            if not isinstance(stored, (int, float)) or current > stored:
                self._invalidate(tool, "blueprint_scan", "file_modified", file=str(path))
                return None

        self._hit(tool, key)
        return cached["result"]

    # -- invalidation ---------------------------------------------------------

    def forget(self, tool: str, operation: str) -> bool:
        key = self.key(tool, operation)
        try:
            removed = self.backend.forget(key)
        except Exception as e:
            logger.warning("Cache forget failed for %s: %s", key, e)
            return False
        self._log.cache_event(tool, "cache_forget", {"key": key})
        return bool(removed)

    def forget_matching(self, pattern: str) -> int:
        """Forget every key matching a glob pattern, e.g. ``mcp_tool:statamic-*:discovery``."""
        try:
            keys = self.backend.keys()
        except Exception as e:
            logger.warning("Cache enumeration failed: %s", e)
            return 0

        removed = 0
        for key in keys:
            if fnmatch.fnmatchcase(key, pattern):
                try:
                    if self.backend.forget(key):
                        removed += 1
                except Exception as e:
                    logger.warning("Cache forget failed for %s: %s", key, e)
        self._log.cache_event("*", "cache_forget_pattern", {"pattern": pattern, "removed": removed})
        return removed

    def clear_tool(self, tool: str) -> int:
        """Drop every cached entry in a tool's namespace."""
        removed = self.forget_matching(f"{KEY_PREFIX}:{glob_escape(tool)}:*")
        for operation in KNOWN_OPERATIONS:
            if self.forget(tool, operation):
                removed += 1
        return removed

    def clear_all(self) -> None:
        try:
            self.backend.flush()
        except Exception as e:
            logger.warning("Cache flush failed: %s", e)
            return
        self._log.cache_event("*", "cache_clear_all")

    def stats(self) -> Dict[str, Any]:
        try:
            self._stats.keys = len(self.backend.keys())
        except Exception as e:
            logger.warning("Cache enumeration failed: %s", e)
        return self._stats.to_dict()


def glob_escape(value: str) -> str:
    """Escape glob metacharacters so a tool name matches literally."""
    return "".join(f"[{c}]" if c in "*?[" else c for c in value)


_tool_cache: Optional[ToolCache] = None


def get_tool_cache() -> ToolCache:
    """Get the process-wide tool cache (memory backend until configured)."""
    global _tool_cache
    if _tool_cache is None:
        _tool_cache = ToolCache()
    return _tool_cache


def set_tool_cache(cache: ToolCache) -> None:
    global _tool_cache
    _tool_cache = cache
