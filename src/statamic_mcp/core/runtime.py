"""
Environment/version inspection for the wrapped Statamic runtime.

Response metadata reports two version strings: the Statamic CMS version
and the Laravel framework version of the site being managed. Both come
from an inspector; failure to determine either yields the literal
``"unknown"`` and never raises.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

UNKNOWN_VERSION = "unknown"

STATAMIC_PACKAGE = "statamic/cms"
LARAVEL_PACKAGE = "laravel/framework"


class RuntimeInspector(Protocol):
    """Reports the versions of the wrapped runtime."""

    def statamic_version(self) -> str: ...

    def laravel_version(self) -> str: ...


@dataclass
class StaticRuntimeInspector:
    """Inspector returning fixed version strings (configuration overrides, tests)."""

    statamic: str = UNKNOWN_VERSION
    laravel: str = UNKNOWN_VERSION

    def statamic_version(self) -> str:
        return self.statamic

    def laravel_version(self) -> str:
        return self.laravel


class ComposerLockInspector:
    """Reads installed package versions from a site's ``composer.lock``.

    The parsed versions are reused until the lock file's modification time
    changes, so a ``composer update`` on a running server is picked up on
    the next call. A missing or malformed file reports both versions as
    unknown.
    """

    def __init__(self, project_root: Path):
        self.project_root = Path(project_root)
        self._versions: Optional[Dict[str, str]] = None
        self._mtime: Optional[int] = None

    @property
    def lock_path(self) -> Path:
        return self.project_root / "composer.lock"

    def _current_mtime(self) -> Optional[int]:
        try:
            return self.lock_path.stat().st_mtime_ns
        except OSError:
            return None

    def _load(self) -> Dict[str, str]:
        mtime = self._current_mtime()
        if self._versions is not None and mtime == self._mtime:
            return self._versions

        versions: Dict[str, str] = {}
        lock_path = self.lock_path
        try:
            with open(lock_path, "r", encoding="utf-8") as f:
                lock = json.load(f)
            for package in lock.get("packages", []):
                name = package.get("name")
                version = package.get("version")
                if name in (STATAMIC_PACKAGE, LARAVEL_PACKAGE) and version:
                    versions[name] = str(version).lstrip("v")
        except FileNotFoundError:
            logger.debug("No composer.lock at %s", lock_path)
        except (OSError, ValueError, AttributeError) as e:
            logger.warning("Could not read composer.lock at %s: %s", lock_path, e)

        self._versions = versions
        self._mtime = mtime
        return versions

    def statamic_version(self) -> str:
        return self._load().get(STATAMIC_PACKAGE, UNKNOWN_VERSION)

    def laravel_version(self) -> str:
        return self._load().get(LARAVEL_PACKAGE, UNKNOWN_VERSION)


_inspector: RuntimeInspector = StaticRuntimeInspector()


def get_runtime_inspector() -> RuntimeInspector:
    return _inspector


def set_runtime_inspector(inspector: RuntimeInspector) -> None:
    """Install the process-wide runtime inspector."""
    global _inspector
    _inspector = inspector


def get_runtime_versions() -> Tuple[str, str]:
    """Return ``(statamic_version, laravel_version)``; never raises."""
    inspector = _inspector
    versions = []
    for probe in (inspector.statamic_version, inspector.laravel_version):
        try:
            value = probe()
        except Exception as e:  # inspector is an external collaborator
            logger.debug("Version probe failed: %s", e)
            value = None
        versions.append(str(value) if value else UNKNOWN_VERSION)
    return versions[0], versions[1]
