"""
Server configuration for statamic-mcp.

Supports configuration via:
1. Environment variables (highest priority)
2. TOML config file (statamic-mcp.toml)
3. Default values (lowest priority)

Environment variables:
- STATAMIC_MCP_CONFIG: Path to TOML config file
- STATAMIC_MCP_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
- STATAMIC_MCP_STRUCTURED_LOGGING: Emit JSON log lines (true/false)
- STATAMIC_MCP_ENVIRONMENT: production, local or testing
- STATAMIC_MCP_DEBUG: Attach debug detail to error envelopes (true/false)
- STATAMIC_MCP_TRANSPORT: stdio or streamable-http
- STATAMIC_MCP_PROJECT_ROOT: Root directory of the Statamic site
- STATAMIC_MCP_STORE: flatfile or memory
- STATAMIC_MCP_STATAMIC_VERSION / STATAMIC_MCP_LARAVEL_VERSION: Version overrides
- STATAMIC_MCP_CACHE_ENABLED: Enable the tool result cache (true/false)
- STATAMIC_MCP_CACHE_BACKEND: memory or file
- STATAMIC_MCP_CACHE_DIR: Directory for the file cache backend
- STATAMIC_MCP_FORCE_WEB_MODE: Treat every call as a web call (true/false)
- STATAMIC_MCP_API_KEYS: Comma-separated list of valid API keys
- STATAMIC_MCP_<DOMAIN>_WEB_ENABLED: Enable a tool domain for web access

Example statamic-mcp.toml:

    [server]
    environment = "local"
    log_level = "DEBUG"

    [statamic]
    project_root = "/var/www/site"

    [tools.blueprints]
    web_enabled = true
    rate_limit = 30
"""

import logging
import os
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError, version as get_package_version
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python < 3.11 fallback

from statamic_mcp.core.logging_config import configure_logging

logger = logging.getLogger(__name__)

ENV_PREFIX = "STATAMIC_MCP_"
VALID_ENVIRONMENTS = ("production", "local", "testing")
TOOL_DOMAINS = ("blueprints", "content", "structures", "assets", "users", "system", "development")


def _get_version() -> str:
    """Get package version from metadata."""
    try:
        return get_package_version("statamic-mcp")
    except PackageNotFoundError:
        return "0.1.0"


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


def _parse_list(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [v.strip() for v in str(value).split(",") if v.strip()]


@dataclass
class StatamicConfig:
    """Where the managed site lives and how to reach its content.

    Attributes:
        project_root: Root directory of the Statamic site
        store: Content store adapter ("flatfile" or "memory")
        statamic_version: Explicit CMS version (read from composer.lock when unset)
        laravel_version: Explicit framework version (read from composer.lock when unset)
    """

    project_root: Path = field(default_factory=Path.cwd)
    store: str = "flatfile"
    statamic_version: Optional[str] = None
    laravel_version: Optional[str] = None

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "StatamicConfig":
        return cls(
            project_root=Path(data.get("project_root", Path.cwd())).expanduser(),
            store=str(data.get("store", "flatfile")).lower(),
            statamic_version=data.get("statamic_version"),
            laravel_version=data.get("laravel_version"),
        )


@dataclass
class CacheConfig:
    """Tool result cache settings.

    Attributes:
        enabled: Master switch for caching
        backend: "memory" or "file"
        directory: Directory for the file backend (default ~/.statamic-mcp/cache)
        default_ttl: TTL in seconds for plain memoized results
    """

    enabled: bool = True
    backend: str = "memory"
    directory: Optional[Path] = None
    default_ttl: int = 300

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "CacheConfig":
        directory = data.get("directory")
        return cls(
            enabled=_parse_bool(data.get("enabled", True)),
            backend=str(data.get("backend", "memory")).lower(),
            directory=Path(directory).expanduser() if directory else None,
            default_ttl=int(data.get("default_ttl", 300)),
        )


@dataclass
class SecurityConfig:
    """Access control for the HTTP transport.

    Attributes:
        force_web_mode: Apply web-mode checks to stdio calls too
        require_permission: Check principal permissions in web mode
        api_keys: Accepted API keys (empty accepts any)
        allowed_paths: Extra directories file operations may touch
    """

    force_web_mode: bool = False
    require_permission: bool = True
    api_keys: List[str] = field(default_factory=list)
    allowed_paths: List[Path] = field(default_factory=list)

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "SecurityConfig":
        return cls(
            force_web_mode=_parse_bool(data.get("force_web_mode", False)),
            require_permission=_parse_bool(data.get("require_permission", True)),
            api_keys=_parse_list(data.get("api_keys", [])),
            allowed_paths=[Path(p).expanduser() for p in data.get("allowed_paths", [])],
        )


@dataclass
class ToolDomainConfig:
    """Per-domain tool settings (``[tools.<domain>]``).

    Attributes:
        web_enabled: Allow calls through the HTTP transport
        audit_logging: Write audit records for executed actions
        rate_limit: Requests per minute per caller and action
        burst: Token bucket size
    """

    web_enabled: bool = False
    audit_logging: bool = True
    rate_limit: int = 60
    burst: int = 10

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "ToolDomainConfig":
        return cls(
            web_enabled=_parse_bool(data.get("web_enabled", False)),
            audit_logging=_parse_bool(data.get("audit_logging", True)),
            rate_limit=int(data.get("rate_limit", 60)),
            burst=int(data.get("burst", 10)),
        )


@dataclass
class ServerConfig:
    """Server configuration with support for env vars and TOML overrides."""

    # Server
    server_name: str = "statamic-mcp"
    server_version: str = field(default_factory=_get_version)
    transport: str = "stdio"
    environment: str = "production"
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    structured_logging: bool = False

    statamic: StatamicConfig = field(default_factory=StatamicConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    tools: Dict[str, ToolDomainConfig] = field(default_factory=dict)

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "ServerConfig":
        """
        Create configuration from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. TOML config file
        3. Default values
        """
        config = cls()

        toml_path = config_file or os.environ.get(f"{ENV_PREFIX}CONFIG")
        if toml_path:
            config._load_toml(Path(toml_path))
        elif Path("statamic-mcp.toml").exists():
            config._load_toml(Path("statamic-mcp.toml"))

        config._load_env()
        return config

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file."""
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error(f"Error loading config file {path}: {e}")
            return

        try:
            if "server" in data:
                srv = data["server"]
                if "name" in srv:
                    self.server_name = srv["name"]
                if "version" in srv:
                    self.server_version = srv["version"]
                if "transport" in srv:
                    self.transport = str(srv["transport"])
                if "environment" in srv:
                    self.environment = self._normalize_environment(srv["environment"])
                if "debug" in srv:
                    self.debug = _parse_bool(srv["debug"])
                if "log_level" in srv:
                    self.log_level = str(srv["log_level"]).upper()
                if "structured_logging" in srv:
                    self.structured_logging = _parse_bool(srv["structured_logging"])

            if "statamic" in data:
                self.statamic = StatamicConfig.from_toml_dict(data["statamic"])

            if "cache" in data:
                self.cache = CacheConfig.from_toml_dict(data["cache"])

            if "security" in data:
                self.security = SecurityConfig.from_toml_dict(data["security"])

            for domain, section in data.get("tools", {}).items():
                if isinstance(section, dict):
                    self.tools[domain] = ToolDomainConfig.from_toml_dict(section)
        except (TypeError, ValueError) as e:
            logger.error(f"Invalid value in config file {path}: {e}")

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        env = os.environ

        if level := env.get(f"{ENV_PREFIX}LOG_LEVEL"):
            self.log_level = level.upper()
        if structured := env.get(f"{ENV_PREFIX}STRUCTURED_LOGGING"):
            self.structured_logging = _parse_bool(structured)
        if environment := env.get(f"{ENV_PREFIX}ENVIRONMENT"):
            self.environment = self._normalize_environment(environment)
        if debug := env.get(f"{ENV_PREFIX}DEBUG"):
            self.debug = _parse_bool(debug)
        if transport := env.get(f"{ENV_PREFIX}TRANSPORT"):
            self.transport = transport

        if root := env.get(f"{ENV_PREFIX}PROJECT_ROOT"):
            self.statamic.project_root = Path(root).expanduser()
        if store := env.get(f"{ENV_PREFIX}STORE"):
            self.statamic.store = store.lower()
        if statamic_version := env.get(f"{ENV_PREFIX}STATAMIC_VERSION"):
            self.statamic.statamic_version = statamic_version
        if laravel_version := env.get(f"{ENV_PREFIX}LARAVEL_VERSION"):
            self.statamic.laravel_version = laravel_version

        if cache_enabled := env.get(f"{ENV_PREFIX}CACHE_ENABLED"):
            self.cache.enabled = _parse_bool(cache_enabled)
        if backend := env.get(f"{ENV_PREFIX}CACHE_BACKEND"):
            self.cache.backend = backend.lower()
        if cache_dir := env.get(f"{ENV_PREFIX}CACHE_DIR"):
            self.cache.directory = Path(cache_dir).expanduser()

        if force_web := env.get(f"{ENV_PREFIX}FORCE_WEB_MODE"):
            self.security.force_web_mode = _parse_bool(force_web)
        if api_keys := env.get(f"{ENV_PREFIX}API_KEYS"):
            self.security.api_keys = _parse_list(api_keys)

        for domain in TOOL_DOMAINS:
            if web_enabled := env.get(f"{ENV_PREFIX}{domain.upper()}_WEB_ENABLED"):
                self.tool_settings(domain).web_enabled = _parse_bool(web_enabled)

    @staticmethod
    def _normalize_environment(value: Any) -> str:
        normalized = str(value).strip().lower()
        if normalized not in VALID_ENVIRONMENTS:
            logger.warning(
                "Invalid environment '%s'. Falling back to 'production'. Valid options: %s",
                value,
                ", ".join(VALID_ENVIRONMENTS),
            )
            return "production"
        return normalized

    def tool_settings(self, domain: str) -> ToolDomainConfig:
        """Settings for a tool domain, created with defaults on first use."""
        if domain not in self.tools:
            self.tools[domain] = ToolDomainConfig()
        return self.tools[domain]

    def is_local(self) -> bool:
        """True when error envelopes may carry debug detail."""
        return self.environment == "local" or self.debug

    def is_testing(self) -> bool:
        """True when running under the test harness."""
        return self.environment == "testing"

    def validate_api_key(self, key: Optional[str]) -> bool:
        """
        Validate an API key.

        Returns:
            True if valid (or no keys configured), False otherwise
        """
        if not self.security.api_keys:
            return True
        if not key:
            return False
        return key in self.security.api_keys

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        configure_logging(
            level=getattr(logging, self.log_level, logging.INFO),
            format="structured" if self.structured_logging else "human",
        )


# Global configuration instance
_config: Optional[ServerConfig] = None


def get_config() -> ServerConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ServerConfig.from_env()
    return _config


def set_config(config: ServerConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
