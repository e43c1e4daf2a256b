"""Tests for server configuration loading."""

from pathlib import Path

from statamic_mcp.config import ServerConfig


class TestDefaults:
    """Default configuration."""

    def test_defaults(self):
        """Defaults are production over stdio with a memory cache."""
        config = ServerConfig()
        assert config.environment == "production"
        assert config.transport == "stdio"
        assert config.cache.backend == "memory"
        assert not config.is_local()
        assert not config.is_testing()

    def test_debug_counts_as_local(self):
        """Debug mode exposes local debug detail."""
        assert ServerConfig(debug=True).is_local()
        assert ServerConfig(environment="local").is_local()

    def test_tool_settings_created_on_demand(self):
        """Unknown domains get default settings."""
        config = ServerConfig()
        settings = config.tool_settings("content")
        assert settings.web_enabled is False
        assert settings.rate_limit == 60
        assert config.tools["content"] is settings

    def test_api_keys(self):
        """No configured keys accepts anything; otherwise keys must match."""
        config = ServerConfig()
        assert config.validate_api_key(None)
        config.security.api_keys = ["secret"]
        assert config.validate_api_key("secret")
        assert not config.validate_api_key("other")
        assert not config.validate_api_key(None)


class TestTomlLoading:
    """TOML config files."""

    def test_load_file(self, tmp_path, monkeypatch):
        """Sections map onto the nested settings."""
        monkeypatch.chdir(tmp_path)
        config_file = tmp_path / "custom.toml"
        config_file.write_text(
            """
[server]
environment = "local"
log_level = "debug"

[statamic]
project_root = "/var/www/site"
store = "memory"

[cache]
backend = "file"
directory = "/tmp/statamic-cache"

[security]
api_keys = ["k1", "k2"]

[tools.blueprints]
web_enabled = true
rate_limit = 30
""",
            encoding="utf-8",
        )
        config = ServerConfig.from_env(str(config_file))
        assert config.environment == "local"
        assert config.log_level == "DEBUG"
        assert config.statamic.project_root == Path("/var/www/site")
        assert config.statamic.store == "memory"
        assert config.cache.backend == "file"
        assert config.security.api_keys == ["k1", "k2"]
        assert config.tools["blueprints"].web_enabled is True
        assert config.tools["blueprints"].rate_limit == 30

    def test_invalid_environment_falls_back(self, tmp_path, monkeypatch):
        """Unknown environments fall back to production."""
        monkeypatch.chdir(tmp_path)
        config_file = tmp_path / "custom.toml"
        config_file.write_text('[server]\nenvironment = "staging"\n', encoding="utf-8")
        assert ServerConfig.from_env(str(config_file)).environment == "production"

    def test_missing_file_keeps_defaults(self, tmp_path, monkeypatch):
        """A missing file is logged and ignored."""
        monkeypatch.chdir(tmp_path)
        config = ServerConfig.from_env(str(tmp_path / "absent.toml"))
        assert config.environment == "production"

    def test_broken_file_keeps_defaults(self, tmp_path, monkeypatch):
        """An unparseable file is logged and ignored."""
        monkeypatch.chdir(tmp_path)
        config_file = tmp_path / "broken.toml"
        config_file.write_text("[server\n", encoding="utf-8")
        assert ServerConfig.from_env(str(config_file)).environment == "production"


class TestEnvironmentOverrides:
    """Environment variables win over the file."""

    def test_env_overrides_toml(self, tmp_path, monkeypatch):
        """Environment values replace file values."""
        monkeypatch.chdir(tmp_path)
        config_file = tmp_path / "custom.toml"
        config_file.write_text('[server]\nenvironment = "local"\n', encoding="utf-8")
        monkeypatch.setenv("STATAMIC_MCP_ENVIRONMENT", "testing")
        monkeypatch.setenv("STATAMIC_MCP_CACHE_ENABLED", "false")
        monkeypatch.setenv("STATAMIC_MCP_API_KEYS", "a, b")
        monkeypatch.setenv("STATAMIC_MCP_CONTENT_WEB_ENABLED", "true")
        config = ServerConfig.from_env(str(config_file))
        assert config.environment == "testing"
        assert config.cache.enabled is False
        assert config.security.api_keys == ["a", "b"]
        assert config.tools["content"].web_enabled is True

    def test_config_path_from_env(self, tmp_path, monkeypatch):
        """STATAMIC_MCP_CONFIG points at the file to load."""
        monkeypatch.chdir(tmp_path)
        config_file = tmp_path / "via-env.toml"
        config_file.write_text('[statamic]\nstatamic_version = "5.1.0"\n', encoding="utf-8")
        monkeypatch.setenv("STATAMIC_MCP_CONFIG", str(config_file))
        assert ServerConfig.from_env().statamic.statamic_version == "5.1.0"
