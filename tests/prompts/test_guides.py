"""Tests for the guide prompts."""

import pytest

from statamic_mcp.core.runtime import StaticRuntimeInspector, set_runtime_inspector
from statamic_mcp.prompts.guides import (
    TOOL_USAGE_CONTRACT,
    best_practices_guide,
    detect_major_version,
    troubleshooting_guide,
    upgrade_guide,
)


class TestDetectMajorVersion:
    """Major version detection from the runtime."""

    def test_from_runtime(self):
        """The pinned 5.x runtime maps to v5."""
        assert detect_major_version() == "v5"

    @pytest.mark.parametrize("version,expected", [("6.0.1", "v6"), ("v4.58.0", "v4"), ("3.4.0", "v5")])
    def test_mapping(self, version, expected):
        """Unsupported majors fall back to v5."""
        set_runtime_inspector(StaticRuntimeInspector(statamic=version, laravel="11.0.0"))
        assert detect_major_version() == expected

    def test_unknown_runtime(self):
        """An undetectable runtime defaults to v5."""
        set_runtime_inspector(StaticRuntimeInspector())
        assert detect_major_version() == "v5"


class TestGuides:
    """Guide text selection."""

    def test_blade_best_practices(self):
        """Blade guidance points at the Blade linter."""
        guide = best_practices_guide("templates", "blade", "v5")
        assert "statamic.development.blade_lint" in guide
        assert "## Performance" not in guide

    def test_version_notes(self):
        """Version notes follow the requested major."""
        assert "Version Notes (v4)" in best_practices_guide(statamic_version="v4")

    def test_troubleshooting_quotes_error(self):
        """The reported error is echoed back."""
        guide = troubleshooting_guide("cache", "Stache is stale", "v5")
        assert 'Reported: "Stache is stale"' in guide
        assert "## Template Issues" not in guide

    def test_upgrade_to_v6(self):
        """v6 upgrades mention the Vue 3 port."""
        assert "Vue 3" in upgrade_guide("v5", "v6")
        assert "Vue 3" not in upgrade_guide("v4", "v5")

    def test_contract_mentions_safety_code(self):
        """The usage contract names the safety refusal code."""
        assert "safety_protocol_required" in TOOL_USAGE_CONTRACT
