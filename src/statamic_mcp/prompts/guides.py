"""
Guide prompts for statamic-mcp.

Plain-text guides an assistant can pull in before working on a site:
best practices, troubleshooting, upgrades and the tool usage contract.
"""

import logging
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from statamic_mcp.config import ServerConfig
from statamic_mcp.core.runtime import UNKNOWN_VERSION, get_runtime_versions

logger = logging.getLogger(__name__)

DEFAULT_MAJOR = "v5"
SUPPORTED_MAJORS = ("v4", "v5", "v6")


def detect_major_version() -> str:
    """Map the detected Statamic version to ``v4``/``v5``/``v6``; defaults to v5."""
    statamic_version, _ = get_runtime_versions()
    if statamic_version == UNKNOWN_VERSION:
        return DEFAULT_MAJOR
    major = statamic_version.lstrip("v").split(".", 1)[0]
    candidate = f"v{major}"
    return candidate if candidate in SUPPORTED_MAJORS else DEFAULT_MAJOR


def _version_notes(major: str) -> List[str]:
    if major == "v6":
        return [
            "## Version Notes (v6)",
            "- The control panel runs on Vue 3; Vue 2 addon components need porting",
            "- Check every addon for a v6 compatible release before relying on it",
            "",
        ]
    if major == "v4":
        return [
            "## Version Notes (v4)",
            "- v4 is past active support; plan an upgrade to v5",
            "- Blueprints use sections instead of tabs",
            "",
        ]
    return [
        "## Version Notes (v5)",
        "- Blueprints are organized in tabs containing sections",
        "- Multi-site is configured in resources/sites.yaml",
        "",
    ]


def best_practices_guide(
    context: str = "general",
    template_engine: str = "antlers",
    statamic_version: Optional[str] = None,
) -> str:
    major = statamic_version or detect_major_version()
    lines = [
        "# Statamic Development Best Practices",
        "",
        f"You are working with Statamic {major}.",
        "",
        *_version_notes(major),
    ]
    if context in ("templates", "general"):
        lines.append("## Templates")
        if template_engine == "blade":
            lines += [
                "- Use Statamic tags and components instead of PHP in views",
                "- No facades, models, DB or HTTP calls in Blade; prepare data in view composers",
                "- Lint with `statamic.development.blade_lint` before committing",
            ]
        else:
            lines += [
                "- Prefer built-in tags such as `{{ collection:blog }}`, `{{ nav }}` and `{{ assets }}`",
                "- Transform values with modifiers: `{{ title | upper }}`",
                "- Move repeated markup into partials",
                "- Validate with `statamic.development.antlers_validate`, passing the blueprint",
            ]
        lines.append("")
    if context in ("content-modeling", "general"):
        lines += [
            "## Content Modeling",
            "- snake_case field handles, kebab-case or snake_case collection handles",
            "- Use taxonomies for categorization rather than select fields",
            "- Reuse field groups across blueprints",
            "- Plan multi-site needs before creating collections",
            "",
        ]
    if context in ("performance", "general"):
        lines += [
            "## Performance",
            "- Always pass `limit` to collection tags on listing pages",
            "- Resize images through Glide instead of serving originals",
            "- Enable static caching for high-traffic pages",
            "",
        ]
    lines += [
        "## Working With These Tools",
        "- Start with `statamic-system` action=discover_tools",
        "- Preview every write with dry_run=true, then repeat with confirm=true",
    ]
    return "\n".join(lines)


def troubleshooting_guide(
    issue_category: str = "general",
    error_context: Optional[str] = None,
    statamic_version: Optional[str] = None,
) -> str:
    major = statamic_version or detect_major_version()
    lines = [
        f"# Statamic {major} Troubleshooting Guide",
        "",
        "## 1. Gather Information",
        "- `statamic-system` action=info for versions and configuration",
        "- `statamic-system` action=health for store and cache status",
        "",
    ]
    if issue_category in ("templates", "general"):
        lines += [
            "## Template Issues",
            "1. Run `statamic.development.antlers_validate` with the blueprint handle",
            "2. Compare variables with `statamic-blueprints` action=get",
            "3. Fix unclosed pairs and unknown tags first; they hide other problems",
            "",
        ]
    if issue_category in ("content", "general"):
        lines += [
            "## Content Issues",
            "1. Check the entry with `statamic-content` action=get",
            "2. Validate the blueprint with `statamic-blueprints` action=validate",
            "3. Look for relationship fields pointing at deleted items",
            "",
        ]
    if issue_category in ("cache", "general"):
        lines += [
            "## Cache Issues",
            "1. `statamic-system` action=cache_status",
            "2. `statamic-system` action=cache_clear stache=true dry_run=true, then confirm=true",
            "",
        ]
    if issue_category in ("assets", "general"):
        lines += [
            "## Asset Issues",
            "1. List containers with `statamic-assets` action=list type=container",
            "2. Check file permissions and free disk space on the container disk",
            "",
        ]
    if error_context:
        lines += [
            "## Your Error",
            f'Reported: "{error_context}"',
            "- Read the full message and `details` of the error envelope",
            "- Quote the `correlation_id` from `meta` when asking for help",
            "",
        ]
    lines.append("Back up the site before applying fixes and try them on staging first.")
    return "\n".join(lines)


def upgrade_guide(from_version: str = "v5", to_version: str = "v6") -> str:
    lines = [
        f"# Upgrading Statamic {from_version} to {to_version}",
        "",
        "## Before You Start",
        "1. Commit or back up `content/`, `resources/`, `users/` and the database",
        "2. Record current versions with `statamic-system` action=info",
        "3. Check addon compatibility for the target version",
        "",
        "## Upgrade",
        f"1. Require `statamic/cms` for {to_version} with Composer",
        "2. Run the Statamic update scripts and clear the Stache",
        "3. Review the official upgrade guide for breaking changes",
        "",
    ]
    if to_version == "v6":
        lines += [
            "## v6 Specifics",
            "- Port Vue 2 fieldtypes and widgets to Vue 3",
            "- Rebuild control panel assets for custom addons",
            "",
        ]
    lines += [
        "## Verify",
        "1. `statamic-system` action=health",
        "2. `statamic-blueprints` action=scan and validate each blueprint",
        "3. Run `statamic.development.antlers_validate` across key templates",
        "",
        "If the upgrade fails, restore the backup and `composer.lock` before retrying.",
    ]
    return "\n".join(lines)


TOOL_USAGE_CONTRACT = """\
# Statamic MCP Tool Usage Contract

## Agent Responsibilities
- Discover before acting: `statamic-system` action=discover_tools, then action=help on the router
- Preview destructive actions (create, update, delete, move, rename and any router-specific
  ones) with dry_run=true, review changes and risks, then repeat with confirm=true
- Read error envelopes completely; follow `details.safety_guidance` when present
- Respect permission and rate-limit responses in web context; do not retry in a tight loop

## Server Guarantees
- Every response is an envelope: success, data, error, meta (with correlation_id)
- Destructive actions without dry_run or confirm are refused with `safety_protocol_required`
- Dry runs never change anything
- Error messages are capped and never expose stack traces outside local environments
- Caches are invalidated after successful writes

## Recovery
1. Stop and read the error code and message
2. Use action=help with the relevant help_topic
3. Retry with corrected arguments, previewing with dry_run first
4. Escalate to a human when the same error repeats
"""


def register_guide_prompts(mcp: FastMCP, config: ServerConfig) -> None:
    """
    Register guide prompts with the FastMCP server.

    Args:
        mcp: FastMCP server instance
        config: Server configuration
    """

    @mcp.prompt()
    def statamic_best_practices(
        context: str = "general",
        template_engine: str = "antlers",
        statamic_version: Optional[str] = None,
    ) -> str:
        """
        Statamic development best practices.

        Args:
            context: templates, content-modeling, performance or general
            template_engine: antlers or blade
            statamic_version: v4, v5 or v6 (detected when omitted)
        """
        return best_practices_guide(context, template_engine, statamic_version)

    @mcp.prompt()
    def statamic_troubleshooting(
        issue_category: str = "general",
        error_context: Optional[str] = None,
        statamic_version: Optional[str] = None,
    ) -> str:
        """
        Step-by-step troubleshooting for a category of Statamic issues.

        Args:
            issue_category: templates, content, cache, assets or general
            error_context: Short description of the problem
            statamic_version: v4, v5 or v6 (detected when omitted)
        """
        return troubleshooting_guide(issue_category, error_context, statamic_version)

    @mcp.prompt()
    def statamic_upgrade(from_version: str = "v5", to_version: str = "v6") -> str:
        """Checklist for upgrading between Statamic major versions."""
        return upgrade_guide(from_version, to_version)

    @mcp.prompt()
    def statamic_contract() -> str:
        """Operational agreement for using the Statamic MCP tools safely."""
        return TOOL_USAGE_CONTRACT

    logger.debug("Registered guide prompts for %s", config.server_name)
