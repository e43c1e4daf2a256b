"""statamic-mcp CLI entry point.

JSON-only output: template linting, cache maintenance and the server.
"""

from pathlib import Path
from typing import Optional

import click
import yaml

from statamic_mcp.cli.output import emit_envelope, emit_error, emit_success
from statamic_mcp.config import ServerConfig, get_config, set_config
from statamic_mcp.core.errors import ErrorCode
from statamic_mcp.server import build_cache
from statamic_mcp.tools.development import AntlersValidateTool, BladeLintTool


def _read_template(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        emit_error(f"Could not read template {path}: {e}", ErrorCode.FILE_SYSTEM_ERROR)


@click.group()
@click.option(
    "--config",
    "config_file",
    envvar="STATAMIC_MCP_CONFIG",
    type=click.Path(exists=False),
    help="Path to statamic-mcp.toml",
)
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str]) -> None:
    """statamic-mcp - MCP tooling for Statamic sites.

    All commands output JSON envelopes.
    """
    ctx.ensure_object(dict)
    config = ServerConfig.from_env(config_file) if config_file else get_config()
    set_config(config)
    ctx.obj["config"] = config


@cli.command("serve")
def serve_cmd() -> None:
    """Run the MCP server (stdio unless configured otherwise)."""
    from statamic_mcp.server import main

    main()


@cli.group("lint")
def lint() -> None:
    """Template linting."""


@lint.command("antlers")
@click.argument("template", type=click.Path(exists=True, dir_okay=False))
@click.option("--blueprint", type=click.Path(exists=True, dir_okay=False), help="Blueprint YAML to check fields against.")
@click.option("--strict", is_flag=True, help="Treat warnings as errors.")
@click.option("--tree", "include_tree", is_flag=True, help="Include the parsed tag tree.")
@click.pass_context
def lint_antlers_cmd(
    ctx: click.Context,
    template: str,
    blueprint: Optional[str],
    strict: bool,
    include_tree: bool,
) -> None:
    """Validate an Antlers template file."""
    arguments = {"template": _read_template(template), "strict": strict, "include_tree": include_tree}
    if blueprint:
        try:
            arguments["blueprint"] = yaml.safe_load(Path(blueprint).read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            emit_error(f"Could not load blueprint {blueprint}: {e}", ErrorCode.SCHEMA_ERROR)

    envelope = AntlersValidateTool(config=ctx.obj["config"]).execute(arguments)
    emit_envelope(envelope)
    if not envelope["data"]["valid"]:
        ctx.exit(1)


@lint.command("blade")
@click.argument("template", type=click.Path(exists=True, dir_okay=False))
@click.option("--strict", is_flag=True, help="Add strict checks and treat warnings as errors.")
@click.pass_context
def lint_blade_cmd(ctx: click.Context, template: str, strict: bool) -> None:
    """Lint a Blade template file."""
    envelope = BladeLintTool(config=ctx.obj["config"]).execute(
        {"template": _read_template(template), "strict_mode": strict}
    )
    emit_envelope(envelope)
    if not envelope["data"]["ok"]:
        ctx.exit(1)


@cli.group("cache")
def cache() -> None:
    """Tool result cache management."""


@cache.command("status")
@click.pass_context
def cache_status_cmd(ctx: click.Context) -> None:
    """Show cache backend and statistics."""
    config: ServerConfig = ctx.obj["config"]
    if not config.cache.enabled:
        emit_success({"enabled": False, "message": "Cache is disabled"})
        return
    tool_cache = build_cache(config)
    emit_success({"enabled": True, "backend": config.cache.backend, **tool_cache.stats()})


@cache.command("clear")
@click.option("--tool", help="Only clear this tool's namespace, e.g. statamic-blueprints.")
@click.pass_context
def cache_clear_cmd(ctx: click.Context, tool: Optional[str]) -> None:
    """Clear cached tool results."""
    tool_cache = build_cache(ctx.obj["config"])
    if tool:
        emit_success({"tool": tool, "removed": tool_cache.clear_tool(tool)})
        return
    tool_cache.clear_all()
    emit_success({"cleared": True})


if __name__ == "__main__":
    cli()
