"""Command line interface for statamic-mcp."""

from statamic_mcp.cli.main import cli

__all__ = ["cli"]
