"""Statamic MCP - MCP server for managing Statamic CMS sites."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("statamic-mcp")
except PackageNotFoundError:
    # Package not installed (development mode without editable install)
    __version__ = "0.1.0"

from statamic_mcp.server import create_server, main

__all__ = ["__version__", "create_server", "main"]
