"""CLI module entry point.

Enables running the CLI via: python -m statamic_mcp.cli
"""

from statamic_mcp.cli.main import cli

if __name__ == "__main__":
    cli()
