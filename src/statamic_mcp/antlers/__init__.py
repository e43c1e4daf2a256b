"""Antlers and Blade template linting."""

from statamic_mcp.antlers.blade import BladeLinter
from statamic_mcp.antlers.parser import parse
from statamic_mcp.antlers.validator import AntlersValidator

__all__ = ["AntlersValidator", "BladeLinter", "parse"]
