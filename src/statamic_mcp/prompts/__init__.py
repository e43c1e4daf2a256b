"""MCP prompts for statamic-mcp."""

from statamic_mcp.prompts.guides import register_guide_prompts

__all__ = ["register_guide_prompts"]
