"""Naming helpers for MCP tool registration."""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from typing import Any, Callable

from mcp.server.fastmcp import FastMCP
from mcp.types import TextContent

logger = logging.getLogger(__name__)


def minify_response(result: dict[str, Any]) -> TextContent:
    """Convert an envelope dict to TextContent with minified JSON."""
    return TextContent(
        type="text",
        text=json.dumps(result, separators=(",", ":"), default=str),
    )


def canonical_tool(
    mcp: FastMCP,
    *,
    canonical_name: str,
    **tool_kwargs: Any,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator that registers a tool under its canonical name.

    Dict results (envelopes) are serialized to minified JSON text content.
    Envelope construction already converts failures, so exceptions reaching
    this wrapper are logged and re-raised for FastMCP to report.

    Args:
        mcp: FastMCP instance
        canonical_name: The canonical name for the tool
        **tool_kwargs: Additional kwargs passed to mcp.tool()
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        if asyncio.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                try:
                    result = await func(*args, **kwargs)
                except Exception:
                    logger.exception("Unhandled error in tool %s", canonical_name)
                    raise
                if isinstance(result, dict):
                    return minify_response(result)
                return result

            wrapper = async_wrapper
        else:

            @functools.wraps(func)
            def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
                try:
                    result = func(*args, **kwargs)
                except Exception:
                    logger.exception("Unhandled error in tool %s", canonical_name)
                    raise
                if isinstance(result, dict):
                    return minify_response(result)
                return result

            wrapper = sync_wrapper

        return mcp.tool(name=canonical_name, **tool_kwargs)(wrapper)

    return decorator
