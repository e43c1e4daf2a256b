"""Core infrastructure: envelopes, errors, logging, caching and security."""

from statamic_mcp.core.errors import ErrorCode, StatamicMCPError
from statamic_mcp.core.responses import ToolResponse, error_response, success_response

__all__ = ["ErrorCode", "StatamicMCPError", "ToolResponse", "error_response", "success_response"]
