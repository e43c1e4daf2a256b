"""Tests for the correlation logger and argument sanitizing."""

import logging

from statamic_mcp.core.tool_logger import (
    MAX_STRING_LENGTH,
    REDACTION_MARKER,
    TRUNCATION_MARKER,
    ToolLogger,
    describe_exception,
    sanitize_arguments,
)


class TestSanitizeArguments:
    """Redaction and truncation of logged arguments."""

    def test_redacts_sensitive_keys(self):
        """Sensitive keys are replaced regardless of case."""
        result = sanitize_arguments({"Password": "hunter2", "API_KEY": "abc", "title": "Hi"})
        assert result == {"Password": REDACTION_MARKER, "API_KEY": REDACTION_MARKER, "title": "Hi"}

    def test_recurses_into_nested_values(self):
        """Nested mappings and lists are sanitized too."""
        result = sanitize_arguments(
            {"data": {"token": "t", "items": [{"secret": "s", "ok": 1}]}}
        )
        assert result == {
            "data": {"token": REDACTION_MARKER, "items": [{"secret": REDACTION_MARKER, "ok": 1}]}
        }

    def test_truncates_long_strings(self):
        """Long strings are cut and marked."""
        result = sanitize_arguments({"template": "a" * (MAX_STRING_LENGTH + 50)})
        assert result["template"] == "a" * MAX_STRING_LENGTH + TRUNCATION_MARKER

    def test_idempotent(self):
        """Sanitizing twice equals sanitizing once."""
        args = {"password": "x", "body": "b" * 5000, "nested": [{"key": "k"}]}
        once = sanitize_arguments(args)
        assert sanitize_arguments(once) == once

    def test_does_not_mutate_input(self):
        """The original arguments are left untouched."""
        args = {"password": "x"}
        sanitize_arguments(args)
        assert args == {"password": "x"}


class TestDescribeException:
    """Exception descriptions for failure records."""

    def test_includes_location(self):
        """A raised exception reports its class and source line."""
        try:
            raise ValueError("boom")
        except ValueError as e:
            info = describe_exception(e)
        assert info["class"] == "ValueError"
        assert info["message"] == "boom"
        assert info["file"].endswith("test_tool_logger.py")
        assert isinstance(info["line"], int)


class TestToolLogger:
    """Structured log records."""

    def test_started_returns_correlation_id(self, caplog):
        """Start records carry the correlation id and redacted arguments."""
        tool_logger = ToolLogger()
        with caplog.at_level(logging.INFO, logger="statamic_mcp.tools"):
            correlation_id = tool_logger.tool_started("statamic-users", {"password": "x"})
        assert correlation_id.startswith("mcp_")
        record = caplog.records[-1]
        assert record.getMessage() == "MCP Tool Started"
        assert record.mcp["correlation_id"] == correlation_id
        assert record.mcp["arguments"] == {"password": REDACTION_MARKER}

    def test_failed_includes_trace(self, caplog):
        """Failure records hold the exception details and trace."""
        tool_logger = ToolLogger()
        try:
            raise RuntimeError("kaput")
        except RuntimeError as e:
            with caplog.at_level(logging.ERROR, logger="statamic_mcp.tools"):
                tool_logger.tool_failed("statamic-users", "mcp_1", e, 0.5)
        fields = caplog.records[-1].mcp
        assert fields["error"]["class"] == "RuntimeError"
        assert "kaput" in fields["trace"]
        assert fields["duration_ms"] == 500.0

    def test_broken_sink_does_not_raise(self, monkeypatch):
        """A failing log sink falls back to the last-resort writer."""
        written = []
        monkeypatch.setattr(
            "statamic_mcp.core.tool_logger.write_last_resort", written.append
        )

        class BrokenLogger(logging.Logger):
            def log(self, *args, **kwargs):
                raise OSError("disk full")

        tool_logger = ToolLogger(BrokenLogger("broken"))
        tool_logger.tool_success("statamic-system", "mcp_1", 0.1)
        assert written and "OSError" in written[0]
