"""Tests for the response envelope and its helpers."""

from statamic_mcp.core.context import sync_request_context
from statamic_mcp.core.errors import ErrorCode
from statamic_mcp.core.responses import (
    error_response,
    is_envelope,
    not_found,
    permission_denied,
    rate_limited,
    sanitize_error_message,
    security_error,
    success_response,
    validation_error,
)


class TestSuccessResponse:
    """Success envelopes."""

    def test_shape(self):
        """Success carries data, warnings and meta but no error keys."""
        payload = success_response({"count": 2}, tool="statamic-content").to_dict()
        assert payload["success"] is True
        assert payload["data"] == {"count": 2}
        assert payload["warnings"] == []
        assert "error" not in payload
        assert "errors" not in payload

    def test_meta_carries_runtime_versions(self):
        """Meta records the tool, timestamp and wrapped versions."""
        meta = success_response(tool="statamic-system").to_dict()["meta"]
        assert meta["tool"] == "statamic-system"
        assert meta["statamic_version"] == "5.4.0"
        assert meta["laravel_version"] == "11.9.2"
        assert meta["timestamp"]

    def test_none_data_becomes_empty_object(self):
        """A missing payload serializes as an empty object."""
        assert success_response(None).to_dict()["data"] == {}

    def test_empty_list_is_still_success(self):
        """An empty result is a successful operation."""
        payload = success_response([]).to_dict()
        assert payload["success"] is True
        assert payload["data"] == []

    def test_meta_and_extra(self):
        """Meta extras merge into meta; extras sit at the top level."""
        payload = success_response(
            {}, meta={"action": "list"}, extra={"simulation": True}
        ).to_dict()
        assert payload["meta"]["action"] == "list"
        assert payload["simulation"] is True

    def test_extra_cannot_override_contract_keys(self):
        """Top-level extras never replace contract keys."""
        payload = success_response({"a": 1}, extra={"success": False, "data": 2}).to_dict()
        assert payload["success"] is True
        assert payload["data"] == {"a": 1}

    def test_correlation_id_injected(self):
        """The active correlation id appears in meta."""
        with sync_request_context(correlation_id="mcp_abc123"):
            meta = success_response({}).to_dict()["meta"]
        assert meta["correlation_id"] == "mcp_abc123"

    def test_no_correlation_id_outside_request(self):
        """Outside a request no correlation id is added."""
        assert "correlation_id" not in success_response({}).to_dict()["meta"]


class TestErrorResponse:
    """Failure envelopes."""

    def test_code_uses_fixed_message(self):
        """An ErrorCode without message uses the code's fixed message."""
        payload = error_response(ErrorCode.NOT_FOUND).to_dict()
        assert payload["success"] is False
        assert payload["error"] == "NOT_FOUND"
        assert payload["errors"] == ["Resource not found"]
        assert "data" not in payload

    def test_plain_message_is_internal_error(self):
        """A free-form message is classified as INTERNAL_ERROR."""
        payload = error_response("Disk on fire").to_dict()
        assert payload["error"] == "INTERNAL_ERROR"
        assert payload["errors"] == ["Disk on fire"]

    def test_code_override(self):
        """A router-level code overrides the ErrorCode value."""
        payload = error_response(
            ErrorCode.UNSAFE_OPERATION, code="safety_protocol_required"
        ).to_dict()
        assert payload["error"] == "safety_protocol_required"

    def test_details_only_when_set(self):
        """Details appear only when failure context is supplied."""
        assert "details" not in error_response(ErrorCode.CONFLICT).to_dict()
        payload = error_response(ErrorCode.CONFLICT, data={"handle": "blog"}).to_dict()
        assert payload["details"] == {"handle": "blog"}

    def test_always_has_errors_and_meta(self):
        """Every failure has at least one message and a meta block."""
        payload = error_response("").to_dict()
        assert payload["errors"]
        assert payload["meta"]["statamic_version"] == "5.4.0"


class TestErrorHelpers:
    """Specialized error constructors."""

    def test_validation_error(self):
        """Field errors land under details.validation_errors."""
        payload = validation_error({"handle": ["The handle field is required."]}).to_dict()
        assert payload["error"] == "VALIDATION_ERROR"
        assert payload["details"]["validation_errors"] == {
            "handle": ["The handle field is required."]
        }

    def test_not_found_specific_code(self):
        """Known resources get their specific not-found code."""
        payload = not_found("entry", "abc", suggestions=["abd"]).to_dict()
        assert payload["error"] == "ENTRY_NOT_FOUND"
        assert payload["errors"] == ["Entry 'abc' not found"]
        assert payload["details"]["suggestions"] == ["abd"]

    def test_not_found_generic(self):
        """Unknown resources fall back to NOT_FOUND."""
        payload = not_found("widget").to_dict()
        assert payload["error"] == "NOT_FOUND"
        assert payload["errors"] == ["Widget not found"]

    def test_permission_denied(self):
        """Permission failures name the operation and permissions."""
        payload = permission_denied(
            "delete", "entries", required_permissions=["delete entries"]
        ).to_dict()
        assert payload["error"] == "PERMISSION_DENIED"
        assert payload["errors"] == ["Permission denied: cannot delete on entries"]
        assert payload["details"]["required_permissions"] == ["delete entries"]

    def test_security_error_flags_incident(self):
        """Security errors mark the incident in meta."""
        payload = security_error(ErrorCode.PATH_TRAVERSAL, "../etc").to_dict()
        assert payload["error"] == "PATH_TRAVERSAL"
        assert payload["meta"]["security_incident"] is True
        assert payload["details"] == {"details": "../etc"}

    def test_rate_limited(self):
        """Rate limit failures report retry_after and the limit."""
        payload = rate_limited(2.4, 60).to_dict()
        assert payload["error"] == "RATE_LIMITED"
        assert payload["details"] == {"retry_after": 2, "limit": 60}

    def test_rate_limited_minimum_retry(self):
        """Retry-after is never below one second."""
        assert rate_limited(0.1, 10).to_dict()["details"]["retry_after"] == 1


class TestHelpers:
    """Envelope detection and message sanitizing."""

    def test_is_envelope(self):
        """Only mappings with success and meta count as envelopes."""
        assert is_envelope(success_response({}).to_dict())
        assert not is_envelope({"success": True})
        assert not is_envelope(["success", "meta"])

    def test_sanitize_strips_null_bytes(self):
        """Null bytes are removed and the prefix applied."""
        assert sanitize_error_message("bad\x00input", "Action failed: ") == "Action failed: badinput"

    def test_sanitize_truncates(self):
        """Long messages are capped with an ellipsis."""
        text = sanitize_error_message("x" * 1000, max_length=20)
        assert len(text) == 20
        assert text.endswith("...")
