"""Tests for error normalization and row decoding."""

import json
from types import SimpleNamespace

import pytest

from agentic_tools.infra.error_handler import (
    ErrorCategory,
    ErrorCodes,
    InvocationError,
    LLMConfigurationError,
    LLMProviderError,
    SafetyLimitError,
    http_status_for_error,
    wrap_llm_error,
)
from agentic_tools.services.agentic_tool_repository import is_uuid, row_to_agentic_tool
from conftest import TENANT_ID, TOOL_ID


class TestWrapLLMError:
    """Test classification of raw provider errors."""

    def test_status_429_with_retry_after(self):
        """Test that a 429 is a retryable rate limit with retry-after."""
        error = Exception("Too many requests")
        error.response = SimpleNamespace(status_code=429, headers={"retry-after": "7"})

        wrapped = wrap_llm_error(error, "openai")

        assert isinstance(wrapped, LLMProviderError)
        assert wrapped.code == ErrorCodes.LLM_PROVIDER_ERROR
        assert wrapped.category == ErrorCategory.RATE_LIMIT
        assert wrapped.retryable is True
        assert wrapped.retry_after == 7.0

    def test_status_401(self):
        """Test that a 401 is a non-retryable auth error."""
        error = Exception("bad key")
        error.status_code = 401
        wrapped = wrap_llm_error(error, "anthropic")
        assert wrapped.category == ErrorCategory.AUTH_ERROR
        assert wrapped.retryable is False

    def test_status_500_is_retryable(self):
        """Test that 5xx statuses are retryable API errors."""
        error = Exception("overloaded")
        error.status_code = 529
        wrapped = wrap_llm_error(error, "anthropic")
        assert wrapped.category == ErrorCategory.API_ERROR
        assert wrapped.retryable is True
        assert wrapped.details["status_code"] == 529

    def test_status_400(self):
        """Test that other 4xx statuses are not retryable."""
        error = Exception("invalid request")
        error.status_code = 400
        wrapped = wrap_llm_error(error, "google")
        assert wrapped.retryable is False
        assert "400" in wrapped.message

    @pytest.mark.parametrize("message,category,retryable", [
        ("Rate limit reached for requests", ErrorCategory.RATE_LIMIT, True),
        ("HTTP 401 Unauthorized", ErrorCategory.AUTH_ERROR, False),
        ("Connection reset by peer", ErrorCategory.NETWORK, True),
        ("Request timed out", ErrorCategory.NETWORK, True),
        ("Something odd", ErrorCategory.UNKNOWN, False),
    ])
    def test_keyword_classification(self, message, category, retryable):
        """Test classification from the error message when no status is available."""
        wrapped = wrap_llm_error(RuntimeError(message), "openai")
        assert wrapped.category == category
        assert wrapped.retryable is retryable
        assert wrapped.details["provider"] == "openai"

    def test_engine_errors_pass_through(self):
        """Test that engine errors are returned unchanged."""
        error = LLMConfigurationError("missing key")
        assert wrap_llm_error(error, "openai") is error


class TestErrorDetail:
    def test_without_details(self):
        """Test that details are omitted when not set."""
        error = InvocationError(ErrorCodes.AGENTIC_TOOL_NOT_FOUND, "not found")
        assert error.to_error_detail() == {"code": "AGENTIC_TOOL_NOT_FOUND", "message": "not found"}

    def test_safety_limit(self):
        """Test the safety limit error detail and API error shapes."""
        error = SafetyLimitError(ErrorCodes.MAX_COST_EXCEEDED, "Cost limit exceeded", limit=0.5, actual=0.75)
        assert error.to_error_detail()["details"] == {"limit": 0.5, "actual": 0.75}
        api_error = error.to_api_error()
        assert api_error["details"]["exceeded"] == 0.25
        assert api_error["retryable"] is False


class TestHttpStatusForError:
    @pytest.mark.parametrize("code,status", [
        (ErrorCodes.AGENTIC_TOOL_NOT_FOUND, 404),
        (ErrorCodes.ACTION_NOT_FOUND, 404),
        (ErrorCodes.AGENTIC_TOOL_DISABLED, 403),
        (ErrorCodes.INVALID_STATUS, 400),
        (ErrorCodes.NO_TARGET_ACTIONS, 400),
        (ErrorCodes.INVALID_GENERATED_PARAMETERS, 400),
        (ErrorCodes.TIMEOUT, 429),
        (ErrorCodes.MAX_COST_EXCEEDED, 429),
        (ErrorCodes.MAX_TOOL_CALLS_EXCEEDED, 429),
        (ErrorCodes.LLM_PROVIDER_ERROR, 502),
        (ErrorCodes.ACTION_EXECUTION_FAILED, 502),
        (ErrorCodes.UNKNOWN_ERROR, 500),
        (None, 500),
    ])
    def test_mapping(self, code, status):
        """Test the error code to HTTP status mapping."""
        assert http_status_for_error(code) == status


def tool_row(**overrides):
    row = {
        "id": TOOL_ID,
        "tenant_id": TENANT_ID,
        "name": "Slack poster",
        "slug": "slack-poster",
        "description": None,
        "execution_mode": "parameter_interpreter",
        "embedded_llm_config": {"provider": "anthropic", "model": "claude-sonnet-4.5"},
        "system_prompt": "Post messages.",
        "tool_allocation": json.dumps({
            "mode": "parameter_interpreter",
            "target_actions": [{"action_id": "a1", "action_slug": "post_message"}],
        }),
        "context_config": None,
        "safety_limits": {"max_tool_calls": 3},
        "status": "active",
        "metadata": None,
    }
    row.update(overrides)
    return row


class TestRowDecoding:
    """Rows coming back from agentic_tools are validated into models."""

    def test_is_uuid(self):
        """Test UUID detection for tool identifiers."""
        assert is_uuid(TOOL_ID)
        assert is_uuid(TOOL_ID.upper())
        assert not is_uuid("slack-poster")
        assert not is_uuid("")

    def test_valid_row(self):
        """Test decoding a valid row with partial safety limits."""
        tool = row_to_agentic_tool(tool_row())
        assert tool.slug == "slack-poster"
        assert tool.tool_allocation.target_actions[0].action_slug == "post_message"
        assert tool.safety_limits.max_tool_calls == 3
        assert tool.safety_limits.timeout_seconds == 300
        assert tool.context_config.auto_inject_schemas is True
        assert tool.metadata == {}

    def test_invalid_config(self):
        """Out-of-range stored limits are reported field by field."""
        with pytest.raises(InvocationError) as exc_info:
            row_to_agentic_tool(tool_row(safety_limits={"max_tool_calls": 1000, "timeout_seconds": 5}))
        assert exc_info.value.code == ErrorCodes.INVALID_TOOL_CONFIG
        assert exc_info.value.details["errors"] == [
            "max_tool_calls must be an integer between 1 and 100",
            "timeout_seconds must be an integer between 30 and 600",
        ]

    def test_null_limits_take_defaults(self):
        """A stored null limit falls back to the default instead of failing validation."""
        tool = row_to_agentic_tool(tool_row(safety_limits=json.dumps({"max_tool_calls": None, "max_total_cost": 0.5})))
        assert tool.safety_limits.max_tool_calls == 10
        assert tool.safety_limits.timeout_seconds == 300
        assert tool.safety_limits.max_total_cost == 0.5

    def test_non_object_limits(self):
        """Test that a non-object safety_limits column is rejected."""
        with pytest.raises(InvocationError) as exc_info:
            row_to_agentic_tool(tool_row(safety_limits=[10]))
        assert exc_info.value.code == ErrorCodes.INVALID_TOOL_CONFIG

    def test_unknown_provider(self):
        """Test that an unsupported provider is an invalid configuration."""
        with pytest.raises(InvocationError) as exc_info:
            row_to_agentic_tool(tool_row(embedded_llm_config={"provider": "cohere", "model": "x"}))
        assert exc_info.value.code == ErrorCodes.INVALID_TOOL_CONFIG
