"""Tests for the provider-agnostic LLM client and factory."""

import pytest

from agentic_tools.adapters.llm_client import (
    LLMCallRequest,
    LLMClientFactory,
    LLMToolCall,
    LLMUsage,
    parse_json_text,
    validate_llm_config,
)
from agentic_tools.infra.error_handler import (
    ErrorCategory,
    ErrorCodes,
    LLMConfigurationError,
    LLMProviderError,
    LLMResponseParseError,
)
from agentic_tools.infra.config import config
from agentic_tools.models.agentic_tool import EmbeddedLLMConfig
from conftest import ScriptedLLMProvider, text_turn

CONFIG = EmbeddedLLMConfig(provider="anthropic", model="claude-sonnet-4.5")


class TestParseJsonText:
    def test_plain_json(self):
        """Test decoding plain JSON."""
        assert parse_json_text('{"a": 1}', "anthropic") == {"a": 1}

    def test_fenced_json(self):
        """Test stripping a json markdown fence."""
        assert parse_json_text('```json\n{"a": 1}\n```', "google") == {"a": 1}

    def test_bare_fence(self):
        """Test stripping a bare markdown fence."""
        assert parse_json_text('```\n[1, 2]\n```', "openai") == [1, 2]

    def test_invalid(self):
        """Test that unparseable text raises INVALID_LLM_OUTPUT."""
        with pytest.raises(LLMResponseParseError) as exc_info:
            parse_json_text("not json", "anthropic")
        assert exc_info.value.code == ErrorCodes.INVALID_LLM_OUTPUT
        assert exc_info.value.details["raw_text"] == "not json"


class TestProviderCall:
    """LLMProvider.call() adds cost, JSON decoding and error normalization."""

    @pytest.mark.asyncio
    async def test_text_response(self):
        """Test cost and usage on a text response."""
        provider = ScriptedLLMProvider(CONFIG, [text_turn("hello", 1000, 500)])
        response = await provider.call(LLMCallRequest(prompt="hi"))
        assert response.content == "hello"
        assert response.raw_text == "hello"
        assert response.cost == 0.0105
        assert response.model == "claude-sonnet-4.5"
        assert response.provider == "anthropic"
        assert response.usage.total_tokens == 1500

    @pytest.mark.asyncio
    async def test_json_response_is_decoded(self):
        """Test that json responses are decoded."""
        provider = ScriptedLLMProvider(CONFIG, [text_turn('{"parameters": {}}')])
        response = await provider.call(LLMCallRequest(prompt="hi", response_format="json"))
        assert response.content == {"parameters": {}}

    @pytest.mark.asyncio
    async def test_tool_calls_skip_json_decoding(self):
        """Test that tool-call responses are not JSON decoded."""
        provider = ScriptedLLMProvider(CONFIG, [(
            "",
            [LLMToolCall(id="c1", name="post_message", input={"a": 1})],
            LLMUsage(1, 1, 2),
        )])
        response = await provider.call(LLMCallRequest(prompt="hi", response_format="json"))
        assert response.content == ""
        assert response.tool_calls[0].name == "post_message"

    @pytest.mark.asyncio
    async def test_raw_errors_are_wrapped(self):
        """Test that SDK errors are wrapped as provider errors."""
        provider = ScriptedLLMProvider(CONFIG, [RuntimeError("Error code: 429 rate limit")])
        with pytest.raises(LLMProviderError) as exc_info:
            await provider.call(LLMCallRequest(prompt="hi"))
        assert exc_info.value.category == ErrorCategory.RATE_LIMIT
        assert exc_info.value.retryable is True
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_engine_errors_pass_through(self):
        """Test that engine errors are re-raised unchanged."""
        error = LLMConfigurationError("no key")
        provider = ScriptedLLMProvider(CONFIG, [error])
        with pytest.raises(LLMConfigurationError) as exc_info:
            await provider.call(LLMCallRequest(prompt="hi"))
        assert exc_info.value is error


class TestLLMClientFactory:
    def test_unknown_provider(self):
        """Test that an unregistered provider is rejected."""
        factory = LLMClientFactory(providers={})
        with pytest.raises(LLMConfigurationError) as exc_info:
            factory.create(CONFIG)
        assert exc_info.value.code == ErrorCodes.INVALID_LLM_CONFIG

    def test_new_client_per_call_without_cache(self):
        """Test that clients are not reused without caching."""
        factory = LLMClientFactory(providers={"anthropic": lambda cfg: ScriptedLLMProvider(cfg, [text_turn("x")])})
        assert factory.create(CONFIG) is not factory.create(CONFIG)

    def test_cache_and_clear(self):
        """Test client caching per configuration and clear()."""
        factory = LLMClientFactory(
            cache=True,
            providers={"anthropic": lambda cfg: ScriptedLLMProvider(cfg, [text_turn("x")])},
        )
        first = factory.create(CONFIG)
        assert factory.create(CONFIG) is first
        assert factory.create(CONFIG.model_copy(update={"temperature": 0.9})) is not first
        factory.clear()
        assert factory.create(CONFIG) is not first

    def test_default_registry_builds_real_adapters(self, monkeypatch):
        """Test that the default registry builds the SDK adapters."""
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
        client = LLMClientFactory().create(CONFIG)
        assert client.provider_name == "anthropic"

    def test_default_registry_checks_api_key_first(self, monkeypatch):
        """Built-in providers are validated before any SDK client is constructed."""
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.setattr(config, "OPENAI_API_KEY", None)
        with pytest.raises(LLMConfigurationError) as exc_info:
            LLMClientFactory().create(EmbeddedLLMConfig(provider="openai", model="gpt-4o"))
        assert exc_info.value.message == "OPENAI_API_KEY environment variable is required for openai provider"


class TestValidateLLMConfig:
    def test_missing_key(self, monkeypatch):
        """Test that a missing API key is reported."""
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.setattr(config, "OPENAI_API_KEY", None)
        with pytest.raises(LLMConfigurationError):
            validate_llm_config(EmbeddedLLMConfig(provider="openai", model="gpt-4o"))

    def test_key_present(self, monkeypatch):
        """Test that a configured API key passes."""
        monkeypatch.setenv("GOOGLE_AI_API_KEY", "test")
        validate_llm_config(EmbeddedLLMConfig(provider="google", model="gemini-2.5-flash"))
