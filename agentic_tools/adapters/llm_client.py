"""
Provider-agnostic LLM call contract.

Every provider adapter turns an LLMCallRequest into an LLMCallResponse with
usage, USD cost and any tool calls the model chose to make. Callers never
branch on provider identity; LLMClientFactory is the only place that does.
"""

import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Literal, Optional, Tuple, Union

from agentic_tools.infra import metrics
from agentic_tools.infra.error_handler import LLMConfigurationError, LLMResponseParseError, wrap_llm_error
from agentic_tools.models.agentic_tool import EmbeddedLLMConfig
from agentic_tools.services.cost_calculator import calculate_cost

logger = logging.getLogger(__name__)

ResponseFormat = Literal["text", "json"]

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


@dataclass
class LLMTool:
    """A callable tool offered to the model."""
    name: str
    description: str
    input_schema: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMToolCall:
    """A tool invocation the model requested."""
    id: str
    name: str
    input: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMUsage:
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


@dataclass
class LLMCallRequest:
    prompt: str
    system_prompt: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    response_format: ResponseFormat = "text"
    json_schema: Optional[Dict[str, Any]] = None
    tools: List[LLMTool] = field(default_factory=list)


@dataclass
class LLMCallResponse:
    content: Union[str, Dict[str, Any], List[Any]]
    raw_text: str
    usage: LLMUsage
    cost: float
    model: str
    provider: str
    tool_calls: List[LLMToolCall] = field(default_factory=list)
    duration_ms: int = 0


def parse_json_text(text: str, provider: str) -> Any:
    """
    Decode model output as JSON, tolerating a surrounding markdown code fence.

    Raises:
        LLMResponseParseError: text is not valid JSON
    """
    candidate = text.strip()
    fenced = _FENCE_PATTERN.match(candidate)
    if fenced:
        candidate = fenced.group(1)
    try:
        return json.loads(candidate)
    except (json.JSONDecodeError, TypeError) as e:
        raise LLMResponseParseError(
            provider,
            f"Failed to parse JSON response from {provider}: {e}",
            raw_text=text or "",
        )


class LLMProvider:
    """
    Base class for provider adapters.

    Subclasses implement _complete(), which performs the network call and
    returns (content_text, tool_calls, usage). call() adds JSON decoding,
    cost, timing, metrics and error normalization.
    """

    provider_name = ""
    api_key_env = ""

    def __init__(self, llm_config: EmbeddedLLMConfig, api_key: Optional[str] = None):
        self.llm_config = llm_config
        self.api_key = api_key

    @property
    def model(self) -> str:
        return self.llm_config.model

    async def _complete(self, request: LLMCallRequest) -> Tuple[str, List[LLMToolCall], LLMUsage]:
        raise NotImplementedError

    async def call(self, request: LLMCallRequest) -> LLMCallResponse:
        """
        Make one LLM call.

        Raises:
            LLMProviderError: provider/network failure
            LLMResponseParseError: JSON was requested but the output is not JSON
        """
        start = time.time()
        try:
            raw_text, tool_calls, usage = await self._complete(request)
        except Exception as e:
            duration_ms = int((time.time() - start) * 1000)
            metrics.record_llm_call(self.provider_name, self.model, "failure", duration_ms)
            wrapped = wrap_llm_error(e, self.provider_name)
            if wrapped is e:
                raise
            raise wrapped from e

        duration_ms = int((time.time() - start) * 1000)
        cost = calculate_cost(self.provider_name, self.model, usage.input_tokens, usage.output_tokens)
        metrics.record_llm_call(
            self.provider_name,
            self.model,
            "success",
            duration_ms,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            cost=cost,
        )

        # Tool-call turns may legitimately carry no JSON body
        if request.response_format == "json" and not tool_calls:
            content = parse_json_text(raw_text, self.provider_name)
        else:
            content = raw_text

        return LLMCallResponse(
            content=content,
            raw_text=raw_text,
            usage=usage,
            cost=cost,
            model=self.model,
            provider=self.provider_name,
            tool_calls=tool_calls,
            duration_ms=duration_ms,
        )


def validate_llm_config(llm_config: EmbeddedLLMConfig) -> None:
    """
    Check that a provider can be built for this configuration.

    Raises:
        LLMConfigurationError: unknown provider or missing API key
    """
    from agentic_tools.infra.config import get_env_api_key

    provider_cls = _provider_registry().get(llm_config.provider)
    if provider_cls is None:
        raise LLMConfigurationError(f"Unsupported LLM provider: {llm_config.provider}")
    if not get_env_api_key(provider_cls.api_key_env):
        raise LLMConfigurationError(
            f"{provider_cls.api_key_env} environment variable is required for {llm_config.provider} provider"
        )


def _provider_registry() -> Dict[str, Callable[..., LLMProvider]]:
    # Imported here to avoid a cycle: adapters subclass LLMProvider from this module
    from agentic_tools.adapters.vendor_adapter_anthropic import AnthropicProvider
    from agentic_tools.adapters.vendor_adapter_gemini import GoogleProvider
    from agentic_tools.adapters.vendor_adapter_openai import OpenAIProvider

    return {
        "anthropic": AnthropicProvider,
        "google": GoogleProvider,
        "openai": OpenAIProvider,
    }


class LLMClientFactory:
    """
    Builds provider clients from an EmbeddedLLMConfig.

    Owned by the composition root. With cache=True, one client per
    (provider, model, reasoning, temperature, max_tokens, top_p) is reused
    for the factory's lifetime; clear() drops them.
    """

    def __init__(self, cache: bool = False, providers: Optional[Dict[str, Callable[..., LLMProvider]]] = None):
        self._cache_enabled = cache
        self._providers = providers
        self._builtin_providers = providers is None
        self._cache: Dict[Tuple, LLMProvider] = {}

    def _registry(self) -> Dict[str, Callable[..., LLMProvider]]:
        if self._providers is None:
            self._providers = _provider_registry()
        return self._providers

    def create(self, llm_config: EmbeddedLLMConfig) -> LLMProvider:
        """
        Raises:
            LLMConfigurationError: unsupported provider or missing API key
        """
        key = (
            llm_config.provider,
            llm_config.model,
            llm_config.reasoning_level,
            llm_config.temperature,
            llm_config.max_tokens,
            llm_config.top_p,
        )
        if self._cache_enabled and key in self._cache:
            return self._cache[key]

        if self._builtin_providers:
            validate_llm_config(llm_config)
        provider_cls = self._registry().get(llm_config.provider)
        if provider_cls is None:
            raise LLMConfigurationError(f"Unsupported LLM provider: {llm_config.provider}")
        client = provider_cls(llm_config)

        if self._cache_enabled:
            self._cache[key] = client
        return client

    def clear(self) -> None:
        self._cache.clear()
