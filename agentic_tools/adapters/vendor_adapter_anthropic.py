"""Anthropic Messages API adapter."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from anthropic import AsyncAnthropic

from agentic_tools.adapters.llm_client import LLMCallRequest, LLMProvider, LLMToolCall, LLMUsage
from agentic_tools.infra.config import get_env_api_key
from agentic_tools.infra.error_handler import LLMConfigurationError
from agentic_tools.infra.timeout import LLM_CALL_TIMEOUT
from agentic_tools.models.agentic_tool import EmbeddedLLMConfig

logger = logging.getLogger(__name__)

# Extended-thinking token budgets per reasoning level
THINKING_BUDGETS = {
    "low": 1024,
    "medium": 5000,
    "high": 10000,
}


class AnthropicProvider(LLMProvider):
    """Claude models through the official async SDK."""

    provider_name = "anthropic"
    api_key_env = "ANTHROPIC_API_KEY"

    def __init__(self, llm_config: EmbeddedLLMConfig, api_key: Optional[str] = None, client: Optional[AsyncAnthropic] = None):
        api_key = api_key or get_env_api_key(self.api_key_env)
        if client is None and not api_key:
            raise LLMConfigurationError(f"{self.api_key_env} environment variable is required")
        super().__init__(llm_config, api_key)
        self._client = client or AsyncAnthropic(api_key=api_key, timeout=LLM_CALL_TIMEOUT)

    def build_params(self, request: LLMCallRequest) -> Dict[str, Any]:
        """Translate an LLMCallRequest into messages.create() keyword arguments."""
        max_tokens = request.max_tokens or self.llm_config.max_tokens
        params: Dict[str, Any] = {
            "model": self.llm_config.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": request.prompt}],
        }

        system_prompt = request.system_prompt
        if request.response_format == "json" and not request.tools:
            json_hint = "Respond with a single valid JSON object only, no prose."
            system_prompt = f"{system_prompt}\n\n{json_hint}" if system_prompt else json_hint
        if system_prompt:
            params["system"] = system_prompt

        if request.tools:
            params["tools"] = [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "input_schema": tool.input_schema or {"type": "object", "properties": {}},
                }
                for tool in request.tools
            ]

        budget = THINKING_BUDGETS.get(self.llm_config.reasoning_level or "none")
        if budget:
            # Thinking requires default temperature and max_tokens above the budget
            params["thinking"] = {"type": "enabled", "budget_tokens": budget}
            params["max_tokens"] = max_tokens + budget
        else:
            temperature = request.temperature if request.temperature is not None else self.llm_config.temperature
            params["temperature"] = temperature
            if self.llm_config.top_p is not None:
                params["top_p"] = self.llm_config.top_p

        return params

    async def _complete(self, request: LLMCallRequest) -> Tuple[str, List[LLMToolCall], LLMUsage]:
        response = await self._client.messages.create(**self.build_params(request))

        text_parts = []
        tool_calls = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(LLMToolCall(id=block.id, name=block.name, input=dict(block.input or {})))

        usage = LLMUsage(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            total_tokens=response.usage.input_tokens + response.usage.output_tokens,
        )
        return "\n".join(text_parts), tool_calls, usage
