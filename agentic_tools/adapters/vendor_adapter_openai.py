"""OpenAI vendor adapter for Chat Completions with function tools."""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from openai import AsyncOpenAI

from agentic_tools.adapters.llm_client import LLMCallRequest, LLMProvider, LLMTool, LLMToolCall, LLMUsage
from agentic_tools.infra.config import get_env_api_key
from agentic_tools.infra.error_handler import LLMConfigurationError
from agentic_tools.infra.timeout import LLM_CALL_TIMEOUT
from agentic_tools.models.agentic_tool import EmbeddedLLMConfig

logger = logging.getLogger(__name__)

REASONING_MODEL_PREFIXES = ("o1", "o3", "o4", "gpt-5")


def is_reasoning_model(model: str) -> bool:
    return model.startswith(REASONING_MODEL_PREFIXES)


def build_openai_tools(tools: List[LLMTool]) -> List[Dict[str, Any]]:
    """
    Convert LLMTool objects to OpenAI tool schema.

    Args:
        tools: Tools offered to the model

    Returns:
        List of OpenAI tool dicts in OpenAI format
    """
    openai_tools = []
    for tool in tools:
        openai_tool = {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.input_schema or {"type": "object", "properties": {}},
            }
        }
        openai_tools.append(openai_tool)
    return openai_tools


class OpenAIProvider(LLMProvider):
    """OpenAI chat models through the official async SDK."""

    provider_name = "openai"
    api_key_env = "OPENAI_API_KEY"

    def __init__(self, llm_config: EmbeddedLLMConfig, api_key: Optional[str] = None, client: Optional[AsyncOpenAI] = None):
        api_key = api_key or get_env_api_key(self.api_key_env)
        if client is None and not api_key:
            raise LLMConfigurationError(f"{self.api_key_env} not configured")
        super().__init__(llm_config, api_key)
        self._client = client or AsyncOpenAI(api_key=api_key, timeout=LLM_CALL_TIMEOUT)

    def build_params(self, request: LLMCallRequest) -> Dict[str, Any]:
        """Translate an LLMCallRequest into chat.completions.create() keyword arguments."""
        system_prompt = request.system_prompt
        if request.response_format == "json" and not request.tools:
            # json_object mode requires the word "JSON" to appear in the messages
            json_hint = "Respond with a single valid JSON object only."
            system_prompt = f"{system_prompt}\n\n{json_hint}" if system_prompt else json_hint

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": request.prompt})

        model = self.llm_config.model
        max_tokens = request.max_tokens or self.llm_config.max_tokens
        request_params: Dict[str, Any] = {
            "model": model,
            "messages": messages,
        }

        if is_reasoning_model(model):
            request_params["max_completion_tokens"] = max_tokens
            level = self.llm_config.reasoning_level
            if level and level != "none":
                request_params["reasoning_effort"] = level
        else:
            request_params["max_tokens"] = max_tokens
            request_params["temperature"] = (
                request.temperature if request.temperature is not None else self.llm_config.temperature
            )
            if self.llm_config.top_p is not None:
                request_params["top_p"] = self.llm_config.top_p

        if request.tools:
            request_params["tools"] = build_openai_tools(request.tools)
            request_params["tool_choice"] = "auto"
        elif request.response_format == "json":
            if request.json_schema:
                request_params["response_format"] = {
                    "type": "json_schema",
                    "json_schema": {"name": "response", "schema": request.json_schema},
                }
            else:
                request_params["response_format"] = {"type": "json_object"}

        return request_params

    async def _complete(self, request: LLMCallRequest) -> Tuple[str, List[LLMToolCall], LLMUsage]:
        response_obj = await self._client.chat.completions.create(**self.build_params(request))

        message = response_obj.choices[0].message
        tool_calls = []
        for tc in message.tool_calls or []:
            try:
                arguments = json.loads(tc.function.arguments or "{}")
            except json.JSONDecodeError:
                logger.warning(f"Unparseable arguments for tool call {tc.function.name}")
                arguments = {}
            tool_calls.append(LLMToolCall(id=tc.id, name=tc.function.name, input=arguments))

        usage = LLMUsage()
        if response_obj.usage:
            usage = LLMUsage(
                input_tokens=response_obj.usage.prompt_tokens,
                output_tokens=response_obj.usage.completion_tokens,
                total_tokens=response_obj.usage.total_tokens,
            )
        return message.content or "", tool_calls, usage
