"""Gemini vendor adapter over the generateContent REST API."""

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

import httpx

from agentic_tools.adapters.llm_client import LLMCallRequest, LLMProvider, LLMTool, LLMToolCall, LLMUsage
from agentic_tools.infra.config import get_env_api_key
from agentic_tools.infra.error_handler import LLMConfigurationError
from agentic_tools.infra.timeout import LLM_CALL_TIMEOUT
from agentic_tools.models.agentic_tool import EmbeddedLLMConfig

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"

# Gemini 2.x takes a token budget, Gemini 3 takes a named level
THINKING_BUDGETS = {
    "low": 1024,
    "medium": 8192,
    "high": 24576,
}

_SCHEMA_TYPES = {
    "object": "OBJECT",
    "array": "ARRAY",
    "string": "STRING",
    "number": "NUMBER",
    "integer": "INTEGER",
    "boolean": "BOOLEAN",
}


def convert_to_gemini_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a JSON Schema into Gemini's OpenAPI-subset schema.

    Only type, description, properties, items, required and enum survive;
    unknown types fall back to STRING.
    """
    raw_type = schema.get("type")
    if isinstance(raw_type, list):
        # ["string", "null"] style nullable unions
        raw_type = next((t for t in raw_type if t != "null"), "string")
    result: Dict[str, Any] = {"type": _SCHEMA_TYPES.get(raw_type or "string", "STRING")}

    if schema.get("description"):
        result["description"] = schema["description"]
    if isinstance(schema.get("properties"), dict):
        result["properties"] = {
            key: convert_to_gemini_schema(value) for key, value in schema["properties"].items()
        }
    if isinstance(schema.get("items"), dict):
        result["items"] = convert_to_gemini_schema(schema["items"])
    if schema.get("required"):
        result["required"] = list(schema["required"])
    if schema.get("enum"):
        result["enum"] = [str(value) for value in schema["enum"]]
    return result


def build_gemini_tools(tools: List[LLMTool]) -> List[Dict[str, Any]]:
    """Function declarations for the tools array."""
    declarations = []
    for tool in tools:
        parameters = convert_to_gemini_schema({**(tool.input_schema or {}), "type": "object"})
        declarations.append({
            "name": tool.name,
            "description": tool.description,
            "parameters": parameters,
        })
    return [{"functionDeclarations": declarations}]


class GoogleProvider(LLMProvider):
    """Gemini models through the generateContent REST endpoint."""

    provider_name = "google"
    api_key_env = "GOOGLE_AI_API_KEY"

    def __init__(self, llm_config: EmbeddedLLMConfig, api_key: Optional[str] = None):
        api_key = api_key or get_env_api_key(self.api_key_env)
        if not api_key:
            raise LLMConfigurationError(f"{self.api_key_env} environment variable is required")
        super().__init__(llm_config, api_key)

    def build_payload(self, request: LLMCallRequest) -> Dict[str, Any]:
        """Build the generateContent request body."""
        temperature = request.temperature if request.temperature is not None else self.llm_config.temperature
        generation_config: Dict[str, Any] = {
            "temperature": temperature,
            "maxOutputTokens": request.max_tokens or self.llm_config.max_tokens,
        }
        if self.llm_config.top_p is not None:
            generation_config["topP"] = self.llm_config.top_p

        level = self.llm_config.reasoning_level
        if level and level != "none":
            if self.llm_config.model.startswith("gemini-3"):
                generation_config["thinkingConfig"] = {"thinkingLevel": level.upper()}
            else:
                generation_config["thinkingConfig"] = {"thinkingBudget": THINKING_BUDGETS[level]}

        if request.response_format == "json" and not request.tools:
            generation_config["responseMimeType"] = "application/json"
            if request.json_schema:
                generation_config["responseSchema"] = convert_to_gemini_schema(request.json_schema)

        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": request.prompt}]}],
            "generationConfig": generation_config,
        }
        if request.system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": request.system_prompt}]}
        if request.tools:
            payload["tools"] = build_gemini_tools(request.tools)
        return payload

    async def _complete(self, request: LLMCallRequest) -> Tuple[str, List[LLMToolCall], LLMUsage]:
        url = f"{GEMINI_API_BASE}/models/{self.llm_config.model}:generateContent"
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

        async with httpx.AsyncClient(timeout=LLM_CALL_TIMEOUT) as client:
            response = await client.post(url, json=self.build_payload(request), headers=headers)
            response.raise_for_status()
            result = response.json()

        if not result.get("candidates"):
            raise ValueError("No response from Gemini")

        candidate = result["candidates"][0]
        parts = candidate.get("content", {}).get("parts", [])

        text_parts = []
        tool_calls = []
        for part in parts:
            if not isinstance(part, dict):
                continue
            if part.get("thought"):
                continue
            if "text" in part:
                text_parts.append(part["text"])
            elif "functionCall" in part:
                call = part["functionCall"]
                tool_calls.append(LLMToolCall(
                    id=f"gemini-{uuid.uuid4().hex}",
                    name=call.get("name", ""),
                    input=call.get("args") or {},
                ))

        usage_metadata = result.get("usageMetadata") or {}
        input_tokens = usage_metadata.get("promptTokenCount", 0)
        # Thinking tokens are billed as output
        output_tokens = usage_metadata.get("candidatesTokenCount", 0) + usage_metadata.get("thoughtsTokenCount", 0)
        usage = LLMUsage(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=usage_metadata.get("totalTokenCount", input_tokens + output_tokens),
        )
        return "".join(text_parts), tool_calls, usage
