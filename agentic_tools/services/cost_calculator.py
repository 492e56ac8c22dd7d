"""Cost calculation for LLM API calls."""

import copy
import logging
import math
from typing import Dict, Any

logger = logging.getLogger(__name__)


# Pricing per 1M tokens in USD
PRICING = {
    "anthropic": {
        "claude-opus-4.5": {"input": 15.00, "output": 75.00},
        "claude-sonnet-4.5": {"input": 3.00, "output": 15.00},
        "claude-3-5-sonnet-20241022": {"input": 3.00, "output": 15.00},
        "claude-3-5-sonnet-20240620": {"input": 3.00, "output": 15.00},
    },
    "google": {
        "gemini-3-pro-preview": {"input": 1.25, "output": 5.00},
        "gemini-3-flash-preview": {"input": 0.625, "output": 2.50},
        "gemini-2.5-flash": {"input": 0.625, "output": 2.50},
        "gemini-2.5-pro": {"input": 1.25, "output": 5.00},
        "gemini-2.0-flash-exp": {"input": 0.625, "output": 2.50},
        "gemini-1.5-pro": {"input": 1.25, "output": 5.00},
        "gemini-1.5-flash": {"input": 0.625, "output": 2.50},
    },
    "openai": {
        "gpt-4o": {"input": 2.50, "output": 10.00},
        "gpt-4o-mini": {"input": 0.15, "output": 0.60},
        "gpt-4.1": {"input": 2.00, "output": 8.00},
        "gpt-4.1-mini": {"input": 0.40, "output": 1.60},
        "gpt-4-turbo": {"input": 10.00, "output": 30.00},
        "o3": {"input": 2.00, "output": 8.00},
        "o4-mini": {"input": 1.10, "output": 4.40},
    },
}

# Unknown models are billed at the most expensive known rate so cost limits stay conservative
DEFAULT_PRICING = {"input": 15.00, "output": 75.00}

TOKENS_PER_PRICING_UNIT = 1_000_000


def get_model_pricing(provider: str, model: str) -> Dict[str, float]:
    """
    Resolve the price table entry for a model.

    Exact name first, then the longest known model name the given model
    starts with (e.g. dated snapshots), then DEFAULT_PRICING with a warning.
    """
    provider_pricing = PRICING.get(provider, {})
    if model in provider_pricing:
        return provider_pricing[model]

    prefix_matches = [known for known in provider_pricing if model.startswith(known)]
    if prefix_matches:
        return provider_pricing[max(prefix_matches, key=len)]

    logger.warning(
        f"Unknown model pricing for {provider}/{model}. Using default pricing: "
        f"{DEFAULT_PRICING['input']}/{DEFAULT_PRICING['output']} per 1M tokens"
    )
    return DEFAULT_PRICING


def calculate_cost(provider: str, model: str, input_tokens: int, output_tokens: int) -> float:
    """
    Calculate cost for an LLM API call.

    Args:
        provider: 'anthropic', 'google' or 'openai'
        model: Model name
        input_tokens: Prompt tokens
        output_tokens: Completion tokens

    Returns:
        Cost in USD rounded to six decimal places
    """
    pricing = get_model_pricing(provider, model)
    input_cost = (input_tokens / TOKENS_PER_PRICING_UNIT) * pricing["input"]
    output_cost = (output_tokens / TOKENS_PER_PRICING_UNIT) * pricing["output"]
    return round(input_cost + output_cost, 6)


def calculate_cost_breakdown(provider: str, model: str, input_tokens: int, output_tokens: int) -> Dict[str, Any]:
    """Per-direction cost split, with the price entry used."""
    pricing = get_model_pricing(provider, model)
    input_cost = (input_tokens / TOKENS_PER_PRICING_UNIT) * pricing["input"]
    output_cost = (output_tokens / TOKENS_PER_PRICING_UNIT) * pricing["output"]
    return {
        "input_cost": round(input_cost, 6),
        "output_cost": round(output_cost, 6),
        "total_cost": round(input_cost + output_cost, 6),
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "total_tokens": input_tokens + output_tokens,
        "pricing": dict(pricing),
    }


def estimate_tokens(text: str) -> int:
    """Rough token estimate: four characters per token."""
    return math.ceil(len(text) / 4)


def estimate_cost(provider: str, model: str, estimated_input_tokens: int, estimated_output_tokens: int) -> float:
    return calculate_cost(provider, model, estimated_input_tokens, estimated_output_tokens)


def get_all_pricing() -> Dict[str, Dict[str, Dict[str, float]]]:
    return copy.deepcopy(PRICING)
