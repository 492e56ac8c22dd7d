"""Prometheus metrics export."""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Invocation metrics
invocations_total = Counter(
    "agentic_tool_invocations_total",
    "Total agentic tool invocations",
    ["execution_mode", "status"],
)

invocation_duration = Histogram(
    "agentic_tool_invocation_duration_seconds",
    "Agentic tool invocation duration in seconds",
    ["execution_mode"],
)

# LLM metrics
llm_calls_total = Counter(
    "llm_calls_total",
    "Total LLM API calls",
    ["provider", "model", "status"],
)

llm_call_duration = Histogram(
    "llm_call_duration_seconds",
    "LLM API call duration in seconds",
    ["provider", "model"],
)

llm_tokens_total = Counter(
    "llm_tokens_total",
    "Total LLM tokens",
    ["provider", "model", "type"],  # type: input or output
)

llm_cost_total = Counter(
    "llm_cost_total",
    "Total LLM cost in USD",
    ["provider", "model"],
)

# Tool metrics
tool_calls_total = Counter(
    "tool_calls_total",
    "Total downstream action calls",
    ["tool_name", "status"],
)

tool_call_duration = Histogram(
    "tool_call_duration_seconds",
    "Downstream action call duration in seconds",
    ["tool_name"],
)

# Safety metrics
safety_limit_hits_total = Counter(
    "safety_limit_hits_total",
    "Invocations terminated by a safety limit",
    ["limit"],
)


def record_llm_call(provider: str, model: str, status: str, duration_ms: int = 0,
                    input_tokens: int = 0, output_tokens: int = 0, cost: float = 0.0) -> None:
    """Record one LLM call across the LLM metric families."""
    llm_calls_total.labels(provider=provider, model=model, status=status).inc()
    llm_call_duration.labels(provider=provider, model=model).observe(duration_ms / 1000.0)
    if input_tokens:
        llm_tokens_total.labels(provider=provider, model=model, type="input").inc(input_tokens)
    if output_tokens:
        llm_tokens_total.labels(provider=provider, model=model, type="output").inc(output_tokens)
    if cost:
        llm_cost_total.labels(provider=provider, model=model).inc(cost)


def record_tool_call(tool_name: str, success: bool, duration_ms: int = 0) -> None:
    """Record one downstream action call."""
    status = "success" if success else "failure"
    tool_calls_total.labels(tool_name=tool_name, status=status).inc()
    tool_call_duration.labels(tool_name=tool_name).observe(duration_ms / 1000.0)


def get_metrics_response() -> Response:
    """Get Prometheus metrics as HTTP response."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
