"""Tracing sink that writes spans into the tenant's event_logs table."""

from typing import Optional

from agentic_tools.logging.event_logger import log_event
from agentic_tools.tracing.base import InvocationTrace, LLMCallTrace, ToolCallTrace, TracingSink


def _latency_ms(trace) -> int:
    return int((trace.end_time - trace.start_time).total_seconds() * 1000)


class EventLogTracingSink(TracingSink):
    def __init__(self, tenant_id: str, request_id: Optional[str] = None, agentic_tool_id: Optional[str] = None):
        self.tenant_id = tenant_id
        self.request_id = request_id
        self.agentic_tool_id = agentic_tool_id

    async def _emit_llm_call(self, trace: LLMCallTrace) -> None:
        response = trace.response
        await log_event(
            tenant_id=self.tenant_id,
            event_type="llm_call",
            provider=response.provider,
            latency_ms=_latency_ms(trace),
            cost=response.cost,
            payload={
                "trace_id": trace.id,
                "purpose": trace.purpose,
                "model": response.model,
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
                "tool_calls": [call.name for call in response.tool_calls],
            },
            agentic_tool_id=self.agentic_tool_id,
            request_id=self.request_id,
        )

    async def _emit_tool_call(self, trace: ToolCallTrace) -> None:
        await log_event(
            tenant_id=self.tenant_id,
            event_type="tool_call",
            provider=trace.tool_name,
            status="failure" if trace.error else "success",
            latency_ms=_latency_ms(trace),
            payload={
                "trace_id": trace.id,
                "arguments": trace.input,
                # Errors are truncated to keep payloads small
                "error": trace.error[:200] if trace.error else None,
            },
            agentic_tool_id=self.agentic_tool_id,
            request_id=self.request_id,
        )

    async def _emit_invocation(self, trace: InvocationTrace) -> None:
        await log_event(
            tenant_id=self.tenant_id,
            event_type="agentic_tool_invocation",
            status="failure" if trace.error else "success",
            latency_ms=_latency_ms(trace),
            cost=trace.metadata.get("total_cost"),
            payload={"trace_id": trace.id, "name": trace.name, **trace.metadata},
            agentic_tool_id=self.agentic_tool_id,
            request_id=self.request_id,
        )
