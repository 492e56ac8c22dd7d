"""Langsmith run exporter."""

from typing import Any, Dict, Optional

import httpx

from agentic_tools.infra.config import config
from agentic_tools.tracing.base import InvocationTrace, LLMCallTrace, ToolCallTrace, TracingSink

LANGSMITH_TIMEOUT = 10.0


class LangsmithTracingSink(TracingSink):
    """Posts llm, tool and chain runs to the Langsmith /runs endpoint."""

    def __init__(
        self,
        api_key: str,
        endpoint: Optional[str] = None,
        parent_run_id: Optional[str] = None,
        trace_name: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.endpoint = (endpoint or config.LANGSMITH_ENDPOINT).rstrip("/")
        self.parent_run_id = parent_run_id
        self.trace_name = trace_name
        self._transport = transport

    async def _send_run(self, run: Dict[str, Any]) -> None:
        if self.parent_run_id:
            run["parent_run_id"] = self.parent_run_id
        async with httpx.AsyncClient(timeout=LANGSMITH_TIMEOUT, transport=self._transport) as client:
            response = await client.post(
                f"{self.endpoint}/runs",
                json=run,
                headers={"Content-Type": "application/json", "x-api-key": self.api_key},
            )
            response.raise_for_status()

    async def _emit_llm_call(self, trace: LLMCallTrace) -> None:
        response = trace.response
        await self._send_run({
            "id": trace.id,
            "name": trace.purpose,
            "run_type": "llm",
            "start_time": trace.start_time.isoformat(),
            "end_time": trace.end_time.isoformat(),
            "inputs": {"prompt": trace.prompt, "system_prompt": trace.system_prompt},
            "outputs": {"content": response.content, "raw_text": response.raw_text},
            "extra": {
                "metadata": {
                    "model": response.model,
                    "provider": response.provider,
                    "tokens": {
                        "input": response.usage.input_tokens,
                        "output": response.usage.output_tokens,
                        "total": response.usage.total_tokens,
                    },
                    "cost": response.cost,
                    "duration_ms": response.duration_ms,
                },
            },
        })

    async def _emit_tool_call(self, trace: ToolCallTrace) -> None:
        run = {
            "id": trace.id,
            "name": trace.tool_name,
            "run_type": "tool",
            "start_time": trace.start_time.isoformat(),
            "end_time": trace.end_time.isoformat(),
            "inputs": trace.input,
        }
        if trace.output is not None:
            run["outputs"] = {"result": trace.output}
        if trace.error:
            run["error"] = trace.error
        await self._send_run(run)

    async def _emit_invocation(self, trace: InvocationTrace) -> None:
        run = {
            "id": trace.id,
            "name": trace.name or self.trace_name or "agentic-tool-execution",
            "run_type": "chain",
            "start_time": trace.start_time.isoformat(),
            "end_time": trace.end_time.isoformat(),
            "inputs": trace.inputs,
            "extra": {"metadata": trace.metadata},
        }
        if trace.outputs is not None:
            run["outputs"] = trace.outputs
        if trace.error:
            run["error"] = trace.error
        await self._send_run(run)
