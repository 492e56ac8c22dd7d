"""Per-invocation accounting of LLM calls, action calls, cost and tokens."""

import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from agentic_tools.adapters.action_gateway import ActionGateway, GatewayResult
from agentic_tools.adapters.llm_client import LLMCallRequest, LLMCallResponse, LLMProvider
from agentic_tools.infra import metrics
from agentic_tools.infra.error_handler import AgenticToolError, ErrorCodes, SafetyLimitError
from agentic_tools.models.execution import LLMCallRecord, OrchestratorResult, ToolCallRecord
from agentic_tools.models.integration import ActionDefinition
from agentic_tools.services.safety_enforcer import SafetyEnforcer
from agentic_tools.tracing.base import LLMCallTrace, ToolCallTrace, TracingSink


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ExecutionTracker:
    """
    Accumulates everything one orchestrator run produces.

    Not shared between invocations: each run creates its own tracker next to
    its own SafetyEnforcer.
    """

    def __init__(self, safety: SafetyEnforcer, tracer: TracingSink, request_id: Optional[str] = None):
        self.safety = safety
        self.tracer = tracer
        self.request_id = request_id
        self.llm_calls: List[LLMCallRecord] = []
        self.tool_calls: List[ToolCallRecord] = []
        self.total_cost = 0.0
        self.total_tokens = 0

    async def call_llm(self, client: LLMProvider, request: LLMCallRequest, purpose: str) -> LLMCallResponse:
        """Make one LLM call, record it, accumulate usage and trace it."""
        started_at = _now()
        response = await client.call(request)

        self.llm_calls.append(LLMCallRecord(
            sequence=len(self.llm_calls) + 1,
            purpose=purpose,
            model=response.model,
            tokens_input=response.usage.input_tokens,
            tokens_output=response.usage.output_tokens,
            cost=response.cost,
            duration_ms=response.duration_ms,
            tool_calls=len(response.tool_calls),
        ))
        self.total_cost = round(self.total_cost + response.cost, 6)
        self.total_tokens += response.usage.total_tokens

        await self.tracer.log_llm_call(LLMCallTrace(
            id=str(uuid.uuid4()),
            purpose=purpose,
            prompt=request.prompt,
            system_prompt=request.system_prompt,
            response=response,
            start_time=started_at,
            end_time=_now(),
        ))
        return response

    async def invoke_action(
        self,
        gateway: ActionGateway,
        tenant_id: str,
        action: ActionDefinition,
        tool_name: str,
        parameters: Dict[str, Any],
        connection_id: Optional[str] = None,
    ) -> GatewayResult:
        """Invoke one action through the gateway, record it and trace it."""
        started_at = _now()
        start = time.time()
        result = await gateway.invoke_action(
            tenant_id,
            action.integration_slug,
            action.slug,
            parameters,
            connection_id=connection_id,
            request_id=self.request_id,
        )
        duration_ms = int((time.time() - start) * 1000)

        error_message = None if result.success else (result.error or {}).get("message", "Unknown error")
        self.record_tool_call(
            tool_name=tool_name,
            action_slug=action.slug,
            action_id=action.id,
            parameters=parameters,
            success=result.success,
            duration_ms=duration_ms,
            error=error_message,
        )
        metrics.record_tool_call(action.slug, result.success, duration_ms)

        await self.tracer.log_tool_call(ToolCallTrace(
            id=str(uuid.uuid4()),
            tool_name=tool_name,
            input=parameters,
            output=result.data if result.success else None,
            error=error_message,
            start_time=started_at,
            end_time=_now(),
        ))
        return result

    def record_tool_call(
        self,
        tool_name: str,
        action_slug: str,
        parameters: Dict[str, Any],
        success: bool,
        action_id: Optional[str] = None,
        duration_ms: Optional[int] = None,
        error: Optional[str] = None,
    ) -> None:
        self.tool_calls.append(ToolCallRecord(
            sequence=len(self.tool_calls) + 1,
            tool_name=tool_name,
            action_slug=action_slug,
            action_id=action_id,
            input=parameters,
            success=success,
            duration_ms=duration_ms,
            error=error,
        ))

    def success(self, data: Any) -> OrchestratorResult:
        return OrchestratorResult(success=True, data=data, **self._totals())

    def failure(self, error: Exception, extra_details: Optional[Dict[str, Any]] = None,
                message_override: Optional[str] = None) -> OrchestratorResult:
        """
        Convert any exception into a failed OrchestratorResult.

        AgenticToolError keeps its code; anything else becomes UNKNOWN_ERROR.
        Safety limit failures use the API error shape (limit, actual and the
        amount exceeded) and are flagged in the metadata. extra_details is
        merged over the error's own details.
        """
        if isinstance(error, SafetyLimitError):
            api_error = error.to_api_error()
            detail = {key: api_error[key] for key in ("code", "message", "details")}
        elif isinstance(error, AgenticToolError):
            detail = error.to_error_detail()
        else:
            detail = {
                "code": ErrorCodes.UNKNOWN_ERROR,
                "message": str(error) or "Unknown error occurred",
                "details": {"error": type(error).__name__},
            }
        if message_override is not None:
            detail["message"] = message_override
        if extra_details is not None:
            detail["details"] = {**(detail.get("details") or {}), **extra_details}

        result = OrchestratorResult(success=False, error=detail, **self._totals())
        if isinstance(error, SafetyLimitError):
            result.hit_safety_limit = True
            result.safety_limit_type = error.code
            metrics.safety_limit_hits_total.labels(limit=error.code).inc()
        return result

    def _totals(self) -> Dict[str, Any]:
        return {
            "llm_calls": self.llm_calls,
            "tool_calls": self.tool_calls,
            "total_cost": self.total_cost,
            "total_tokens": self.total_tokens,
            "duration_ms": self.safety.elapsed_ms(),
            "request_id": self.request_id,
        }
