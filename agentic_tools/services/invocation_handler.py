"""
Invocation handler: the single public entry point of the engine.

Resolves the tool, rejects tools that may not run, dispatches to the
orchestrator for its execution mode, persists the execution record and
returns the normalized envelope. Nothing raised below this point reaches
the caller.
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Optional

from agentic_tools.infra import metrics
from agentic_tools.infra.error_handler import AgenticToolError, ErrorCodes, InvocationError
from agentic_tools.models.agentic_tool import AgenticTool
from agentic_tools.models.execution import InvocationMetadata, InvocationResult, OrchestratorResult
from agentic_tools.models.runtime import EngineContext
from agentic_tools.services.autonomous_agent import execute_autonomous_agent
from agentic_tools.services.parameter_interpreter import execute_parameter_interpreter
from agentic_tools.tracing.base import InvocationTrace

logger = logging.getLogger(__name__)


def execution_status(result: OrchestratorResult) -> str:
    """Status stored on the execution record."""
    if result.success:
        return "success"
    if result.error_code == ErrorCodes.TIMEOUT:
        return "timeout"
    return "error"


async def resolve_tool(ctx: EngineContext, tenant_id: str, tool_identifier: str) -> AgenticTool:
    """
    Load the tool and make sure it may be invoked.

    Raises:
        InvocationError: AGENTIC_TOOL_NOT_FOUND, AGENTIC_TOOL_DISABLED or INVALID_STATUS
    """
    tool = await ctx.repository.find_tool_by_id_or_slug(tenant_id, tool_identifier)
    if tool is None:
        raise InvocationError(
            ErrorCodes.AGENTIC_TOOL_NOT_FOUND,
            f"Agentic tool not found: {tool_identifier}",
        )
    if tool.status == "disabled":
        raise InvocationError(
            ErrorCodes.AGENTIC_TOOL_DISABLED,
            f"Agentic tool is disabled: {tool.slug}",
        )
    if tool.status == "draft":
        raise InvocationError(
            ErrorCodes.INVALID_STATUS,
            f"Agentic tool is in draft status and cannot be invoked: {tool.slug}",
            {"status": tool.status},
        )
    return tool


async def _persist_execution(
    ctx: EngineContext,
    tool: AgenticTool,
    tenant_id: str,
    task: str,
    result: OrchestratorResult,
    request_id: Optional[str],
) -> Optional[str]:
    try:
        return await ctx.repository.create_execution_record(
            agentic_tool_id=tool.id,
            tenant_id=tenant_id,
            parent_request={"task": task},
            llm_calls=result.llm_calls,
            tool_calls=result.tool_calls,
            result=result.data if result.success else None,
            status=execution_status(result),
            error=result.error,
            total_cost=result.total_cost,
            total_tokens=result.total_tokens,
            duration_ms=result.duration_ms,
            trace_id=request_id,
        )
    except Exception as e:
        # The caller still gets the outcome; only the audit row is lost
        logger.error(f"Failed to persist execution for {tool.slug}: {e}", exc_info=True)
        return None


async def invoke(
    ctx: EngineContext,
    tool_identifier: str,
    tenant_id: str,
    task: str,
    request_id: Optional[str] = None,
    connection_id: Optional[str] = None,
    log_execution: bool = True,
) -> InvocationResult:
    """
    Invoke an agentic tool with a natural-language task.

    Args:
        ctx: Repository, gateway, LLM factory and tracer
        tool_identifier: Tool UUID or slug, scoped to the tenant
        tenant_id: Invoking tenant
        task: Natural-language task
        request_id: Correlation ID; also stored as the execution trace id
        connection_id: Optional connection forwarded to the gateway
        log_execution: Persist an execution record when True

    Returns:
        InvocationResult envelope; never raises
    """
    start = time.time()
    started_at = datetime.now(timezone.utc)
    metadata = InvocationMetadata(request_id=request_id)
    tool: Optional[AgenticTool] = None

    try:
        tool = await resolve_tool(ctx, tenant_id, tool_identifier)
        metadata.agentic_tool_id = tool.id
        metadata.agentic_tool_slug = tool.slug
        metadata.execution_mode = tool.execution_mode

        logger.info(f"Invoking agentic tool {tool.slug} ({tool.execution_mode}) for tenant {tenant_id}")

        if tool.execution_mode == "parameter_interpreter":
            result = await execute_parameter_interpreter(
                ctx, tool, tenant_id, task, request_id=request_id, connection_id=connection_id
            )
        elif tool.execution_mode == "autonomous_agent":
            result = await execute_autonomous_agent(
                ctx, tool, tenant_id, task, request_id=request_id, connection_id=connection_id
            )
        else:
            raise InvocationError(
                ErrorCodes.INVALID_EXECUTION_MODE,
                f"Unsupported execution mode: {tool.execution_mode}",
            )

        metadata.llm_calls = len(result.llm_calls)
        metadata.tool_calls = len(result.tool_calls)
        metadata.total_cost = result.total_cost
        metadata.total_tokens = result.total_tokens
        metadata.duration_ms = result.duration_ms
        metadata.hit_safety_limit = result.hit_safety_limit
        metadata.safety_limit_type = result.safety_limit_type

        if log_execution:
            metadata.execution_id = await _persist_execution(ctx, tool, tenant_id, task, result, request_id)

        envelope = InvocationResult(
            success=result.success,
            metadata=metadata,
            data=result.data if result.success else None,
            error=result.error,
        )

    except AgenticToolError as e:
        logger.info(f"Invocation of {tool_identifier} rejected: {e.code}: {e.message}")
        metadata.duration_ms = int((time.time() - start) * 1000)
        envelope = InvocationResult(success=False, metadata=metadata, error=e.to_error_detail())
    except Exception as e:
        logger.error(f"Unexpected error invoking {tool_identifier}: {e}", exc_info=True)
        metadata.duration_ms = int((time.time() - start) * 1000)
        envelope = InvocationResult(
            success=False,
            metadata=metadata,
            error={
                "code": ErrorCodes.UNKNOWN_ERROR,
                "message": str(e) or "Unknown error occurred",
                "details": {"error": type(e).__name__},
            },
        )

    mode_label = metadata.execution_mode or "unknown"
    metrics.invocations_total.labels(
        execution_mode=mode_label,
        status="success" if envelope.success else "error",
    ).inc()
    metrics.invocation_duration.labels(execution_mode=mode_label).observe((time.time() - start))

    await ctx.tracer.log_invocation(InvocationTrace(
        id=str(uuid.uuid4()),
        name=tool.slug if tool else tool_identifier,
        inputs={"task": task},
        start_time=started_at,
        end_time=datetime.now(timezone.utc),
        outputs={"data": envelope.data} if envelope.success else None,
        error=envelope.error.get("message") if envelope.error else None,
        metadata={
            "agentic_tool_id": metadata.agentic_tool_id,
            "execution_mode": metadata.execution_mode,
            "llm_calls": metadata.llm_calls,
            "tool_calls": metadata.tool_calls,
            "total_cost": metadata.total_cost,
            "total_tokens": metadata.total_tokens,
        },
    ))
    return envelope
