"""
Autonomous agent orchestrator.

A loop bounded only by the safety limits: the model sees the conversation so
far plus a tool menu, may request tool calls (executed one at a time, in
order, with failures fed back as tool turns), and finishes by answering
without tool calls. Hitting a limit returns a failure that carries the
partial conversation for diagnosis.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from agentic_tools.adapters.llm_client import LLMCallRequest, LLMTool, LLMToolCall
from agentic_tools.infra.error_handler import (
    AgenticToolError,
    AutonomousAgentError,
    ErrorCodes,
    LLMProviderError,
    SafetyLimitError,
)
from agentic_tools.models.agentic_tool import AgenticTool, AutonomousAgentAllocation, AvailableTool
from agentic_tools.models.execution import OrchestratorResult
from agentic_tools.models.integration import ActionDefinition
from agentic_tools.models.runtime import EngineContext
from agentic_tools.services.context_builder import build_context
from agentic_tools.services.execution_tracker import ExecutionTracker
from agentic_tools.services.prompt_processor import process_prompt
from agentic_tools.services.safety_enforcer import SafetyEnforcer

logger = logging.getLogger(__name__)

PURPOSE_INITIAL_PLANNING = "initial_planning"
PURPOSE_CONTINUATION = "continuation"


@dataclass
class ConversationTurn:
    role: str  # "user" | "assistant" | "tool"
    content: str
    tool_call_id: Optional[str] = None
    tool_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        turn = {"role": self.role, "content": self.content}
        if self.tool_call_id is not None:
            turn["tool_call_id"] = self.tool_call_id
        if self.tool_name is not None:
            turn["tool_name"] = self.tool_name
        return turn


@dataclass
class AgentLoopState:
    iteration: int = 0
    tool_call_count: int = 0
    conversation: List[ConversationTurn] = field(default_factory=list)


def render_transcript(conversation: List[ConversationTurn]) -> str:
    """Render the conversation as User/Assistant/Tool turns separated by blank lines."""
    rendered = []
    for turn in conversation:
        if turn.role == "user":
            rendered.append(f"User: {turn.content}")
        elif turn.role == "assistant":
            rendered.append(f"Assistant: {turn.content}")
        elif turn.role == "tool":
            rendered.append(f"Tool ({turn.tool_name}): {turn.content}")
    return "\n\n".join(rendered)


async def build_llm_tools(
    ctx: EngineContext,
    tenant_id: str,
    available_tools: List[AvailableTool],
) -> Dict[str, ActionDefinition]:
    """Resolve each available tool's action; unknown actions are skipped with a warning."""
    actions: Dict[str, ActionDefinition] = {}
    for tool in available_tools:
        action = await ctx.repository.find_action(tenant_id, tool.action_id)
        if action is None:
            logger.warning(f"Action not found for tool {tool.action_slug}: {tool.action_id}")
            continue
        actions[tool.action_slug] = action
    return actions


def _tool_menu(available_tools: List[AvailableTool], actions: Dict[str, ActionDefinition]) -> List[LLMTool]:
    return [
        LLMTool(
            name=tool.action_slug,
            description=tool.description,
            input_schema=actions[tool.action_slug].input_schema,
        )
        for tool in available_tools
        if tool.action_slug in actions
    ]


def _partial_result(
    tracker: ExecutionTracker,
    state: AgentLoopState,
    error: AgenticToolError,
) -> OrchestratorResult:
    partial_results = {
        "iterations_completed": state.iteration,
        "tool_calls_made": state.tool_call_count,
        "conversation_history": [turn.to_dict() for turn in state.conversation],
    }
    return tracker.failure(
        error,
        extra_details={"partial_results": partial_results},
        message_override=f"{error.message}. Partial results available.",
    )


async def _execute_tool_call(
    ctx: EngineContext,
    tracker: ExecutionTracker,
    tenant_id: str,
    tool_call: LLMToolCall,
    tools_by_slug: Dict[str, AvailableTool],
    actions: Dict[str, ActionDefinition],
    connection_id: Optional[str],
) -> str:
    """
    Run one requested tool call and return the tool-turn content.

    Lookup and gateway failures are returned as JSON error content for the
    model to react to; they do not end the loop.
    """
    tool_config = tools_by_slug.get(tool_call.name)
    action = actions.get(tool_call.name)
    if tool_config is None or action is None:
        if tool_config is None:
            error = AutonomousAgentError(
                ErrorCodes.TOOL_NOT_FOUND,
                f"Tool not found in available tools: {tool_call.name}",
            )
        else:
            error = AutonomousAgentError(
                ErrorCodes.ACTION_NOT_FOUND,
                f"Action not found: {tool_config.action_id}",
            )
        tracker.record_tool_call(
            tool_name=tool_call.name,
            action_slug=tool_call.name,
            parameters=tool_call.input,
            success=False,
            duration_ms=0,
            error=error.message,
        )
        return json.dumps({"error": error.message, "code": error.code})

    try:
        result = await tracker.invoke_action(
            ctx.gateway,
            tenant_id,
            action,
            tool_name=tool_call.name,
            parameters=tool_call.input,
            connection_id=connection_id,
        )
    except Exception as e:
        logger.warning(f"Tool call {tool_call.name} raised: {e}")
        tracker.record_tool_call(
            tool_name=tool_call.name,
            action_slug=action.slug,
            action_id=action.id,
            parameters=tool_call.input,
            success=False,
            error=str(e) or type(e).__name__,
        )
        return json.dumps({"error": str(e) or type(e).__name__})
    return json.dumps(result.data if result.success else result.error, default=str)


async def execute_autonomous_agent(
    ctx: EngineContext,
    tool: AgenticTool,
    tenant_id: str,
    user_input: str,
    request_id: Optional[str] = None,
    connection_id: Optional[str] = None,
) -> OrchestratorResult:
    """
    Run an autonomous agent tool.

    Before every iteration the timeout, cost and tool-call limits are
    checked; the tool-call limit and timeout are re-checked before each
    individual tool call, and the cost limit right after each LLM response.

    Args:
        ctx: Repository, gateway, LLM factory and tracer
        tool: Tool configuration (allocation must be autonomous_agent)
        tenant_id: Invoking tenant
        user_input: Natural-language task
        request_id: Optional request ID forwarded to the gateway
        connection_id: Optional connection ID forwarded to the gateway

    Returns:
        OrchestratorResult; never raises
    """
    safety = SafetyEnforcer(tool.safety_limits, clock=ctx.clock)
    tracker = ExecutionTracker(safety, ctx.tracer, request_id)
    state = AgentLoopState(conversation=[ConversationTurn(role="user", content=user_input)])

    try:
        allocation = tool.tool_allocation
        if not isinstance(allocation, AutonomousAgentAllocation):
            raise AutonomousAgentError(
                ErrorCodes.INVALID_EXECUTION_MODE,
                f"Expected autonomous_agent mode, got {allocation.mode}",
            )
        available_tools = allocation.available_tools
        if not available_tools:
            raise AutonomousAgentError(
                ErrorCodes.NO_AVAILABLE_TOOLS,
                "No available tools configured for autonomous agent",
            )

        prompt_context = await build_context(
            ctx.repository,
            tenant_id,
            user_input,
            context_config=tool.context_config,
            available_tools=available_tools,
            action_ids=[t.action_id for t in available_tools],
        )
        prompt = process_prompt(tool.system_prompt, prompt_context)
        if prompt.missing_variables:
            logger.warning(
                f"Missing prompt variables for {tool.slug}: {', '.join(prompt.missing_variables)}"
            )

        actions = await build_llm_tools(ctx, tenant_id, available_tools)
        llm_tools = _tool_menu(available_tools, actions)
        tools_by_slug = {t.action_slug: t for t in available_tools}
        llm_client = ctx.llm_factory.create(tool.embedded_llm_config)
    except AgenticToolError as e:
        return tracker.failure(e)
    except Exception as e:
        logger.error(f"Unexpected error preparing autonomous agent {tool.slug}: {e}", exc_info=True)
        return tracker.failure(e)

    try:
        while True:
            safety.check_all(state.tool_call_count, tracker.total_cost)
            state.iteration += 1

            purpose = PURPOSE_INITIAL_PLANNING if state.iteration == 1 else PURPOSE_CONTINUATION
            response = await tracker.call_llm(
                llm_client,
                LLMCallRequest(
                    prompt=render_transcript(state.conversation),
                    system_prompt=prompt.processed_prompt,
                    temperature=tool.embedded_llm_config.temperature,
                    max_tokens=tool.embedded_llm_config.max_tokens,
                    tools=llm_tools,
                ),
                purpose,
            )
            state.conversation.append(ConversationTurn(role="assistant", content=response.raw_text))
            safety.check_cost_limit(tracker.total_cost)

            if not response.tool_calls:
                logger.info(
                    f"Autonomous agent {tool.slug} finished after {state.iteration} iterations "
                    f"and {state.tool_call_count} tool calls"
                )
                return tracker.success(response.content)

            for tool_call in response.tool_calls:
                safety.check_timeout()
                safety.check_tool_call_limit(state.tool_call_count)
                state.tool_call_count += 1

                content = await _execute_tool_call(
                    ctx, tracker, tenant_id, tool_call, tools_by_slug, actions, connection_id
                )
                state.conversation.append(ConversationTurn(
                    role="tool",
                    content=content,
                    tool_call_id=tool_call.id,
                    tool_name=tool_call.name,
                ))

    except SafetyLimitError as e:
        logger.warning(
            f"Autonomous agent {tool.slug} stopped by safety limit {e.code} "
            f"(limit={e.limit}, actual={e.actual})"
        )
        return _partial_result(tracker, state, e)
    except LLMProviderError as e:
        logger.error(f"LLM provider failure in autonomous agent {tool.slug}: {e.message}")
        return _partial_result(tracker, state, e)
    except AgenticToolError as e:
        return tracker.failure(e)
    except Exception as e:
        logger.error(f"Unexpected error in autonomous agent {tool.slug}: {e}", exc_info=True)
        return tracker.failure(e)
