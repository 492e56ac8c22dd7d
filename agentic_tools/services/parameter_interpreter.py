"""
Parameter interpreter orchestrator.

One LLM call turns the task into a `parameters` object, which is validated
against the first target action's input schema and then passed unchanged to
every target action in order. The first failing action aborts the rest.
"""

import logging
from typing import Any, Dict, List, Optional

from jsonschema import Draft7Validator

from agentic_tools.adapters.llm_client import LLMCallRequest
from agentic_tools.infra.error_handler import AgenticToolError, ErrorCodes, ParameterInterpreterError
from agentic_tools.models.agentic_tool import AgenticTool, ParameterInterpreterAllocation
from agentic_tools.models.execution import OrchestratorResult
from agentic_tools.models.integration import ActionDefinition
from agentic_tools.models.runtime import EngineContext
from agentic_tools.services.context_builder import build_context
from agentic_tools.services.execution_tracker import ExecutionTracker
from agentic_tools.services.prompt_processor import process_prompt
from agentic_tools.services.safety_enforcer import SafetyEnforcer

logger = logging.getLogger(__name__)

PURPOSE_PARAMETER_GENERATION = "parameter_generation"


def validate_parameters(schema: Dict[str, Any], parameters: Dict[str, Any]) -> List[str]:
    """
    Validate generated parameters against a JSON schema.

    Returns:
        Human-readable error messages, empty when valid
    """
    if not schema:
        return []
    validator = Draft7Validator(schema)
    errors = []
    for error in sorted(validator.iter_errors(parameters), key=lambda e: list(e.path)):
        location = "/".join(str(part) for part in error.path)
        errors.append(f"{location}: {error.message}" if location else error.message)
    return errors


def extract_generated_parameters(content: Any) -> Dict[str, Any]:
    """
    Pull the `parameters` object out of the decoded LLM output.

    Raises:
        ParameterInterpreterError: INVALID_LLM_OUTPUT when it is absent or not an object
    """
    parameters = content.get("parameters") if isinstance(content, dict) else None
    if not isinstance(parameters, dict):
        raise ParameterInterpreterError(
            ErrorCodes.INVALID_LLM_OUTPUT,
            "LLM output must be a JSON object with a 'parameters' object",
            {"received_type": type(parameters if isinstance(content, dict) else content).__name__},
        )
    return parameters


async def execute_parameter_interpreter(
    ctx: EngineContext,
    tool: AgenticTool,
    tenant_id: str,
    user_input: str,
    request_id: Optional[str] = None,
    connection_id: Optional[str] = None,
) -> OrchestratorResult:
    """
    Run a parameter interpreter tool.

    Args:
        ctx: Repository, gateway, LLM factory and tracer
        tool: Tool configuration (allocation must be parameter_interpreter)
        tenant_id: Invoking tenant
        user_input: Natural-language task
        request_id: Optional request ID forwarded to the gateway
        connection_id: Optional connection ID forwarded to the gateway

    Returns:
        OrchestratorResult; never raises
    """
    safety = SafetyEnforcer(tool.safety_limits, clock=ctx.clock)
    tracker = ExecutionTracker(safety, ctx.tracer, request_id)

    try:
        allocation = tool.tool_allocation
        if not isinstance(allocation, ParameterInterpreterAllocation):
            raise ParameterInterpreterError(
                ErrorCodes.INVALID_EXECUTION_MODE,
                f"Expected parameter_interpreter mode, got {allocation.mode}",
            )
        target_actions = allocation.target_actions
        if not target_actions:
            raise ParameterInterpreterError(
                ErrorCodes.NO_TARGET_ACTIONS,
                "No target actions configured for parameter interpreter",
            )

        prompt_context = await build_context(
            ctx.repository,
            tenant_id,
            user_input,
            context_config=tool.context_config,
            action_ids=[target.action_id for target in target_actions],
        )
        prompt = process_prompt(tool.system_prompt, prompt_context)
        if prompt.missing_variables:
            logger.warning(
                f"Missing prompt variables for {tool.slug}: {', '.join(prompt.missing_variables)}"
            )

        llm_client = ctx.llm_factory.create(tool.embedded_llm_config)

        safety.check_timeout()
        safety.check_cost_limit(tracker.total_cost)
        response = await tracker.call_llm(
            llm_client,
            LLMCallRequest(
                prompt=user_input,
                system_prompt=prompt.processed_prompt,
                temperature=tool.embedded_llm_config.temperature,
                max_tokens=tool.embedded_llm_config.max_tokens,
                response_format="json",
            ),
            PURPOSE_PARAMETER_GENERATION,
        )
        safety.check_cost_limit(tracker.total_cost)

        parameters = extract_generated_parameters(response.content)

        # Targets are assumed to share a compatible schema; only the first is checked
        actions: Dict[str, ActionDefinition] = {}
        first_target = target_actions[0]
        first_action = await _require_action(ctx, tenant_id, first_target.action_id, first_target.action_slug)
        actions[first_target.action_id] = first_action

        validation_errors = validate_parameters(first_action.input_schema, parameters)
        if validation_errors:
            raise ParameterInterpreterError(
                ErrorCodes.INVALID_GENERATED_PARAMETERS,
                "LLM generated invalid parameters",
                {"validation_errors": [{"action_slug": first_target.action_slug, "errors": validation_errors}]},
            )

        results = []
        for target in target_actions:
            safety.check_timeout()
            action = actions.get(target.action_id)
            if action is None:
                action = await _require_action(ctx, tenant_id, target.action_id, target.action_slug)
                actions[target.action_id] = action

            try:
                result = await tracker.invoke_action(
                    ctx.gateway,
                    tenant_id,
                    action,
                    tool_name=target.action_slug,
                    parameters=parameters,
                    connection_id=connection_id,
                )
            except Exception as e:
                message = str(e) or type(e).__name__
                tracker.record_tool_call(
                    tool_name=target.action_slug,
                    action_slug=action.slug,
                    action_id=action.id,
                    parameters=parameters,
                    success=False,
                    error=message,
                )
                raise ParameterInterpreterError(
                    ErrorCodes.ACTION_EXECUTION_FAILED,
                    f"Action execution failed: {message}",
                    {"action_slug": target.action_slug, "error": {"message": message}},
                ) from e
            if not result.success:
                message = (result.error or {}).get("message", "Unknown error")
                raise ParameterInterpreterError(
                    ErrorCodes.ACTION_EXECUTION_FAILED,
                    f"Action execution failed: {message}",
                    {"action_slug": target.action_slug, "error": result.error},
                )
            results.append({"action_slug": target.action_slug, "data": result.data})

        data = results[0]["data"] if len(results) == 1 else results
        return tracker.success(data)

    except AgenticToolError as e:
        logger.info(f"Parameter interpreter {tool.slug} failed: {e.code}: {e.message}")
        return tracker.failure(e)
    except Exception as e:
        logger.error(f"Unexpected error in parameter interpreter {tool.slug}: {e}", exc_info=True)
        return tracker.failure(e)


async def _require_action(ctx: EngineContext, tenant_id: str, action_id: str, action_slug: str) -> ActionDefinition:
    action = await ctx.repository.find_action(tenant_id, action_id)
    if action is None:
        raise ParameterInterpreterError(
            ErrorCodes.ACTION_NOT_FOUND,
            f"Action not found: {action_slug} ({action_id})",
        )
    return action
