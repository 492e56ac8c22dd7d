"""Tests for the invocation entry point."""

import json

import pytest
from unittest.mock import AsyncMock, patch

from agentic_tools.adapters.action_gateway import GatewayResult
from agentic_tools.infra.error_handler import ErrorCodes, InvocationError
from agentic_tools.models.agentic_tool import SafetyLimits
from agentic_tools.models.execution import OrchestratorResult
from agentic_tools.services.invocation_handler import execution_status, invoke, resolve_tool
from conftest import TENANT_ID, TOOL_ID, make_agent_tool, make_parameter_tool, text_turn, tool_turn

OTHER_TENANT_ID = "99999999-9999-9999-9999-999999999999"


def valid_params_turn():
    return text_turn(json.dumps({"parameters": {"channel": "#general", "text": "hi"}}))


class TestResolveTool:
    """Tool resolution and status gating."""

    @pytest.mark.asyncio
    async def test_by_id_and_slug(self, harness):
        """Test resolving a tool by UUID and by slug."""
        harness.repository.tools.append(make_parameter_tool())
        ctx = harness.context()
        assert (await resolve_tool(ctx, TENANT_ID, TOOL_ID)).slug == "slack-poster"
        assert (await resolve_tool(ctx, TENANT_ID, "slack-poster")).id == TOOL_ID

    @pytest.mark.asyncio
    async def test_scoped_to_tenant(self, harness):
        """Test that another tenant's tool is not found."""
        harness.repository.tools.append(make_parameter_tool())
        with pytest.raises(InvocationError) as exc_info:
            await resolve_tool(harness.context(), OTHER_TENANT_ID, "slack-poster")
        assert exc_info.value.code == ErrorCodes.AGENTIC_TOOL_NOT_FOUND

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,code", [
        ("disabled", ErrorCodes.AGENTIC_TOOL_DISABLED),
        ("draft", ErrorCodes.INVALID_STATUS),
    ])
    async def test_rejects_non_active(self, harness, status, code):
        """Test that disabled and draft tools are rejected."""
        harness.repository.tools.append(make_parameter_tool(status=status))
        with pytest.raises(InvocationError) as exc_info:
            await resolve_tool(harness.context(), TENANT_ID, "slack-poster")
        assert exc_info.value.code == code


class TestExecutionStatus:
    def test_statuses(self):
        """Test mapping results to execution record statuses."""
        assert execution_status(OrchestratorResult(success=True)) == "success"
        assert execution_status(OrchestratorResult(success=False, error={"code": "TIMEOUT"})) == "timeout"
        assert execution_status(OrchestratorResult(success=False, error={"code": "MAX_COST_EXCEEDED"})) == "error"


class TestInvoke:
    """End-to-end through the handler with in-memory collaborators."""

    @pytest.mark.asyncio
    async def test_unknown_tool(self, harness):
        """Test that an unknown tool fails without a record."""
        result = await invoke(harness.context(), "does-not-exist", TENANT_ID, "say hi")

        assert result.success is False
        assert result.error["code"] == "AGENTIC_TOOL_NOT_FOUND"
        assert result.metadata.llm_calls == 0
        assert result.metadata.execution_mode is None
        assert harness.repository.executions == []

    @pytest.mark.asyncio
    async def test_disabled_tool_never_calls_llm(self, harness):
        """Test that a disabled tool never builds an LLM client."""
        harness.repository.tools.append(make_parameter_tool(status="disabled"))

        result = await invoke(harness.context(), "slack-poster", TENANT_ID, "say hi")

        assert result.error["code"] == "AGENTIC_TOOL_DISABLED"
        assert harness.providers_created == 0
        assert harness.gateway.calls == []

    @pytest.mark.asyncio
    async def test_draft_tool_rejected(self, harness):
        """Test that a draft tool is rejected."""
        harness.repository.tools.append(make_parameter_tool(status="draft"))
        result = await invoke(harness.context(), "slack-poster", TENANT_ID, "say hi")
        assert result.error["code"] == "INVALID_STATUS"
        assert harness.providers_created == 0

    @pytest.mark.asyncio
    async def test_parameter_interpreter_success(self, harness):
        """Test the metadata of a successful parameter interpreter run."""
        harness.repository.tools.append(make_parameter_tool())
        harness.script(valid_params_turn())
        harness.gateway.results["post_message"] = GatewayResult(success=True, data={"ts": "1"})

        result = await invoke(harness.context(), "slack-poster", TENANT_ID, "say hi", request_id="req-1")

        assert result.success is True
        assert result.data == {"ts": "1"}
        metadata = result.metadata
        assert metadata.agentic_tool_id == TOOL_ID
        assert metadata.agentic_tool_slug == "slack-poster"
        assert metadata.execution_mode == "parameter_interpreter"
        assert metadata.llm_calls == 1
        assert metadata.tool_calls == 1
        assert metadata.total_tokens == 150
        assert metadata.request_id == "req-1"
        assert metadata.execution_id == "execution-1"

    @pytest.mark.asyncio
    async def test_execution_record(self, harness):
        """Test the persisted execution record."""
        harness.repository.tools.append(make_parameter_tool())
        harness.script(valid_params_turn())

        await invoke(harness.context(), "slack-poster", TENANT_ID, "say hi", request_id="req-1")

        record = harness.repository.executions[0]
        assert record["agentic_tool_id"] == TOOL_ID
        assert record["tenant_id"] == TENANT_ID
        assert record["parent_request"] == {"task": "say hi"}
        assert record["status"] == "success"
        assert record["result"] == {"ok": True}
        assert record["error"] is None
        assert record["trace_id"] == "req-1"
        assert len(record["llm_calls"]) == 1
        assert len(record["tool_calls"]) == 1

    @pytest.mark.asyncio
    async def test_log_execution_false(self, harness):
        """Test that log_execution=False skips persistence."""
        harness.repository.tools.append(make_parameter_tool())
        harness.script(valid_params_turn())

        result = await invoke(harness.context(), "slack-poster", TENANT_ID, "say hi", log_execution=False)

        assert result.success is True
        assert result.metadata.execution_id is None
        assert harness.repository.executions == []

    @pytest.mark.asyncio
    async def test_persist_failure_does_not_change_outcome(self, harness):
        """Test that a failed insert still returns the result."""
        harness.repository.tools.append(make_parameter_tool())
        harness.repository.fail_on_persist = True
        harness.script(valid_params_turn())

        result = await invoke(harness.context(), "slack-poster", TENANT_ID, "say hi")

        assert result.success is True
        assert result.metadata.execution_id is None

    @pytest.mark.asyncio
    async def test_timeout_recorded_as_timeout_status(self, harness):
        """Test that a timeout is recorded with timeout status."""
        tool = make_agent_tool(safety_limits=SafetyLimits(timeout_seconds=30))
        harness.repository.tools.append(tool)
        harness.script(tool_turn("list_channels", {}), on_call=lambda: harness.clock.advance(31))

        result = await invoke(harness.context(), "slack-agent", TENANT_ID, "go")

        assert result.error["code"] == "TIMEOUT"
        assert result.metadata.hit_safety_limit is True
        assert result.metadata.safety_limit_type == "TIMEOUT"
        assert harness.repository.executions[0]["status"] == "timeout"

    @pytest.mark.asyncio
    async def test_autonomous_agent_dispatch(self, harness):
        """Test dispatch to the autonomous agent."""
        harness.repository.tools.append(make_agent_tool())
        harness.script(text_turn("All good."))

        result = await invoke(harness.context(), "slack-agent", TENANT_ID, "check")

        assert result.success is True
        assert result.data == "All good."
        assert result.metadata.execution_mode == "autonomous_agent"
        assert result.metadata.tool_calls == 0

    @pytest.mark.asyncio
    async def test_orchestrator_failure_is_enveloped(self, harness):
        """Test that an orchestrator failure is returned as an envelope and recorded."""
        harness.repository.tools.append(make_parameter_tool())
        harness.script(text_turn(json.dumps({"parameters": {"channel": "#general"}})))

        result = await invoke(harness.context(), "slack-poster", TENANT_ID, "say hi")

        assert result.success is False
        assert result.data is None
        assert result.error["code"] == "INVALID_GENERATED_PARAMETERS"
        assert harness.repository.executions[0]["status"] == "error"
        assert harness.repository.executions[0]["result"] is None

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_enveloped(self, harness):
        """Test that an unexpected exception becomes UNKNOWN_ERROR."""
        harness.repository.find_tool_by_id_or_slug = AsyncMock(side_effect=RuntimeError("db down"))

        result = await invoke(harness.context(), "slack-poster", TENANT_ID, "say hi")

        assert result.success is False
        assert result.error == {
            "code": "UNKNOWN_ERROR",
            "message": "db down",
            "details": {"error": "RuntimeError"},
        }

    @pytest.mark.asyncio
    async def test_unexpected_orchestrator_crash_is_enveloped(self, harness):
        """Test that an orchestrator crash keeps the tool metadata."""
        harness.repository.tools.append(make_parameter_tool())
        with patch(
            "agentic_tools.services.invocation_handler.execute_parameter_interpreter",
            new=AsyncMock(side_effect=KeyError("boom")),
        ):
            result = await invoke(harness.context(), "slack-poster", TENANT_ID, "say hi")

        assert result.error["code"] == "UNKNOWN_ERROR"
        assert result.metadata.agentic_tool_id == TOOL_ID

    @pytest.mark.asyncio
    async def test_invocation_is_traced(self, harness):
        """Test that every span reaches the tracer."""
        harness.repository.tools.append(make_parameter_tool())
        harness.script(valid_params_turn())

        await invoke(harness.context(), "slack-poster", TENANT_ID, "say hi")

        assert len(harness.tracer.llm_calls) == 1
        assert len(harness.tracer.tool_calls) == 1
        trace = harness.tracer.invocations[0]
        assert trace.name == "slack-poster"
        assert trace.inputs == {"task": "say hi"}
        assert trace.error is None
        assert trace.metadata["llm_calls"] == 1

    @pytest.mark.asyncio
    async def test_tracer_failure_does_not_change_outcome(self, harness):
        """Test that tracer failures are swallowed."""
        harness.repository.tools.append(make_parameter_tool())
        harness.script(valid_params_turn())
        harness.tracer._emit_llm_call = AsyncMock(side_effect=RuntimeError("langsmith down"))
        harness.tracer._emit_invocation = AsyncMock(side_effect=RuntimeError("langsmith down"))

        result = await invoke(harness.context(), "slack-poster", TENANT_ID, "say hi")

        assert result.success is True

    @pytest.mark.asyncio
    async def test_to_dict_envelope(self, harness):
        """Test the serialized response envelope."""
        result = await invoke(harness.context(), "missing", TENANT_ID, "say hi", request_id="req-2")
        body = result.to_dict()
        assert body["success"] is False
        assert "data" not in body
        assert body["error"]["code"] == "AGENTIC_TOOL_NOT_FOUND"
        assert body["metadata"]["request_id"] == "req-2"
        assert body["metadata"]["llm_calls"] == 0
