"""Pytest configuration and fixtures."""

import os
from typing import Any, Dict, List, Optional

import pytest
from dotenv import load_dotenv

# Load test environment variables
load_dotenv()

# Set test environment
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")

from agentic_tools.adapters.action_gateway import ActionGateway, GatewayResult  # noqa: E402
from agentic_tools.adapters.llm_client import (  # noqa: E402
    LLMCallRequest,
    LLMClientFactory,
    LLMProvider,
    LLMToolCall,
    LLMUsage,
)
from agentic_tools.models.agentic_tool import (  # noqa: E402
    AgenticTool,
    AutonomousAgentAllocation,
    AvailableTool,
    EmbeddedLLMConfig,
    ParameterInterpreterAllocation,
    SafetyLimits,
    TargetAction,
)
from agentic_tools.models.integration import ActionDefinition, IntegrationSchema  # noqa: E402
from agentic_tools.models.runtime import EngineContext  # noqa: E402
from agentic_tools.services.agentic_tool_repository import AgenticToolRepository  # noqa: E402
from agentic_tools.tracing.base import TracingSink  # noqa: E402

TENANT_ID = "11111111-1111-1111-1111-111111111111"
TOOL_ID = "22222222-2222-2222-2222-222222222222"
INTEGRATION_ID = "33333333-3333-3333-3333-333333333333"
POST_MESSAGE_ACTION_ID = "44444444-4444-4444-4444-444444444444"
LIST_CHANNELS_ACTION_ID = "55555555-5555-5555-5555-555555555555"

POST_MESSAGE_SCHEMA = {
    "type": "object",
    "properties": {
        "channel": {"type": "string"},
        "text": {"type": "string"},
    },
    "required": ["channel", "text"],
}


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRepository(AgenticToolRepository):
    """In-memory repository keyed the same way the SQL one is."""

    def __init__(self):
        self.tools: List[AgenticTool] = []
        self.actions: Dict[str, ActionDefinition] = {}
        self.schemas: Dict[str, IntegrationSchema] = {}
        self.reference_data: Dict[str, list] = {}
        self.executions: List[Dict[str, Any]] = []
        self.fail_on_persist = False

    async def find_tool_by_id_or_slug(self, tenant_id: str, identifier: str) -> Optional[AgenticTool]:
        for tool in self.tools:
            if tool.tenant_id == tenant_id and identifier in (tool.id, tool.slug):
                return tool
        return None

    async def find_action(self, tenant_id: str, action_id: str) -> Optional[ActionDefinition]:
        return self.actions.get(action_id)

    async def load_integration_schema(self, tenant_id: str, integration_id: str) -> Optional[IntegrationSchema]:
        return self.schemas.get(integration_id)

    async def load_reference_data(self, tenant_id: str, data_type: str, limit: int = 500):
        return self.reference_data.get(data_type, [])[:limit]

    async def create_execution_record(self, **kwargs) -> str:
        if self.fail_on_persist:
            raise RuntimeError("database unavailable")
        self.executions.append(kwargs)
        return f"execution-{len(self.executions)}"


class FakeGateway(ActionGateway):
    """Returns canned results per action slug and records every call."""

    def __init__(self):
        self.results: Dict[str, GatewayResult] = {}
        self.calls: List[Dict[str, Any]] = []

    async def invoke_action(self, tenant_id, integration_slug, action_slug, parameters,
                            connection_id=None, request_id=None) -> GatewayResult:
        self.calls.append({
            "tenant_id": tenant_id,
            "integration_slug": integration_slug,
            "action_slug": action_slug,
            "parameters": parameters,
            "connection_id": connection_id,
            "request_id": request_id,
        })
        return self.results.get(action_slug, GatewayResult(success=True, data={"ok": True}))


class ScriptedLLMProvider(LLMProvider):
    """
    Replays scripted turns through the real LLMProvider.call() path.

    Each step is (raw_text, tool_calls, usage) or an exception to raise. The
    last step repeats once the script runs out. on_call, when set, runs
    before each turn (e.g. to advance a FakeClock).
    """

    provider_name = "anthropic"
    api_key_env = "ANTHROPIC_API_KEY"

    def __init__(self, llm_config: EmbeddedLLMConfig, steps: list, on_call=None):
        super().__init__(llm_config, api_key="test-key")
        self.steps = list(steps)
        self.on_call = on_call
        self.requests: List[LLMCallRequest] = []

    async def _complete(self, request: LLMCallRequest):
        self.requests.append(request)
        if self.on_call:
            self.on_call()
        step = self.steps.pop(0) if len(self.steps) > 1 else self.steps[0]
        if isinstance(step, Exception):
            raise step
        return step


class RecordingTracer(TracingSink):
    def __init__(self):
        self.llm_calls = []
        self.tool_calls = []
        self.invocations = []

    async def _emit_llm_call(self, trace):
        self.llm_calls.append(trace)

    async def _emit_tool_call(self, trace):
        self.tool_calls.append(trace)

    async def _emit_invocation(self, trace):
        self.invocations.append(trace)


def text_turn(text: str, input_tokens: int = 100, output_tokens: int = 50):
    return text, [], LLMUsage(input_tokens, output_tokens, input_tokens + output_tokens)


def tool_turn(name: str, arguments: Dict[str, Any], call_id: str = "call-1",
              input_tokens: int = 100, output_tokens: int = 50):
    return (
        "",
        [LLMToolCall(id=call_id, name=name, input=arguments)],
        LLMUsage(input_tokens, output_tokens, input_tokens + output_tokens),
    )


def make_action(action_id: str = POST_MESSAGE_ACTION_ID, slug: str = "post_message",
                input_schema: Optional[Dict[str, Any]] = None) -> ActionDefinition:
    return ActionDefinition(
        id=action_id,
        slug=slug,
        name=slug.replace("_", " ").title(),
        description=f"{slug} action",
        http_method="POST",
        endpoint_template=f"/{slug}",
        integration_id=INTEGRATION_ID,
        integration_slug="slack",
        input_schema=POST_MESSAGE_SCHEMA if input_schema is None else input_schema,
    )


def make_parameter_tool(**overrides) -> AgenticTool:
    fields = {
        "id": TOOL_ID,
        "tenant_id": TENANT_ID,
        "name": "Slack Poster",
        "slug": "slack-poster",
        "execution_mode": "parameter_interpreter",
        "embedded_llm_config": EmbeddedLLMConfig(provider="anthropic", model="claude-sonnet-4.5"),
        "system_prompt": "Generate Slack parameters.\n\n{{integration_schema}}",
        "tool_allocation": ParameterInterpreterAllocation(
            target_actions=[TargetAction(action_id=POST_MESSAGE_ACTION_ID, action_slug="post_message")]
        ),
        "status": "active",
    }
    fields.update(overrides)
    return AgenticTool(**fields)


def make_agent_tool(**overrides) -> AgenticTool:
    fields = {
        "id": TOOL_ID,
        "tenant_id": TENANT_ID,
        "name": "Slack Agent",
        "slug": "slack-agent",
        "execution_mode": "autonomous_agent",
        "embedded_llm_config": EmbeddedLLMConfig(provider="anthropic", model="claude-sonnet-4.5"),
        "system_prompt": "You manage Slack.\n\nTools:\n{{available_tools}}",
        "tool_allocation": AutonomousAgentAllocation(available_tools=[
            AvailableTool(action_id=POST_MESSAGE_ACTION_ID, action_slug="post_message",
                          description="Post a message to a channel"),
            AvailableTool(action_id=LIST_CHANNELS_ACTION_ID, action_slug="list_channels",
                          description="List channels"),
        ]),
        "safety_limits": SafetyLimits(max_tool_calls=10, timeout_seconds=300, max_total_cost=1.0),
        "status": "active",
    }
    fields.update(overrides)
    return AgenticTool(**fields)


class EngineHarness:
    """EngineContext wired to fakes, with a scripted LLM installed per test."""

    def __init__(self):
        self.repository = FakeRepository()
        self.gateway = FakeGateway()
        self.tracer = RecordingTracer()
        self.clock = FakeClock()
        self.provider: Optional[ScriptedLLMProvider] = None
        self.providers_created = 0

        self.repository.actions[POST_MESSAGE_ACTION_ID] = make_action()
        self.repository.actions[LIST_CHANNELS_ACTION_ID] = make_action(
            LIST_CHANNELS_ACTION_ID, "list_channels", {"type": "object", "properties": {}}
        )
        self.repository.schemas[INTEGRATION_ID] = IntegrationSchema(
            integration_id=INTEGRATION_ID,
            integration_name="Slack",
            integration_slug="slack",
            actions=list(self.repository.actions.values()),
        )
        self._steps: list = [text_turn("done")]
        self._on_call = None

    def script(self, *steps, on_call=None) -> None:
        self._steps = list(steps)
        self._on_call = on_call

    def _build_provider(self, llm_config: EmbeddedLLMConfig) -> ScriptedLLMProvider:
        self.providers_created += 1
        self.provider = ScriptedLLMProvider(llm_config, self._steps, on_call=self._on_call)
        return self.provider

    @property
    def llm_call_count(self) -> int:
        return len(self.provider.requests) if self.provider else 0

    def context(self) -> EngineContext:
        factory = LLMClientFactory(providers={
            "anthropic": self._build_provider,
            "google": self._build_provider,
            "openai": self._build_provider,
        })
        return EngineContext(
            repository=self.repository,
            gateway=self.gateway,
            llm_factory=factory,
            tracer=self.tracer,
            clock=self.clock,
        )


@pytest.fixture
def harness():
    return EngineHarness()
