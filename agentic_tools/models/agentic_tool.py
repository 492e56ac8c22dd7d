"""Agentic tool configuration models."""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


ExecutionMode = Literal["parameter_interpreter", "autonomous_agent"]
ToolStatus = Literal["draft", "active", "disabled"]
ExecutionStatus = Literal["success", "error", "timeout"]
LLMProviderName = Literal["anthropic", "google", "openai"]
ReasoningLevel = Literal["none", "low", "medium", "high"]


class EmbeddedLLMConfig(BaseModel):
    """LLM embedded in an agentic tool."""
    provider: LLMProviderName = Field(..., description="LLM provider: 'anthropic' | 'google' | 'openai'")
    model: str = Field(..., min_length=1, description="Model name, e.g. 'claude-sonnet-4.5'")
    reasoning_level: Optional[ReasoningLevel] = Field(
        default=None,
        description="Coarse reasoning/extended-thinking level, ignored by providers without one",
    )
    temperature: float = Field(default=0.2, ge=0, le=1)
    max_tokens: int = Field(default=4000, ge=1000, le=8000)
    top_p: Optional[float] = Field(default=None, ge=0, le=1)


class TargetAction(BaseModel):
    """Downstream action invoked by a parameter interpreter tool."""
    action_id: str
    action_slug: str


class AvailableTool(BaseModel):
    """Downstream action offered to an autonomous agent."""
    action_id: str
    action_slug: str
    description: str = Field(..., description="Tool description shown to the LLM")


class ParameterInterpreterAllocation(BaseModel):
    mode: Literal["parameter_interpreter"] = "parameter_interpreter"
    target_actions: List[TargetAction] = Field(default_factory=list)


class AutonomousAgentAllocation(BaseModel):
    mode: Literal["autonomous_agent"] = "autonomous_agent"
    available_tools: List[AvailableTool] = Field(default_factory=list)


ToolAllocation = Annotated[
    Union[ParameterInterpreterAllocation, AutonomousAgentAllocation],
    Field(discriminator="mode"),
]


class IntegrationSchemaVariable(BaseModel):
    type: Literal["integration_schema"] = "integration_schema"
    source: Optional[str] = Field(default=None, description="Integration ID")
    compact: bool = Field(default=False, description="Render only action names and descriptions")


class ReferenceDataVariable(BaseModel):
    type: Literal["reference_data"] = "reference_data"
    source: Optional[str] = Field(default=None, description="Reference data type, e.g. 'users'")


class CustomVariable(BaseModel):
    type: Literal["custom"] = "custom"
    value: Optional[str] = None


ContextVariable = Annotated[
    Union[IntegrationSchemaVariable, ReferenceDataVariable, CustomVariable],
    Field(discriminator="type"),
]


class ContextConfig(BaseModel):
    """Variables injected into the system prompt."""
    variables: Dict[str, ContextVariable] = Field(default_factory=dict)
    auto_inject_schemas: bool = True


class SafetyLimits(BaseModel):
    """Hard ceilings for a single invocation."""
    max_tool_calls: int = Field(default=10, ge=1, le=100)
    timeout_seconds: int = Field(default=300, ge=30, le=600)
    max_total_cost: float = Field(default=1.0, ge=0.01, le=10)


class AgenticTool(BaseModel):
    """Tenant-owned agentic tool configuration (read-only to the engine)."""
    model_config = ConfigDict(protected_namespaces=())

    id: str
    tenant_id: str
    name: str
    slug: str
    description: Optional[str] = None
    execution_mode: ExecutionMode
    embedded_llm_config: EmbeddedLLMConfig
    system_prompt: str
    tool_allocation: ToolAllocation
    context_config: ContextConfig = Field(default_factory=ContextConfig)
    safety_limits: SafetyLimits = Field(default_factory=SafetyLimits)
    status: ToolStatus = "draft"
    metadata: Dict[str, Any] = Field(default_factory=dict)
