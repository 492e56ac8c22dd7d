from .agentic_tool import (
    AgenticTool,
    AutonomousAgentAllocation,
    AvailableTool,
    ContextConfig,
    CustomVariable,
    EmbeddedLLMConfig,
    IntegrationSchemaVariable,
    ParameterInterpreterAllocation,
    ReferenceDataVariable,
    SafetyLimits,
    TargetAction,
)
from .execution import (
    InvocationMetadata,
    InvocationResult,
    LLMCallRecord,
    OrchestratorResult,
    ToolCallRecord,
)
from .integration import ActionDefinition, IntegrationSchema, ReferenceDataItem

__all__ = [
    "ActionDefinition",
    "AgenticTool",
    "AutonomousAgentAllocation",
    "AvailableTool",
    "ContextConfig",
    "CustomVariable",
    "EmbeddedLLMConfig",
    "IntegrationSchema",
    "IntegrationSchemaVariable",
    "InvocationMetadata",
    "InvocationResult",
    "LLMCallRecord",
    "OrchestratorResult",
    "ParameterInterpreterAllocation",
    "ReferenceDataItem",
    "ReferenceDataVariable",
    "SafetyLimits",
    "TargetAction",
    "ToolCallRecord",
]
