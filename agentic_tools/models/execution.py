"""Runtime records produced while an agentic tool executes."""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


@dataclass
class LLMCallRecord:
    """One LLM call made during an invocation."""
    sequence: int
    purpose: str  # "parameter_generation" | "initial_planning" | "continuation"
    model: str
    tokens_input: int
    tokens_output: int
    cost: float
    duration_ms: int
    tool_calls: int = 0


@dataclass
class ToolCallRecord:
    """One downstream action call made during an invocation."""
    sequence: int
    tool_name: str
    action_slug: str
    input: Dict[str, Any]
    success: bool
    action_id: Optional[str] = None
    duration_ms: Optional[int] = None
    error: Optional[str] = None


@dataclass
class OrchestratorResult:
    """Outcome of either orchestrator, before it is wrapped into the invocation envelope."""
    success: bool
    data: Any = None
    error: Optional[Dict[str, Any]] = None
    llm_calls: List[LLMCallRecord] = field(default_factory=list)
    tool_calls: List[ToolCallRecord] = field(default_factory=list)
    total_cost: float = 0.0
    total_tokens: int = 0
    duration_ms: int = 0
    request_id: Optional[str] = None
    hit_safety_limit: bool = False
    safety_limit_type: Optional[str] = None

    @property
    def error_code(self) -> Optional[str]:
        return self.error.get("code") if self.error else None


@dataclass
class InvocationMetadata:
    agentic_tool_id: Optional[str] = None
    agentic_tool_slug: Optional[str] = None
    execution_mode: Optional[str] = None
    llm_calls: int = 0
    tool_calls: int = 0
    total_cost: float = 0.0
    total_tokens: int = 0
    duration_ms: int = 0
    request_id: Optional[str] = None
    execution_id: Optional[str] = None
    hit_safety_limit: bool = False
    safety_limit_type: Optional[str] = None


@dataclass
class InvocationResult:
    """Normalized envelope returned for every invocation."""
    success: bool
    metadata: InvocationMetadata
    data: Any = None
    error: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {"success": self.success, "metadata": asdict(self.metadata)}
        if self.success:
            result["data"] = self.data
        if self.error is not None:
            result["error"] = self.error
        return result
