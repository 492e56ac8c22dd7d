"""Request/response models for the HTTP API."""

from typing import Any, Dict, Literal, Optional
from pydantic import BaseModel, Field


class TracingOptions(BaseModel):
    """Where to send spans for this invocation."""
    provider: Literal["langsmith", "event_log"] = Field(..., example="langsmith")
    api_key: Optional[str] = Field(None, description="Langsmith API key")
    endpoint: Optional[str] = Field(None, description="Langsmith endpoint override")
    trace_name: Optional[str] = Field(None, example="crm-sync")
    parent_run_id: Optional[str] = Field(None, description="Parent run to nest spans under")


class InvokeOptions(BaseModel):
    connection_id: Optional[str] = Field(None, description="Connection forwarded to the action gateway")
    request_id: Optional[str] = Field(None, description="Correlation ID; generated when absent")
    log_execution: bool = Field(default=True, description="Persist an execution record")
    tracing: Optional[TracingOptions] = None


class InvokeRequest(BaseModel):
    """Invoke an agentic tool with a natural-language task."""
    tool: str = Field(..., min_length=1, description="Tool UUID or slug", example="slack-poster")
    task: str = Field(..., min_length=1, description="Natural-language task", example="Post 'deploy done' to #general")
    options: Optional[InvokeOptions] = None


class InvokeErrorDetail(BaseModel):
    code: str = Field(..., example="AGENTIC_TOOL_NOT_FOUND")
    message: str
    details: Optional[Dict[str, Any]] = None


class InvokeMetadata(BaseModel):
    agentic_tool_id: Optional[str] = None
    agentic_tool_slug: Optional[str] = None
    execution_mode: Optional[str] = Field(None, example="parameter_interpreter")
    llm_calls: int = Field(default=0, description="Number of LLM calls made")
    tool_calls: int = Field(default=0, description="Number of action calls made")
    total_cost: float = Field(default=0.0, description="Total LLM cost in USD")
    total_tokens: int = 0
    duration_ms: int = 0
    request_id: Optional[str] = None
    execution_id: Optional[str] = Field(None, description="Execution record ID when logged")
    hit_safety_limit: bool = False
    safety_limit_type: Optional[str] = None


class InvokeResponse(BaseModel):
    """Normalized invocation envelope."""
    success: bool
    data: Optional[Any] = None
    error: Optional[InvokeErrorDetail] = None
    metadata: InvokeMetadata
