"""
Write-only tracing sinks.

The public log_* methods never raise and return nothing: a failing sink is
logged and the invocation carries on unchanged. Subclasses implement the
_emit_* hooks.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from agentic_tools.adapters.llm_client import LLMCallResponse

logger = logging.getLogger(__name__)


@dataclass
class LLMCallTrace:
    id: str
    purpose: str
    prompt: str
    response: LLMCallResponse
    start_time: datetime
    end_time: datetime
    system_prompt: Optional[str] = None


@dataclass
class ToolCallTrace:
    id: str
    tool_name: str
    input: Dict[str, Any]
    start_time: datetime
    end_time: datetime
    output: Any = None
    error: Optional[str] = None


@dataclass
class InvocationTrace:
    id: str
    name: str
    inputs: Dict[str, Any]
    start_time: datetime
    end_time: datetime
    outputs: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class TracingSink:
    """Base sink. Subclasses override the _emit_* methods they support."""

    async def log_llm_call(self, trace: LLMCallTrace) -> None:
        try:
            await self._emit_llm_call(trace)
        except Exception as e:
            logger.warning(f"{type(self).__name__} failed to log LLM call {trace.id}: {e}")

    async def log_tool_call(self, trace: ToolCallTrace) -> None:
        try:
            await self._emit_tool_call(trace)
        except Exception as e:
            logger.warning(f"{type(self).__name__} failed to log tool call {trace.id}: {e}")

    async def log_invocation(self, trace: InvocationTrace) -> None:
        try:
            await self._emit_invocation(trace)
        except Exception as e:
            logger.warning(f"{type(self).__name__} failed to log invocation {trace.id}: {e}")

    async def _emit_llm_call(self, trace: LLMCallTrace) -> None:
        pass

    async def _emit_tool_call(self, trace: ToolCallTrace) -> None:
        pass

    async def _emit_invocation(self, trace: InvocationTrace) -> None:
        pass


class NullTracingSink(TracingSink):
    """Discards everything."""
