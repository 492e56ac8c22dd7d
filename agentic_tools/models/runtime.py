"""Collaborators an invocation runs against."""

import time
from dataclasses import dataclass, field
from typing import Callable

from agentic_tools.adapters.action_gateway import ActionGateway
from agentic_tools.adapters.llm_client import LLMClientFactory
from agentic_tools.services.agentic_tool_repository import AgenticToolRepository
from agentic_tools.tracing.base import NullTracingSink, TracingSink


@dataclass
class EngineContext:
    """Built once by the composition root; tests swap in fakes."""
    repository: AgenticToolRepository
    gateway: ActionGateway
    llm_factory: LLMClientFactory
    tracer: TracingSink = field(default_factory=NullTracingSink)
    clock: Callable[[], float] = time.monotonic
