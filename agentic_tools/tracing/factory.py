"""Select a tracing sink from invoke options."""

from typing import Any, Dict, Optional

from agentic_tools.tracing.base import NullTracingSink, TracingSink
from agentic_tools.tracing.event_log import EventLogTracingSink
from agentic_tools.tracing.langsmith import LangsmithTracingSink


def build_tracing_sink(
    tracing: Optional[Dict[str, Any]],
    tenant_id: str,
    request_id: Optional[str] = None,
) -> TracingSink:
    """
    Args:
        tracing: {provider: 'langsmith' | 'event_log', api_key, endpoint, trace_name, parent_run_id}
        tenant_id: Tenant the spans belong to
        request_id: Request ID correlating the spans

    Returns:
        Configured sink, or NullTracingSink when tracing is off or incomplete
    """
    if not tracing:
        return NullTracingSink()

    provider = tracing.get("provider")
    if provider == "langsmith" and tracing.get("api_key"):
        return LangsmithTracingSink(
            api_key=tracing["api_key"],
            endpoint=tracing.get("endpoint"),
            parent_run_id=tracing.get("parent_run_id"),
            trace_name=tracing.get("trace_name"),
        )
    if provider == "event_log":
        return EventLogTracingSink(tenant_id=tenant_id, request_id=request_id)
    return NullTracingSink()


def parse_tracing_headers(headers) -> Optional[Dict[str, Any]]:
    """Langsmith config from x-trace-* request headers; None without an API key."""
    api_key = headers.get("x-trace-api-key")
    if not api_key:
        return None
    return {
        "provider": "langsmith",
        "api_key": api_key,
        "parent_run_id": headers.get("x-trace-run-id"),
        "trace_name": headers.get("x-trace-name"),
        "endpoint": headers.get("x-trace-endpoint"),
    }
