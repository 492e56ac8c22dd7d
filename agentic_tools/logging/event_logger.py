"""Rows in the tenant-scoped event_logs table."""

import json
from typing import Optional, Dict, Any
from sqlalchemy import text
from agentic_tools.infra.database import get_db_session

INSERT_EVENT = text("""
    INSERT INTO event_logs (
        tenant_id, agentic_tool_id, request_id, event_type, provider,
        status, latency_ms, cost, payload
    ) VALUES (
        :tenant_id, :agentic_tool_id, :request_id, :event_type, :provider,
        :status, :latency_ms, :cost, CAST(:payload AS jsonb)
    )
""")


async def log_event(
    tenant_id: str,
    event_type: str,
    provider: Optional[str] = None,
    status: str = "success",
    latency_ms: Optional[int] = None,
    cost: Optional[float] = None,
    payload: Optional[Dict[str, Any]] = None,
    agentic_tool_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> None:
    """
    Insert one span of an agentic tool invocation.

    Args:
        tenant_id: Tenant the row is scoped to (RLS)
        event_type: 'llm_call' | 'tool_call' | 'agentic_tool_invocation'
        provider: LLM provider for llm_call, action slug for tool_call
        status: 'success' | 'failure'
        payload: Span details, stored as JSONB (non-JSON values stringified)
        request_id: Correlates every span of one invocation
    """
    row = {
        "tenant_id": tenant_id,
        "agentic_tool_id": agentic_tool_id,
        "request_id": request_id,
        "event_type": event_type,
        "provider": provider,
        "status": status,
        "latency_ms": latency_ms,
        "cost": cost,
        "payload": json.dumps(payload or {}, default=str),
    }
    with get_db_session(tenant_id) as session:
        session.execute(INSERT_EVENT, row)
