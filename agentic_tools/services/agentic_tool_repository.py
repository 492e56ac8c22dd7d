"""Persistence for agentic tools, their action catalog and execution records."""

import json
import logging
import re
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import text

from agentic_tools.infra.config import config
from agentic_tools.infra.database import get_db_session
from agentic_tools.infra.error_handler import ErrorCodes, InvocationError
from agentic_tools.models.agentic_tool import AgenticTool
from agentic_tools.models.execution import LLMCallRecord, ToolCallRecord
from agentic_tools.models.integration import ActionDefinition, IntegrationSchema, ReferenceDataItem
from agentic_tools.services.safety_enforcer import merge_safety_limits, validate_safety_limits

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def is_uuid(identifier: str) -> bool:
    return bool(UUID_PATTERN.match(identifier or ""))


class AgenticToolRepository:
    """Storage interface used by the engine."""

    async def find_tool_by_id_or_slug(self, tenant_id: str, identifier: str) -> Optional[AgenticTool]:
        raise NotImplementedError

    async def find_action(self, tenant_id: str, action_id: str) -> Optional[ActionDefinition]:
        raise NotImplementedError

    async def load_integration_schema(self, tenant_id: str, integration_id: str) -> Optional[IntegrationSchema]:
        raise NotImplementedError

    async def load_reference_data(
        self, tenant_id: str, data_type: str, limit: int = config.REFERENCE_DATA_LIMIT
    ) -> List[ReferenceDataItem]:
        raise NotImplementedError

    async def create_execution_record(
        self,
        agentic_tool_id: str,
        tenant_id: str,
        parent_request: Dict[str, Any],
        llm_calls: List[LLMCallRecord],
        tool_calls: List[ToolCallRecord],
        result: Any,
        status: str,
        error: Optional[Dict[str, Any]],
        total_cost: float,
        total_tokens: int,
        duration_ms: int,
        trace_id: Optional[str] = None,
    ) -> str:
        raise NotImplementedError


def _json_column(value: Any, default: Any) -> Any:
    """JSONB comes back decoded from psycopg2 but as text from other drivers."""
    if value is None:
        return default
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return value


def row_to_agentic_tool(row: Dict[str, Any]) -> AgenticTool:
    """
    Build an AgenticTool from a database row.

    Stored safety limits may be partial; missing or null fields take the defaults.

    Raises:
        InvocationError: INVALID_TOOL_CONFIG if stored JSON does not match the models
    """
    slug = row.get("slug")
    try:
        stored_limits = _json_column(row.get("safety_limits"), {})
        if not isinstance(stored_limits, dict):
            raise ValueError("safety_limits must be a JSON object")
        valid, limit_errors = validate_safety_limits(stored_limits)
        if not valid:
            raise InvocationError(
                ErrorCodes.INVALID_TOOL_CONFIG,
                f"Agentic tool {slug} has invalid safety limits",
                {"errors": limit_errors},
            )
        return AgenticTool(
            id=str(row["id"]),
            tenant_id=str(row["tenant_id"]),
            name=row["name"],
            slug=row["slug"],
            description=row.get("description"),
            execution_mode=row["execution_mode"],
            embedded_llm_config=_json_column(row.get("embedded_llm_config"), {}),
            system_prompt=row["system_prompt"],
            tool_allocation=_json_column(row.get("tool_allocation"), {}),
            context_config=_json_column(row.get("context_config"), {}),
            safety_limits=merge_safety_limits(stored_limits),
            status=row["status"],
            metadata=_json_column(row.get("metadata"), {}),
        )
    except (ValidationError, ValueError) as e:
        raise InvocationError(
            ErrorCodes.INVALID_TOOL_CONFIG,
            f"Agentic tool {slug} has an invalid stored configuration",
            {"errors": str(e)},
        )


def _row_to_action(row: Dict[str, Any]) -> ActionDefinition:
    return ActionDefinition(
        id=str(row["id"]),
        slug=row["slug"],
        name=row["name"],
        description=row.get("description"),
        http_method=row.get("http_method") or "GET",
        endpoint_template=row.get("endpoint_template"),
        integration_id=str(row["integration_id"]),
        integration_slug=row["integration_slug"],
        input_schema=_json_column(row.get("input_schema"), {}),
        output_schema=_json_column(row.get("output_schema"), None),
    )


class SQLAgenticToolRepository(AgenticToolRepository):
    """Postgres-backed repository using tenant-scoped sessions (RLS)."""

    async def find_tool_by_id_or_slug(self, tenant_id: str, identifier: str) -> Optional[AgenticTool]:
        column = "id" if is_uuid(identifier) else "slug"
        with get_db_session(tenant_id) as session:
            row = session.execute(
                text(f"""
                    SELECT id, tenant_id, name, slug, description, execution_mode,
                           embedded_llm_config, system_prompt, tool_allocation,
                           context_config, safety_limits, status, metadata
                    FROM agentic_tools
                    WHERE tenant_id = :tenant_id AND {column} = :identifier
                    LIMIT 1
                """),
                {"tenant_id": tenant_id, "identifier": identifier},
            ).mappings().first()

        if not row:
            return None
        return row_to_agentic_tool(dict(row))

    async def find_action(self, tenant_id: str, action_id: str) -> Optional[ActionDefinition]:
        if not is_uuid(action_id):
            return None
        with get_db_session(tenant_id) as session:
            row = session.execute(
                text("""
                    SELECT a.id, a.slug, a.name, a.description, a.http_method,
                           a.endpoint_template, a.input_schema, a.output_schema,
                           i.id AS integration_id, i.slug AS integration_slug
                    FROM actions a
                    JOIN integrations i ON i.id = a.integration_id
                    WHERE a.id = :action_id AND i.tenant_id = :tenant_id
                """),
                {"action_id": action_id, "tenant_id": tenant_id},
            ).mappings().first()

        return _row_to_action(dict(row)) if row else None

    async def load_integration_schema(self, tenant_id: str, integration_id: str) -> Optional[IntegrationSchema]:
        if not is_uuid(integration_id):
            return None
        with get_db_session(tenant_id) as session:
            integration = session.execute(
                text("""
                    SELECT id, name, slug, description
                    FROM integrations
                    WHERE id = :integration_id AND tenant_id = :tenant_id
                """),
                {"integration_id": integration_id, "tenant_id": tenant_id},
            ).mappings().first()
            if not integration:
                return None

            action_rows = session.execute(
                text("""
                    SELECT a.id, a.slug, a.name, a.description, a.http_method,
                           a.endpoint_template, a.input_schema, a.output_schema,
                           a.integration_id, :integration_slug AS integration_slug
                    FROM actions a
                    WHERE a.integration_id = :integration_id
                    ORDER BY a.name ASC
                """),
                {"integration_id": integration_id, "integration_slug": integration["slug"]},
            ).mappings().all()

        return IntegrationSchema(
            integration_id=str(integration["id"]),
            integration_name=integration["name"],
            integration_slug=integration["slug"],
            description=integration.get("description"),
            actions=[_row_to_action(dict(row)) for row in action_rows],
        )

    async def load_reference_data(
        self, tenant_id: str, data_type: str, limit: int = config.REFERENCE_DATA_LIMIT
    ) -> List[ReferenceDataItem]:
        with get_db_session(tenant_id) as session:
            rows = session.execute(
                text("""
                    SELECT external_id, name, metadata
                    FROM reference_data
                    WHERE tenant_id = :tenant_id
                      AND data_type = :data_type
                      AND status = 'active'
                    ORDER BY name ASC
                    LIMIT :limit
                """),
                {"tenant_id": tenant_id, "data_type": data_type, "limit": limit},
            ).mappings().all()

        return [
            ReferenceDataItem(
                external_id=row["external_id"],
                name=row["name"],
                metadata=_json_column(row.get("metadata"), {}),
            )
            for row in rows
        ]

    async def create_execution_record(
        self,
        agentic_tool_id: str,
        tenant_id: str,
        parent_request: Dict[str, Any],
        llm_calls: List[LLMCallRecord],
        tool_calls: List[ToolCallRecord],
        result: Any,
        status: str,
        error: Optional[Dict[str, Any]],
        total_cost: float,
        total_tokens: int,
        duration_ms: int,
        trace_id: Optional[str] = None,
    ) -> str:
        with get_db_session(tenant_id) as session:
            execution_id = session.execute(
                text("""
                    INSERT INTO agentic_tool_executions (
                        agentic_tool_id, tenant_id, parent_request, llm_calls, tool_calls,
                        result, status, error, total_cost, total_tokens, duration_ms,
                        trace_id, completed_at
                    ) VALUES (
                        :agentic_tool_id, :tenant_id, CAST(:parent_request AS jsonb),
                        CAST(:llm_calls AS jsonb), CAST(:tool_calls AS jsonb),
                        CAST(:result AS jsonb), :status, CAST(:error AS jsonb),
                        :total_cost, :total_tokens, :duration_ms, :trace_id, NOW()
                    )
                    RETURNING id
                """),
                {
                    "agentic_tool_id": agentic_tool_id,
                    "tenant_id": tenant_id,
                    "parent_request": json.dumps(parent_request),
                    "llm_calls": json.dumps([asdict(call) for call in llm_calls]),
                    "tool_calls": json.dumps([asdict(call) for call in tool_calls], default=str),
                    "result": json.dumps(result, default=str) if result is not None else None,
                    "status": status,
                    "error": json.dumps(error, default=str) if error is not None else None,
                    "total_cost": total_cost,
                    "total_tokens": total_tokens,
                    "duration_ms": duration_ms,
                    "trace_id": trace_id,
                },
            ).scalar_one()

        return str(execution_id)
