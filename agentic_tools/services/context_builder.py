"""Build the variable context injected into an agentic tool's system prompt."""

import logging
from typing import Iterable, List, Optional

from agentic_tools.infra.config import config
from agentic_tools.models.agentic_tool import (
    AvailableTool,
    ContextConfig,
    CustomVariable,
    IntegrationSchemaVariable,
    ReferenceDataVariable,
)
from agentic_tools.models.integration import ReferenceDataItem
from agentic_tools.services.agentic_tool_repository import AgenticToolRepository
from agentic_tools.services.prompt_processor import PromptContext
from agentic_tools.services.schema_loader import (
    format_schema_compact,
    format_schema_for_prompt,
    format_schemas_for_prompt,
    load_integration_schemas,
)

logger = logging.getLogger(__name__)

# Metadata keys worth showing the model for each reference row
REFERENCE_METADATA_FIELDS = ("email", "type", "status", "role", "department")


def _capitalize_first(value: str) -> str:
    return value[:1].upper() + value[1:]


def format_reference_data(data_type: str, items: List[ReferenceDataItem]) -> str:
    """Render reference rows as a Markdown bullet list."""
    if not items:
        return f"No {data_type} data available."

    lines = [
        f"# {_capitalize_first(data_type)}",
        "",
        f"Available {data_type}: {len(items)} items",
        "",
    ]
    for item in items:
        lines.append(f"- **{item.name}** (ID: `{item.external_id}`)")
        for field_name in REFERENCE_METADATA_FIELDS:
            value = item.metadata.get(field_name)
            if value:
                lines.append(f"  - {_capitalize_first(field_name)}: {value}")
    return "\n".join(lines)


def format_available_tools(tools: List[AvailableTool]) -> str:
    return "\n".join(
        f"{index}. {tool.action_slug}: {tool.description}"
        for index, tool in enumerate(tools, start=1)
    )


async def _resolve_integration_ids(
    repository: AgenticToolRepository,
    tenant_id: str,
    action_ids: Iterable[str],
) -> List[str]:
    integration_ids = []
    for action_id in action_ids:
        action = await repository.find_action(tenant_id, action_id)
        if action is None:
            logger.warning(f"Action not found while resolving schemas: {action_id}")
            continue
        if action.integration_id not in integration_ids:
            integration_ids.append(action.integration_id)
    return integration_ids


async def build_context(
    repository: AgenticToolRepository,
    tenant_id: str,
    user_input: str,
    context_config: Optional[ContextConfig] = None,
    available_tools: Optional[List[AvailableTool]] = None,
    action_ids: Optional[List[str]] = None,
) -> PromptContext:
    """
    Load every configured context source and flatten it into a PromptContext.

    Built-in keys:
        user_input: the caller's task
        available_tools: numbered "slug: description" list (autonomous mode)
        integration_schema: auto-injected schemas of the integrations behind
            action_ids, unless a configured variable already uses that name
        database_schema: alias of integration_schema

    Args:
        repository: Source of schemas and reference data
        tenant_id: Tenant whose data is loaded
        user_input: Natural-language task
        context_config: Tool's configured variables
        available_tools: Tools offered to an autonomous agent
        action_ids: Allocated action IDs, used for schema auto-injection

    Returns:
        Flat mapping of variable name to string value
    """
    context_config = context_config or ContextConfig()
    context: PromptContext = {"user_input": user_input}

    if available_tools:
        context["available_tools"] = format_available_tools(available_tools)

    for name, variable in context_config.variables.items():
        if isinstance(variable, IntegrationSchemaVariable):
            if not variable.source:
                continue
            schemas = await load_integration_schemas(repository, tenant_id, [variable.source])
            schema = schemas.get(variable.source)
            if schema is None:
                context[name] = ""
            elif variable.compact:
                context[name] = format_schema_compact(schema)
            else:
                context[name] = format_schema_for_prompt(schema)
        elif isinstance(variable, ReferenceDataVariable):
            if not variable.source:
                continue
            items = await repository.load_reference_data(
                tenant_id, variable.source, limit=config.REFERENCE_DATA_LIMIT
            )
            context[name] = format_reference_data(variable.source, items)
        elif isinstance(variable, CustomVariable):
            if variable.value is not None:
                context[name] = variable.value

    if context_config.auto_inject_schemas and action_ids and "integration_schema" not in context:
        integration_ids = await _resolve_integration_ids(repository, tenant_id, action_ids)
        if integration_ids:
            schemas = await load_integration_schemas(repository, tenant_id, integration_ids)
            if schemas:
                context["integration_schema"] = format_schemas_for_prompt(schemas)

    if "integration_schema" in context and "database_schema" not in context:
        context["database_schema"] = context["integration_schema"]

    return context
