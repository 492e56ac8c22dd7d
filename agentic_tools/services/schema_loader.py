"""Load integration action catalogs and render them as Markdown for prompts."""

import json
import logging
from typing import Dict, List

from agentic_tools.models.integration import IntegrationSchema
from agentic_tools.services.agentic_tool_repository import AgenticToolRepository

logger = logging.getLogger(__name__)

SCHEMA_SEPARATOR = "=" * 80


async def load_integration_schemas(
    repository: AgenticToolRepository,
    tenant_id: str,
    integration_ids: List[str],
) -> Dict[str, IntegrationSchema]:
    """
    Load schemas for each integration, keyed by integration ID.

    Integrations that are missing or fail to load are logged and skipped so
    one broken catalog does not block the invocation.
    """
    schemas: Dict[str, IntegrationSchema] = {}
    for integration_id in dict.fromkeys(integration_ids):
        try:
            schema = await repository.load_integration_schema(tenant_id, integration_id)
        except Exception as e:
            logger.warning(f"Failed to load integration schema {integration_id}: {e}")
            continue
        if schema is None:
            logger.warning(f"Integration not found for schema injection: {integration_id}")
            continue
        schemas[integration_id] = schema
    return schemas


def format_schema_for_prompt(
    schema: IntegrationSchema,
    include_output_schemas: bool = False,
    include_endpoints: bool = False,
) -> str:
    """
    Render one integration's actions as Markdown.

    Each action lists name, slug, description, HTTP method, and its input
    JSON schema in a fenced block; endpoints and response schemas are opt-in.
    """
    lines = [f"# {schema.integration_name} API Schema", ""]
    if schema.description:
        lines.extend([schema.description, ""])

    lines.extend([f"## Available Actions ({len(schema.actions)})", ""])

    for action in schema.actions:
        lines.extend([f"### {action.name} (`{action.slug}`)", ""])
        if action.description:
            lines.extend([action.description, ""])
        lines.extend([f"**Method:** {action.http_method}", ""])
        if include_endpoints and action.endpoint_template:
            lines.extend([f"**Endpoint:** {action.endpoint_template}", ""])
        lines.extend([
            "**Input Parameters:**",
            "",
            "```json",
            json.dumps(action.input_schema, indent=2),
            "```",
            "",
        ])
        if include_output_schemas and action.output_schema is not None:
            lines.extend([
                "**Response Schema:**",
                "",
                "```json",
                json.dumps(action.output_schema, indent=2),
                "```",
                "",
            ])
        lines.extend(["---", ""])

    return "\n".join(lines)


def format_schemas_for_prompt(
    schemas: Dict[str, IntegrationSchema],
    include_output_schemas: bool = False,
    include_endpoints: bool = False,
) -> str:
    if not schemas:
        return "No schemas available."

    rendered = [
        format_schema_for_prompt(schema, include_output_schemas, include_endpoints)
        for schema in schemas.values()
    ]
    if len(rendered) == 1:
        return rendered[0]
    return f"\n\n{SCHEMA_SEPARATOR}\n\n".join(rendered)


def format_schema_compact(schema: IntegrationSchema) -> str:
    """One bullet per action, for prompts where full schemas would be too long."""
    lines = [f"# {schema.integration_name}", ""]
    for action in schema.actions:
        description = action.description or "No description"
        lines.append(f"- **{action.name}** (`{action.slug}`): {description}")
    return "\n".join(lines)
