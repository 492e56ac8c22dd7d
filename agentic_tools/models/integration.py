"""Downstream integration catalog models."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ActionDefinition(BaseModel):
    """A single callable action of an integration."""
    id: str
    slug: str
    name: str
    description: Optional[str] = None
    http_method: str = "GET"
    endpoint_template: Optional[str] = None
    integration_id: str
    integration_slug: str
    input_schema: Dict[str, Any] = Field(default_factory=dict)
    output_schema: Optional[Dict[str, Any]] = None


class IntegrationSchema(BaseModel):
    """Action catalog of one integration, as rendered into prompts."""
    integration_id: str
    integration_name: str
    integration_slug: str
    description: Optional[str] = None
    actions: List[ActionDefinition] = Field(default_factory=list)


class ReferenceDataItem(BaseModel):
    """Cached reference row (user, channel, ...) from an integration."""
    external_id: str
    name: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
