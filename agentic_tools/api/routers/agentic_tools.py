"""Agentic tool invocation API router."""

import dataclasses
import uuid
from functools import lru_cache

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from agentic_tools.adapters.action_gateway import HTTPActionGateway
from agentic_tools.adapters.llm_client import LLMClientFactory
from agentic_tools.api.models import InvokeRequest, InvokeResponse
from agentic_tools.infra.error_handler import http_status_for_error
from agentic_tools.models.runtime import EngineContext
from agentic_tools.services.agentic_tool_repository import SQLAgenticToolRepository
from agentic_tools.services.invocation_handler import invoke
from agentic_tools.tracing.factory import build_tracing_sink, parse_tracing_headers

router = APIRouter(prefix="/agentic-tools", tags=["Agentic Tools"])


@lru_cache(maxsize=1)
def get_engine_context() -> EngineContext:
    """Composition root: one repository, gateway and LLM factory per process."""
    return EngineContext(
        repository=SQLAgenticToolRepository(),
        gateway=HTTPActionGateway(),
        llm_factory=LLMClientFactory(cache=True),
    )


@router.post("/invoke", response_model=InvokeResponse)
async def invoke_agentic_tool(
    body: InvokeRequest,
    request: Request,
    x_tenant_id: str = Header(None, alias="X-Tenant-ID"),
    engine: EngineContext = Depends(get_engine_context),
):
    """
    Invoke an agentic tool.

    The tenant comes from the X-Tenant-ID header set by the authenticating
    proxy. The response is always the normalized envelope; on failure the
    HTTP status follows the error code (404 unknown tool, 403 disabled,
    400 misconfiguration, 429 safety limit, 502 upstream failure).

    **Example Request:**
    ```json
    {
        "tool": "slack-poster",
        "task": "Post 'deploy done' to #general",
        "options": {"log_execution": true}
    }
    ```
    """
    if not x_tenant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID header is required",
        )

    options = body.options
    request_id = (options.request_id if options else None) or str(uuid.uuid4())

    tracing = None
    if options and options.tracing:
        tracing = options.tracing.model_dump()
    else:
        tracing = parse_tracing_headers(request.headers)

    ctx = dataclasses.replace(engine, tracer=build_tracing_sink(tracing, x_tenant_id, request_id))

    result = await invoke(
        ctx,
        body.tool,
        x_tenant_id,
        body.task,
        request_id=request_id,
        connection_id=options.connection_id if options else None,
        log_execution=options.log_execution if options else True,
    )

    status_code = status.HTTP_200_OK if result.success else http_status_for_error(
        result.error.get("code") if result.error else None
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(result.to_dict()), headers={"X-Request-ID": request_id})
