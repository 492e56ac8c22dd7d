"""Client for the downstream action gateway."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from agentic_tools.infra.config import config
from agentic_tools.infra.timeout import TOOL_EXECUTION_TIMEOUT

logger = logging.getLogger(__name__)


@dataclass
class GatewayResult:
    """Outcome of one action invocation: data on success, error {message, code} on failure."""
    success: bool
    data: Any = None
    error: Optional[Dict[str, Any]] = None


class ActionGateway:
    """Interface to the service that performs the actual third-party API call."""

    async def invoke_action(
        self,
        tenant_id: str,
        integration_slug: str,
        action_slug: str,
        parameters: Dict[str, Any],
        connection_id: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> GatewayResult:
        raise NotImplementedError


class HTTPActionGateway(ActionGateway):
    """
    Invokes actions over HTTP.

    Credential resolution, response caching and retries belong to the gateway;
    this client only reports success or failure. It never raises for
    transport or HTTP errors.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = TOOL_EXECUTION_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or config.ACTION_GATEWAY_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else config.ACTION_GATEWAY_API_KEY
        self.timeout = timeout
        self._transport = transport

    def _headers(self, tenant_id: str, connection_id: Optional[str], request_id: Optional[str]) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-Tenant-ID": tenant_id,
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        if connection_id:
            headers["X-Connection-ID"] = connection_id
        if request_id:
            headers["X-Request-ID"] = request_id
        return headers

    async def invoke_action(
        self,
        tenant_id: str,
        integration_slug: str,
        action_slug: str,
        parameters: Dict[str, Any],
        connection_id: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> GatewayResult:
        url = f"{self.base_url}/actions/{integration_slug}/{action_slug}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    url,
                    json=parameters,
                    headers=self._headers(tenant_id, connection_id, request_id),
                )
        except httpx.TimeoutException as e:
            logger.warning(f"Action {integration_slug}/{action_slug} timed out: {e}")
            return GatewayResult(
                success=False,
                error={"message": f"Action timed out after {self.timeout}s", "code": "GATEWAY_TIMEOUT"},
            )
        except httpx.HTTPError as e:
            logger.warning(f"Action {integration_slug}/{action_slug} transport error: {e}")
            return GatewayResult(success=False, error={"message": str(e), "code": "GATEWAY_UNAVAILABLE"})

        try:
            body = response.json()
        except ValueError:
            body = {"data": response.text}
        if not isinstance(body, dict):
            body = {"data": body}

        if response.is_success and body.get("success", True):
            return GatewayResult(success=True, data=body.get("data", body))

        error = body.get("error") if isinstance(body.get("error"), dict) else None
        if error is None:
            error = {
                "message": str(body.get("error") or body.get("message") or f"HTTP {response.status_code}"),
                "code": f"HTTP_{response.status_code}",
            }
        return GatewayResult(success=False, error=error)
