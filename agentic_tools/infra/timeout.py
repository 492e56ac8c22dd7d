"""Timeouts for requests, LLM calls and action calls."""

import asyncio
import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from agentic_tools.infra.config import config

logger = logging.getLogger(__name__)

# Per-call bounds
LLM_CALL_TIMEOUT = config.LLM_CALL_TIMEOUT
TOOL_EXECUTION_TIMEOUT = config.TOOL_EXECUTION_TIMEOUT

# An invocation may legitimately run up to the 600s safety ceiling, plus one
# in-flight LLM call that is allowed to finish
REQUEST_TIMEOUT = 600 + int(LLM_CALL_TIMEOUT)


class TimeoutMiddleware(BaseHTTPMiddleware):
    """Backstop for requests that outlive every safety limit."""

    def __init__(self, app, timeout: int = REQUEST_TIMEOUT):
        super().__init__(app)
        self.timeout = timeout

    async def dispatch(self, request: Request, call_next):
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Request {request.method} {request.url.path} exceeded {self.timeout}s")
            return JSONResponse(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                content={"detail": f"Request timeout after {self.timeout} seconds"},
            )
