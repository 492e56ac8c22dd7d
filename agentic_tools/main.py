"""FastAPI application for the agentic tool orchestration engine."""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from agentic_tools.infra.config import config
from agentic_tools.infra.database import dispose_engine
from agentic_tools.infra.logging import setup_logging
from agentic_tools.infra.timeout import REQUEST_TIMEOUT, TimeoutMiddleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging on startup; release the connection pool on shutdown."""
    setup_logging()
    logger.info(f"Agentic tools engine starting ({config.APP_ENV})")

    yield

    logger.info("Agentic tools engine shutting down")
    dispose_engine()


app = FastAPI(
    title="Agentic Tools Engine",
    description="""
    Invoke configured agentic tools with a natural-language task.

    A tool wraps one or more integration actions behind an embedded LLM:

    - **parameter_interpreter**: one LLM call generates the parameters for the target actions
    - **autonomous_agent**: the LLM calls tools in a loop until it is done or a safety limit is hit

    Every invocation is bounded by the tool's safety limits (tool calls, time, cost).
    """,
    version="1.0.0",
    lifespan=lifespan,
    tags_metadata=[
        {
            "name": "Agentic Tools",
            "description": "Invoke agentic tools",
        },
        {
            "name": "Health",
            "description": "Health check and monitoring endpoints",
        },
    ],
)

app.add_middleware(TimeoutMiddleware, timeout=REQUEST_TIMEOUT)

from agentic_tools.api.routers import agentic_tools, health  # noqa: E402

app.include_router(agentic_tools.router)
app.include_router(health.router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed invoke bodies never reach the engine."""
    return JSONResponse(
        status_code=422,
        content={"detail": exc.errors()},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Last resort; the engine itself reports failures in the envelope."""
    error_id = str(uuid.uuid4())
    logger.error(f"Unhandled exception: {exc}", exc_info=True, extra={"error_id": error_id})
    return JSONResponse(
        status_code=500,
        content={"detail": f"Internal server error. Error ID: {error_id}"},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        timeout_keep_alive=30,
        timeout_graceful_shutdown=30,
    )
