"""Probes and Prometheus scrape endpoint."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from agentic_tools.infra.config import config
from agentic_tools.infra.database import check_database
from agentic_tools.infra.metrics import get_metrics_response

SERVICE_NAME = "agentic-tools-engine"
SERVICE_VERSION = "1.0.0"

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "environment": config.APP_ENV,
    }


@router.get("/health/live")
async def liveness_probe():
    """Process is up; never touches dependencies."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_probe():
    """Ready only when the database answers; 503 otherwise."""
    if check_database():
        return {"status": "ready", "database": "ok"}
    return JSONResponse(status_code=503, content={"status": "not_ready", "database": "unreachable"})


@router.get("/metrics")
async def metrics():
    return get_metrics_response()
