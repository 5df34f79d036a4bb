"""Health check endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel

from atlas_broker.core.config import settings
from atlas_broker.core.metrics import metrics

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: str
    version: str = settings.plugin_version


class ReadinessResponse(BaseModel):
    """Readiness check response."""
    status: str
    timestamp: str
    session: dict
    version: str = settings.plugin_version


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the service is running.
    No authentication required.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request) -> ReadinessResponse:
    """
    Readiness check endpoint.

    Reports whether the plugin has been initialized and whether an Atlas
    client is currently cached. Never contacts Atlas.
    """
    session = request.app.state.database.session
    return ReadinessResponse(
        status="ready" if session.initialized else "not_initialized",
        timestamp=datetime.now(timezone.utc).isoformat(),
        session={
            "initialized": session.initialized,
            "client_cached": session.has_client,
        },
    )


@router.get("/metrics")
async def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format.
    """
    return Response(
        content=metrics.get_metrics(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
