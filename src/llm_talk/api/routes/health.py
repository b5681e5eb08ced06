"""Health check API routes.

GET /health reports service status, configured providers and the number
of live (running) sessions held by this process.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from enum import Enum

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field


router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


SERVICE_VERSION = os.environ.get("SERVICE_VERSION", "0.1.0")


class HealthStatus(str, Enum):
    """Health status enum."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"


class HealthResponse(BaseModel):
    """Response model for health check.

    Attributes:
        status: healthy, or degraded when no provider is configured
        service: Service name
        version: Service version
        timestamp: Check timestamp (ISO format)
        uptime_seconds: Service uptime in seconds
        providers: Configured provider tags
        live_sessions: Running sessions held in this process
    """

    status: HealthStatus = Field(default=HealthStatus.HEALTHY, description="Overall service status")
    service: str = Field(..., description="Service name")
    version: str = Field(default=SERVICE_VERSION, description="Service version")
    timestamp: str = Field(
        default_factory=lambda: datetime.now(UTC).isoformat(),
        description="Check timestamp",
    )
    uptime_seconds: float | None = Field(default=None, description="Service uptime in seconds")
    providers: list[str] = Field(default_factory=list, description="Configured providers")
    live_sessions: int = Field(default=0, description="Running sessions in this process")


def get_uptime_seconds(request: Request) -> float | None:
    started_at: datetime | None = getattr(request.app.state, "started_at", None)
    if started_at is None:
        return None
    return (datetime.now(UTC) - started_at).total_seconds()


@router.get("", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    """Service health summary."""
    state = request.app.state
    providers = state.registry.tags()
    return HealthResponse(
        status=HealthStatus.HEALTHY if providers else HealthStatus.DEGRADED,
        service=state.settings.service_name,
        uptime_seconds=get_uptime_seconds(request),
        providers=providers,
        live_sessions=state.pool.live_count(),
    )


__all__ = ["HealthResponse", "HealthStatus", "router"]
