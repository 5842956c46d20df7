# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoints.

This module provides health, liveness and readiness endpoints for the API.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field

from src.core.config import get_settings
from src.infrastructure.background.scheduler import get_scheduler
from src.infrastructure.database.connection import check_database_connection
from src.infrastructure.realtime.registry import get_session_registry

logger = logging.getLogger(__name__)

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()

API_VERSION = "1.0.0"


class ComponentHealth(BaseModel):
    """Individual component health status."""
    status: str = Field(description="Component status")
    latency_ms: float | None = Field(None, description="Response latency in ms")
    message: str | None = Field(None, description="Additional status message")


class ComponentsHealth(BaseModel):
    """All components health status."""
    database: ComponentHealth | None = None
    scheduler: ComponentHealth | None = None
    realtime: dict[str, int] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(description="Overall health status")
    service: str = Field(description="Service name")
    timestamp: datetime = Field(description="Current server timestamp")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Server uptime in seconds")
    components: ComponentsHealth = Field(default_factory=ComponentsHealth)


class ReadinessResponse(BaseModel):
    """Readiness check response model."""
    ready: bool = Field(description="Whether the service is ready")
    checks: dict[str, Any] = Field(description="Individual check results")


async def check_database() -> ComponentHealth:
    """Check the database connection."""
    start = time.time()
    if not await check_database_connection():
        logger.error("Database health check failed")
        return ComponentHealth(status="unhealthy", message="Database unreachable")

    latency = (time.time() - start) * 1000
    return ComponentHealth(status="healthy", latency_ms=round(latency, 2))


def check_scheduler() -> ComponentHealth:
    """Check the periodic job scheduler."""
    stats = get_scheduler().get_stats()
    if not stats["is_running"]:
        return ComponentHealth(status="degraded", message="Scheduler not running")
    return ComponentHealth(
        status="healthy",
        message=f"{stats['task_count']} tasks, {stats['total_errors']} errors",
    )


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check if the API is healthy with component details.

    Returns:
        HealthResponse with detailed status.
    """
    settings = get_settings()
    registry = get_session_registry()

    db_health = await check_database()
    scheduler_health = check_scheduler()

    statuses = [db_health.status, scheduler_health.status]
    if all(s == "healthy" for s in statuses):
        overall_status = "healthy"
    elif db_health.status == "unhealthy":
        overall_status = "unhealthy"
    else:
        overall_status = "degraded"

    return HealthResponse(
        status=overall_status,
        service=settings.service_name,
        timestamp=datetime.now(timezone.utc),
        version=API_VERSION,
        environment=settings.environment,
        uptime_seconds=int(time.time() - _server_start_time),
        components=ComponentsHealth(
            database=db_health,
            scheduler=scheduler_health,
            realtime={
                "connections": registry.connection_count(),
                "users": registry.user_count(),
            },
        ),
    )


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """Report that the process is up."""
    return {"status": "alive"}


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Check if the API is ready to accept traffic.

    Responds 503 when the database is unreachable.

    Returns:
        ReadinessResponse with individual check results.
    """
    checks: dict[str, Any] = {}

    db_health = await check_database()
    checks["database"] = {"status": db_health.status, "latency_ms": db_health.latency_ms}
    ready = db_health.status == "healthy"

    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(ready=ready, checks=checks)
