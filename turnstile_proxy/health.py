"""
Health Check Module
===================
Component status for the proxy itself, served on an exempt path.
"""

import time
from enum import Enum
from typing import Dict, Optional

import structlog
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from .pending import PendingRequestCache

logger = structlog.get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ComponentHealth(BaseModel):
    status: str
    latency_ms: Optional[float] = None
    error: Optional[str] = None
    size: Optional[int] = None


class HealthResponse(BaseModel):
    status: HealthStatus
    service: str
    version: str
    components: Dict[str, ComponentHealth]
    timestamp: float


async def check_database(engine: AsyncEngine) -> ComponentHealth:
    """Check database connectivity and latency."""
    try:
        start = time.time()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        latency = (time.time() - start) * 1000
        return ComponentHealth(status="connected", latency_ms=round(latency, 2))
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))
        return ComponentHealth(status="error", error=str(e))


def check_pending_cache(pending: PendingRequestCache) -> ComponentHealth:
    """Report cache size and whether expired entries are being swept."""
    status = "running" if pending.sweeper_running else "stopped"
    return ComponentHealth(status=status, size=len(pending))


def create_health_route(
    path: str,
    service_name: str,
    version: str,
    pending: PendingRequestCache,
    engine: Optional[AsyncEngine] = None,
) -> Route:
    """
    Create the health check route.

    The audit database is best-effort, so its failure only degrades the
    reported status; a stopped sweeper does the same.
    """

    async def health_check(request: Request) -> JSONResponse:
        components: Dict[str, ComponentHealth] = {}
        overall_status = HealthStatus.HEALTHY

        components["pending_requests"] = check_pending_cache(pending)
        if components["pending_requests"].status != "running":
            overall_status = HealthStatus.DEGRADED

        if engine is not None:
            components["database"] = await check_database(engine)
            if components["database"].status == "error":
                overall_status = HealthStatus.DEGRADED

        body = HealthResponse(
            status=overall_status,
            service=service_name,
            version=version,
            components=components,
            timestamp=time.time(),
        )
        return JSONResponse(body.model_dump(mode="json", exclude_none=True))

    return Route(path, health_check, methods=["GET"])
