"""Liveness and readiness probes.

/health answers 200 while the process is alive and reports each backing
service; /ready answers 503 when a configured database is unreachable,
so a load balancer stops routing here without restarting the process.
Redis is never critical: losing it only degrades logout revocation.
"""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from portal.db.engine import engine, ping_database
from portal.db.redis import ping_redis, redis_pool

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if engine is None:
        checks["database"] = "not_configured"
    elif await ping_database():
        checks["database"] = "ok"
    else:
        checks["database"] = "degraded"
        overall = "degraded"

    if redis_pool is None:
        checks["redis"] = "not_configured"
    elif await ping_redis():
        checks["redis"] = "ok"
    else:
        checks["redis"] = "degraded"
        overall = "degraded"

    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if engine is not None and not await ping_database():
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
