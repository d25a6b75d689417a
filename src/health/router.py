"""Health check endpoints."""

from fastapi import APIRouter, status
from fastapi.responses import ORJSONResponse
from redis.exceptions import RedisError

from src.config import get_settings
from src.core.database import AsyncCassandraConnection
from src.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness() -> ORJSONResponse:
    """Readiness probe - Cassandra and Redis must both be reachable."""
    settings = get_settings()

    redis_ok = False
    redis_client = get_redis()
    if redis_client is not None:
        try:
            redis_ok = bool(await redis_client.ping())
        except RedisError:
            redis_ok = False

    checks = {
        "cassandra": AsyncCassandraConnection.is_connected(),
        "redis": redis_ok,
    }
    ready = all(checks.values())

    return ORJSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if ready else "not_ready",
            "environment": settings.environment,
            "checks": checks,
        },
    )


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
