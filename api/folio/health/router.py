"""Health check endpoints."""

from fastapi import APIRouter, Request, Response, status

from folio.config import get_settings
from folio.core.database import AsyncCassandraConnection
from folio.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request, response: Response) -> dict[str, str | bool]:
    """Readiness probe - Cassandra is required, Redis is optional."""
    settings = get_settings()
    cassandra_ok = AsyncCassandraConnection.is_connected()
    redis_ok = get_redis() is not None

    if not cassandra_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "ready" if cassandra_ok else "unavailable",
        "environment": settings.environment,
        "cassandra": cassandra_ok,
        "redis": redis_ok,
        "rate_limiting": getattr(request.app.state, "rate_limiter", None) is not None,
    }


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
