"""Health check endpoints."""

from typing import Any, cast

from fastapi import APIRouter, Request
from pydantic import BaseModel
from sqlalchemy import literal, select

from stagebook.api.deps import ContainerDep
from stagebook.config import get_settings
from stagebook.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    storage: str
    email: str


class ReadyResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    checks: dict[str, bool]


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check - always returns OK if service is running."""
    from stagebook import __version__

    settings = get_settings()
    return HealthResponse(
        status="healthy",
        version=__version__,
        storage=settings.storage_backend,
        email=settings.email_provider,
    )


@router.get("/ready", response_model=ReadyResponse)
async def readiness_check(request: Request, container: ContainerDep) -> ReadyResponse:
    """Readiness check - verifies the database and Redis are reachable."""
    checks: dict[str, bool] = {}

    if container.session_factory is not None:
        try:
            async with container.session_factory() as session:
                await session.execute(select(literal(1)))
            checks["database"] = True
        except Exception as e:
            logger.warning("database_health_check_failed", error=str(e))
            checks["database"] = False

    try:
        import redis.asyncio as redis

        settings = get_settings()
        redis_client = getattr(request.app.state, "redis_client", None)
        if redis_client is None:
            redis_client = cast(Any, redis.from_url)(str(settings.redis_url))
            request.app.state.redis_client = redis_client
        await redis_client.ping()
        checks["redis"] = True
    except Exception as e:
        logger.warning("redis_health_check_failed", error=str(e))
        checks["redis"] = False

    return ReadyResponse(ready=all(checks.values()), checks=checks)
