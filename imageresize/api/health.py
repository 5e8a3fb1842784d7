"""
Health check endpoint.
/health always returns 200; dependency failures only mark the service degraded.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from imageresize.dependencies import get_services
from imageresize.services import ResizeServices

router = APIRouter(tags=["health"])


async def _check_database(services: ResizeServices) -> tuple[bool, Optional[str]]:
    try:
        async with services.session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1, None
    except (SQLAlchemyError, OSError) as e:
        return False, str(e)[:200]


async def _check_redis(services: ResizeServices) -> tuple[bool, Optional[str]]:
    try:
        return bool(await services.redis.ping()), None
    except (RedisError, OSError) as e:
        return False, str(e)[:200]


@router.get("/health")
async def health_check(services: ResizeServices = Depends(get_services)):
    """Liveness plus dependency status. ALWAYS returns 200."""
    db_ok, db_error = await _check_database(services)
    redis_ok, redis_error = await _check_redis(services)

    response = {
        "status": "healthy" if db_ok and redis_ok else "degraded",
        "version": services.settings.APP_VERSION,
        "database": "connected" if db_ok else "unreachable",
        "redis": "connected" if redis_ok else "unreachable",
        "backends": {
            name: backend.backend_version
            for name, backend in services.materializer.backends.items()
        },
    }
    if db_error:
        response["database_error"] = db_error
    if redis_error:
        response["redis_error"] = redis_error
    return response


@router.get("/health/ready")
async def readiness_check(services: ResizeServices = Depends(get_services)):
    """Readiness probe: ready only when every dependency answers."""
    db_ok, _ = await _check_database(services)
    redis_ok, _ = await _check_redis(services)
    return {"ready": db_ok and redis_ok}
