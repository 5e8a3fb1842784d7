"""
/api/v1/cache endpoints.
Statistics and garbage collection of the artifact cache.
"""

import asyncio

from fastapi import APIRouter, Depends, Query

from imageresize.dependencies import get_services, verify_api_key
from imageresize.schemas.requests import CacheClearedResponse, CacheStatsResponse, CollectionResponse
from imageresize.services import ResizeServices
from imageresize.storage.garbage_collector import clear_cache, on_cache_cleared

router = APIRouter(prefix="/api/v1/cache", tags=["cache"], dependencies=[Depends(verify_api_key)])


def human_size(size_bytes: int) -> str:
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} TB"


@router.get("", response_model=CacheStatsResponse)
async def cache_stats(services: ResizeServices = Depends(get_services)):
    stats = await asyncio.to_thread(services.store.stats)
    clear_age = services.settings.CACHE_CLEAR_AGE
    return CacheStatsResponse(
        file_count=stats.file_count,
        size_bytes=stats.size_bytes,
        size_human=human_size(stats.size_bytes),
        clear_age_seconds=clear_age.total_seconds() if clear_age is not None else None,
    )


@router.delete("", response_model=CollectionResponse)
async def clear(
    everything: bool = Query(False, alias="all"),
    services: ResizeServices = Depends(get_services),
):
    """Delete artifacts older than the configured age (or all of them)."""
    result = await asyncio.to_thread(
        clear_cache, services.settings, services.collector, everything
    )
    return CollectionResponse(**result.as_dict())


@router.post("/cleared", response_model=CacheClearedResponse)
async def cache_cleared(services: ResizeServices = Depends(get_services)):
    """External "cache cleared" signal; collects only when enabled in settings."""
    result = await asyncio.to_thread(on_cache_cleared, services.settings, services.collector)
    if result is None:
        return CacheClearedResponse(ran=False)
    return CacheClearedResponse(ran=True, **result.as_dict())
