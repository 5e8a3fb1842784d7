"""
Top-level API router.
Combines all sub-routers into a single router.
"""

from fastapi import APIRouter

from imageresize.api.cache import router as cache_router
from imageresize.api.health import router as health_router
from imageresize.api.images import router as images_router
from imageresize.api.permalinks import router as permalinks_router
from imageresize.api.resize import router as resize_router

api_router = APIRouter()

api_router.include_router(health_router)
api_router.include_router(images_router)
api_router.include_router(resize_router)
api_router.include_router(cache_router)
api_router.include_router(permalinks_router)
