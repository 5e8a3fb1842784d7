"""
Public image routes.
Pending ephemeral URLs and permalinks both stream the artifact file.
"""

import asyncio
import re

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from imageresize.api.errors import resize_errors
from imageresize.dependencies import get_services
from imageresize.pipeline.materializer import Artifact
from imageresize.services import ResizeServices

router = APIRouter(tags=["images"])

CACHE_KEY_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def _file_response(artifact: Artifact, status_code: int = status.HTTP_200_OK) -> FileResponse:
    return FileResponse(
        artifact.path,
        status_code=status_code,
        media_type=artifact.output.content_type,
    )


@router.get("/imageresize/{cache_key}.{extension}")
async def fetch_resized(
    cache_key: str,
    extension: str,
    services: ResizeServices = Depends(get_services),
):
    """Materialize (on first fetch) and stream a hash-addressed image."""
    if not CACHE_KEY_PATTERN.match(cache_key):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown image")

    with resize_errors():
        artifact = await services.ephemeral.fetch(cache_key, extension)
    return _file_response(artifact)


@router.get("/imageresizestatic/{identifier:path}.{extension}")
async def fetch_permalink(
    identifier: str,
    extension: str,
    services: ResizeServices = Depends(get_services),
):
    """Stream a permalink's image; unknown identifiers get the not-found image with a 404."""
    with resize_errors():
        artifact = await services.permalinks.render(identifier)
        if artifact is None:
            artifact = await asyncio.to_thread(services.materializer.materialize_not_found)
            return _file_response(artifact, status.HTTP_404_NOT_FOUND)
    return _file_response(artifact)
