"""
/api/v1/resize endpoints.
Hand out resized-image URLs; pixel work happens when the URL is fetched.
"""

import structlog
from fastapi import APIRouter, Depends

from imageresize.dependencies import get_services, verify_api_key
from imageresize.pipeline.html_rewriter import rewrite_html_images
from imageresize.schemas.requests import (
    HtmlResizeRequest,
    HtmlResizeResponse,
    PermalinkRequest,
    PermalinkResponse,
    ResizeRequest,
    ResizeResponse,
)
from imageresize.services import ResizeServices

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/resize", tags=["resize"], dependencies=[Depends(verify_api_key)])


@router.post("", response_model=ResizeResponse)
async def resize_image(
    body: ResizeRequest,
    services: ResizeServices = Depends(get_services),
):
    url = await services.ephemeral.resize(body.image, body.width, body.height, body.options)
    return ResizeResponse(url=url)


@router.post("/permalink", response_model=PermalinkResponse)
async def resize_permalink(
    body: PermalinkRequest,
    services: ResizeServices = Depends(get_services),
):
    """Permalink URL; falls back to an ephemeral URL when the store is unavailable."""
    identifier = body.identifier.strip("/")
    url = await services.permalinks.resize(
        identifier, body.image, body.width, body.height, body.options
    )
    if url is not None:
        return PermalinkResponse(url=url, identifier=identifier, permalink=True)

    logger.warning("permalink_fallback_ephemeral", identifier=identifier)
    url = await services.ephemeral.resize(body.image, body.width, body.height, body.options)
    return PermalinkResponse(url=url, identifier=identifier, permalink=False)


@router.post("/html", response_model=HtmlResizeResponse)
async def resize_html(
    body: HtmlResizeRequest,
    services: ResizeServices = Depends(get_services),
):
    async def resize(reference: str) -> str:
        return await services.ephemeral.resize(reference, body.width, body.height, body.options)

    html = await rewrite_html_images(body.html, resize)
    return HtmlResizeResponse(html=html)
