"""
/api/v1/permalinks endpoints.
"""

from fastapi import APIRouter, Depends

from imageresize.dependencies import get_services, verify_api_key
from imageresize.schemas.requests import PermalinkResetResponse
from imageresize.services import ResizeServices

router = APIRouter(prefix="/api/v1/permalinks", tags=["permalinks"], dependencies=[Depends(verify_api_key)])


@router.delete("", response_model=PermalinkResetResponse)
async def reset_permalinks(services: ResizeServices = Depends(get_services)):
    """Delete every permalink; their URLs regenerate bindings on next resize."""
    return PermalinkResetResponse(deleted=await services.permalinks.reset())
