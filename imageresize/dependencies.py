"""
FastAPI dependency injection.
Provides the service container and API key validation.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from imageresize.config import Settings, get_settings
from imageresize.services import ResizeServices


# ── Singleton instances ──────────────────────────────────────
_services: Optional[ResizeServices] = None


def init_services(settings: Settings) -> ResizeServices:
    """(Re)build the service container for the given settings."""
    global _services
    _services = ResizeServices.build(settings)
    return _services


def get_services() -> ResizeServices:
    """Get or create the service container singleton."""
    if _services is None:
        return init_services(get_settings())
    return _services


async def verify_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    services: ResizeServices = Depends(get_services),
) -> Optional[str]:
    """
    Verify API key if configured.
    If API_KEY is not set, all requests are allowed (dev mode).
    """
    expected = services.settings.API_KEY
    if expected is None:
        return None

    if x_api_key is None or x_api_key != expected:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return x_api_key
