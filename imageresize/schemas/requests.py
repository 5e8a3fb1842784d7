"""
Pydantic request/response schemas for the /api/v1 admin endpoints.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


# ── Request Schemas ──────────────────────────────────────────

class ResizeRequest(BaseModel):
    """Resize a source image; the response carries a URL, never pixels."""
    image: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    options: dict[str, Any] = {}


class PermalinkRequest(ResizeRequest):
    identifier: str = Field(min_length=1)


class HtmlResizeRequest(BaseModel):
    """Rewrite every image reference in an HTML fragment."""
    html: str
    width: Optional[int] = None
    height: Optional[int] = None
    options: dict[str, Any] = {}


# ── Response Schemas ─────────────────────────────────────────

class ResizeResponse(BaseModel):
    url: str


class PermalinkResponse(BaseModel):
    url: str
    identifier: str
    # False when the permalink store was unavailable and an ephemeral URL was issued
    permalink: bool


class HtmlResizeResponse(BaseModel):
    html: str


class CacheStatsResponse(BaseModel):
    file_count: int
    size_bytes: int
    size_human: str
    clear_age_seconds: Optional[float] = None


class CollectionResponse(BaseModel):
    scanned: int = 0
    deleted: int = 0
    failed: int = 0
    directories_removed: int = 0


class CacheClearedResponse(CollectionResponse):
    ran: bool


class PermalinkResetResponse(BaseModel):
    deleted: int
