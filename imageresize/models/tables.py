"""
SQLAlchemy ORM models.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from imageresize.models.database import Base


# ────────────────────────────────────────────────────────────
# PERMALINKS
# ────────────────────────────────────────────────────────────
class ImagePermalink(Base):
    """
    Stable identifier bound to a source image and frozen options.
    Created once (first writer wins); `path`/`resized_at` are filled on the
    first materialization. Only removed by an explicit bulk reset.
    """
    __tablename__ = "imageresize_permalinks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    identifier: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    mime_type: Mapped[str] = mapped_column(String(64), nullable=False)
    extension: Mapped[str] = mapped_column(String(16), nullable=False)
    options: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict
    )
    path: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resized_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(),
        onupdate=func.now()
    )
