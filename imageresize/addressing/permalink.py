"""
Identifier-addressed ("permalink") resizing.

A permalink binds a caller-chosen identifier to a source image and options,
frozen at creation: later calls with the same identifier get the original
binding back whatever image or options they pass. The row is written before
any pixel work; the artifact is produced on first render.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from sqlalchemy import delete, inspect, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from imageresize.config import Settings
from imageresize.models.tables import ImagePermalink
from imageresize.observability.metrics import (
    artifact_cache_hits_total,
    permalinks_created_total,
    resize_requests_total,
)
from imageresize.pipeline.formats import FormatInfo
from imageresize.pipeline.materializer import Artifact, MaterializeRequest, Materializer
from imageresize.pipeline.option_resolver import OptionResolver
from imageresize.storage.paths import permalink_key
from imageresize.storage.sources import SourceResolver

logger = structlog.get_logger(__name__)


def permalink_identifier(model_name: str, slug: str, key: Optional[str] = None) -> str:
    """
    Conventional identifier for a record's image: "{key}/{model}/{slug}".

    `model_name` may be a dotted or slashed class path; only its last
    segment is used, lower-cased.
    """
    name = model_name.replace("\\", "/").replace(".", "/").rsplit("/", 1)[-1].lower()
    identifier = f"{name}/{slug}"
    if key is not None:
        identifier = f"{key}/{identifier}"
    return identifier


class PermalinkResizer:
    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        resolver: OptionResolver,
        materializer: Materializer,
        sources: SourceResolver,
    ):
        self.settings = settings
        self.session_factory = session_factory
        self.resolver = resolver
        self.materializer = materializer
        self.sources = sources
        self._available = False

    def url_for(self, permalink: ImagePermalink) -> str:
        return (
            f"{self.settings.PUBLIC_BASE_URL}/imageresizestatic/"
            f"{permalink.identifier}.{permalink.extension}"
        )

    async def store_available(self) -> bool:
        """Cheap probe for the permalink table. A positive answer is remembered."""
        if self._available:
            return True
        try:
            async with self.session_factory() as session:
                connection = await session.connection()
                self._available = await connection.run_sync(
                    lambda sync_conn: inspect(sync_conn).has_table(ImagePermalink.__tablename__)
                )
        except (SQLAlchemyError, OSError) as e:
            logger.warning("permalink_store_unreachable", error=str(e))
            return False
        if not self._available:
            logger.warning("permalink_store_missing", table=ImagePermalink.__tablename__)
        return self._available

    async def get(self, identifier: str) -> Optional[ImagePermalink]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ImagePermalink).where(ImagePermalink.identifier == identifier.strip("/"))
            )
            return result.scalar_one_or_none()

    async def resize(
        self,
        identifier: str,
        image: Optional[str],
        width: Optional[int] = None,
        height: Optional[int] = None,
        options: Optional[dict[str, Any]] = None,
    ) -> Optional[str]:
        """
        Permalink URL for `identifier`, creating the binding if absent.
        Returns None when the permalink store is unavailable.
        """
        identifier = identifier.strip("/")
        if not await self.store_available():
            return None
        resize_requests_total.labels(addressing="permalink").inc()

        existing = await self.get(identifier)
        if existing is not None:
            return self.url_for(existing)

        source = self.sources.resolve(image)
        resolved = self.resolver.resolve(source, width, height, options)
        output = await asyncio.to_thread(
            self.materializer.output_format, source, resolved.options
        )

        permalink = ImagePermalink(
            identifier=identifier,
            image=source,
            mime_type=output.content_type,
            extension=output.format,
            options=resolved.options,
        )
        async with self.session_factory() as session:
            session.add(permalink)
            try:
                await session.commit()
            except IntegrityError:
                # Another request created it first; theirs is the binding
                await session.rollback()
                logger.info("permalink_create_conflict", identifier=identifier)
                winner = await self.get(identifier)
                return self.url_for(winner)

        permalinks_created_total.inc()
        logger.info(
            "permalink_created",
            identifier=identifier,
            image=source,
            extension=output.format,
        )
        return self.url_for(permalink)

    async def render(self, identifier: str) -> Optional[Artifact]:
        """
        Artifact for a permalink, materializing it on first use (or when the
        stored file has been garbage collected). None for unknown identifiers.
        """
        identifier = identifier.strip("/")
        if not await self.store_available():
            return None

        async with self.session_factory() as session:
            result = await session.execute(
                select(ImagePermalink).where(ImagePermalink.identifier == identifier)
            )
            permalink = result.scalar_one_or_none()
            if permalink is None:
                return None

            output = FormatInfo.for_format(permalink.extension)
            store = self.materializer.store
            if permalink.path and store.exists(permalink.path):
                artifact_cache_hits_total.labels(addressing="permalink").inc()
                return Artifact(
                    path=str(store.full_path(permalink.path)),
                    relative_path=permalink.path,
                    output=output,
                    materialized=False,
                )

            request = MaterializeRequest(
                source=permalink.image,
                options=dict(permalink.options),
                cache_key=permalink_key(identifier, permalink.options),
                output=output,
            )
            artifact = await asyncio.to_thread(self.materializer.materialize, request)

            permalink.path = artifact.relative_path
            permalink.resized_at = datetime.now(timezone.utc)
            await session.commit()
            return artifact

    async def reset(self) -> int:
        """Delete every permalink row. Artifacts are left to the garbage collector."""
        if not await self.store_available():
            return 0
        async with self.session_factory() as session:
            result = await session.execute(delete(ImagePermalink))
            await session.commit()
        logger.info("permalinks_reset", deleted=result.rowcount)
        return result.rowcount
