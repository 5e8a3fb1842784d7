"""
Service container: every collaborator built from one Settings instance.
"""

from dataclasses import dataclass
from typing import Optional

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from imageresize.addressing.ephemeral import EphemeralResizer
from imageresize.addressing.permalink import PermalinkResizer
from imageresize.backends.base import ImageBackend
from imageresize.backends.pillow_backend import PillowBackend
from imageresize.config import Settings
from imageresize.models.database import close_db, create_engine, create_session_factory
from imageresize.pipeline.materializer import Materializer
from imageresize.pipeline.option_resolver import OptionResolver
from imageresize.storage.artifact_store import ArtifactStore
from imageresize.storage.descriptor_store import DescriptorStore
from imageresize.storage.garbage_collector import GarbageCollector
from imageresize.storage.sources import SourceResolver


def build_backends(sources: SourceResolver) -> dict[str, ImageBackend]:
    """Backends keyed by the `driver` option value."""
    backends: list[ImageBackend] = [PillowBackend(sources)]
    return {backend.backend_name: backend for backend in backends}


@dataclass
class ResizeServices:
    settings: Settings
    redis: Redis
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    sources: SourceResolver
    store: ArtifactStore
    descriptors: DescriptorStore
    resolver: OptionResolver
    materializer: Materializer
    ephemeral: EphemeralResizer
    permalinks: PermalinkResizer
    collector: GarbageCollector

    @classmethod
    def build(
        cls,
        settings: Settings,
        redis: Optional[Redis] = None,
        engine: Optional[AsyncEngine] = None,
    ) -> "ResizeServices":
        redis = redis if redis is not None else Redis.from_url(settings.REDIS_URL)
        engine = engine if engine is not None else create_engine(settings)
        session_factory = create_session_factory(engine)

        sources = SourceResolver(settings.SOURCE_ROOT, settings.SERVER_NAME)
        store = ArtifactStore(settings.CACHE_DIRECTORY)
        descriptors = DescriptorStore(redis, settings.DESCRIPTOR_TTL_SECONDS)
        resolver = OptionResolver(settings)
        materializer = Materializer(settings, store, resolver, build_backends(sources))

        return cls(
            settings=settings,
            redis=redis,
            engine=engine,
            session_factory=session_factory,
            sources=sources,
            store=store,
            descriptors=descriptors,
            resolver=resolver,
            materializer=materializer,
            ephemeral=EphemeralResizer(settings, resolver, materializer, descriptors, sources),
            permalinks=PermalinkResizer(settings, session_factory, resolver, materializer, sources),
            collector=GarbageCollector(),
        )

    async def aclose(self) -> None:
        await self.redis.aclose()
        await close_db(self.engine)
