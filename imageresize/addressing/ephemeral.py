"""
Hash-addressed ("ephemeral") resizing.

resize() hands out a URL without touching pixels: the permanent cache URL
when the artifact is already on disk, otherwise a pending
/imageresize/{key}.{ext} URL backed by a Redis descriptor. fetch() turns a
pending URL into an artifact on first request.
"""

import asyncio
from typing import Any, Optional

import structlog

from imageresize.config import Settings
from imageresize.observability.metrics import artifact_cache_hits_total, resize_requests_total
from imageresize.pipeline.formats import FormatInfo, normalize_format
from imageresize.pipeline.materializer import Artifact, MaterializeRequest, Materializer
from imageresize.pipeline.option_resolver import OptionResolver
from imageresize.storage.descriptor_store import DescriptorStore, EphemeralDescriptor
from imageresize.storage.sources import SourceResolver

logger = structlog.get_logger(__name__)


class EphemeralResizer:
    def __init__(
        self,
        settings: Settings,
        resolver: OptionResolver,
        materializer: Materializer,
        descriptors: DescriptorStore,
        sources: SourceResolver,
    ):
        self.settings = settings
        self.resolver = resolver
        self.materializer = materializer
        self.descriptors = descriptors
        self.sources = sources

    def cache_url(self, relative_path: str) -> str:
        return f"{self.settings.PUBLIC_BASE_URL}{self.settings.CACHE_URL_PREFIX}/{relative_path}"

    def pending_url(self, cache_key: str, extension: str) -> str:
        return f"{self.settings.PUBLIC_BASE_URL}/imageresize/{cache_key}.{extension}"

    async def resize(
        self,
        image: Optional[str],
        width: Optional[int] = None,
        height: Optional[int] = None,
        options: Optional[dict[str, Any]] = None,
    ) -> str:
        """URL for the resized image; never decodes or writes pixels."""
        resize_requests_total.labels(addressing="ephemeral").inc()

        source = self.sources.resolve(image)
        resolved = self.resolver.resolve(source, width, height, options)
        output = await asyncio.to_thread(
            self.materializer.output_format, source, resolved.options
        )
        artifact = self.materializer.artifact_for(resolved.cache_key, output)

        if resolved.options.get("cache", True) and self.materializer.store.exists(artifact.relative_path):
            artifact_cache_hits_total.labels(addressing="ephemeral").inc()
            return self.cache_url(artifact.relative_path)

        await self.descriptors.remember(
            resolved.cache_key,
            EphemeralDescriptor(
                image=source,
                options=resolved.options,
                overrides=resolved.overrides,
                format_cache=output.as_list(),
            ),
        )
        return self.pending_url(resolved.cache_key, output.format)

    async def fetch(self, cache_key: str, extension: str) -> Artifact:
        """
        Artifact behind a pending URL.
        Disk is authoritative once written; a missing descriptor with no file
        on disk serves the not-found image without touching this key's path.
        """
        descriptor = await self.descriptors.get(cache_key)
        if descriptor is not None:
            request = MaterializeRequest(
                source=descriptor.image,
                options=descriptor.options,
                cache_key=cache_key,
                overrides=descriptor.overrides,
                output=FormatInfo.from_list(descriptor.format_cache),
            )
            return await asyncio.to_thread(self.materializer.materialize, request)

        fmt = normalize_format(extension)
        if fmt is not None:
            artifact = self.materializer.artifact_for(cache_key, FormatInfo.for_format(fmt))
            if self.materializer.store.exists(artifact.relative_path):
                artifact_cache_hits_total.labels(addressing="ephemeral").inc()
                return artifact

        logger.info("descriptor_missing", cache_key=cache_key)
        return await asyncio.to_thread(self.materializer.materialize_not_found)
