"""
Ephemeral descriptor store (Redis).

A descriptor lets a pending /imageresize/{key}.{ext} URL materialize itself on
first fetch. It is only a bootstrap: once the artifact is on disk the disk
copy is authoritative and the descriptor may expire.
"""

from typing import Any, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = structlog.get_logger(__name__)

KEY_PREFIX = "image_resize_"


class EphemeralDescriptor(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image: Optional[str] = None
    options: dict[str, Any] = {}
    overrides: dict[str, Any] = {}
    format_cache: list[str] = Field(default_factory=list, alias="formatCache")


class DescriptorStore:
    """get/remember access to descriptors, keyed by cache key."""

    def __init__(self, redis: Redis, ttl_seconds: int = 604800):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def redis_key(cache_key: str) -> str:
        return f"{KEY_PREFIX}{cache_key}"

    async def remember(self, cache_key: str, descriptor: EphemeralDescriptor) -> bool:
        """
        Store the descriptor unless one already exists.
        Returns True if this call wrote it. Redis failures are logged and
        reported as not written; the caller still hands out its URL.
        """
        payload = descriptor.model_dump_json(by_alias=True)
        try:
            written = await self.redis.set(
                self.redis_key(cache_key), payload, ex=self.ttl_seconds, nx=True
            )
        except RedisError as e:
            logger.warning("descriptor_store_failed", cache_key=cache_key, error=str(e))
            return False
        return bool(written)

    async def get(self, cache_key: str) -> Optional[EphemeralDescriptor]:
        """Descriptor for a key; None if absent, expired, corrupt or unreachable."""
        try:
            payload = await self.redis.get(self.redis_key(cache_key))
        except RedisError as e:
            logger.warning("descriptor_lookup_failed", cache_key=cache_key, error=str(e))
            return None
        if payload is None:
            return None
        try:
            return EphemeralDescriptor.model_validate_json(payload)
        except ValidationError as e:
            logger.warning("descriptor_corrupt", cache_key=cache_key, error=str(e))
            return None
