"""
Tests for the Redis descriptor store.
"""

import json

from imageresize.storage.descriptor_store import DescriptorStore, EphemeralDescriptor


def _descriptor(image="/media/a.jpg"):
    return EphemeralDescriptor(
        image=image,
        options={"width": 200, "mode": "cover"},
        overrides={"quality": 10},
        format_cache=["jpeg", "jpg"],
    )


class TestDescriptorStore:

    async def test_remember_then_get(self, fake_redis):
        store = DescriptorStore(fake_redis, ttl_seconds=604800)
        assert await store.remember("k1", _descriptor()) is True

        descriptor = await store.get("k1")
        assert descriptor.image == "/media/a.jpg"
        assert descriptor.options == {"width": 200, "mode": "cover"}
        assert descriptor.overrides == {"quality": 10}
        assert descriptor.format_cache == ["jpeg", "jpg"]

    async def test_stored_under_prefixed_key_with_ttl(self, fake_redis):
        store = DescriptorStore(fake_redis, ttl_seconds=123)
        await store.remember("abc", _descriptor())
        assert fake_redis.ttls["image_resize_abc"] == 123
        payload = json.loads(fake_redis.data["image_resize_abc"])
        assert payload["formatCache"] == ["jpeg", "jpg"]

    async def test_remember_does_not_overwrite(self, fake_redis):
        store = DescriptorStore(fake_redis)
        await store.remember("k1", _descriptor("/media/first.jpg"))
        assert await store.remember("k1", _descriptor("/media/second.jpg")) is False
        assert (await store.get("k1")).image == "/media/first.jpg"

    async def test_missing(self, fake_redis):
        assert await DescriptorStore(fake_redis).get("nope") is None

    async def test_corrupt_payload(self, fake_redis):
        fake_redis.data["image_resize_bad"] = "not json"
        assert await DescriptorStore(fake_redis).get("bad") is None

    async def test_redis_down_degrades(self, fake_redis):
        fake_redis.down = True
        store = DescriptorStore(fake_redis)
        assert await store.remember("k1", _descriptor()) is False
        assert await store.get("k1") is None
