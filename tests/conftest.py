"""
Shared test fixtures.
"""

from pathlib import Path
from typing import Optional

import pytest
from PIL import Image
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from imageresize.config import Settings
from imageresize.models import tables  # noqa: F401
from imageresize.models.database import Base
from imageresize.services import ResizeServices


class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis (the calls the service makes)."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, Optional[int]] = {}
        self.down = False

    def _check(self):
        if self.down:
            raise RedisConnectionError("Connection refused")

    async def set(self, name, value, ex=None, nx=False):
        self._check()
        if nx and name in self.data:
            return None
        self.data[name] = value
        self.ttls[name] = ex
        return True

    async def get(self, name):
        self._check()
        return self.data.get(name)

    async def ping(self):
        self._check()
        return True

    async def aclose(self):
        return None


def make_image(
    path: Path,
    size: tuple[int, int] = (400, 200),
    mode: str = "RGB",
    color=(200, 30, 30),
    fmt: Optional[str] = None,
) -> Path:
    """Write a solid-colour test image and return its path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new(mode, size, color).save(path, fmt)
    return path


@pytest.fixture
def source_root(tmp_path) -> Path:
    root = tmp_path / "media"
    root.mkdir()
    return root


@pytest.fixture
def settings(tmp_path, source_root) -> Settings:
    return Settings(
        _env_file=None,
        DEBUG=True,
        SOURCE_ROOT=str(source_root),
        CACHE_DIRECTORY=str(tmp_path / "cache"),
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'imageresize.db'}",
        REDIS_URL="redis://localhost:6379/15",
        PUBLIC_BASE_URL="",
        API_KEY=None,
    )


@pytest.fixture
def landscape_jpg(source_root) -> Path:
    """400x200 JPEG."""
    return make_image(source_root / "landscape.jpg", (400, 200))


@pytest.fixture
def square_png(source_root) -> Path:
    """50x50 PNG with no alpha."""
    return make_image(source_root / "square.png", (50, 50), color=(10, 120, 220))


@pytest.fixture
def transparent_png(source_root) -> Path:
    """100x50 fully transparent PNG."""
    return make_image(source_root / "transparent.png", (100, 50), mode="RGBA", color=(0, 0, 0, 0))


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def db_engine(settings):
    """
    File-backed sqlite with NullPool: no connection outlives its event loop,
    so the same engine works from pytest-asyncio and from TestClient.
    """
    sync_engine = create_engine(settings.DATABASE_URL.replace("+aiosqlite", ""))
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()
    return create_async_engine(settings.DATABASE_URL, poolclass=NullPool)


@pytest.fixture
def services(settings, fake_redis, db_engine) -> ResizeServices:
    return ResizeServices.build(settings, redis=fake_redis, engine=db_engine)


@pytest.fixture
def image_factory():
    """make_image, for tests that need extra source files."""
    return make_image
