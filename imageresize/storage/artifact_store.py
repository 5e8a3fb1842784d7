"""
Artifact store for resized images.
Local filesystem under CACHE_DIRECTORY; writes are atomic (temp file + rename)
so concurrent readers only ever see complete files.
"""

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

import structlog

from imageresize.storage.paths import ensure_parent_dirs

logger = structlog.get_logger(__name__)

# Prefix of in-flight temp files; the garbage collector leaves fresh ones alone
TEMP_PREFIX = ".imageresize-"


@dataclass
class CacheStats:
    file_count: int
    size_bytes: int


class ArtifactStore:
    """
    Save and load resized artifacts.
    All paths are relative to the cache root.
    """

    def __init__(self, root: str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def save_bytes(self, relative_path: str, data: bytes) -> str:
        """Atomically save raw bytes. Returns the relative path."""
        for attempt in (1, 2):
            full_path = ensure_parent_dirs(str(self.root), relative_path)
            try:
                fd, tmp_name = tempfile.mkstemp(prefix=TEMP_PREFIX, dir=full_path.parent)
            except FileNotFoundError:
                # Directory pruned by a concurrent GC run between mkdir and mkstemp
                if attempt == 2:
                    raise
                continue
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(data)
                # mkstemp creates 0600; artifacts are public
                os.chmod(tmp_name, 0o644)
                os.replace(tmp_name, full_path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
            break

        logger.info("artifact_saved", path=relative_path, size_bytes=len(data))
        return relative_path

    def exists(self, relative_path: str) -> bool:
        """Check if an artifact exists."""
        return (self.root / relative_path).is_file()

    def full_path(self, relative_path: str) -> Path:
        """Get the absolute filesystem path for an artifact."""
        return self.root / relative_path

    def stats(self) -> CacheStats:
        """Count and size every file under the cache root."""
        count = 0
        size = 0
        for dirpath, _, filenames in os.walk(self.root):
            for name in filenames:
                try:
                    size += os.stat(os.path.join(dirpath, name)).st_size
                except OSError:
                    continue
                count += 1
        return CacheStats(file_count=count, size_bytes=size)
