"""
Age-based garbage collection of the artifact cache.

Deletes files older than a cutoff, lets registered hooks veto candidates,
then prunes directories left empty. Best effort throughout: a file that
vanishes or cannot be removed is counted and the run carries on.
"""

import os
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog

from imageresize.config import Settings
from imageresize.observability.metrics import gc_files_deleted_total, gc_runs_total
from imageresize.storage.artifact_store import TEMP_PREFIX

logger = structlog.get_logger(__name__)

# (candidate paths, cutoff timestamp or None for "everything") -> kept candidates
CollectionHook = Callable[[list[str], Optional[float]], list[str]]


@dataclass
class CollectionResult:
    scanned: int = 0
    deleted: int = 0
    failed: int = 0
    directories_removed: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "scanned": self.scanned,
            "deleted": self.deleted,
            "failed": self.failed,
            "directories_removed": self.directories_removed,
        }


class GarbageCollector:
    def __init__(self, hooks: Optional[list[CollectionHook]] = None):
        self.hooks: list[CollectionHook] = list(hooks or [])

    def register_hook(self, hook: CollectionHook) -> None:
        self.hooks.append(hook)

    def collect(
        self,
        root: str,
        max_age: Optional[timedelta] = None,
        now: Optional[datetime] = None,
    ) -> CollectionResult:
        """
        Delete files under `root` modified before `now - max_age`
        (every file when max_age is None), then remove emptied directories.
        """
        result = CollectionResult()
        if not os.path.isdir(root):
            logger.info("gc_root_missing", root=root)
            return result

        current = (now or datetime.now()).timestamp()
        cutoff = current - max_age.total_seconds() if max_age is not None else None

        candidates: list[str] = []
        for dirpath, _, filenames in os.walk(root):
            for name in filenames:
                path = os.path.join(dirpath, name)
                try:
                    mtime = os.stat(path).st_mtime
                except FileNotFoundError:
                    continue
                result.scanned += 1
                if name.startswith(TEMP_PREFIX):
                    # In-flight write; only reclaim ones clearly abandoned
                    if cutoff is None or mtime >= cutoff:
                        continue
                if cutoff is None or mtime < cutoff:
                    candidates.append(path)

        for hook in self.hooks:
            try:
                candidates = list(hook(candidates, cutoff))
            except Exception as e:
                # A broken hook neither vetoes nor aborts; its input carries on
                logger.warning(
                    "gc_hook_failed",
                    hook=getattr(hook, "__name__", repr(hook)),
                    error=str(e),
                )

        for path in candidates:
            try:
                os.unlink(path)
                result.deleted += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                result.failed += 1
                logger.warning("gc_delete_failed", path=path, error=str(e))

        result.directories_removed = prune_empty_dirs(root)
        gc_files_deleted_total.inc(result.deleted)

        logger.info(
            "gc_completed",
            root=root,
            max_age_seconds=max_age.total_seconds() if max_age is not None else None,
            **result.as_dict(),
        )
        return result


def prune_empty_dirs(root: str) -> int:
    """Remove empty directories below `root`, deepest first. The root is kept."""
    removed = 0
    for dirpath, _, _ in os.walk(root, topdown=False):
        if os.path.normpath(dirpath) == os.path.normpath(root):
            continue
        try:
            os.rmdir(dirpath)
            removed += 1
        except OSError:
            # Not empty (or already gone); either way nothing to do
            continue
    return removed


# ─── Triggers ─────────────────────────────────────────────────

def run_scheduled_collection(
    settings: Settings, collector: GarbageCollector,
) -> Optional[CollectionResult]:
    """Periodic collection; a no-op unless GC_ENABLED."""
    if not settings.GC_ENABLED:
        logger.debug("gc_skipped", trigger="schedule")
        return None
    gc_runs_total.labels(trigger="schedule").inc()
    return collector.collect(settings.CACHE_DIRECTORY, settings.CACHE_CLEAR_AGE)


def on_cache_cleared(
    settings: Settings, collector: GarbageCollector,
) -> Optional[CollectionResult]:
    """Reaction to an external "cache cleared" signal; a no-op unless enabled."""
    if not settings.CLEANUP_ON_CACHE_CLEAR:
        logger.debug("gc_skipped", trigger="cache_cleared")
        return None
    gc_runs_total.labels(trigger="cache_cleared").inc()
    return collector.collect(settings.CACHE_DIRECTORY, settings.CACHE_CLEAR_AGE)


def clear_cache(
    settings: Settings, collector: GarbageCollector, everything: bool = False,
) -> CollectionResult:
    """Explicit clear; always runs."""
    gc_runs_total.labels(trigger="manual").inc()
    max_age = None if everything else settings.CACHE_CLEAR_AGE
    return collector.collect(settings.CACHE_DIRECTORY, max_age)
