"""
Tests for garbage collection of the artifact cache.
"""

import os
from datetime import datetime, timedelta
from pathlib import Path

from imageresize.storage.artifact_store import TEMP_PREFIX
from imageresize.storage.garbage_collector import (
    GarbageCollector,
    clear_cache,
    on_cache_cleared,
    prune_empty_dirs,
    run_scheduled_collection,
)

NOW = datetime(2026, 3, 1, 12, 0, 0)


def _touch(path, age: timedelta):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x")
    stamp = NOW.timestamp() - age.total_seconds()
    os.utime(path, (stamp, stamp))
    return path


class TestCollect:

    def test_deletes_only_files_older_than_max_age(self, tmp_path):
        old = _touch(tmp_path / "abc" / "old.jpg", timedelta(days=8))
        new = _touch(tmp_path / "def" / "new.jpg", timedelta(days=6))

        result = GarbageCollector().collect(str(tmp_path), timedelta(days=7), now=NOW)

        assert not old.exists()
        assert new.exists()
        assert result.scanned == 2
        assert result.deleted == 1
        assert result.failed == 0

    def test_removes_directories_left_empty(self, tmp_path):
        _touch(tmp_path / "abc" / "def" / "ghi" / "old.jpg", timedelta(days=30))
        _touch(tmp_path / "keep" / "new.jpg", timedelta(hours=1))

        result = GarbageCollector().collect(str(tmp_path), timedelta(days=7), now=NOW)

        assert not (tmp_path / "abc").exists()
        assert (tmp_path / "keep").is_dir()
        assert result.directories_removed == 3
        assert tmp_path.is_dir()

    def test_exact_cutoff_is_kept(self, tmp_path):
        edge = _touch(tmp_path / "edge.jpg", timedelta(days=7))
        GarbageCollector().collect(str(tmp_path), timedelta(days=7), now=NOW)
        assert edge.exists()

    def test_no_max_age_deletes_everything(self, tmp_path):
        _touch(tmp_path / "a" / "one.jpg", timedelta(seconds=1))
        _touch(tmp_path / "b" / "two.jpg", timedelta(days=100))

        result = GarbageCollector().collect(str(tmp_path), None, now=NOW)

        assert result.deleted == 2
        assert os.listdir(tmp_path) == []

    def test_fresh_temp_files_skipped(self, tmp_path):
        fresh = _touch(tmp_path / "a" / f"{TEMP_PREFIX}123", timedelta(seconds=5))
        stale = _touch(tmp_path / "a" / f"{TEMP_PREFIX}456", timedelta(days=30))

        GarbageCollector().collect(str(tmp_path), timedelta(days=7), now=NOW)

        assert fresh.exists()
        assert not stale.exists()

    def test_missing_root(self, tmp_path):
        result = GarbageCollector().collect(str(tmp_path / "nope"), timedelta(days=7), now=NOW)
        assert result.scanned == 0


class TestHooks:

    def test_hook_can_veto(self, tmp_path):
        protected = _touch(tmp_path / "a" / "protected.jpg", timedelta(days=30))
        doomed = _touch(tmp_path / "a" / "doomed.jpg", timedelta(days=30))
        seen = {}

        def keep_protected(candidates, cutoff):
            seen["cutoff"] = cutoff
            return [path for path in candidates if "protected" not in path]

        collector = GarbageCollector()
        collector.register_hook(keep_protected)
        result = collector.collect(str(tmp_path), timedelta(days=7), now=NOW)

        assert protected.exists()
        assert not doomed.exists()
        assert result.deleted == 1
        assert seen["cutoff"] == NOW.timestamp() - timedelta(days=7).total_seconds()

    def test_hooks_chain(self, tmp_path):
        _touch(tmp_path / "a.jpg", timedelta(days=30))
        _touch(tmp_path / "b.jpg", timedelta(days=30))
        collector = GarbageCollector(hooks=[
            lambda candidates, cutoff: [p for p in candidates if not p.endswith("a.jpg")],
            lambda candidates, cutoff: [p for p in candidates if not p.endswith("b.jpg")],
        ])
        assert collector.collect(str(tmp_path), timedelta(days=7), now=NOW).deleted == 0

    def test_failing_hook_does_not_stop_collection(self, tmp_path):
        protected = _touch(tmp_path / "a" / "protected.jpg", timedelta(days=30))
        doomed = _touch(tmp_path / "a" / "doomed.jpg", timedelta(days=30))

        def broken(candidates, cutoff):
            return 1 / 0

        collector = GarbageCollector(hooks=[
            lambda candidates, cutoff: [p for p in candidates if "protected" not in p],
            broken,
        ])
        result = collector.collect(str(tmp_path), timedelta(days=7), now=NOW)

        # The veto from before the failing hook still holds
        assert protected.exists()
        assert not doomed.exists()
        assert result.deleted == 1


class TestPruneEmptyDirs:

    def test_keeps_root_and_non_empty(self, tmp_path):
        (tmp_path / "empty" / "nested").mkdir(parents=True)
        (tmp_path / "full").mkdir()
        (tmp_path / "full" / "f.jpg").write_bytes(b"x")

        assert prune_empty_dirs(str(tmp_path)) == 2
        assert tmp_path.is_dir()
        assert (tmp_path / "full" / "f.jpg").exists()


class TestTriggers:

    def test_scheduled_is_noop_when_disabled(self, settings):
        os.makedirs(settings.CACHE_DIRECTORY, exist_ok=True)
        victim = _touch(
            Path(settings.CACHE_DIRECTORY) / "a" / "old.jpg",
            timedelta(days=3650),
        )
        assert run_scheduled_collection(settings, GarbageCollector()) is None
        assert victim.exists()

    def test_scheduled_runs_when_enabled(self, settings):
        settings = settings.model_copy(update={"GC_ENABLED": True})
        os.makedirs(settings.CACHE_DIRECTORY, exist_ok=True)
        result = run_scheduled_collection(settings, GarbageCollector())
        assert result is not None

    def test_cache_cleared_gated(self, settings):
        assert on_cache_cleared(settings, GarbageCollector()) is None
        enabled = settings.model_copy(update={"CLEANUP_ON_CACHE_CLEAR": True})
        os.makedirs(enabled.CACHE_DIRECTORY, exist_ok=True)
        assert on_cache_cleared(enabled, GarbageCollector()) is not None

    def test_explicit_clear_all_always_runs(self, settings, tmp_path):
        cache = tmp_path / "cache"
        fresh = cache / "a" / "fresh.jpg"
        fresh.parent.mkdir(parents=True)
        fresh.write_bytes(b"x")

        result = clear_cache(settings, GarbageCollector(), everything=True)

        assert result.deleted == 1
        assert not fresh.exists()
