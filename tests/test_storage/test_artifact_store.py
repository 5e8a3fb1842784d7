"""
Tests for the artifact store.
"""

import os

from imageresize.storage.artifact_store import TEMP_PREFIX, ArtifactStore


class TestArtifactStore:

    def test_save_creates_parents(self, tmp_path):
        store = ArtifactStore(str(tmp_path / "cache"))
        store.save_bytes("abc/def/ghi/key.jpg", b"data")
        assert store.exists("abc/def/ghi/key.jpg")
        assert store.full_path("abc/def/ghi/key.jpg").read_bytes() == b"data"

    def test_save_replaces_whole_file(self, tmp_path):
        store = ArtifactStore(str(tmp_path / "cache"))
        store.save_bytes("a/key.png", b"first version")
        store.save_bytes("a/key.png", b"second")
        assert store.full_path("a/key.png").read_bytes() == b"second"

    def test_no_temp_files_left_behind(self, tmp_path):
        store = ArtifactStore(str(tmp_path / "cache"))
        store.save_bytes("a/key.png", b"x")
        assert not [n for n in os.listdir(tmp_path / "cache" / "a") if n.startswith(TEMP_PREFIX)]

    def test_saved_file_is_world_readable(self, tmp_path):
        store = ArtifactStore(str(tmp_path / "cache"))
        store.save_bytes("a/key.png", b"x")
        assert os.stat(store.full_path("a/key.png")).st_mode & 0o044 == 0o044

    def test_stats(self, tmp_path):
        store = ArtifactStore(str(tmp_path / "cache"))
        store.save_bytes("a/one.png", b"12345")
        store.save_bytes("b/c/two.png", b"123")
        stats = store.stats()
        assert stats.file_count == 2
        assert stats.size_bytes == 8
