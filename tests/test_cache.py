"""Tests for CacheManager."""

import json
import os
import sys
import time

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from project_indexer.cache import CacheManager, MAX_KEY_LENGTH, sanitize_key


@pytest.fixture
def cache(tmp_path):
    manager = CacheManager(cache_dir=str(tmp_path / "cache"))
    manager.init()
    return manager


class TestSanitizeKey:
    """Test key → filename mapping."""

    def test_non_alphanumeric_runs_collapsed(self):
        assert sanitize_key("project-/home/user/app-{}") == "project_home_user_app_"

    def test_truncated(self):
        assert len(sanitize_key("a" * 500)) == MAX_KEY_LENGTH


class TestCacheBasics:
    """Test get/set/delete/clear."""

    def test_miss(self, cache):
        assert cache.get("missing") is None
        assert not cache.has("missing")

    def test_set_get(self, cache):
        cache.set("k", {"a": [1, 2]})
        assert cache.get("k") == {"a": [1, 2]}
        assert cache.has("k")

    def test_written_to_disk(self, cache):
        cache.set("some key", {"x": 1}, ttl=5000)
        stored = json.loads((cache.cache_dir / "some_key.json").read_text(encoding="utf-8"))
        assert stored["data"] == {"x": 1}
        assert stored["ttl"] == 5000
        assert "timestamp" in stored

    def test_survives_new_instance(self, cache):
        cache.set("k", [1, 2, 3])
        fresh = CacheManager(cache_dir=str(cache.cache_dir))
        assert fresh.get("k") == [1, 2, 3]
        assert fresh.get_stats()["memoryEntries"] == 1

    def test_delete(self, cache):
        cache.set("k", 1)
        cache.delete("k")
        assert cache.get("k") is None
        assert not (cache.cache_dir / "k.json").exists()

    def test_delete_missing_is_noop(self, cache):
        cache.delete("never-set")

    def test_clear(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        assert cache.get("a") is None
        assert list(cache.cache_dir.glob("*.json")) == []


class TestCacheExpiry:
    """Test TTL expiry."""

    def test_expired_entry_removed(self, cache):
        cache.set("k", "v", ttl=100)
        assert cache.get("k") == "v"
        time.sleep(0.15)
        assert cache.get("k") is None
        assert not (cache.cache_dir / "k.json").exists()

    def test_default_ttl(self, tmp_path):
        manager = CacheManager(cache_dir=str(tmp_path), default_ttl=1234)
        manager.set("k", 1)
        stored = json.loads((tmp_path / "k.json").read_text(encoding="utf-8"))
        assert stored["ttl"] == 1234


class TestCacheFailures:
    """Test corrupt files and failed writes."""

    def test_corrupt_file_is_a_miss(self, cache):
        (cache.cache_dir / "broken.json").write_text("{not json", encoding="utf-8")
        assert cache.get("broken") is None

    def test_wrong_shape_is_a_miss(self, cache):
        (cache.cache_dir / "shape.json").write_text('{"unexpected": true}', encoding="utf-8")
        assert cache.get("shape") is None

    def test_failed_write_keeps_memory_tier(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")
        manager = CacheManager(cache_dir=str(blocker))
        manager.set("k", {"v": 1})
        assert manager.get("k") == {"v": 1}

    def test_expired_memory_only_entry_dropped(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")
        manager = CacheManager(cache_dir=str(blocker))
        manager.set("k", "v", ttl=100)
        assert manager.get_stats()["memoryEntries"] == 1
        time.sleep(0.15)
        assert manager.get("k") is None
        assert manager.get_stats()["memoryEntries"] == 0


class TestFileChecksum:
    """Test the size/mtime fingerprint."""

    def test_checksum_changes_with_size(self, cache, tmp_path):
        source = tmp_path / "a.ts"
        source.write_text("a", encoding="utf-8")
        before = cache.get_file_checksum(str(source))
        source.write_text("abc", encoding="utf-8")
        assert cache.is_file_changed(str(source), before)

    def test_missing_file(self, cache, tmp_path):
        assert cache.get_file_checksum(str(tmp_path / "nope.ts")) is None
