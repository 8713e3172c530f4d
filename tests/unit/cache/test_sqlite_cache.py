"""
Tests for the SQLite look-aside cache.

Each test gets its own database file under temp_dir.
"""

import sqlite3

import pytest

from distfinder.cache.sqlite import SQLiteCache
from distfinder.checksum.models import ChecksumType, FileRecord
from distfinder.core.exceptions import CacheError


@pytest.fixture
def cache(temp_dir):
    return SQLiteCache(temp_dir / "cache" / "fragments.db")


class TestSQLiteCache:
    """Tests for SQLiteCache."""

    def test_creates_database(self, temp_dir):
        path = temp_dir / "new" / "fragments.db"
        SQLiteCache(path)

        assert path.exists()

    def test_miss(self, cache):
        assert cache.get(ChecksumType.MD5, "missing") is None

    def test_round_trip(self, cache):
        fragment = {
            "v1": {FileRecord("dist.zip!/a.txt", 3), FileRecord("dist.zip!/b.txt", 3)},
            "v2": {FileRecord("dist.zip!/c.txt", -1)},
        }

        cache.put(ChecksumType.SHA256, "input-digest", fragment)

        assert cache.get(ChecksumType.SHA256, "input-digest") == fragment
        assert cache.get(ChecksumType.MD5, "input-digest") is None

    def test_put_replaces(self, cache):
        cache.put(ChecksumType.MD5, "k", {"old": {FileRecord("a", 1)}})
        cache.put(ChecksumType.MD5, "k", {"new": {FileRecord("a", 1)}})

        assert set(cache.get(ChecksumType.MD5, "k")) == {"new"}
        assert cache.count() == 1

    def test_count_by_type(self, cache):
        cache.put(ChecksumType.MD5, "a", {})
        cache.put(ChecksumType.MD5, "b", {})
        cache.put(ChecksumType.SHA1, "a", {})

        assert cache.count() == 3
        assert cache.count(ChecksumType.MD5) == 2

    def test_persists_across_instances(self, temp_dir):
        path = temp_dir / "fragments.db"
        SQLiteCache(path).put(ChecksumType.MD5, "k", {"v": {FileRecord("a", 1)}})

        assert SQLiteCache(path).get(ChecksumType.MD5, "k") == {"v": {FileRecord("a", 1)}}

    def test_corrupt_entry(self, cache):
        """Test that an unreadable stored fragment raises CacheError."""
        conn = sqlite3.connect(cache.db_path)
        with conn:
            conn.execute(
                "INSERT INTO fragments (algorithm, key, fragment, created_at) VALUES (?, ?, ?, ?)",
                ("md5", "bad", "{not json", "now"),
            )
        conn.close()

        with pytest.raises(CacheError, match="Corrupt cache entry"):
            cache.get(ChecksumType.MD5, "bad")

    def test_unopenable_database(self, temp_dir):
        blocker = temp_dir / "file"
        blocker.write_text("not a directory")

        with pytest.raises(CacheError):
            SQLiteCache(blocker / "fragments.db")
