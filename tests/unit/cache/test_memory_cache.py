"""
Tests for the in-process look-aside cache.
"""

from distfinder.cache.base import LookasideCache
from distfinder.cache.memory import MemoryCache
from distfinder.checksum.models import ChecksumType, FileRecord


class TestMemoryCache:
    """Tests for MemoryCache."""

    def test_satisfies_protocol(self):
        assert isinstance(MemoryCache(), LookasideCache)

    def test_miss(self):
        assert MemoryCache().get(ChecksumType.MD5, "abc") is None

    def test_put_then_get(self):
        cache = MemoryCache()
        fragment = {"v1": {FileRecord("dist.zip!/a.txt", 3)}}

        cache.put(ChecksumType.MD5, "abc", fragment)

        assert cache.get(ChecksumType.MD5, "abc") == fragment
        assert cache.get(ChecksumType.SHA1, "abc") is None
        assert len(cache) == 1

    def test_fragments_are_copied(self):
        """Test that neither the stored nor the returned fragment aliases the caller's."""
        cache = MemoryCache()
        fragment = {"v1": {FileRecord("a", 1)}}
        cache.put(ChecksumType.MD5, "k", fragment)

        fragment["v1"].add(FileRecord("b", 2))
        cache.get(ChecksumType.MD5, "k")["v1"].add(FileRecord("c", 3))

        assert cache.get(ChecksumType.MD5, "k") == {"v1": {FileRecord("a", 1)}}

    def test_clear(self):
        cache = MemoryCache()
        cache.put(ChecksumType.MD5, "k", {})
        cache.clear()

        assert len(cache) == 0
