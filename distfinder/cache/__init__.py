"""
Look-aside Cache.

Index fragments keyed by whole-input checksum, consulted before an input is
traversed and filled after.
"""

from distfinder.cache.base import LookasideCache
from distfinder.cache.memory import MemoryCache
from distfinder.cache.sqlite import SQLiteCache

__all__ = ["LookasideCache", "MemoryCache", "SQLiteCache"]
