"""In-process look-aside cache."""

import threading
from typing import Dict, Optional

from distfinder.cache.base import LookasideCache
from distfinder.checksum.models import ChecksumIndex, ChecksumType, copy_index


class MemoryCache(LookasideCache):
    """
    Dictionary-backed cache, one dictionary per checksum type.

    Fragments are copied on the way in and on the way out so callers can
    keep mutating their own indexes.
    """

    def __init__(self) -> None:
        self._entries: Dict[ChecksumType, Dict[str, ChecksumIndex]] = {}
        self._lock = threading.Lock()

    def get(self, checksum_type: ChecksumType, key: str) -> Optional[ChecksumIndex]:
        with self._lock:
            fragment = self._entries.get(checksum_type, {}).get(key)
            return copy_index(fragment) if fragment is not None else None

    def put(self, checksum_type: ChecksumType, key: str, fragment: ChecksumIndex) -> None:
        with self._lock:
            self._entries.setdefault(checksum_type, {})[key] = copy_index(fragment)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(entries) for entries in self._entries.values())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
