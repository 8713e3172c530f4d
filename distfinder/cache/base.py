"""
Look-aside cache protocol.

The analyzer consults the cache with the whole-input checksum before
traversing an input, and stores the input's index fragment afterwards.
Entries are keyed by (checksum type, input checksum value) and are never
invalidated by the analyzer.
"""

from typing import Optional, Protocol, runtime_checkable

from distfinder.checksum.models import ChecksumIndex, ChecksumType


@runtime_checkable
class LookasideCache(Protocol):
    """Key-value store of index fragments."""

    def get(self, checksum_type: ChecksumType, key: str) -> Optional[ChecksumIndex]:
        """Return the fragment stored for an input checksum, or None on a miss."""
        ...

    def put(self, checksum_type: ChecksumType, key: str, fragment: ChecksumIndex) -> None:
        """Store the fragment computed for an input checksum."""
        ...
