"""
Checksum Engine.

Streaming multi-digest hashing of file nodes, with the RPM signature
header shortcut for package files.
"""

from distfinder.checksum.engine import ChecksumEngine
from distfinder.checksum.models import (
    PRIMARY_CHECKSUM_TYPE,
    Checksum,
    ChecksumIndex,
    ChecksumType,
    FileError,
    FileRecord,
    InverseIndex,
    find_by_type,
)

__all__ = [
    "PRIMARY_CHECKSUM_TYPE",
    "Checksum",
    "ChecksumEngine",
    "ChecksumIndex",
    "ChecksumType",
    "FileError",
    "FileRecord",
    "InverseIndex",
    "find_by_type",
]
