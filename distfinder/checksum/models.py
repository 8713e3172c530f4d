"""
Data models for checksums.

Defines the checksum algorithm enum, the Checksum record produced for every
hashed file, the FileRecord stored in the per-algorithm index and the
FileError recorded for archives that could not be opened.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set

from distfinder.core.exceptions import UnsupportedAlgorithmError


class ChecksumType(Enum):
    """Supported checksum algorithms, in their canonical order."""

    MD5 = "md5"
    SHA1 = "sha1"
    SHA256 = "sha256"

    @property
    def algorithm(self) -> str:
        """Name accepted by hashlib.new()."""
        return self.value

    @classmethod
    def from_name(cls, name: str) -> "ChecksumType":
        """Parse a case-insensitive algorithm name ("MD5", "sha-256", ...)."""
        normalized = name.strip().lower().replace("-", "")
        for member in cls:
            if member.value == normalized:
                return member
        raise UnsupportedAlgorithmError(f"Unsupported checksum type: {name}")

    def __str__(self) -> str:
        return self.value


# Checksums of this type are the build lookup key.
PRIMARY_CHECKSUM_TYPE = ChecksumType.MD5


def sort_checksum_types(types: Iterable[ChecksumType]) -> List[ChecksumType]:
    """Deduplicate and return types in declaration order."""
    wanted = set(types)
    return [t for t in ChecksumType if t in wanted]


@dataclass(frozen=True)
class FileRecord:
    """A file as stored in a checksum index."""

    filename: str
    size: int = -1

    def to_dict(self) -> Dict[str, Any]:
        return {"filename": self.filename, "size": self.size}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileRecord":
        return cls(filename=data["filename"], size=data.get("size", -1))


@dataclass(frozen=True)
class Checksum:
    """
    One digest of one file.

    Two checksums are equal when type, value and filename match; the file
    size rides along but does not take part in equality. A checksum whose
    value is None is the terminal marker that ends a ChecksumQueue.
    """

    type: Optional[ChecksumType]
    value: Optional[str]
    filename: Optional[str] = None
    file_size: int = field(default=-1, compare=False)

    @classmethod
    def terminal(cls) -> "Checksum":
        """Build the end-of-stream marker."""
        return cls(type=None, value=None)

    @property
    def is_terminal(self) -> bool:
        return self.value is None

    def to_record(self) -> FileRecord:
        return FileRecord(filename=self.filename or "", size=self.file_size)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value if self.type else None,
            "value": self.value,
            "filename": self.filename,
            "file_size": self.file_size,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Checksum":
        type_name = data.get("type")
        return cls(
            type=ChecksumType(type_name) if type_name else None,
            value=data.get("value"),
            filename=data.get("filename"),
            file_size=data.get("file_size", -1),
        )


@dataclass(frozen=True)
class FileError:
    """An archive that could not be opened, with the reason."""

    filename: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"filename": self.filename, "message": self.message}


# value -> files with that digest
ChecksumIndex = Dict[str, Set[FileRecord]]
# filename -> checksums of that file
InverseIndex = Dict[str, Set[Checksum]]


def find_by_type(checksums: Iterable[Checksum], checksum_type: ChecksumType) -> Optional[Checksum]:
    """Return the first checksum of the given type, or None."""
    for checksum in checksums:
        if checksum.type == checksum_type:
            return checksum
    return None


def index_to_dict(index: ChecksumIndex) -> Dict[str, List[Dict[str, Any]]]:
    """JSON form of an index: sorted values, records sorted by filename."""
    return {
        value: [r.to_dict() for r in sorted(records, key=lambda r: (r.filename, r.size))]
        for value, records in sorted(index.items())
    }


def index_from_dict(data: Dict[str, List[Dict[str, Any]]]) -> ChecksumIndex:
    return {value: {FileRecord.from_dict(r) for r in records} for value, records in data.items()}


def copy_index(index: ChecksumIndex) -> ChecksumIndex:
    """Copy an index so the caller can mutate it independently."""
    return {value: set(records) for value, records in index.items()}
