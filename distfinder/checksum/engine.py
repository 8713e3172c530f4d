"""
Streaming multi-digest checksum engine.

Every requested algorithm is computed from a single read of the file: the
stream is consumed in fixed-size chunks and each chunk is fed to every
digest before the next chunk is read, so all checksums of one file share
the same byte count.

RPM packages are not hashed. Their digests come from the signature header
(see distfinder.checksum.rpm).

The engine has no side effects. It returns checksums and leaves indexing,
caching and queueing to the caller.
"""

import hashlib
import lzma
import tarfile
import zipfile
import zlib
from typing import Any, BinaryIO, Iterable, Protocol, Set

from distfinder.checksum.models import PRIMARY_CHECKSUM_TYPE, Checksum, ChecksumType
from distfinder.checksum.rpm import signature_digests
from distfinder.core.exceptions import (
    ChecksumError,
    MissingDigestError,
    UnsupportedAlgorithmError,
)
from distfinder.core.utils import normalize_path

DEFAULT_CHUNK_SIZE = 1024

# Errors a stream can raise while it is read; each aborts only the current file.
READ_ERRORS = (
    OSError,
    EOFError,
    RuntimeError,
    NotImplementedError,
    zlib.error,
    lzma.LZMAError,
    zipfile.BadZipFile,
    tarfile.TarError,
)


class ChecksumSource(Protocol):
    """What the engine needs from a file node."""

    path: str
    size: int

    @property
    def is_package(self) -> bool: ...

    def open(self) -> BinaryIO: ...


class ChecksumEngine:
    """
    Compute checksums of file nodes.

    Example:
        engine = ChecksumEngine()
        checksums = engine.checksum(node, [ChecksumType.MD5, ChecksumType.SHA1], root)
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size

    def checksum(
        self,
        node: ChecksumSource,
        checksum_types: Iterable[ChecksumType],
        root: str = "",
    ) -> Set[Checksum]:
        """
        Compute one checksum per requested type.

        Args:
            node: File to read
            checksum_types: Algorithms to compute
            root: Input root stripped from the node path to form filenames

        Returns:
            Set of checksums. For an RPM, types whose signature tag is absent
            are missing from the set.

        Raises:
            ChecksumError: The file could not be read to the end
            MissingDigestError: An RPM has no primary digest
            UnsupportedAlgorithmError: A type has no hashlib implementation
        """
        types = list(checksum_types)
        filename = normalize_path(node.path, root)

        if node.is_package:
            return self._package_checksums(node, types, filename)

        digests = {t: self._new_digest(t) for t in types}
        size = 0
        try:
            with node.open() as stream:
                while True:
                    chunk = stream.read(self.chunk_size)
                    if not chunk:
                        break
                    for digest in digests.values():
                        digest.update(chunk)
                    size += len(chunk)
        except READ_ERRORS as e:
            raise ChecksumError(f"Error reading file: {filename}", filename=filename) from e

        return {
            Checksum(type=t, value=digest.hexdigest(), filename=filename, file_size=size)
            for t, digest in digests.items()
        }

    def _package_checksums(
        self,
        node: ChecksumSource,
        types: list,
        filename: str,
    ) -> Set[Checksum]:
        try:
            with node.open() as stream:
                found = signature_digests(stream)
                size = node.size if node.size >= 0 else _drain(stream, self.chunk_size)
        except (ValueError,) + READ_ERRORS as e:
            raise ChecksumError(f"Error reading package: {filename}", filename=filename) from e

        if PRIMARY_CHECKSUM_TYPE in types and PRIMARY_CHECKSUM_TYPE not in found:
            raise MissingDigestError(
                f"Missing required digest {PRIMARY_CHECKSUM_TYPE} for file: {filename}",
                filename=filename,
            )

        return {
            Checksum(type=t, value=found[t], filename=filename, file_size=size)
            for t in types
            if t in found
        }

    @staticmethod
    def _new_digest(checksum_type: ChecksumType) -> Any:
        try:
            return hashlib.new(checksum_type.algorithm)
        except ValueError as e:
            raise UnsupportedAlgorithmError(f"Unsupported checksum type: {checksum_type}") from e


def _drain(stream: BinaryIO, chunk_size: int) -> int:
    """Return the total size of a stream whose length is not known up front."""
    consumed = stream.tell()
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            return consumed
        consumed += len(chunk)
