"""
Tests for the checksum engine.

Test Strategy
-------------
- Nodes are real FileNode objects backed by in-memory streams
- Expected digests come straight from hashlib
- RPM nodes use the builder in tests.fixtures.archives
"""

import hashlib
import io
import zipfile

import pytest

from distfinder.analysis.vfs import FileNode
from distfinder.checksum.engine import ChecksumEngine
from distfinder.checksum.models import ChecksumType, find_by_type
from distfinder.core.exceptions import ChecksumError, MissingDigestError
from tests.fixtures.archives import build_rpm, mark_encrypted, zip_bytes

ALL_TYPES = [ChecksumType.MD5, ChecksumType.SHA1, ChecksumType.SHA256]


def memory_node(name, data, size=None, path=None):
    return FileNode(
        name=name,
        path=path or "/in/" + name,
        size=len(data) if size is None else size,
        opener=lambda: io.BytesIO(data),
    )


class BrokenStream(io.BytesIO):
    """Stream that fails after the first read."""

    def __init__(self) -> None:
        super().__init__(b"x" * 4096)
        self._reads = 0

    def read(self, size=-1):
        self._reads += 1
        if self._reads > 1:
            raise OSError("Invalid compressed data")
        return super().read(size)


# ============================================================================
# Regular Files
# ============================================================================


class TestChecksumEngine:
    """Tests for ChecksumEngine on regular files."""

    def test_all_types_one_pass(self):
        """Test that every digest covers the same bytes."""
        data = b"hello distribution" * 500
        checksums = ChecksumEngine().checksum(memory_node("a.txt", data), ALL_TYPES, "/in/")

        assert len(checksums) == 3
        for checksum_type in ALL_TYPES:
            checksum = find_by_type(checksums, checksum_type)
            assert checksum.value == hashlib.new(checksum_type.algorithm, data).hexdigest()
            assert checksum.filename == "a.txt"
            assert checksum.file_size == len(data)

    def test_only_requested_types(self):
        checksums = ChecksumEngine().checksum(memory_node("a.txt", b"x"), [ChecksumType.SHA1])
        assert {c.type for c in checksums} == {ChecksumType.SHA1}

    def test_empty_file(self):
        checksums = ChecksumEngine().checksum(memory_node("empty", b""), [ChecksumType.MD5])
        (checksum,) = checksums

        assert checksum.value == hashlib.md5(b"").hexdigest()
        assert checksum.file_size == 0

    def test_chunk_size_does_not_change_result(self):
        data = bytes(range(256)) * 17
        small = ChecksumEngine(chunk_size=7).checksum(memory_node("a", data), ALL_TYPES)
        large = ChecksumEngine(chunk_size=1 << 16).checksum(memory_node("a", data), ALL_TYPES)

        assert small == large

    def test_invalid_chunk_size(self):
        with pytest.raises(ValueError):
            ChecksumEngine(chunk_size=0)

    def test_filename_normalized_against_root(self):
        node = memory_node("a.jar", b"x", path="/dl/dist.zip!/lib/a.jar")
        (checksum,) = ChecksumEngine().checksum(node, [ChecksumType.MD5], "/dl/")

        assert checksum.filename == "dist.zip!/lib/a.jar"

    def test_read_error_wrapped(self):
        """Test that a stream failure becomes a ChecksumError naming the file."""
        node = FileNode(name="bad.bin", path="/in/bad.bin", size=4096, opener=BrokenStream)

        with pytest.raises(ChecksumError) as exc_info:
            ChecksumEngine(chunk_size=1024).checksum(node, ALL_TYPES, "/in/")

        assert exc_info.value.filename == "bad.bin"
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_encrypted_member_wrapped(self):
        """Test that a zip member needing a password becomes a ChecksumError."""
        data = mark_encrypted(zip_bytes({"A.class": b"a"}), "A.class")
        archive = zipfile.ZipFile(io.BytesIO(data))
        node = FileNode(name="A.class", path="/in/A.class", size=1, opener=lambda: archive.open("A.class"))

        with pytest.raises(ChecksumError) as exc_info:
            ChecksumEngine().checksum(node, [ChecksumType.MD5], "/in/")

        assert exc_info.value.filename == "A.class"
        assert isinstance(exc_info.value.__cause__, RuntimeError)


# ============================================================================
# RPM Packages
# ============================================================================


class TestPackageChecksums:
    """Tests for RPM signature digests."""

    def test_digests_from_signature(self):
        """Test that RPM digests come from the header, not from hashing the file."""
        md5 = hashlib.md5(b"signed header+payload").digest()
        sha1 = hashlib.sha1(b"signed header").hexdigest()
        data = build_rpm(md5=md5, sha1=sha1.upper())

        checksums = ChecksumEngine().checksum(memory_node("pkg.rpm", data), ALL_TYPES, "/in/")

        assert find_by_type(checksums, ChecksumType.MD5).value == md5.hex()
        assert find_by_type(checksums, ChecksumType.SHA1).value == sha1
        assert find_by_type(checksums, ChecksumType.SHA256) is None
        assert all(c.file_size == len(data) for c in checksums)
        assert find_by_type(checksums, ChecksumType.MD5).value != hashlib.md5(data).hexdigest()

    def test_unknown_size_measured(self):
        data = build_rpm(md5=bytes(16), payload=b"p" * 5000)
        checksums = ChecksumEngine().checksum(memory_node("pkg.rpm", data, size=-1), [ChecksumType.MD5])

        assert next(iter(checksums)).file_size == len(data)

    def test_missing_md5_is_fatal(self):
        data = build_rpm(sha256=hashlib.sha256(b"h").hexdigest())

        with pytest.raises(MissingDigestError, match="Missing required digest md5 for file: pkg.rpm"):
            ChecksumEngine().checksum(memory_node("pkg.rpm", data), ALL_TYPES, "/in/")

    def test_missing_md5_ignored_when_not_requested(self):
        sha256 = hashlib.sha256(b"h").hexdigest()
        data = build_rpm(sha256=sha256)

        (checksum,) = ChecksumEngine().checksum(memory_node("pkg.rpm", data), [ChecksumType.SHA256])
        assert checksum.value == sha256

    def test_corrupt_package(self):
        with pytest.raises(ChecksumError) as exc_info:
            ChecksumEngine().checksum(memory_node("pkg.rpm", b"not an rpm" * 20), ALL_TYPES, "/in/")

        assert not isinstance(exc_info.value, MissingDigestError)
        assert exc_info.value.filename == "pkg.rpm"
