"""
Tests for checksum data models.

Organization
------------
- TestChecksumType: algorithm names and parsing
- TestChecksum: equality, terminal marker and serialization
- TestIndexHelpers: index lookup, copy and JSON helpers
"""

import pytest

from distfinder.checksum.models import (
    PRIMARY_CHECKSUM_TYPE,
    Checksum,
    ChecksumType,
    FileError,
    FileRecord,
    copy_index,
    find_by_type,
    index_from_dict,
    index_to_dict,
    sort_checksum_types,
)
from distfinder.core.exceptions import UnsupportedAlgorithmError


class TestChecksumType:
    """Tests for ChecksumType."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("md5", ChecksumType.MD5),
            ("MD5", ChecksumType.MD5),
            ("sha-1", ChecksumType.SHA1),
            (" SHA256 ", ChecksumType.SHA256),
        ],
    )
    def test_from_name(self, name, expected):
        assert ChecksumType.from_name(name) is expected

    def test_unknown_name(self):
        with pytest.raises(UnsupportedAlgorithmError):
            ChecksumType.from_name("crc32")

    def test_str_and_algorithm(self):
        assert str(ChecksumType.SHA256) == "sha256"
        assert ChecksumType.SHA1.algorithm == "sha1"

    def test_primary_is_md5(self):
        assert PRIMARY_CHECKSUM_TYPE is ChecksumType.MD5

    def test_sort_checksum_types(self):
        types = [ChecksumType.SHA256, ChecksumType.MD5, ChecksumType.SHA256]
        assert sort_checksum_types(types) == [ChecksumType.MD5, ChecksumType.SHA256]


class TestChecksum:
    """Tests for Checksum."""

    def test_size_not_part_of_equality(self):
        a = Checksum(ChecksumType.MD5, "abc", "a.txt", 10)
        b = Checksum(ChecksumType.MD5, "abc", "a.txt", 99)

        assert a == b
        assert len({a, b}) == 1

    def test_filename_part_of_equality(self):
        assert Checksum(ChecksumType.MD5, "abc", "a.txt") != Checksum(ChecksumType.MD5, "abc", "b.txt")

    def test_terminal_marker(self):
        marker = Checksum.terminal()

        assert marker.is_terminal
        assert not Checksum(ChecksumType.MD5, "abc", "a.txt").is_terminal

    def test_to_record(self):
        record = Checksum(ChecksumType.SHA1, "abc", "dist.zip!/a.txt", 5).to_record()
        assert record == FileRecord("dist.zip!/a.txt", 5)

    def test_dict_round_trip(self):
        checksum = Checksum(ChecksumType.SHA256, "ff", "a.txt", 3)
        restored = Checksum.from_dict(checksum.to_dict())

        assert restored == checksum
        assert restored.file_size == 3

    def test_file_error_dict(self):
        error = FileError("dist.zip!/bad.jar", "Unable to open archive (bad zip)")
        assert error.to_dict() == {"filename": "dist.zip!/bad.jar", "message": "Unable to open archive (bad zip)"}


class TestIndexHelpers:
    """Tests for index helper functions."""

    def test_find_by_type(self):
        checksums = {
            Checksum(ChecksumType.MD5, "m", "a"),
            Checksum(ChecksumType.SHA1, "s", "a"),
        }

        assert find_by_type(checksums, ChecksumType.SHA1).value == "s"
        assert find_by_type(checksums, ChecksumType.SHA256) is None

    def test_copy_index_is_independent(self):
        index = {"v": {FileRecord("a", 1)}}
        copied = copy_index(index)

        copied["v"].add(FileRecord("b", 2))
        copied["w"] = set()

        assert index == {"v": {FileRecord("a", 1)}}

    def test_index_dict_sorted(self):
        """Test that the JSON form is sorted by value and by filename."""
        index = {
            "bb": {FileRecord("z.txt", 1), FileRecord("a.txt", 1)},
            "aa": {FileRecord("m.txt", 2)},
        }

        data = index_to_dict(index)

        assert list(data) == ["aa", "bb"]
        assert [r["filename"] for r in data["bb"]] == ["a.txt", "z.txt"]
        assert index_from_dict(data) == index
