"""
Tests for the RPM signature header reader.
"""

import io
import struct

import pytest

from distfinder.checksum.models import ChecksumType
from distfinder.checksum.rpm import (
    SIGTAG_MD5,
    SIGTAG_SHA1,
    SIGTAG_SHA256,
    read_signature_header,
    signature_digests,
)
from tests.fixtures.archives import RPM_HEADER_INTRO, RPM_LEAD, build_rpm


class TestReadSignatureHeader:
    """Tests for read_signature_header."""

    def test_reads_bin_and_string_tags(self):
        md5 = bytes(range(16))
        tags = read_signature_header(io.BytesIO(build_rpm(md5=md5, sha1="ab" * 20, sha256="cd" * 32)))

        assert tags[SIGTAG_MD5] == md5
        assert tags[SIGTAG_SHA1] == "ab" * 20
        assert tags[SIGTAG_SHA256] == "cd" * 32

    def test_stops_after_header(self):
        """Test that the stream is left at the end of the signature store."""
        stream = io.BytesIO(build_rpm(md5=bytes(16), payload=b"PAYLOAD"))
        read_signature_header(stream)

        assert stream.read() == b"PAYLOAD"

    def test_bad_lead_magic(self):
        with pytest.raises(ValueError, match="bad lead magic"):
            read_signature_header(io.BytesIO(b"\x00" * 200))

    def test_bad_header_magic(self):
        with pytest.raises(ValueError, match="signature header magic"):
            read_signature_header(io.BytesIO(RPM_LEAD + b"\x00" * 64))

    def test_truncated(self):
        with pytest.raises(EOFError):
            read_signature_header(io.BytesIO(RPM_LEAD[:50]))

    def test_oversized_header_rejected(self):
        intro = RPM_HEADER_INTRO + struct.pack(">II", 0x10001, 0)
        with pytest.raises(ValueError, match="too large"):
            read_signature_header(io.BytesIO(RPM_LEAD + intro))


class TestSignatureDigests:
    """Tests for signature_digests."""

    def test_hex_and_lowercase(self):
        md5 = bytes.fromhex("00112233445566778899aabbccddeeff")
        digests = signature_digests(io.BytesIO(build_rpm(md5=md5, sha256="AB" * 32)))

        assert digests == {
            ChecksumType.MD5: "00112233445566778899aabbccddeeff",
            ChecksumType.SHA256: "ab" * 32,
        }

    def test_no_digests(self):
        assert signature_digests(io.BytesIO(build_rpm())) == {}
