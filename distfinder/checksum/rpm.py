"""
RPM signature header reader.

RPM packages carry digests of their header and payload in the signature
header that follows the 96-byte lead. Reading those instead of hashing the
payload keeps the checksums identical to the ones the build system
recorded when the package was signed.

Layout
------
    lead              96 bytes, starts with ed ab ee db
    signature header  8e ad e8 <version> <4 reserved>
                      nindex (uint32 BE), hsize (uint32 BE)
                      nindex * (tag, type, offset, count)  uint32 BE each
                      hsize bytes of data store

Only the signature header is read; the payload is never touched.
"""

import struct
from typing import BinaryIO, Dict, Union

from distfinder.checksum.models import ChecksumType

LEAD_SIZE = 96
LEAD_MAGIC = b"\xed\xab\xee\xdb"
HEADER_MAGIC = b"\x8e\xad\xe8"

# Upper bounds taken from rpm's own header sanity checks.
MAX_INDEX_ENTRIES = 0x10000
MAX_STORE_SIZE = 256 * 1024 * 1024

TYPE_STRING = 6
TYPE_BIN = 7

SIGTAG_SHA1 = 269
SIGTAG_SHA256 = 273
SIGTAG_MD5 = 1004

SIGNATURE_TAGS: Dict[ChecksumType, int] = {
    ChecksumType.MD5: SIGTAG_MD5,
    ChecksumType.SHA1: SIGTAG_SHA1,
    ChecksumType.SHA256: SIGTAG_SHA256,
}


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise EOFError(f"Truncated RPM: expected {size} bytes, got {len(data)}")
    return data


def read_signature_header(stream: BinaryIO) -> Dict[int, Union[bytes, str]]:
    """
    Parse the signature header of an RPM stream.

    Args:
        stream: Binary stream positioned at the start of the package

    Returns:
        Mapping of tag to value. BIN tags map to bytes, STRING tags to str.
        Tags of other types are skipped.

    Raises:
        ValueError: If the lead or header magic is wrong or the header is
            larger than rpm itself allows
        EOFError: If the stream ends inside the signature header
    """
    lead = _read_exact(stream, LEAD_SIZE)
    if lead[:4] != LEAD_MAGIC:
        raise ValueError("Not an RPM package: bad lead magic")

    intro = _read_exact(stream, 16)
    if intro[:3] != HEADER_MAGIC:
        raise ValueError("Not an RPM package: bad signature header magic")
    nindex, hsize = struct.unpack(">II", intro[8:16])
    if nindex > MAX_INDEX_ENTRIES or hsize > MAX_STORE_SIZE:
        raise ValueError(f"RPM signature header too large: {nindex} entries, {hsize} bytes")

    entries = [struct.unpack(">IIII", _read_exact(stream, 16)) for _ in range(nindex)]
    store = _read_exact(stream, hsize)

    tags: Dict[int, Union[bytes, str]] = {}
    for tag, tag_type, offset, count in entries:
        if offset > hsize:
            raise ValueError(f"RPM signature tag {tag} points outside the header")
        if tag_type == TYPE_BIN:
            tags[tag] = store[offset : offset + count]
        elif tag_type == TYPE_STRING:
            end = store.find(b"\x00", offset)
            if end < 0:
                end = hsize
            tags[tag] = store[offset:end].decode("ascii", errors="replace")
    return tags


def signature_digests(stream: BinaryIO) -> Dict[ChecksumType, str]:
    """
    Read the digests present in an RPM signature header.

    Binary digests are hex encoded and string digests lowercased. Algorithms
    whose tag is absent are left out of the result.
    """
    tags = read_signature_header(stream)
    digests: Dict[ChecksumType, str] = {}
    for checksum_type, tag in SIGNATURE_TAGS.items():
        value = tags.get(tag)
        if isinstance(value, bytes) and value:
            digests[checksum_type] = value.hex()
        elif isinstance(value, str) and value:
            digests[checksum_type] = value.lower()
    return digests
