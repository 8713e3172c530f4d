"""
Fixture modules for distfinder tests.

This package provides builders for the archive and package formats the
analyzer understands, plus test doubles for the pluggable interfaces.

Modules
-------
- archives: zip, tar, gzip and RPM builders
- mocks: Static build resolvers and recording listeners
"""

from tests.fixtures.archives import build_rpm, write_gzip, write_tar, write_zip, zip_bytes
from tests.fixtures.mocks import RecordingListener, StaticResolver

__all__ = [
    "RecordingListener",
    "StaticResolver",
    "build_rpm",
    "write_gzip",
    "write_tar",
    "write_zip",
    "zip_bytes",
]
