"""
Shared pytest fixtures and configuration for distfinder tests.

This file is automatically discovered by pytest and provides fixtures
that can be used across all test files.

Fixture Organization
--------------------
- **temp_dir**: Temporary directory for file operations
- **open_config**: AnalyzerConfig that hashes every file
- **sample_distribution**: Zip distribution with a nested jar and a tarball
- **fs_manager**: FileSystemManager closed after the test
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from distfinder.analysis.vfs import FileSystemManager
from distfinder.checksum.models import ChecksumType
from distfinder.core.config import AnalyzerConfig
from tests.fixtures.archives import SAMPLE_INNER_JAR, SAMPLE_TARBALL, tar_bytes, write_zip, zip_bytes


# ============================================================================
# Path and Directory Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory (cleaned up after test)

    Example:
        def test_file_creation(temp_dir):
            test_file = temp_dir / "test.txt"
            test_file.write_text("content")
            assert test_file.exists()
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def open_config() -> AnalyzerConfig:
    """AnalyzerConfig with no allow-list and no excludes, so every file is hashed."""
    return AnalyzerConfig(archive_extensions=[], excludes=[], max_workers=2)


@pytest.fixture
def md5_config() -> AnalyzerConfig:
    """Like open_config, restricted to MD5."""
    return AnalyzerConfig(
        checksum_types=[ChecksumType.MD5],
        archive_extensions=[],
        excludes=[],
        max_workers=2,
    )


# ============================================================================
# Distribution Fixtures
# ============================================================================


@pytest.fixture
def sample_distribution(temp_dir: Path) -> Path:
    """Write dist.zip containing a text file, a nested jar and a tarball.

    Layout:
        dist.zip
            README.txt
            lib/app.jar       (two members)
            docs.tar          (two members)
    """
    return write_zip(
        temp_dir / "dist.zip",
        {
            "README.txt": b"distribution readme",
            "lib/app.jar": zip_bytes(SAMPLE_INNER_JAR),
            "docs.tar": tar_bytes(SAMPLE_TARBALL),
        },
    )


@pytest.fixture
def fs_manager() -> Generator[FileSystemManager, None, None]:
    """FileSystemManager that is closed when the test ends."""
    with FileSystemManager() as manager:
        yield manager
