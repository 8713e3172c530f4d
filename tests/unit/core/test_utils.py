"""
Tests for the shared helpers in distfinder.core.utils.

Organization
------------
- TestByteCountToDisplaySize: human-readable sizes, always rounded up
- TestNormalizePath: stripping the input root from node paths
- TestGetVersion: package version lookup
"""

import pytest

from distfinder import __version__
from distfinder.core.utils import (
    CONTAINER_SEPARATOR,
    byte_count_to_display_size,
    get_version,
    normalize_path,
)


# ============================================================================
# byte_count_to_display_size() Tests
# ============================================================================


class TestByteCountToDisplaySize:
    """Tests for byte_count_to_display_size."""

    @pytest.mark.parametrize(
        "size,expected",
        [
            (0, "0"),
            (1023, "1023"),
            (1024, "1.0K"),
            (1025, "1.1K"),
            (10137, "9.9K"),
            (10138, "10K"),
            (1024 * 1023, "1023K"),
            (32767, "32K"),
            (65535, "64K"),
            (2**20, "1.0M"),
            (2**31 - 1, "2.0G"),
            (2**63 - 1, "8.0E"),
        ],
    )
    def test_known_sizes(self, size, expected):
        """Test the formatting table, including rounding boundaries."""
        assert byte_count_to_display_size(size) == expected

    def test_negative_size_rejected(self):
        """Test that a negative size raises ValueError."""
        with pytest.raises(ValueError):
            byte_count_to_display_size(-1)


# ============================================================================
# normalize_path() Tests
# ============================================================================


class TestNormalizePath:
    """Tests for normalize_path."""

    def test_strips_root(self):
        path = "/dl/dist.zip" + CONTAINER_SEPARATOR + "lib/a.jar"
        assert normalize_path(path, "/dl/") == "dist.zip!/lib/a.jar"

    def test_path_without_root_unchanged(self):
        assert normalize_path("/other/file.txt", "/dl/") == "/other/file.txt"

    def test_empty_root_unchanged(self):
        assert normalize_path("/dl/file.txt", "") == "/dl/file.txt"

    def test_remote_root(self):
        """Test that URL roots are stripped like local ones."""
        path = "https://example.com/files/dist.zip!/a.txt"
        assert normalize_path(path, "https://example.com/files/") == "dist.zip!/a.txt"


class TestGetVersion:
    def test_matches_package_version(self):
        assert get_version() == __version__
