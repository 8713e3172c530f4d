"""
Tests for file kind classification.
"""

import pytest

from distfinder.analysis.kinds import FileKind, classify, get_extension, is_jar


class TestGetExtension:
    """Tests for get_extension."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("a.jar", "jar"),
            ("dist.tar.gz", "gz"),
            ("LIB.JAR", "jar"),
            ("README", ""),
            (".profile", ""),
            ("dir/sub.d/file", ""),
            ("dist.zip!/lib/a.war", "war"),
        ],
    )
    def test_extensions(self, name, expected):
        assert get_extension(name) == expected


class TestClassify:
    """Tests for classify and the FileKind flags."""

    @pytest.mark.parametrize(
        "name,kind",
        [
            ("a.zip", FileKind.ZIP),
            ("a.jar", FileKind.ZIP),
            ("a.ejb3", FileKind.ZIP),
            ("a.tar", FileKind.TAR),
            ("a.tgz", FileKind.TAR),
            ("a.gz", FileKind.COMPRESSED),
            ("a.xz", FileKind.COMPRESSED),
            ("a.rpm", FileKind.RPM),
            ("a.txt", FileKind.ORDINARY),
            ("a.tmp", FileKind.ORDINARY),
        ],
    )
    def test_kinds(self, name, kind):
        assert classify(name) is kind

    def test_archive_flags(self):
        assert FileKind.ZIP.is_archive
        assert FileKind.COMPRESSED.is_archive
        assert not FileKind.RPM.is_archive
        assert FileKind.RPM.is_package

    def test_inline_members(self):
        """Test that only stream-backed containers hash members inline."""
        assert FileKind.TAR.members_inline
        assert FileKind.COMPRESSED.members_inline
        assert not FileKind.ZIP.members_inline


class TestIsJar:
    @pytest.mark.parametrize("name", ["a.jar", "a.war", "a.ear", "a.rar", "a.jdocbook"])
    def test_jar_like(self, name):
        assert is_jar(name)

    @pytest.mark.parametrize("name", ["a.zip", "a.tar.gz", "a.txt"])
    def test_not_jar(self, name):
        assert not is_jar(name)
