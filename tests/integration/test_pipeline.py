"""
End-to-end tests for find_builds().

The analyzer and the build finder run concurrently on real archives with
static resolvers standing in for the build systems.

Test Strategy
-------------
- Expected digests are computed with hashlib from the member bytes
- Failure tests check that an error on either side stops both
"""

import json

import pytest

from distfinder.cache.sqlite import SQLiteCache
from distfinder.checksum.models import ChecksumType
from distfinder.core.exceptions import MissingDigestError, ResolutionError
from distfinder.output.sink import JsonFileSink
from distfinder.resolution.models import BuildKey, BuildSystem
from distfinder.runner import find_builds
from tests.fixtures.archives import SAMPLE_INNER_JAR, SAMPLE_TARBALL, build_rpm, md5_hex, write_zip
from tests.fixtures.mocks import RecordingListener, StaticResolver

pytestmark = pytest.mark.integration

APP_CLASS = SAMPLE_INNER_JAR["org/example/App.class"]
NOTICE = SAMPLE_TARBALL["docs/NOTICE"]


class TestFindBuilds:
    """Tests for the full analyze-and-resolve run."""

    def test_builds_found_across_resolvers(self, sample_distribution, open_config, temp_dir):
        pnc = StaticResolver(BuildSystem.PNC, {md5_hex(APP_CLASS): 100})
        koji = StaticResolver(BuildSystem.KOJI, {md5_hex(NOTICE): 200})
        listener = RecordingListener()
        sink = JsonFileSink(temp_dir / "out")

        result = find_builds(
            [str(sample_distribution)],
            open_config,
            resolvers=[pnc, koji],
            sink=sink,
            listener=listener,
        )

        assert set(result.builds) == {BuildKey(100, BuildSystem.PNC), BuildKey(200, BuildSystem.KOJI)}
        assert md5_hex(APP_CLASS) not in result.unresolved
        assert md5_hex(NOTICE) not in result.unresolved
        assert result.unresolved[md5_hex(SAMPLE_TARBALL["docs/README"])] == {"dist.zip!/docs.tar!/docs/README"}
        assert listener.last == result.analysis.checksum_count
        assert md5_hex(APP_CLASS) not in set(koji.seen_values)

    def test_every_checksum_reaches_a_resolver(self, sample_distribution, md5_config):
        """Test that every MD5 the analyzer produced was offered for resolution."""
        resolver = StaticResolver(BuildSystem.PNC)

        result = find_builds([str(sample_distribution)], md5_config, resolvers=[resolver])

        assert set(resolver.seen_values) == set(result.analysis.get_checksums(ChecksumType.MD5))
        assert set(result.unresolved) == set(result.analysis.get_checksums(ChecksumType.MD5))

    def test_sink_files(self, sample_distribution, open_config, temp_dir):
        out = temp_dir / "out"
        resolver = StaticResolver(BuildSystem.PNC, {md5_hex(APP_CLASS): 100})

        find_builds([str(sample_distribution)], open_config, resolvers=[resolver], sink=JsonFileSink(out))

        assert sorted(p.name for p in out.iterdir()) == [
            "builds.json",
            "checksums-md5.json",
            "checksums-sha1.json",
            "checksums-sha256.json",
        ]
        builds = json.loads((out / "builds.json").read_text())
        assert builds["pnc:100"]["files"] == ["dist.zip!/lib/app.jar!/org/example/App.class"]

    def test_cached_second_run(self, sample_distribution, md5_config, temp_dir):
        cache = SQLiteCache(temp_dir / "cache.db")
        first = find_builds([str(sample_distribution)], md5_config, cache=cache)

        resolver = StaticResolver(BuildSystem.PNC, {md5_hex(NOTICE): 5})
        second = find_builds([str(sample_distribution)], md5_config, resolvers=[resolver], cache=cache)

        assert second.analysis.checksums == first.analysis.checksums
        assert BuildKey(5, BuildSystem.PNC) in second.builds


class TestFindBuildsFailures:
    """Tests for failures on either side of the queue."""

    def test_resolver_failure_stops_run(self, sample_distribution, md5_config, temp_dir):
        resolver = StaticResolver(BuildSystem.PNC, fail_with=ConnectionError("service unavailable"))
        out = temp_dir / "out"

        with pytest.raises(ResolutionError, match="service unavailable"):
            find_builds([str(sample_distribution)], md5_config, resolvers=[resolver], sink=JsonFileSink(out))

        assert not out.exists()

    def test_analyzer_failure_stops_finder(self, temp_dir, open_config):
        dist = write_zip(temp_dir / "dist.zip", {"a.txt": b"a", "pkg.rpm": build_rpm(sha256="ab" * 32)})

        with pytest.raises(MissingDigestError):
            find_builds([str(dist)], open_config, resolvers=[StaticResolver(BuildSystem.PNC)])
