"""
Result sinks.

A sink receives the completed maps of a run. JsonFileSink writes one file
per checksum algorithm and one for the builds:

    checksums-md5.json      {"<value>": [{"filename": ..., "size": ...}], ...}
    checksums-sha256.json
    builds.json             {"<system>:<id>": <build>, ...}
"""

import json
from pathlib import Path
from typing import Any, Dict, Protocol, Union

from distfinder.checksum.models import ChecksumIndex, ChecksumType, index_to_dict
from distfinder.core.logging import get_logger
from distfinder.resolution.models import BuildKey

logger = get_logger(__name__)

CHECKSUMS_FILENAME_BASENAME = "checksums-"
BUILDS_FILENAME = "builds.json"


class ResultSink(Protocol):
    """Receives completed results at the end of a run."""

    def checksums_completed(self, checksum_type: ChecksumType, index: ChecksumIndex) -> None: ...

    def builds_completed(self, builds: Dict[BuildKey, Any]) -> None: ...


def _build_to_json(build: Any) -> Any:
    to_dict = getattr(build, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if build is None or isinstance(build, (str, int, float, bool, list, dict)):
        return build
    return str(build)


class JsonFileSink:
    """Writes results as JSON files into an output directory."""

    def __init__(self, output_dir: Union[str, Path]) -> None:
        self.output_dir = Path(output_dir)

    def checksum_file(self, checksum_type: ChecksumType) -> Path:
        return self.output_dir / f"{CHECKSUMS_FILENAME_BASENAME}{checksum_type}.json"

    @property
    def builds_file(self) -> Path:
        return self.output_dir / BUILDS_FILENAME

    def _write(self, path: Path, data: Any) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
            f.write("\n")
        logger.info("Wrote results", path=str(path))

    def checksums_completed(self, checksum_type: ChecksumType, index: ChecksumIndex) -> None:
        self._write(self.checksum_file(checksum_type), index_to_dict(index))

    def builds_completed(self, builds: Dict[BuildKey, Any]) -> None:
        self._write(self.builds_file, {str(key): _build_to_json(build) for key, build in builds.items()})
