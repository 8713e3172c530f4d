"""
Analyzer Configuration.

A single dataclass holds every setting the analyzer, the runner and the CLI
read. Values come from defaults, then the YAML file, then DISTFINDER_*
environment variables (see config_loaders.py).

Example YAML
------------
    checksum_types: [md5, sha256]
    archive_extensions: [jar, war, ear, so]
    excludes:
      - '^(?!.*/pom\\.xml$).*/.*\\.xml$'
    disable_recursion: false
    max_workers: ${DISTFINDER_WORKERS:8}
    output_directory: ./out
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Pattern, Sequence, Union

from distfinder.checksum.models import ChecksumType, sort_checksum_types
from distfinder.core.exceptions import ConfigValidationError, UnsupportedAlgorithmError

DEFAULT_ARCHIVE_EXTENSIONS: List[str] = [
    "dll",
    "dylib",
    "ear",
    "jar",
    "jdocbook",
    "jdocbook-style",
    "kar",
    "plugin",
    "pom",
    "rar",
    "sar",
    "so",
    "war",
    "xml",
]

# Every XML file below the top level except pom.xml.
DEFAULT_EXCLUDES: List[str] = [r"^(?!.*/pom\.xml$).*/.*\.xml$"]


def _default_checksum_types() -> List[ChecksumType]:
    return list(ChecksumType)


@dataclass
class AnalyzerConfig:
    """
    Settings for one analysis run.

    Attributes:
        checksum_types: Algorithms to compute, stored in canonical order
        archive_extensions: Allow-list of extensions to hash; empty hashes everything
        excludes: Regular expressions full-matched against normalized paths
        disable_recursion: Only unwrap the top-level distribution archive
        max_workers: Checksum pool size; None uses the CPU count
        output_directory: Where sinks write their files
        http_timeout_sec: Connect/read timeout for remote inputs
    """

    checksum_types: List[ChecksumType] = field(default_factory=_default_checksum_types)
    archive_extensions: List[str] = field(default_factory=lambda: list(DEFAULT_ARCHIVE_EXTENSIONS))
    excludes: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDES))
    disable_recursion: bool = False
    max_workers: Optional[int] = None
    output_directory: str = "."
    http_timeout_sec: float = 60.0

    def __post_init__(self) -> None:
        self.checksum_types = _parse_checksum_types(self.checksum_types)
        self.archive_extensions = [str(ext).lower() for ext in self.archive_extensions]
        self.exclude_patterns: List[Pattern[str]] = _compile_excludes(self.excludes)
        self._validate()

    def _validate(self) -> None:
        if not self.checksum_types:
            raise ConfigValidationError(
                "At least one checksum type is required",
                field="checksum_types",
                value=self.checksum_types,
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise ConfigValidationError(
                f"max_workers must be positive, got {self.max_workers}",
                field="max_workers",
                value=self.max_workers,
            )
        if self.http_timeout_sec <= 0:
            raise ConfigValidationError(
                f"http_timeout_sec must be positive, got {self.http_timeout_sec}",
                field="http_timeout_sec",
                value=self.http_timeout_sec,
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalyzerConfig":
        """Create config from dictionary. Unknown keys are rejected."""
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigValidationError(
                f"Unknown configuration keys: {', '.join(unknown)}",
                field=unknown[0],
            )
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "checksum_types": [t.value for t in self.checksum_types],
            "archive_extensions": list(self.archive_extensions),
            "excludes": list(self.excludes),
            "disable_recursion": self.disable_recursion,
            "max_workers": self.max_workers,
            "output_directory": self.output_directory,
            "http_timeout_sec": self.http_timeout_sec,
        }


def _parse_checksum_types(
    values: Union[str, Sequence[Union[str, ChecksumType]]],
) -> List[ChecksumType]:
    if isinstance(values, str):
        values = [v for v in values.split(",") if v.strip()]
    parsed = []
    for value in values:
        if isinstance(value, ChecksumType):
            parsed.append(value)
            continue
        try:
            parsed.append(ChecksumType.from_name(str(value)))
        except UnsupportedAlgorithmError as e:
            raise ConfigValidationError(str(e), field="checksum_types", value=value) from e
    return sort_checksum_types(parsed)


def _compile_excludes(excludes: Sequence[str]) -> List[Pattern[str]]:
    patterns = []
    for exclude in excludes:
        try:
            patterns.append(re.compile(exclude))
        except re.error as e:
            raise ConfigValidationError(
                f"Invalid exclude pattern {exclude!r}: {e}",
                field="excludes",
                value=exclude,
            ) from e
    return patterns
