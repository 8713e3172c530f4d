"""
Analysis result models.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Protocol

from distfinder.checksum.models import ChecksumIndex, ChecksumType, FileError, InverseIndex


@dataclass
class AnalysisResult:
    """
    Everything one analyzer run produced.

    Attributes:
        checksums: Per-algorithm index (value -> file records)
        files: Inverse index (filename -> checksums)
        file_errors: Archives that could not be opened
    """

    checksums: Dict[ChecksumType, ChecksumIndex] = field(default_factory=dict)
    files: InverseIndex = field(default_factory=dict)
    file_errors: List[FileError] = field(default_factory=list)

    def get_checksums(self, checksum_type: ChecksumType) -> ChecksumIndex:
        return self.checksums.get(checksum_type, {})

    @property
    def checksum_count(self) -> int:
        """Number of distinct values in the first configured algorithm's index."""
        for index in self.checksums.values():
            return len(index)
        return 0


class AnalyzerListener(Protocol):
    """Receives progress notifications from the analyzer."""

    def checksums_computed(self, count: int) -> None: ...
