"""
Resolver Orchestrator.

Turns the checksums streamed by the analyzer into builds by consulting a
chain of build-system resolvers.
"""

from distfinder.resolution.finder import BuildFinder, FinderState, build_checksum_table
from distfinder.resolution.models import (
    BuildKey,
    BuildResolver,
    BuildSystem,
    ChecksumTable,
    ResolutionResult,
)

__all__ = [
    "BuildFinder",
    "BuildKey",
    "BuildResolver",
    "BuildSystem",
    "ChecksumTable",
    "FinderState",
    "ResolutionResult",
    "build_checksum_table",
]
