"""
Resolution data models.

Builds themselves are opaque to distfinder: resolvers return whatever
object their backend uses, keyed by BuildKey.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Protocol, Set, runtime_checkable

# primary checksum value -> filenames sharing it
ChecksumTable = Dict[str, Set[str]]


class BuildSystem(Enum):
    """Build-tracking systems, in the order they are usually consulted."""

    PNC = "pnc"
    KOJI = "koji"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class BuildKey:
    """
    Identifier of a build in one build system.

    Id 0 is reserved: ``BuildKey.not_found(system)`` collects the files that
    system could not attribute to any build.
    """

    id: int
    system: BuildSystem

    NOT_FOUND_ID = 0

    @classmethod
    def not_found(cls, system: BuildSystem) -> "BuildKey":
        return cls(cls.NOT_FOUND_ID, system)

    @property
    def is_sentinel(self) -> bool:
        return self.id == self.NOT_FOUND_ID

    def __str__(self) -> str:
        return f"{self.system}:{self.id}"


@dataclass
class ResolutionResult:
    """
    What one resolver made of a checksum table.

    Attributes:
        found: Builds the resolver matched, keyed by BuildKey
        not_found: The part of the table it could not resolve
    """

    found: Dict[BuildKey, Any] = field(default_factory=dict)
    not_found: ChecksumTable = field(default_factory=dict)


@runtime_checkable
class BuildResolver(Protocol):
    """
    Client of one build-tracking system.

    resolve() is called once per batch with a shrinking table and must be
    safe to call repeatedly.
    """

    system: BuildSystem

    def resolve(self, table: ChecksumTable) -> ResolutionResult: ...
