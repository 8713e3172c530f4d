"""
File kinds.

Every file the analyzer sees is classified once, by extension, into a small
closed set of kinds. The kind decides whether the file is an archive, how
its members are hashed and whether the RPM signature shortcut applies.

    ZIP         zip, jar, war, ear, sar, par, ejb3   members hashed on the pool
    TAR         tar, tgz, tbz2                       members hashed inline
    COMPRESSED  gz, bz2, xz                          one member, hashed inline
    RPM         rpm                                  signature header digests
    ORDINARY    anything else
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping


class FileKind(Enum):
    ZIP = "zip"
    TAR = "tar"
    COMPRESSED = "compressed"
    RPM = "rpm"
    ORDINARY = "ordinary"

    @property
    def is_archive(self) -> bool:
        """Whether files of this kind can be opened as a layered file system."""
        return self in (FileKind.ZIP, FileKind.TAR, FileKind.COMPRESSED)

    @property
    def members_inline(self) -> bool:
        """
        Whether members of a container of this kind must be hashed while the
        container is positioned on them, instead of being batched.
        """
        return self in (FileKind.TAR, FileKind.COMPRESSED)

    @property
    def is_package(self) -> bool:
        return self is FileKind.RPM


EXTENSION_KINDS: Mapping[str, FileKind] = MappingProxyType(
    {
        "zip": FileKind.ZIP,
        "jar": FileKind.ZIP,
        "war": FileKind.ZIP,
        "ear": FileKind.ZIP,
        "sar": FileKind.ZIP,
        "par": FileKind.ZIP,
        "ejb3": FileKind.ZIP,
        "tar": FileKind.TAR,
        "tgz": FileKind.TAR,
        "tbz2": FileKind.TAR,
        "gz": FileKind.COMPRESSED,
        "bz2": FileKind.COMPRESSED,
        "xz": FileKind.COMPRESSED,
        "rpm": FileKind.RPM,
    }
)

# Names that look like schemes but must never be opened as nested archives.
PSEUDO_SCHEMES = frozenset(["tmp", "res", "ram", "file"])

# Common single-file container formats. An archive of one of these types at
# the top level of a distribution is not a "distribution archive".
JAR_EXTENSIONS = frozenset(
    ["jar", "war", "rar", "ear", "sar", "kar", "jdocbook", "jdocbook-style", "plugin"]
)


def get_extension(name: str) -> str:
    """
    Lowercased extension of a file name, without the dot.

    Only the last component counts: ``dist.tar.gz`` has extension ``gz``.
    Names without a dot, and dot files like ``.profile``, have none.
    """
    base = name.rstrip("/").rsplit("/", 1)[-1]
    dot = base.rfind(".")
    if dot <= 0:
        return ""
    return base[dot + 1 :].lower()


def classify(name: str) -> FileKind:
    """Kind of a file from its name."""
    extension = get_extension(name)
    if extension in PSEUDO_SCHEMES:
        return FileKind.ORDINARY
    return EXTENSION_KINDS.get(extension, FileKind.ORDINARY)


def is_jar(name: str) -> bool:
    return get_extension(name) in JAR_EXTENSIONS
