"""
Virtual file tree over local paths, remote downloads and archives.

Architecture Context
--------------------
The analyzer never touches the file system directly. It asks a
FileSystemManager to resolve each input into a tree of FolderNode and
FileNode objects, and to open archive nodes as layered file systems whose
root folder path ends in the container boundary marker ``!/``:

    /dl/dist.zip                      FileNode (the input)
    /dl/dist.zip!/                    FolderNode (layered root)
    /dl/dist.zip!/lib/a.jar           FileNode
    /dl/dist.zip!/lib/a.jar!/         FolderNode (nested layered root)

Layered file systems
--------------------
**ZipFileSystem**
    zipfile.ZipFile over a local file. Members may be opened from several
    pool threads at once.

**TarFileSystem**
    tarfile in "r:*" mode (plain, gzip, bzip2 and xz tarballs). Members share
    the tarfile stream, so the analyzer hashes them one at a time.

**CompressedFileSystem**
    gzip, bzip2 or xz around a single file. The payload is decompressed to a
    temporary file when the file system is created, so corrupt data fails
    at open time with ArchiveError.

Nested archives are spooled to the manager's temporary directory before
they are opened. close() removes every temporary file.
"""

import bz2
import gzip
import lzma
import os
import shutil
import tarfile
import tempfile
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, Dict, List, Optional, Union
from urllib.parse import unquote, urlsplit
from urllib.request import url2pathname

import requests

from distfinder import __version__
from distfinder.analysis.kinds import FileKind, classify, get_extension
from distfinder.core.exceptions import ArchiveError, InputNotFoundError
from distfinder.core.logging import get_logger
from distfinder.core.retry import network_retry
from distfinder.core.utils import CONTAINER_SEPARATOR

logger = get_logger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024
SPOOL_CHUNK_SIZE = 64 * 1024

# Errors raised by zipfile, tarfile and the decompressors on bad input,
# including encrypted zip members and unsupported compression methods.
UNPACK_ERRORS = (
    OSError,
    EOFError,
    RuntimeError,
    NotImplementedError,
    zipfile.BadZipFile,
    tarfile.TarError,
    zlib.error,
    lzma.LZMAError,
    ValueError,
)

_DECOMPRESSORS: Dict[str, Callable[[str], BinaryIO]] = {
    "gz": lambda path: gzip.open(path, "rb"),
    "bz2": lambda path: bz2.open(path, "rb"),
    "xz": lambda path: lzma.open(path, "rb"),
}


class FolderNode:
    """A directory, or the root folder of a layered file system."""

    def __init__(
        self,
        name: str,
        path: str,
        parent: Optional["FolderNode"] = None,
        file_system: Optional["LayeredFileSystem"] = None,
    ) -> None:
        self.name = name
        self.path = path
        self.parent = parent
        self.file_system = file_system
        self.children: List[Union["FolderNode", "FileNode"]] = []

    is_folder = True
    is_file = False

    @property
    def is_layered_root(self) -> bool:
        return self.path.endswith(CONTAINER_SEPARATOR)

    def __repr__(self) -> str:
        return f"FolderNode({self.path!r}, children={len(self.children)})"


class FileNode:
    """
    A regular file anywhere in the tree.

    Attributes:
        name: Base name
        path: Full node path, including every ``!/`` boundary above it
        size: Size in bytes, -1 when unknown
        parent: Containing folder, None for a top-level input file
        file_system: Layered file system the file lives in, None for files
            on disk
        local_path: Path on disk when the bytes are directly readable there
    """

    is_folder = False
    is_file = True

    def __init__(
        self,
        name: str,
        path: str,
        size: int,
        opener: Callable[[], BinaryIO],
        parent: Optional[FolderNode] = None,
        file_system: Optional["LayeredFileSystem"] = None,
        local_path: Optional[str] = None,
    ) -> None:
        self.name = name
        self.path = path
        self.size = size
        self.parent = parent
        self.file_system = file_system
        self.local_path = local_path
        self._opener = opener
        self.kind = classify(name)

    @property
    def extension(self) -> str:
        return get_extension(self.name)

    @property
    def is_package(self) -> bool:
        return self.kind.is_package

    @property
    def hash_inline(self) -> bool:
        """Whether this file must be hashed while its container is positioned on it."""
        return self.file_system is not None and self.file_system.kind.members_inline

    def open(self) -> BinaryIO:
        """Open the file's bytes for reading."""
        return self._opener()

    def __repr__(self) -> str:
        return f"FileNode({self.path!r}, size={self.size})"


def _open_local(path: str) -> Callable[[], BinaryIO]:
    return lambda: open(path, "rb")


def _folder_for(root: FolderNode, folders: Dict[str, FolderNode], parts: List[str]) -> FolderNode:
    """Return the folder for a member directory, creating missing ancestors."""
    folder = root
    for depth in range(len(parts)):
        key = "/".join(parts[: depth + 1])
        child = folders.get(key)
        if child is None:
            child = FolderNode(
                name=parts[depth],
                path=root.path + key,
                parent=folder,
                file_system=root.file_system,
            )
            folder.children.append(child)
            folders[key] = child
        folder = child
    return folder


def _split_member_name(name: str) -> List[str]:
    return [part for part in name.replace("\\", "/").split("/") if part and part != "."]


class LayeredFileSystem:
    """Base class for a file system opened from an archive node."""

    kind: FileKind = FileKind.ORDINARY

    def __init__(self, source: FileNode, local_path: str) -> None:
        self.source = source
        self.local_path = local_path
        self.root = FolderNode(
            name=source.name + CONTAINER_SEPARATOR,
            path=source.path + CONTAINER_SEPARATOR,
            parent=source.parent,
            file_system=self,
        )
        self._folders: Dict[str, FolderNode] = {}
        self.temp_files: List[str] = []

    def _add_member(self, name: str, size: int, opener: Callable[[], BinaryIO], local_path: Optional[str] = None) -> None:
        parts = _split_member_name(name)
        if not parts:
            return
        folder = _folder_for(self.root, self._folders, parts[:-1])
        folder.children.append(
            FileNode(
                name=parts[-1],
                path=self.root.path + "/".join(parts),
                size=size,
                opener=opener,
                parent=folder,
                file_system=self,
                local_path=local_path,
            )
        )

    def _add_folder(self, name: str) -> None:
        parts = _split_member_name(name)
        if parts:
            _folder_for(self.root, self._folders, parts)

    def close(self) -> None:
        for path in self.temp_files:
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
        self.temp_files.clear()


class ZipFileSystem(LayeredFileSystem):
    kind = FileKind.ZIP

    def __init__(self, source: FileNode, local_path: str) -> None:
        super().__init__(source, local_path)
        self._zip = zipfile.ZipFile(local_path)
        for info in self._zip.infolist():
            if info.is_dir():
                self._add_folder(info.filename)
            else:
                self._add_member(info.filename, info.file_size, self._member_opener(info))

    def _member_opener(self, info: zipfile.ZipInfo) -> Callable[[], BinaryIO]:
        return lambda: self._zip.open(info)

    def close(self) -> None:
        self._zip.close()
        super().close()


class TarFileSystem(LayeredFileSystem):
    kind = FileKind.TAR

    def __init__(self, source: FileNode, local_path: str) -> None:
        super().__init__(source, local_path)
        self._tar = tarfile.open(local_path, "r:*")
        try:
            members = self._tar.getmembers()
        except BaseException:
            self._tar.close()
            raise
        for member in members:
            if member.isdir():
                self._add_folder(member.name)
            elif member.isfile():
                self._add_member(member.name, member.size, self._member_opener(member))

    def _member_opener(self, member: tarfile.TarInfo) -> Callable[[], BinaryIO]:
        def opener() -> BinaryIO:
            stream = self._tar.extractfile(member)
            if stream is None:
                raise OSError(f"Cannot read tar member {member.name}")
            return stream

        return opener

    def close(self) -> None:
        self._tar.close()
        super().close()


class CompressedFileSystem(LayeredFileSystem):
    kind = FileKind.COMPRESSED

    def __init__(self, source: FileNode, local_path: str, temp_dir: str) -> None:
        super().__init__(source, local_path)
        extension = get_extension(source.name)
        member_name = source.name[: -(len(extension) + 1)] or source.name

        fd, target = tempfile.mkstemp(dir=temp_dir, suffix="-" + member_name)
        self.temp_files.append(target)
        try:
            with os.fdopen(fd, "wb") as out, _DECOMPRESSORS[extension](local_path) as stream:
                shutil.copyfileobj(stream, out, SPOOL_CHUNK_SIZE)
        except BaseException:
            self.close()
            raise

        self._add_member(member_name, os.path.getsize(target), _open_local(target), local_path=target)


@dataclass
class ResolvedInput:
    """
    A top-level input after resolution.

    Attributes:
        location: The input as given by the caller
        root: Prefix stripped from node paths to form filenames
        node: The input's file or directory tree
    """

    location: str
    root: str
    node: Union[FileNode, FolderNode]

    @property
    def is_file(self) -> bool:
        return self.node.is_file


class FileSystemManager:
    """
    Resolves inputs and opens archives for one run.

    Usage:
        with FileSystemManager() as fsm:
            resolved = fsm.resolve("dist.zip")
            root = fsm.create_file_system(resolved.node)
            for node in fsm.find_files(root):
                ...
            fsm.close_file_system(root)
    """

    def __init__(
        self,
        http_timeout_sec: float = 60.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.http_timeout_sec = http_timeout_sec
        self._session = session
        self._temp_dir: Optional[str] = None
        self._file_systems: List[LayeredFileSystem] = []
        self._closed = False

    @property
    def temp_dir(self) -> str:
        if self._temp_dir is None:
            self._temp_dir = tempfile.mkdtemp(prefix="distfinder-")
        return self._temp_dir

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update({"User-Agent": f"distfinder/{__version__}"})
        return self._session

    def resolve(self, location: str) -> ResolvedInput:
        """
        Resolve a local path, ``file:`` URI or ``http(s)`` URL.

        Raises:
            InputNotFoundError: Local input missing or server answered with
                an error status
            RetryError: The download kept failing with connection errors
        """
        parsed = urlsplit(location)
        scheme = parsed.scheme.lower()

        if scheme in ("http", "https"):
            return self._resolve_remote(location)
        if scheme == "file":
            return self._resolve_local(location, url2pathname(unquote(parsed.path)))
        return self._resolve_local(location, location)

    def _resolve_local(self, location: str, raw_path: str) -> ResolvedInput:
        path = Path(raw_path).expanduser().absolute()
        if not path.exists():
            raise InputNotFoundError(f"Input file {path} does not exist", location=location)

        node_path = path.as_posix()
        root = node_path[: len(node_path) - len(path.name)]
        if path.is_dir():
            node: Union[FileNode, FolderNode] = self._build_directory(path)
        else:
            node = FileNode(
                name=path.name,
                path=node_path,
                size=path.stat().st_size,
                opener=_open_local(str(path)),
                local_path=str(path),
            )
        return ResolvedInput(location=location, root=root, node=node)

    def _build_directory(self, path: Path) -> FolderNode:
        top = FolderNode(name=path.name, path=path.as_posix())
        folders = {str(path): top}
        for dirpath, dirnames, filenames in os.walk(path):
            dirnames.sort()
            folder = folders[dirpath]
            for dirname in dirnames:
                child_path = Path(dirpath, dirname)
                child = FolderNode(name=dirname, path=child_path.as_posix(), parent=folder)
                folder.children.append(child)
                folders[str(child_path)] = child
            for filename in sorted(filenames):
                file_path = Path(dirpath, filename)
                if not file_path.is_file():
                    continue
                folder.children.append(
                    FileNode(
                        name=filename,
                        path=file_path.as_posix(),
                        size=file_path.stat().st_size,
                        opener=_open_local(str(file_path)),
                        parent=folder,
                        local_path=str(file_path),
                    )
                )
        return top

    def _resolve_remote(self, url: str) -> ResolvedInput:
        node_path = url.split("?", 1)[0].split("#", 1)[0]
        name = unquote(node_path.rstrip("/").rsplit("/", 1)[-1]) or "index"
        root = node_path[: node_path.rfind("/") + 1]

        target_dir = tempfile.mkdtemp(dir=self.temp_dir, prefix="download-")
        target = os.path.join(target_dir, name)
        logger.info("Downloading input", url=url)
        try:
            self._download(url, target)
        except requests.HTTPError as e:
            raise InputNotFoundError(f"Input URL {url} could not be fetched", location=url) from e

        return ResolvedInput(
            location=url,
            root=root,
            node=FileNode(
                name=name,
                path=node_path,
                size=os.path.getsize(target),
                opener=_open_local(target),
                local_path=target,
            ),
        )

    @network_retry
    def _download(self, url: str, target: str) -> None:
        with self.session.get(url, stream=True, timeout=self.http_timeout_sec) as response:
            response.raise_for_status()
            with open(target, "wb") as f:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)

    def create_file_system(self, node: FileNode) -> FolderNode:
        """
        Open an archive node as a layered file system.

        Returns:
            The layered root folder (path ends in ``!/``)

        Raises:
            ArchiveError: The node is not an archive or cannot be opened
        """
        if not node.kind.is_archive:
            raise ArchiveError(f"Not an archive: {node.path}", filename=node.path)

        spooled: Optional[str] = None
        try:
            local_path = node.local_path
            if local_path is None:
                spooled = self._spool(node)
                local_path = spooled

            if node.kind is FileKind.ZIP:
                file_system: LayeredFileSystem = ZipFileSystem(node, local_path)
            elif node.kind is FileKind.TAR:
                file_system = TarFileSystem(node, local_path)
            else:
                file_system = CompressedFileSystem(node, local_path, self.temp_dir)
        except UNPACK_ERRORS as e:
            if spooled is not None:
                os.remove(spooled)
            raise ArchiveError(f"Unable to open archive {node.path}", filename=node.path) from e

        if spooled is not None:
            file_system.temp_files.append(spooled)
        self._file_systems.append(file_system)
        logger.debug("Created file system", path=file_system.root.path, kind=file_system.kind.value)
        return file_system.root

    def _spool(self, node: FileNode) -> str:
        fd, target = tempfile.mkstemp(dir=self.temp_dir, suffix="-" + node.name)
        try:
            with os.fdopen(fd, "wb") as out, node.open() as stream:
                shutil.copyfileobj(stream, out, SPOOL_CHUNK_SIZE)
        except BaseException:
            os.remove(target)
            raise
        return target

    def close_file_system(self, root: FolderNode) -> None:
        """Close the layered file system rooted at ``root``."""
        file_system = root.file_system
        if file_system is None:
            return
        file_system.close()
        if file_system in self._file_systems:
            self._file_systems.remove(file_system)

    @staticmethod
    def find_files(node: Union[FileNode, FolderNode]) -> List[FileNode]:
        """
        All files below a folder, depth first, without entering archives.

        A file node yields itself.
        """
        if node.is_file:
            return [node]  # type: ignore[list-item]
        files: List[FileNode] = []
        stack = [node]
        while stack:
            folder = stack.pop()
            for child in folder.children:
                if child.is_file:
                    files.append(child)  # type: ignore[arg-type]
            stack.extend(reversed([c for c in folder.children if c.is_folder]))
        return files

    def close(self) -> None:
        """Close every open file system and delete temporary files."""
        if self._closed:
            return
        self._closed = True
        for file_system in self._file_systems:
            file_system.close()
        self._file_systems.clear()
        if self._temp_dir is not None:
            shutil.rmtree(self._temp_dir, ignore_errors=True)
            self._temp_dir = None
        if self._session is not None:
            self._session.close()

    def __enter__(self) -> "FileSystemManager":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
