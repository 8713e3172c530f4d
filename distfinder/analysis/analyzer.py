"""
Distribution Analyzer.

Walks every input, recursing into nested archives, and computes the
configured checksums of every eligible file. Results go to three places:

    per-algorithm index    value -> {FileRecord}
    inverse index          filename -> {Checksum}
    ChecksumQueue          primary checksums, for the build finder

Threading
---------
The analyzer's own thread is the only writer of the indexes. Pool workers
run ChecksumEngine.checksum() and return sets of checksums; the analyzer
awaits each future and aggregates the result itself.

Members of TAR and COMPRESSED file systems share their container's stream,
so they are submitted and awaited one at a time. Everything else found at
one level is submitted together once the level has been enumerated and
awaited in submission order.

Failure policy
--------------
ChecksumError (including a missing RPM primary digest) aborts the run. A
nested archive that cannot be opened is recorded as a FileError, logged,
and its siblings are still processed.
"""

import os
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Dict, Iterable, List, Optional, Set, Union

from distfinder.analysis.kinds import is_jar
from distfinder.analysis.models import AnalysisResult, AnalyzerListener
from distfinder.analysis.queue import POLL_INTERVAL_SEC, ChecksumQueue
from distfinder.analysis.vfs import FileNode, FileSystemManager, FolderNode
from distfinder.cache.base import LookasideCache
from distfinder.checksum.engine import ChecksumEngine
from distfinder.checksum.models import (
    PRIMARY_CHECKSUM_TYPE,
    Checksum,
    ChecksumIndex,
    ChecksumType,
    FileError,
    InverseIndex,
    find_by_type,
)
from distfinder.core.concurrency import CancellationToken, shutdown_and_await_termination
from distfinder.core.config import AnalyzerConfig
from distfinder.core.exceptions import (
    AnalysisInterruptedError,
    ChecksumError,
    DistFinderError,
    describe_error,
)
from distfinder.core.logging import get_logger
from distfinder.core.utils import byte_count_to_display_size, normalize_path

logger = get_logger(__name__)


class DistributionAnalyzer:
    """
    Checksums the files of one or more distributions.

    A DistributionAnalyzer runs once. Create a new one for every run.

    Example:
        analyzer = DistributionAnalyzer(["dist.zip"], AnalyzerConfig())
        result = analyzer.analyze()
        result.get_checksums(ChecksumType.MD5)
    """

    def __init__(
        self,
        inputs: Iterable[str],
        config: Optional[AnalyzerConfig] = None,
        cache: Optional[LookasideCache] = None,
        queue: Optional[ChecksumQueue] = None,
        listener: Optional[AnalyzerListener] = None,
        token: Optional[CancellationToken] = None,
        engine: Optional[ChecksumEngine] = None,
        fs_manager: Optional[FileSystemManager] = None,
    ) -> None:
        self.inputs = list(inputs)
        self.config = config or AnalyzerConfig()
        self.cache = cache
        self.queue = queue
        self.listener = listener
        self.token = token or CancellationToken()
        self.engine = engine or ChecksumEngine()
        self._fs_manager = fs_manager
        self._fs: Optional[FileSystemManager] = None

        self._checksums: Dict[ChecksumType, ChecksumIndex] = {t: {} for t in self.config.checksum_types}
        self._files: InverseIndex = {}
        self._file_errors: List[FileError] = []

        self._level = 0
        self._root = ""
        self._types_to_check: List[ChecksumType] = []
        self._fragment: Dict[ChecksumType, ChecksumIndex] = {}

        self._pool: Optional[ThreadPoolExecutor] = None
        self._pending: Set[Future] = set()
        self._started = False
        self.files_hashed = 0

    @property
    def worker_count(self) -> int:
        return self.config.max_workers or os.cpu_count() or 1

    @property
    def publishes_primary(self) -> bool:
        return self.queue is not None and PRIMARY_CHECKSUM_TYPE in self.config.checksum_types

    def analyze(self) -> AnalysisResult:
        """
        Process every input.

        Returns:
            The completed AnalysisResult

        Raises:
            InputNotFoundError: A top-level input does not exist
            ChecksumError: A file could not be digested
            AnalysisInterruptedError: The run's token was cancelled
            RuntimeError: The analyzer has already run
        """
        if self._started:
            raise RuntimeError("DistributionAnalyzer can only run once")
        self._started = True

        start = time.monotonic()
        owns_fs = self._fs_manager is None
        self._fs = self._fs_manager or FileSystemManager(http_timeout_sec=self.config.http_timeout_sec)
        self._pool = ThreadPoolExecutor(max_workers=self.worker_count, thread_name_prefix="distfinder-checksum")
        logger.debug("Started checksum pool", workers=self.worker_count)

        try:
            for location in self.inputs:
                self.token.raise_if_cancelled("analysis")
                self._analyze_input(location)
        finally:
            shutdown_and_await_termination(self._pool, self._pending)
            if owns_fs:
                self._fs.close()

        duration = time.monotonic() - start
        total = len(next(iter(self._checksums.values()), {}))
        average = duration / total if total else 0.0
        logger.info(
            "Total number of checksums",
            checksums=total,
            duration_sec=f"{duration:.2f}",
            average_sec=f"{average:.4f}",
        )
        if self.listener is not None:
            self.listener.checksums_computed(total)

        return self.result

    checksum_files = analyze

    def call(self) -> AnalysisResult:
        """Run analyze() and then publish the terminal marker to the queue."""
        result = self.analyze()
        if self.queue is not None:
            self.queue.put_terminal(self.token)
        return result

    def _analyze_input(self, location: str) -> None:
        resolved = self._fs.resolve(location)
        self._root = resolved.root
        node = resolved.node

        if node.is_file:
            logger.info("Analyzing", input=node.path, size=byte_count_to_display_size(max(node.size, 0)))
        else:
            logger.info("Analyzing", input=node.path)

        types = list(self.config.checksum_types)
        input_checksums: Optional[Set[Checksum]] = None

        if self.cache is not None and node.is_file:
            input_checksums = self.engine.checksum(node, types, self._root)
            for checksum_type in list(types):
                checksum = find_by_type(input_checksums, checksum_type)
                if checksum is None:
                    continue
                cached = self.cache.get(checksum_type, checksum.value)
                if cached is None:
                    logger.info("Not found in cache", input=node.name, checksum=checksum.value)
                    continue
                self._load_cached(checksum_type, cached)
                types.remove(checksum_type)
                logger.info(
                    "Loaded checksums from cache",
                    count=len(cached),
                    input=node.name,
                    checksum=checksum.value,
                )
        elif self.cache is not None:
            logger.debug("Directory input bypasses the cache", input=node.path)

        if not types:
            return

        self._types_to_check = types
        self._fragment = {t: {} for t in types}
        logger.info("Finding checksums", types=", ".join(str(t) for t in types), input=node.name)
        self._list_children(node)

        if input_checksums is not None:
            for checksum_type in types:
                checksum = find_by_type(input_checksums, checksum_type)
                if checksum is None:
                    logger.warning("Input has no checksum, not cached", input=node.name, type=str(checksum_type))
                    continue
                self.cache.put(checksum_type, checksum.value, self._fragment[checksum_type])

    def _load_cached(self, checksum_type: ChecksumType, fragment: ChecksumIndex) -> None:
        index = self._checksums[checksum_type]
        publish = self.publishes_primary and checksum_type == PRIMARY_CHECKSUM_TYPE

        for value, records in fragment.items():
            index.setdefault(value, set()).update(records)
            for record in records:
                checksum = Checksum(checksum_type, value, record.filename, record.size)
                self._files.setdefault(record.filename, set()).add(checksum)
                if publish:
                    self.queue.put(checksum, self.token)

        if self.listener is not None:
            self.listener.checksums_computed(len(fragment))

    def include_file(self, node: FileNode) -> bool:
        """
        Whether a file is hashed.

        Its extension must be in the allow-list (an empty list allows
        everything; package files are always allowed) and its normalized
        path must not full-match any exclusion pattern.
        """
        allowed = self.config.archive_extensions
        if allowed and node.extension not in allowed and not node.is_package:
            return False
        filename = normalize_path(node.path, self._root)
        return not any(p.fullmatch(filename) for p in self.config.exclude_patterns)

    def is_archive(self, node: FileNode) -> bool:
        return node.kind.is_archive

    def is_distribution_archive(self, node: FileNode) -> bool:
        return self._level == 1 and not is_jar(node.name)

    def is_single_wrapped_archive(self, node: FileNode) -> bool:
        """An archive that is the only entry of a top-level container."""
        parent = node.parent
        return (
            self._level == 2
            and parent is not None
            and parent.is_folder
            and parent.is_layered_root
            and len(parent.children) == 1
        )

    def should_list_archive(self, node: FileNode) -> bool:
        return (
            not self.config.disable_recursion
            or self.is_distribution_archive(node)
            or self.is_single_wrapped_archive(node)
        )

    def _list_children(self, node: Union[FileNode, FolderNode]) -> None:
        deferred: List[FileNode] = []

        for file in self._fs.find_files(node):
            if self.include_file(file):
                if file.hash_inline:
                    self._aggregate(self._await(self._submit(file)))
                else:
                    deferred.append(file)

            if self.is_archive(file):
                self._level += 1
                try:
                    if self.should_list_archive(file):
                        self._list_archive(file)
                finally:
                    self._level -= 1

        if deferred:
            logger.debug("Number of checksum tasks", count=len(deferred))
            futures = [self._submit(file) for file in deferred]
            for future in futures:
                self._aggregate(self._await(future))

    def _list_archive(self, node: FileNode) -> None:
        filename = normalize_path(node.path, self._root)
        logger.debug("Creating file system", file=filename)

        layered: Optional[FolderNode] = None
        try:
            layered = self._fs.create_file_system(node)
            self._list_children(layered)
        except (ChecksumError, AnalysisInterruptedError):
            raise
        except (DistFinderError, OSError) as e:
            message = describe_error(e)
            self._file_errors.append(FileError(filename, message))
            logger.warning("Unable to process archive/compressed file", file=filename, error=message)
        finally:
            if layered is not None:
                self._fs.close_file_system(layered)

    def _submit(self, node: FileNode) -> Future:
        future = self._pool.submit(self.engine.checksum, node, list(self._types_to_check), self._root)
        self._pending.add(future)
        return future

    def _await(self, future: Future) -> Set[Checksum]:
        while True:
            self.token.raise_if_cancelled("checksum wait")
            try:
                checksums = future.result(timeout=POLL_INTERVAL_SEC)
            except FutureTimeoutError:
                continue
            self._pending.discard(future)
            self.files_hashed += 1
            return checksums

    def _aggregate(self, checksums: Set[Checksum]) -> None:
        for checksum_type in self._types_to_check:
            checksum = find_by_type(checksums, checksum_type)
            if checksum is None:
                continue
            record = checksum.to_record()
            self._checksums[checksum_type].setdefault(checksum.value, set()).add(record)
            self._fragment[checksum_type].setdefault(checksum.value, set()).add(record)

        for checksum in checksums:
            self._files.setdefault(checksum.filename, set()).add(checksum)

        if self.publishes_primary:
            for checksum in checksums:
                if checksum.type == PRIMARY_CHECKSUM_TYPE:
                    self.queue.put(checksum, self.token)

    @property
    def result(self) -> AnalysisResult:
        return AnalysisResult(
            checksums=self._checksums,
            files=self._files,
            file_errors=list(self._file_errors),
        )

    def get_checksums(
        self, checksum_type: Optional[ChecksumType] = None
    ) -> Union[ChecksumIndex, Dict[ChecksumType, ChecksumIndex]]:
        """One algorithm's index, or all of them when no type is given."""
        if checksum_type is None:
            return self._checksums
        return self._checksums.get(checksum_type, {})

    def get_files(self) -> InverseIndex:
        return self._files

    def get_file_errors(self) -> List[FileError]:
        return list(self._file_errors)
