"""
Build Finder.

Consumes the ChecksumQueue and resolves checksums to builds, batch by batch,
while the analyzer is still producing them.

State machine
-------------
    WAITING    blocked on queue take
    DRAINING   collecting whatever else is already queued
    RESOLVING  passing the batch through the resolvers
    DONE       terminal marker seen and its batch resolved

Each batch becomes a table of primary checksum value -> filenames. Resolvers
are consulted in order; each receives what the previous ones left
unresolved, and the chain stops once nothing is left.
"""

import threading
import time
from concurrent.futures import Executor, Future
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

from distfinder.analysis.queue import ChecksumQueue
from distfinder.checksum.models import PRIMARY_CHECKSUM_TYPE, Checksum, ChecksumType
from distfinder.core.concurrency import CancellationToken
from distfinder.core.exceptions import ResolutionError, describe_error
from distfinder.core.logging import get_logger
from distfinder.resolution.models import BuildKey, BuildResolver, ChecksumTable

logger = get_logger(__name__)


class FinderState(Enum):
    WAITING = "waiting"
    DRAINING = "draining"
    RESOLVING = "resolving"
    DONE = "done"


def build_checksum_table(
    batch: Iterable[Checksum],
    primary: ChecksumType = PRIMARY_CHECKSUM_TYPE,
) -> ChecksumTable:
    """Group a batch by primary checksum value. Other types and the terminal marker are skipped."""
    table: ChecksumTable = {}
    for checksum in batch:
        if checksum.is_terminal or checksum.type != primary:
            continue
        table.setdefault(checksum.value, set()).add(checksum.filename)
    return table


def _merge_table(target: ChecksumTable, source: ChecksumTable) -> None:
    for value, filenames in source.items():
        target.setdefault(value, set()).update(filenames)


class BuildFinder:
    """
    Resolve queued checksums with a chain of resolvers.

    Example:
        finder = BuildFinder(queue, [pnc_resolver, koji_resolver])
        builds = finder.run()
        finder.unresolved  # checksums no resolver could place
    """

    def __init__(
        self,
        queue: ChecksumQueue,
        resolvers: Sequence[BuildResolver],
        primary: ChecksumType = PRIMARY_CHECKSUM_TYPE,
        token: Optional[CancellationToken] = None,
    ) -> None:
        self.queue = queue
        self.resolvers = list(resolvers)
        self.primary = primary
        self.token = token or CancellationToken()
        self.state = FinderState.WAITING
        self.builds: Dict[BuildKey, Any] = {}
        self.unresolved: ChecksumTable = {}
        self.batches = 0

    def run(self) -> Dict[BuildKey, Any]:
        """
        Consume the queue until the terminal marker.

        Returns:
            Every build found, keyed by BuildKey

        Raises:
            ResolutionError: A resolver failed
            AnalysisInterruptedError: The token was cancelled while waiting
        """
        start = time.monotonic()
        finished = False

        while not finished:
            self.state = FinderState.WAITING
            first = self.queue.take(self.token)

            self.state = FinderState.DRAINING
            batch: List[Checksum] = [first]
            batch.extend(self.queue.drain())
            finished = any(c.is_terminal for c in batch)
            logger.debug("Got checksums from queue", count=sum(1 for c in batch if not c.is_terminal))

            table = build_checksum_table(batch, self.primary)
            if table:
                self.state = FinderState.RESOLVING
                self._resolve(table)

        self.state = FinderState.DONE
        duration = time.monotonic() - start
        found = sum(1 for key in self.builds if not key.is_sentinel)
        logger.info(
            f"Found {found} builds",
            duration_sec=f"{duration:.2f}",
            average_sec=f"{duration / found if found else 0.0:.4f}",
        )
        return self.builds

    call = run

    def _resolve(self, table: ChecksumTable) -> None:
        self.batches += 1
        logger.debug("Resolving batch", batch=self.batches, checksums=len(table))
        residual = table

        for resolver in self.resolvers:
            if not residual:
                break
            self.token.raise_if_cancelled("resolution")
            try:
                result = resolver.resolve(residual)
            except Exception as e:
                raise ResolutionError(f"Build resolution failed in {resolver.system}: {e}") from e
            self.builds.update(result.found)
            residual = result.not_found

        _merge_table(self.unresolved, residual)

    def get(self) -> Dict[BuildKey, Any]:
        """Like run(), but every failure surfaces as ResolutionError."""
        try:
            return self.run()
        except ResolutionError:
            raise
        except Exception as e:
            raise ResolutionError(f"Build resolution failed: {describe_error(e)}") from e

    def submit(self, executor: Optional[Executor] = None) -> Future:
        """
        Run without blocking the caller.

        Returns:
            A Future holding the builds map, or a ResolutionError on failure.
            Without an executor the work runs on a dedicated daemon thread.
        """
        if executor is not None:
            return executor.submit(self.get)

        future: Future = Future()

        def runner() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(self.get())
            except Exception as e:
                future.set_exception(e)

        threading.Thread(target=runner, name="distfinder-build-finder", daemon=True).start()
        return future
