"""
Checksum Queue.

The single hand-off point between the analyzer (one producer) and the build
finder (one consumer). Items are primary-algorithm checksums in discovery
order, followed by exactly one terminal marker.

Blocking calls take the run's CancellationToken. While waiting they poll it
every POLL_INTERVAL_SEC and raise AnalysisInterruptedError once it is
cancelled, so a failure on either side never leaves the other one blocked.
"""

import queue
import threading
from typing import List, Optional

from distfinder.checksum.models import Checksum
from distfinder.core.concurrency import CancellationToken

POLL_INTERVAL_SEC = 0.1


class ChecksumQueue:
    """
    FIFO of checksums ending in a terminal marker.

    Example:
        q = ChecksumQueue()
        q.put(checksum)
        q.put_terminal()
        q.take()      # checksum
        q.take()      # terminal marker
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: "queue.Queue[Checksum]" = queue.Queue(maxsize=maxsize)
        self._terminal_lock = threading.Lock()
        self._terminated = False

    def put(self, checksum: Checksum, token: Optional[CancellationToken] = None) -> None:
        """Append a checksum. Blocks only when the queue is bounded and full."""
        if checksum.is_terminal:
            raise ValueError("Use put_terminal() to end the queue")
        if self._terminated:
            raise RuntimeError("Queue already terminated")
        self._put(checksum, token)

    def put_terminal(self, token: Optional[CancellationToken] = None) -> None:
        """Append the terminal marker. May be called once."""
        with self._terminal_lock:
            if self._terminated:
                raise RuntimeError("Terminal marker already published")
            self._terminated = True
        self._put(Checksum.terminal(), token)

    def _put(self, item: Checksum, token: Optional[CancellationToken]) -> None:
        if token is None:
            self._queue.put(item)
            return
        while True:
            token.raise_if_cancelled("queue put")
            try:
                self._queue.put(item, timeout=POLL_INTERVAL_SEC)
                return
            except queue.Full:
                continue

    def take(self, token: Optional[CancellationToken] = None) -> Checksum:
        """Remove and return the next item, blocking until one is available."""
        if token is None:
            return self._queue.get()
        while True:
            token.raise_if_cancelled("queue take")
            try:
                return self._queue.get(timeout=POLL_INTERVAL_SEC)
            except queue.Empty:
                continue

    def drain(self) -> List[Checksum]:
        """Remove and return every item that is available right now."""
        items: List[Checksum] = []
        while True:
            try:
                items.append(self._queue.get_nowait())
            except queue.Empty:
                return items

    @property
    def terminated(self) -> bool:
        """Whether the producer has published the terminal marker."""
        return self._terminated

    def qsize(self) -> int:
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()
