"""
Cancellation and worker pool shutdown.

A run has two long-lived threads (the analyzer and the build finder) plus a
bounded checksum pool. Every blocking call takes the run's
CancellationToken; when one side fails the runner cancels the token and
the other side wakes up with AnalysisInterruptedError instead of blocking
forever.
"""

import threading
from concurrent.futures import Executor, Future, wait
from typing import Iterable, Optional

from distfinder.core.exceptions import AnalysisInterruptedError
from distfinder.core.logging import get_logger

logger = get_logger(__name__)

# Seconds to wait for the pool after a graceful and after a forced stop.
SHUTDOWN_TIMEOUT_SEC = 10.0


class CancellationToken:
    """
    Cooperative cancellation flag shared by the threads of one run.

    Example:
        token = CancellationToken()
        token.cancel("resolver failed")
        token.raise_if_cancelled("queue take")  # AnalysisInterruptedError
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        """Request cancellation. Only the first reason is kept."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or the timeout elapses."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self, operation: str = "operation") -> None:
        """
        Raise AnalysisInterruptedError if the run has been cancelled.

        Args:
            operation: Name of the blocking call, used in the message
        """
        if self._event.is_set():
            message = f"Interrupted during {operation}"
            if self._reason:
                message += f": {self._reason}"
            raise AnalysisInterruptedError(message)


def shutdown_and_await_termination(
    pool: Executor,
    futures: Iterable[Future] = (),
    timeout: float = SHUTDOWN_TIMEOUT_SEC,
) -> bool:
    """
    Stop a worker pool, first gracefully and then by force.

    The pool is asked to stop accepting work and the outstanding futures are
    given ``timeout`` seconds to finish. Whatever is still pending is then
    cancelled and waited on for another ``timeout`` seconds. A pool that
    still has running work is logged at ERROR; this never raises.

    Args:
        pool: Executor to shut down
        futures: Futures submitted to the pool that may still be running
        timeout: Bound for each of the two waits

    Returns:
        True if every future finished
    """
    pending = [f for f in futures if not f.done()]
    pool.shutdown(wait=False)

    if pending:
        _, pending_set = wait(pending, timeout=timeout)
        if pending_set:
            logger.warning("Pool did not stop in time, cancelling", pending=len(pending_set))
            pool.shutdown(wait=False, cancel_futures=True)
            for future in pending_set:
                future.cancel()
            # Cancelled futures never reach the notified state wait() looks for.
            running = [f for f in pending_set if not f.cancelled()]
            if running:
                wait(running, timeout=timeout)
            still_running = [f for f in running if not f.done()]
            if still_running:
                logger.error("Pool did not terminate", pending=len(still_running))
                return False

    return True
