"""
Retry Utilities for Remote Inputs.

Exponential backoff with jitter for transient failures. The file system
manager wraps remote input downloads with ``network_retry`` so that a
flaky mirror does not abort a run on the first dropped connection.

Backoff Strategy
----------------
Delay increases exponentially: ``base_delay * (exponential_base ^ attempt)``

    Attempt 1: 0.5s  (+ jitter)
    Attempt 2: 1.0s  (+ jitter)
    Attempt 3: 2.0s  (+ jitter)
    ... capped at max_delay

Jitter adds a random 0-25% to each delay.
"""

import random
import time
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type

import requests

from distfinder.core.exceptions import RetryError
from distfinder.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 60.0  # seconds
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,)


def calculate_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float,
    jitter: bool,
) -> float:
    """Calculate delay for next retry attempt."""
    delay = min(base_delay * (exponential_base**attempt), max_delay)

    if jitter:
        delay += delay * 0.25 * random.random()

    return delay


def _execute_with_retry(
    func: Callable[..., Any],
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
    config: RetryConfig,
    on_retry: Optional[Callable[[Exception, int], None]],
) -> Any:
    """
    Call func until it succeeds or the attempts are used up.

    Raises:
        RetryError: If all attempts fail; the last failure is its __cause__
    """
    last_exception: Optional[Exception] = None

    for attempt in range(config.max_attempts):
        try:
            return func(*args, **kwargs)
        except config.retryable_exceptions as e:
            last_exception = e

            if attempt >= config.max_attempts - 1:
                logger.error(
                    f"All {config.max_attempts} attempts failed",
                    error=str(e),
                    function=func.__name__,
                )
                break

            delay = calculate_delay(
                attempt,
                config.base_delay,
                config.max_delay,
                config.exponential_base,
                config.jitter,
            )
            logger.warning(
                f"Attempt {attempt + 1}/{config.max_attempts} failed, retrying in {delay:.2f}s",
                error=str(e),
                function=func.__name__,
            )
            if on_retry:
                on_retry(e, attempt + 1)
            time.sleep(delay)

    raise RetryError(
        f"Failed after {config.max_attempts} attempts: {last_exception}",
        attempts=config.max_attempts,
        last_exception=last_exception,
    ) from last_exception


def retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    on_retry: Optional[Callable[[Exception, int], None]] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (including first try)
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries
        exponential_base: Base for exponential backoff
        jitter: Add random jitter to delays
        retryable_exceptions: Exception types to retry on; anything else
            propagates immediately
        on_retry: Callback(exception, attempt) called before each retry

    Example:
        @retry(max_attempts=3, retryable_exceptions=(requests.ConnectionError,))
        def fetch(url):
            return session.get(url, stream=True)
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    config = RetryConfig(
        max_attempts=max_attempts,
        base_delay=base_delay,
        max_delay=max_delay,
        exponential_base=exponential_base,
        jitter=jitter,
        retryable_exceptions=retryable_exceptions or (Exception,),
    )

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return _execute_with_retry(func, args, kwargs, config, on_retry)

        return wrapper

    return decorator


# For remote input downloads: connection drops and read timeouts only.
# HTTP status errors are not transient and are not retried.
# Delays: 0.5s -> 1s -> 2s
network_retry = retry(
    max_attempts=4,
    base_delay=0.5,
    max_delay=15.0,
    exponential_base=2.0,
    jitter=True,
    retryable_exceptions=(requests.ConnectionError, requests.Timeout),
)
