"""Small helpers shared across the package."""

from distfinder import __version__
from distfinder.core.concurrency import CancellationToken, shutdown_and_await_termination

__all__ = [
    "CONTAINER_SEPARATOR",
    "CancellationToken",
    "byte_count_to_display_size",
    "get_version",
    "normalize_path",
    "shutdown_and_await_termination",
]

_UNITS = ("K", "M", "G", "T", "P", "E")


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def byte_count_to_display_size(size: int) -> str:
    """
    Format a byte count for humans, always rounding up.

    Below ten units one decimal is kept, above it the value is shown as a
    whole number. Sizes under 1 KiB are printed as a plain number.

        >>> byte_count_to_display_size(1023)
        '1023'
        >>> byte_count_to_display_size(1025)
        '1.1K'
        >>> byte_count_to_display_size(10138)
        '10K'
    """
    if size < 0:
        raise ValueError(f"Negative size: {size}")
    if size < 1024:
        return str(size)

    exponent = 0
    while exponent < len(_UNITS) and size >= 1024 ** (exponent + 1):
        exponent += 1

    divisor = 1024**exponent
    unit = _UNITS[exponent - 1]
    tenths = _ceil_div(size * 10, divisor)
    if tenths < 100:
        return f"{tenths // 10}.{tenths % 10}{unit}"
    return f"{_ceil_div(size, divisor)}{unit}"


def get_version() -> str:
    """Return the installed package version."""
    return __version__


CONTAINER_SEPARATOR = "!/"


def normalize_path(path: str, root: str) -> str:
    """
    Strip the input root from a node path.

    ``/dl/dist.zip!/lib/a.jar`` with root ``/dl/`` becomes
    ``dist.zip!/lib/a.jar``. A path that does not contain the root is
    returned unchanged.
    """
    index = path.find(root) if root else -1
    if index < 0:
        return path
    return path[index + len(root) :]
