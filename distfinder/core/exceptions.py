"""
Centralized Exception Hierarchy for distfinder.

All custom exceptions inherit from DistFinderError so callers can catch
everything the package raises with a single except clause.

Each exception carries:
- error_code: Unique identifier for documentation lookup (e.g., "DF-SUM-001")
- why_it_happened: Explanation of the root cause
- how_to_fix: Actionable steps to resolve the issue

Usage
-----
    from distfinder.core.exceptions import DistFinderError, ChecksumError

    try:
        analyzer.analyze()
    except ChecksumError as e:
        logger.error("Checksum failed", error=str(e))
    except DistFinderError as e:
        logger.error("Run failed", code=e.error_code)

Exception Hierarchy
-------------------
    DistFinderError (base)
    ├── InputNotFoundError
    ├── ChecksumError
    │   ├── MissingDigestError
    │   └── UnsupportedAlgorithmError
    ├── ArchiveError
    ├── AnalysisInterruptedError
    ├── ResolutionError
    ├── CacheError
    ├── RetryError
    └── ValidationError
        └── ConfigValidationError

Severity
--------
ChecksumError aborts a whole run. ArchiveError raised while opening a
nested archive is recorded as a FileError and traversal continues.
"""

import builtins
from typing import Any, List, Optional


def get_root_cause(exc: BaseException) -> BaseException:
    """Extract the root cause from a chain of exceptions.

    Follows nested __cause__ and __context__ attributes to find
    the original error that started the chain.

    Args:
        exc: Exception to analyze

    Returns:
        Root cause exception (may be the same as input)
    """
    seen = set()
    current = exc

    while current is not None:
        if id(current) in seen:
            break
        seen.add(id(current))

        if current.__cause__ is not None:
            current = current.__cause__
        elif current.__context__ is not None:
            current = current.__context__
        else:
            break

    return current


def describe_error(exc: BaseException) -> str:
    """Render an exception as "message (cause message)".

    The cause is the explicit ``__cause__`` of the exception; it is only
    appended when it has a non-empty message.
    """
    message = str(exc)
    cause = exc.__cause__
    if cause is not None:
        cause_message = str(cause)
        if cause_message:
            message += f" ({cause_message})"
    return message


class DistFinderError(Exception):
    """
    Base exception for all distfinder errors.

    Example
    -------
        try:
            find_builds(inputs, config, resolvers)
        except DistFinderError as e:
            print(f"[{e.error_code}] {e}")
            for step in e.how_to_fix:
                print(f"  - {step}")
    """

    error_code: str = "DF-ERR-000"
    why_it_happened: str = "An unexpected error occurred"
    how_to_fix: List[str] = ["Check the error message for details"]

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        why_it_happened: Optional[str] = None,
        how_to_fix: Optional[List[str]] = None,
    ) -> None:
        """Initialize DistFinderError with helpful information.

        Args:
            message: Human-readable error message
            error_code: Unique identifier (e.g., "DF-ARC-001")
            why_it_happened: Explanation of root cause
            how_to_fix: List of actionable fix suggestions
        """
        super().__init__(message)

        if error_code is not None:
            self.error_code = error_code
        if why_it_happened is not None:
            self.why_it_happened = why_it_happened
        if how_to_fix is not None:
            self.how_to_fix = how_to_fix

    @property
    def user_message(self) -> str:
        """Get the user-friendly error message."""
        return str(self)

    def get_root_cause(self) -> BaseException:
        """Get the root cause of this exception chain."""
        return get_root_cause(self)


class InputNotFoundError(DistFinderError):
    """
    Raised when a top-level input cannot be located or fetched.

    Attributes
    ----------
    location : str
        The input as given by the caller
    """

    error_code = "DF-INPUT-001"
    why_it_happened = "The input path or URL does not exist or could not be fetched"
    how_to_fix = [
        "Check that the path is spelled correctly",
        "For URLs, verify the server is reachable and returns 200",
    ]

    def __init__(self, message: str, location: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.location = location


class ChecksumError(DistFinderError):
    """
    Raised when a file's checksums cannot be computed.

    Always fatal to the run: a dataset with a file that could not be
    digested is incomplete.

    Attributes
    ----------
    filename : str
        Normalized path of the offending file
    """

    error_code = "DF-SUM-000"
    why_it_happened = "A file could not be read completely while computing its checksums"
    how_to_fix = [
        "Check that the file is readable and not truncated",
        "Re-download the distribution and try again",
    ]

    def __init__(self, message: str, filename: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.filename = filename


class MissingDigestError(ChecksumError):
    """
    Raised when a package's signature header lacks the primary digest.

    Example
    -------
        # An RPM whose signature header carries no MD5 tag
        ChecksumEngine().checksum(node, [ChecksumType.MD5], root)
        # Raises: MissingDigestError("Missing required digest md5 for file: foo.rpm")
    """

    error_code = "DF-SUM-001"
    why_it_happened = (
        "The package signature header does not carry the digest used as the "
        "build lookup key"
    )
    how_to_fix = [
        "Verify the package was produced by a standard rpmbuild",
        "Re-sign the package so that the signature header is regenerated",
    ]


class UnsupportedAlgorithmError(ChecksumError):
    """Raised for a checksum algorithm name that is not known."""

    error_code = "DF-SUM-002"
    why_it_happened = "The requested checksum algorithm is not supported"
    how_to_fix = ["Use one of: md5, sha1, sha256"]


class ArchiveError(DistFinderError):
    """
    Raised when an archive cannot be opened or unpacked.

    For nested archives the analyzer records this as a FileError and
    continues with the siblings.
    """

    error_code = "DF-ARC-001"
    why_it_happened = "The archive is corrupt, truncated or not in the format its name suggests"
    how_to_fix = [
        "Check the archive with its native tool (unzip -t, tar -t)",
        "Rebuild the distribution if the archive was produced by your build",
    ]

    def __init__(self, message: str, filename: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.filename = filename


class AnalysisInterruptedError(DistFinderError):
    """Raised when a blocking operation observes a cancelled run."""

    error_code = "DF-RUN-001"
    why_it_happened = "The run was cancelled while waiting on the queue or the worker pool"
    how_to_fix = [
        "Check the log for the error that cancelled the run",
        "Run again once the underlying problem is fixed",
    ]


class ResolutionError(DistFinderError):
    """
    Raised when a build resolver fails.

    The resolver's own exception is kept as __cause__.
    """

    error_code = "DF-RES-001"
    why_it_happened = "A build-tracking backend failed while resolving checksums"
    how_to_fix = [
        "Check connectivity and credentials for the build system",
        "Retry the run; cached checksums make the second attempt faster",
    ]


class CacheError(DistFinderError):
    """Raised when the look-aside cache cannot be read or written."""

    error_code = "DF-CACHE-001"
    why_it_happened = "The checksum cache could not be read or written"
    how_to_fix = [
        "Check that the cache database path is writable",
        "Delete the cache database to start from an empty cache",
    ]


class RetryError(DistFinderError):
    """
    Raised when all retry attempts are exhausted.

    Attributes
    ----------
    attempts : int
        Number of attempts made
    last_exception : Exception
        The exception from the final attempt
    """

    error_code = "DF-NET-001"
    why_it_happened = (
        "The operation failed repeatedly and all retry attempts were exhausted. "
        "This typically indicates a persistent network problem"
    )
    how_to_fix = [
        "Check your network connection",
        "Verify the remote server is available",
        "Download the input manually and pass the local path",
    ]

    def __init__(
        self,
        message: str,
        attempts: Optional[int] = None,
        last_exception: Optional[Exception] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.attempts = attempts
        self.last_exception = last_exception


class ValidationError(DistFinderError):
    """Base exception for invalid values."""

    error_code = "DF-VAL-000"
    why_it_happened = "A value failed validation"
    how_to_fix = ["Check the error message for the expected value"]


class ConfigValidationError(ValidationError):
    """
    Raised when configuration validation fails.

    Attributes
    ----------
    field : str
        The configuration field that failed validation
    value : any
        The invalid value
    """

    error_code = "DF-CFG-001"
    why_it_happened = (
        "A configuration value is invalid. "
        "The configuration file may have incorrect settings"
    )
    how_to_fix = [
        "Check the configuration file for syntax errors",
        "Verify the value type matches what's expected",
        "Check DISTFINDER_* environment variables",
    ]

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value


STANDARD_ERROR_INFO: dict[type, dict[str, Any]] = {
    builtins.FileNotFoundError: {
        "error_code": "DF-FILE-001",
        "why_it_happened": "The specified file or directory could not be found",
        "how_to_fix": ["Check that the file path is correct"],
    },
    builtins.PermissionError: {
        "error_code": "DF-FILE-002",
        "why_it_happened": "You don't have permission to access this file or directory",
        "how_to_fix": ["Ensure you have read access to the inputs and write access to the output directory"],
    },
    OSError: {
        "error_code": "DF-SYS-001",
        "why_it_happened": "A system-level error occurred",
        "how_to_fix": ["Check disk space and permissions"],
    },
}


def get_error_info(exc: BaseException) -> dict[str, Any]:
    """Get error code, cause and fixes for any exception.

    Args:
        exc: Exception to get info for

    Returns:
        Dict with error_code, why_it_happened, how_to_fix
    """
    if isinstance(exc, DistFinderError):
        return {
            "error_code": exc.error_code,
            "why_it_happened": exc.why_it_happened,
            "how_to_fix": exc.how_to_fix,
        }

    for parent_type, info in STANDARD_ERROR_INFO.items():
        if isinstance(exc, parent_type):
            return info

    return {
        "error_code": "DF-ERR-999",
        "why_it_happened": "An unexpected error occurred",
        "how_to_fix": [
            "Check the error message for details",
            "Re-run with --debug for a full traceback",
        ],
    }
