"""
Core Infrastructure for distfinder.

This is the innermost layer of the package. Everything here is imported by
the checksum, analysis and resolution packages, so nothing in this package
imports from them at module level.

Components
----------
**Configuration (config.py, config_loaders.py)**
    AnalyzerConfig dataclass with YAML persistence and environment
    variable expansion (${VAR_NAME}).

**Logging (logging.py)**
    Structured logging with context fields and stage timing.

**Exceptions (exceptions.py)**
    DistFinderError hierarchy with error codes and fix suggestions.

**Retry (retry.py)**
    Exponential backoff for remote input downloads.

**Concurrency (concurrency.py)**
    Cancellation token and bounded worker pool shutdown.
"""
