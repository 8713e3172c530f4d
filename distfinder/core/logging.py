"""
Structured Logging for distfinder.

This module provides the logging infrastructure shared by the analyzer, the
build finder and the CLI: context binding, key=value fields appended to
every message, and stage timing for the runner.

Architecture Context
--------------------
Logging is a Core layer service used by every module in the package. All
modules should import get_logger() from here rather than using Python's
logging directly:

    from distfinder.core.logging import get_logger
    logger = get_logger(__name__)

Logger Types
------------
**StructuredLogger**
    Base logger with context binding support. Bound key-value pairs appear
    in all subsequent log messages:

        logger = get_logger(__name__)
        logger.bind(input="dist.zip")
        logger.info("Listing archive")  # includes input=dist.zip

**StageTimer**
    Tracks the named stages of a run (analyze, resolve, write) with
    wall-clock durations:

        timer = StageTimer("dist.zip")
        timer.start_stage("analyze")
        timer.finish(success=True, checksums=42)

Module-Level Factory
--------------------
get_logger() caches loggers by name, so multiple calls return the same
instance. configure_logging() replaces the default configuration and
re-applies it to every cached logger, which lets the CLI switch to DEBUG
after modules have already created their loggers.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from rich.logging import RichHandler


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    file_path: Optional[Path] = None
    console: bool = True


class StructuredLogger:
    """
    Structured logger with context support.

    Messages are rendered as ``message | key=value | key=value`` so that the
    console output and a log file carry the same fields.
    """

    def __init__(self, name: str, config: Optional[LogConfig] = None) -> None:
        self.logger = logging.getLogger(name)
        self.config = config or LogConfig()
        self._context: dict[str, Any] = {}
        self._setup_logger()

    def _setup_logger(self) -> None:
        """Configure the logger."""
        level = getattr(logging, self.config.level.upper(), logging.INFO)
        self.logger.setLevel(level)
        self.logger.propagate = False

        for handler in list(self.logger.handlers):
            handler.close()
        self.logger.handlers.clear()

        formatter = logging.Formatter(
            self.config.format,
            datefmt=self.config.date_format,
        )

        if self.config.console:
            console_handler = RichHandler(
                show_time=True,
                show_path=False,
                markup=False,
                rich_tracebacks=True,
            )
            console_handler.setLevel(level)
            self.logger.addHandler(console_handler)

        if self.config.file_path:
            self.config.file_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(self.config.file_path)
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

    def reconfigure(self, config: LogConfig) -> None:
        """Apply a new configuration to this logger."""
        self.config = config
        self._setup_logger()

    def bind(self, **kwargs: Any) -> "StructuredLogger":
        """Attach context fields to every subsequent message."""
        self._context.update(kwargs)
        return self

    def unbind(self, *keys: str) -> None:
        """Remove previously bound context fields."""
        for key in keys:
            self._context.pop(key, None)

    def _format_message(self, message: str, **kwargs: Any) -> str:
        """Format message with context and extra fields."""
        fields = {**self._context, **kwargs}
        if fields:
            field_str = " | ".join(f"{k}={v}" for k, v in fields.items())
            return f"{message} | {field_str}"
        return message

    def is_debug_enabled(self) -> bool:
        return self.logger.isEnabledFor(logging.DEBUG)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Log warning message, optionally with the active traceback."""
        self.logger.warning(self._format_message(message, **kwargs), exc_info=exc_info)

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Log error message, optionally with the active traceback."""
        self.logger.error(self._format_message(message, **kwargs), exc_info=exc_info)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log exception with traceback."""
        self.logger.exception(self._format_message(message, **kwargs))


class _ConfigHolder:
    """Holds default logging configuration."""

    _config: LogConfig = LogConfig()

    @classmethod
    def get_config(cls) -> LogConfig:
        """Get the default config."""
        return cls._config

    @classmethod
    def set_config(cls, config: LogConfig) -> None:
        """Set the default config."""
        cls._config = config


_loggers: dict[str, StructuredLogger] = {}


def get_logger(name: str, config: Optional[LogConfig] = None) -> StructuredLogger:
    """
    Get or create a structured logger.

    Args:
        name: Logger name (typically __name__).
        config: Optional logging configuration. Defaults to the one set by
            configure_logging().

    Returns:
        Configured StructuredLogger instance.
    """
    if name not in _loggers:
        _loggers[name] = StructuredLogger(name, config or _ConfigHolder.get_config())
    return _loggers[name]


def configure_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    console: bool = True,
) -> LogConfig:
    """
    Configure global logging settings.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional file path for log output.
        console: Whether to log to console.

    Returns:
        The configuration now in effect.
    """
    config = LogConfig(
        level=level,
        file_path=log_file,
        console=console,
    )
    _ConfigHolder.set_config(config)
    for structured in _loggers.values():
        structured.reconfigure(config)
    return config


class StageTimer:
    """
    Logs the stages of a single run with their durations.

    A stage ends when the next one starts or when finish() is called.
    """

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        self.logger = get_logger("distfinder.runner")
        self._stage_start: Optional[float] = None
        self._current_stage: Optional[str] = None
        self.durations: dict[str, float] = {}

    @property
    def current_stage(self) -> Optional[str]:
        return self._current_stage

    def start_stage(self, stage: str) -> None:
        """Mark the start of a stage."""
        self._finish_current_stage()
        self._current_stage = stage
        self._stage_start = time.monotonic()
        self.logger.info("Starting stage", run=self.run_id, stage=stage)

    def _finish_current_stage(self) -> None:
        if self._current_stage is None or self._stage_start is None:
            return
        duration = time.monotonic() - self._stage_start
        self.durations[self._current_stage] = duration
        self.logger.info(
            "Completed stage",
            run=self.run_id,
            stage=self._current_stage,
            duration_sec=f"{duration:.2f}",
        )
        self._current_stage = None
        self._stage_start = None

    def finish(self, success: bool, error: Optional[str] = None, **kwargs: Any) -> None:
        """Mark the end of the run."""
        self._finish_current_stage()
        if success:
            self.logger.info("Run completed", run=self.run_id, **kwargs)
        else:
            self.logger.error("Run failed", run=self.run_id, error=error)
