"""
Configuration Loading and Saving.

Configuration precedence: 1. DISTFINDER_* environment variables,
2. YAML file, 3. defaults.

Environment Variables
---------------------
    DISTFINDER_DISABLE_RECURSION   true/false
    DISTFINDER_CHECKSUM_TYPES      comma separated, e.g. "md5,sha256"
    DISTFINDER_MAX_WORKERS         positive integer

Values inside the YAML file may reference the environment with
${VAR_NAME} or ${VAR_NAME:default}.
"""

import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml

from distfinder.core.config import AnalyzerConfig
from distfinder.core.exceptions import ConfigValidationError
from distfinder.core.logging import get_logger

logger = get_logger(__name__)

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")
_TRUE_VALUES = frozenset(["1", "true", "yes", "on"])
_FALSE_VALUES = frozenset(["0", "false", "no", "off"])


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in config values.

    Handles strings with ${VAR_NAME} or ${VAR_NAME:default} syntax inside
    nested dictionaries and lists. Other values are returned unchanged.
    """
    if isinstance(value, str):

        def replace_env_var(match: re.Match) -> str:
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(match.group(1), default_value)

        expanded = _ENV_PATTERN.sub(replace_env_var, value)
        if expanded != value:
            return _coerce_scalar(expanded)
        return expanded
    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    return value


def _coerce_scalar(text: str) -> Any:
    """Re-read an expanded string as YAML so "8" becomes 8 and "true" True."""
    try:
        return yaml.safe_load(text) if text else text
    except yaml.YAMLError:
        return text


def _parse_bool(name: str, raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigValidationError(f"{name} must be true or false, got {raw!r}", field=name, value=raw)


def _parse_positive_int(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigValidationError(f"{name} must be an integer, got {raw!r}", field=name, value=raw) from e
    if value < 1:
        raise ConfigValidationError(f"{name} must be positive, got {value}", field=name, value=value)
    return value


def apply_env_overrides(config: AnalyzerConfig) -> AnalyzerConfig:
    """
    Apply DISTFINDER_* environment overrides to a config.

    Environment variables take precedence over config file values. The
    result is rebuilt through AnalyzerConfig so it is validated again.
    """
    data = config.to_dict()
    changed = False

    recursion = os.environ.get("DISTFINDER_DISABLE_RECURSION")
    if recursion:
        data["disable_recursion"] = _parse_bool("DISTFINDER_DISABLE_RECURSION", recursion)
        changed = True

    types = os.environ.get("DISTFINDER_CHECKSUM_TYPES")
    if types:
        data["checksum_types"] = types
        changed = True

    workers = os.environ.get("DISTFINDER_MAX_WORKERS")
    if workers:
        data["max_workers"] = _parse_positive_int("DISTFINDER_MAX_WORKERS", workers)
        changed = True

    if not changed:
        return config
    logger.debug("Applied environment overrides", **{k: data[k] for k in ("disable_recursion", "max_workers")})
    return AnalyzerConfig.from_dict(data)


def load_config(config_path: Optional[Path] = None) -> AnalyzerConfig:
    """
    Load configuration from a YAML file with environment variable overrides.

    Args:
        config_path: Path to the YAML file. None or a missing file yields
            the defaults (still subject to environment overrides).

    Returns:
        Validated AnalyzerConfig.

    Raises:
        ConfigValidationError: The file is not valid YAML, is not a mapping,
            or holds invalid values
    """
    if config_path is None or not Path(config_path).exists():
        if config_path is not None:
            logger.info("Config file not found, using defaults", path=str(config_path))
        return apply_env_overrides(AnalyzerConfig())

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigValidationError(f"Configuration in {config_path} must be a mapping")

    config = AnalyzerConfig.from_dict(expand_env_vars(data))
    logger.debug("Loaded configuration", path=str(config_path))
    return apply_env_overrides(config)


def save_config(config: AnalyzerConfig, config_path: Path) -> None:
    """Save configuration to a YAML file."""
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
