"""YAML configuration loading.

config.yaml is parsed with PyYAML and validated against AppConfig. The
result is cached for the life of the process; runtime-changeable values
live in the database `settings` table, not here.

Usage:
    from feedfilter.config import get_config

    config = get_config()
    config.cache.ttl_hours
"""

import os
import threading
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from feedfilter.config_schema import AppConfig
from feedfilter.core.errors import ConfigLoadError, ConfigValidationError
from feedfilter.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path("config/config.yaml")

_config_lock = threading.Lock()
_current_config: AppConfig | None = None


def _resolve_path(path: Path | None) -> Path:
    if path is not None:
        return path
    return Path(os.environ.get("FEEDFILTER_CONFIG_PATH") or DEFAULT_CONFIG_PATH)


def _read_mapping(path: Path) -> dict[str, Any]:
    """Parse the YAML file into a mapping; an empty file is an empty mapping.

    Raises:
        ConfigLoadError: Missing file, YAML syntax error, or a non-mapping document
    """
    if not path.exists():
        raise ConfigLoadError(
            f"Configuration file not found: {path}\n"
            f"Copy config/config.yaml.example to {path} to get started"
        )

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Failed to parse YAML in {path}:\n{e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigLoadError(f"{path} must contain a YAML mapping, got {type(data).__name__}")
    return data


def load_config(path: Path | None = None) -> AppConfig:
    """Load and validate the config file, bypassing the cache.

    Args:
        path: Config file; defaults to FEEDFILTER_CONFIG_PATH or config/config.yaml

    Raises:
        ConfigLoadError: If the file cannot be read or parsed
        ConfigValidationError: If a field fails validation (one line per field)
    """
    config_path = _resolve_path(path)
    data = _read_mapping(config_path)

    try:
        config = AppConfig(**data)
    except ValidationError as e:
        details = "\n".join(
            f"  - {'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigValidationError(f"Invalid configuration in {config_path}:\n{details}") from e

    logger.info("config_loaded", path=str(config_path), database=config.database.path)
    return config


def get_config() -> AppConfig:
    """Return the process-wide config, loading it on first call."""
    global _current_config

    with _config_lock:
        if _current_config is None:
            _current_config = load_config()
        return _current_config


def validate_config_file(path: Path | None = None) -> tuple[bool, str]:
    """Check a config file without touching the cached config.

    Returns:
        Tuple of (is_valid, message)
    """
    try:
        config = load_config(path)
    except ConfigLoadError as e:
        return False, f"Load error: {e}"
    except ConfigValidationError as e:
        return False, f"Validation error: {e}"

    return True, (
        f"Configuration valid (schema version {config.schema_version})\n"
        f"  - database: {config.database.path}\n"
        f"  - endpoint: {config.defaults.endpoint}\n"
        f"  - model: {config.defaults.model_name}\n"
        f"  - cache TTL: {config.cache.ttl_hours}h"
    )


def reset_config() -> None:
    """Drop the cached config so the next get_config() reads the file again."""
    global _current_config
    with _config_lock:
        _current_config = None
