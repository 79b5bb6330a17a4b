"""Settings loader combining packaged defaults, user YAML, and the environment."""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from grove_balance_tracker.core.errors import ConfigError
from grove_balance_tracker.core.models import Settings

logger = logging.getLogger(__name__)

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

# Environment variable -> (section, field)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "GROVE_API_URL": ("api", "base_url"),
    "GROVE_API_TIMEOUT": ("api", "timeout"),
    "GROVE_POLL_INTERVAL": ("poll", "interval"),
    "GROVE_CACHE_TTL": ("poll", "cache_ttl"),
    "GROVE_MAX_RETRIES": ("poll", "max_retries"),
    "GROVE_RETRY_DELAY": ("poll", "base_retry_delay"),
    "GROVE_CONFIRMATION_TIMEOUT": ("poll", "confirmation_timeout"),
    "GROVE_CONFIRMATION_STRATEGY": ("confirmation", "strategy"),
    "HEDERA_MIRROR_NODE_URL": ("confirmation", "mirror_node_url"),
}


def load_yaml(path: Path) -> dict[str, Any]:
    """
    Load a YAML mapping from disk.

    Parameters
    ----------
    path : Path
        YAML file

    Returns
    -------
    dict[str, Any]
        Parsed mapping (empty for an empty file)

    Raises
    ------
    ConfigError
        If the file is missing, unparsable, or not a mapping

    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        msg = f"Cannot read settings file {path}: {e}"
        raise ConfigError(msg) from e
    except yaml.YAMLError as e:
        msg = f"Invalid YAML in {path}: {e}"
        raise ConfigError(msg) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Settings file {path} must contain a mapping"
        raise ConfigError(msg)
    return data


def merge_settings(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_settings(merged[key], value)
        else:
            merged[key] = value
    return merged


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """
    Collect settings overrides from environment variables.

    Parameters
    ----------
    environ : Mapping[str, str] | None
        Environment to read. Uses ``os.environ`` if None.

    Returns
    -------
    dict[str, Any]
        Nested overrides, values left as strings for pydantic to coerce

    """
    environ = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    for var, (section, field) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value:
            overrides.setdefault(section, {})[field] = value
    return overrides


def load_settings(path: str | Path | None = None, environ: Mapping[str, str] | None = None) -> Settings:
    """
    Load settings for the balance tracker.

    Parameters
    ----------
    path : str | Path | None
        Optional user YAML file merged over the packaged defaults
    environ : Mapping[str, str] | None
        Environment used for overrides. Uses ``os.environ`` if None.

    Returns
    -------
    Settings
        Validated settings

    Raises
    ------
    ConfigError
        If a file cannot be read or the merged settings are invalid

    """
    data = load_yaml(DEFAULTS_PATH)
    if path is not None:
        logger.debug("Loading settings from %s", path)
        data = merge_settings(data, load_yaml(Path(path)))
    data = merge_settings(data, env_overrides(environ))

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid settings: {e}"
        raise ConfigError(msg) from e
