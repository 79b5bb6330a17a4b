"""Settings loading and packaged defaults."""

from grove_balance_tracker.data.loader import (
    DEFAULTS_PATH,
    env_overrides,
    load_settings,
    load_yaml,
    merge_settings,
)

__all__ = [
    "DEFAULTS_PATH",
    "env_overrides",
    "load_settings",
    "load_yaml",
    "merge_settings",
]
