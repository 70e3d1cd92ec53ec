"""Reviewer settings: defaults, ``aip-reviewer.toml`` and ``AIP_REVIEWER_*`` overrides."""

from aip_reviewer.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ReviewerSettings,
    load_settings,
)
from aip_reviewer.errors import ConfigLoadError

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "ConfigLoadError",
    "ReviewerSettings",
    "load_settings",
]
