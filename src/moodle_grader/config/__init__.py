"""Configuration for connecting to Moodle."""

from .loader import ConfigError, ConfigLoader, resolve_settings
from .models import ENV_BASE_URL, ENV_PASSWORD, ENV_USERNAME, MoodleSettings

__all__ = [
    "ConfigError",
    "ConfigLoader",
    "resolve_settings",
    "MoodleSettings",
    "ENV_BASE_URL",
    "ENV_USERNAME",
    "ENV_PASSWORD",
]
