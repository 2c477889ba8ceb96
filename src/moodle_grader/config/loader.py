"""Configuration loader for Moodle connection settings."""

from pathlib import Path
from typing import Any

import yaml

from .models import MoodleSettings


class ConfigError(Exception):
    """A config file is not valid YAML or has the wrong shape."""

    pass


class ConfigLoader:
    """Loads connection settings from YAML files."""

    def __init__(self, config_dir: Path | None = None):
        """Initialize the config loader.

        Args:
            config_dir: Directory relative config paths are resolved against.
                Defaults to the current working directory.
        """
        self.config_dir = config_dir or Path.cwd()

    def load_settings(self, config_file: str | Path) -> MoodleSettings:
        """Load Moodle settings from the ``moodle`` section of a YAML file.

        Args:
            config_file: Path to the YAML file

        Returns:
            Parsed MoodleSettings object
        """
        path = self._resolve_path(config_file)
        data = self._load_yaml(path)
        section = data.get("moodle", {})
        if not isinstance(section, dict):
            raise ConfigError(f"'moodle' in {path} must be a mapping")
        return MoodleSettings.from_dict(section)

    def _resolve_path(self, file_path: str | Path) -> Path:
        """Resolve a config file path."""
        path = Path(file_path)
        if not path.is_absolute():
            path = self.config_dir / path
        return path

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        """Load and parse a YAML file."""
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a mapping at the top level")
        return data


def resolve_settings(explicit: MoodleSettings, config_file: str | Path | None = None) -> MoodleSettings:
    """Combine settings from flags/environment with an optional config file.

    Values in ``explicit`` win; the config file only fills the gaps.
    """
    if config_file is None:
        return explicit
    return explicit.merged_with(ConfigLoader().load_settings(config_file))
