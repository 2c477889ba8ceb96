"""Configuration data models."""

from dataclasses import dataclass, field
from typing import Any

ENV_BASE_URL = "MOODLE_BASE_URL"
ENV_USERNAME = "MOODLE_USERNAME"
ENV_PASSWORD = "MOODLE_PASSWORD"


@dataclass
class MoodleSettings:
    """Moodle connection settings."""

    base_url: str | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)

    @property
    def missing(self) -> list[str]:
        """Names of the settings that are still unset."""
        return [name for name in ("base_url", "username", "password") if not getattr(self, name)]

    def merged_with(self, fallback: "MoodleSettings") -> "MoodleSettings":
        """Fill unset values from ``fallback``."""
        return MoodleSettings(
            base_url=self.base_url or fallback.base_url,
            username=self.username or fallback.username,
            password=self.password or fallback.password,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MoodleSettings":
        return cls(
            base_url=data.get("base_url") or data.get("url"),
            username=data.get("username"),
            password=data.get("password"),
        )
