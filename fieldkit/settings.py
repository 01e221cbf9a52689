"""fieldkit project settings loader.

Reads project-specific configuration from .fieldkit.yaml in the project
root. This allows teams to customize the default failure message and event
logging without touching code.

Example .fieldkit.yaml:
    fieldkit:
      failure_message: "Invalid value"   # Used when a validator returns False
      log_events: true                    # Debug-log every event dispatch
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict

import yaml

from fieldkit.errors import ConfigurationError

__all__ = ["FieldKitSettings", "SETTINGS_FILE", "get_settings"]

SETTINGS_FILE = ".fieldkit.yaml"


@dataclass
class FieldKitSettings:
    """fieldkit configuration settings."""

    # Message stored when a validator returns a bare False
    failure_message: str = "Validation failed"

    # Debug-log every emitted event (noisy, off by default)
    log_events: bool = False

    @classmethod
    def load(cls, project_root: Path | None = None) -> "FieldKitSettings":
        """Load settings from .fieldkit.yaml in project root.

        Args:
            project_root: Project root directory. Defaults to cwd.

        Returns:
            FieldKitSettings with values from config file or defaults.

        Raises:
            ConfigurationError: If the file exists but is malformed
        """
        root = project_root or Path.cwd()
        config_path = root / SETTINGS_FILE

        if not config_path.exists():
            return cls()

        try:
            with open(config_path, encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Cannot parse {SETTINGS_FILE}",
                details={"path": str(config_path), "cause": str(e)},
            ) from e

        if not isinstance(config, dict):
            raise ConfigurationError(
                f"{SETTINGS_FILE} must contain a mapping",
                details={"path": str(config_path)},
            )
        return cls.from_dict(config.get("fieldkit") or {})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldKitSettings":
        """Create from the ``fieldkit:`` section of a settings file."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown settings: {', '.join(unknown)}",
                suggestion=f"Valid settings are: {', '.join(sorted(known))}",
            )

        failure_message = data.get("failure_message", cls.failure_message)
        if not isinstance(failure_message, str) or not failure_message:
            raise ConfigurationError("failure_message must be a non-empty string")

        log_events = data.get("log_events", cls.log_events)
        if not isinstance(log_events, bool):
            raise ConfigurationError("log_events must be true or false")

        return cls(failure_message=failure_message, log_events=log_events)


# Global settings instance (loaded on first access)
_settings: FieldKitSettings | None = None


def get_settings(reload: bool = False) -> FieldKitSettings:
    """Get the global fieldkit settings.

    Args:
        reload: Force reload from config file.

    Returns:
        FieldKitSettings instance.
    """
    global _settings
    if _settings is None or reload:
        _settings = FieldKitSettings.load()
    return _settings
