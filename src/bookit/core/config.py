"""Configuration management for bookit."""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml  # type: ignore[import-untyped]
from jsonschema import ValidationError, validate  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

BOOKIT_DIR_ENV = "BOOKIT_DIR"


def default_base_dir() -> Path:
    """Base directory for config and data: $BOOKIT_DIR or ~/.bookit."""
    env_dir = os.environ.get(BOOKIT_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser()
    return Path.home() / ".bookit"


class ConfigManager:
    """Manage application configuration."""

    DEFAULT_CONFIG = {
        "version": "1.0",
        "general": {
            "data_dir": "~/.bookit/data",
            "date_format": "%Y-%m-%d",
        },
        "billing": {
            "currency": "EUR",
            "minor_units": 100,
        },
        "display": {
            "time_format": "human",
        },
        "advanced": {
            "log_level": "WARNING",
            "backup_on_delete": False,
        },
    }

    CONFIG_SCHEMA = {
        "type": "object",
        "properties": {
            "version": {"type": "string"},
            "general": {
                "type": "object",
                "properties": {
                    "data_dir": {"type": "string"},
                    "date_format": {"type": "string"},
                },
            },
            "billing": {
                "type": "object",
                "properties": {
                    "currency": {"type": "string", "minLength": 1, "maxLength": 8},
                    "minor_units": {"type": "integer", "minimum": 1},
                },
            },
            "display": {
                "type": "object",
                "properties": {
                    "time_format": {"type": "string", "enum": ["human", "decimal"]},
                },
            },
            "advanced": {
                "type": "object",
                "properties": {
                    "log_level": {
                        "type": "string",
                        "enum": ["DEBUG", "INFO", "WARNING", "ERROR"],
                    },
                    "backup_on_delete": {"type": "boolean"},
                },
            },
        },
        "required": ["version"],
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to config file. Defaults to config.yml in $BOOKIT_DIR
                or ~/.bookit
        """
        if config_path is None:
            config_path = default_base_dir() / "config.yml"
        self.config_path = config_path
        self._config: dict[str, Any] = {}
        self._load_or_create()

    def _defaults(self) -> dict[str, Any]:
        defaults = copy.deepcopy(self.DEFAULT_CONFIG)
        if os.environ.get(BOOKIT_DIR_ENV):
            defaults["general"]["data_dir"] = str(default_base_dir() / "data")
        return defaults

    def _load_or_create(self) -> None:
        """Load existing config or create default."""
        if self.config_path.exists():
            try:
                with open(self.config_path, encoding="utf-8") as f:
                    loaded_config = yaml.safe_load(f) or {}
                if not isinstance(loaded_config, dict):
                    raise ValueError("Invalid configuration: top level must be a mapping")
                self._config = self._merge_with_defaults(loaded_config)
                self.validate()
            except (ValueError, yaml.YAMLError) as e:
                # Keep the broken file around and fall back to defaults
                backup_path = self.config_path.with_suffix(".yml.backup")
                self.config_path.rename(backup_path)
                self._config = self._defaults()
                self.save()
                logger.error(f"Invalid config moved to {backup_path}")
                raise ValueError(
                    f"Config validation failed, backed up to {backup_path}. "
                    f"Using defaults. Error: {e}"
                )
        else:
            self._config = self._defaults()
            self.save()

    def _merge_with_defaults(self, config: dict[str, Any]) -> dict[str, Any]:
        """Overlay the loaded sections on the defaults, one section at a time."""
        result = self._defaults()
        for section, value in config.items():
            if isinstance(result.get(section), dict) and isinstance(value, dict):
                result[section].update(value)
            else:
                result[section] = value
        return result

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dotted key, e.g. ``billing.currency``.

        Returns default when any part of the path is missing.
        """
        value: Any = self._config
        for part in key.split("."):
            if not isinstance(value, dict) or value.get(part) is None:
                return default
            value = value[part]
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a single setting by dotted key and save.

        Raises:
            ValueError: If the key is not a known setting or the value fails
                validation. The previous configuration is kept in that case.
        """
        section, _, name = key.partition(".")
        defaults = self.DEFAULT_CONFIG.get(section)
        if not isinstance(defaults, dict) or name not in defaults:
            raise ValueError(f"Unknown configuration key '{key}'")

        previous = copy.deepcopy(self._config)
        self._config.setdefault(section, {})[name] = value
        try:
            self.validate()
        except ValueError:
            self._config = previous
            raise
        self.save()

    def validate(self) -> bool:
        """Validate configuration against schema.

        Returns:
            True if valid

        Raises:
            ValueError: If configuration is invalid
        """
        try:
            validate(instance=self._config, schema=self.CONFIG_SCHEMA)
            return True
        except ValidationError as e:
            raise ValueError(f"Invalid configuration: {e.message}")

    def save(self) -> None:
        """Save configuration to file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.dump(
                self._config, f, default_flow_style=False, sort_keys=False, allow_unicode=True
            )

    def reset(self) -> None:
        """Reset to default configuration."""
        self._config = self._defaults()
        self.save()

    def to_dict(self) -> dict[str, Any]:
        """Get full configuration as dictionary."""
        return copy.deepcopy(self._config)

    @property
    def data_dir(self) -> Path:
        """Resolved ledger data directory."""
        return Path(self.get("general.data_dir")).expanduser()
