"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from ..errors import ConfigurationError
from .defaults import (
    AppConfig,
    AuthParams,
    FeedParams,
    LoggingParams,
    OutputParams,
    TransportParams,
    get_default_config,
)
from .validation import ConfigValidator

CONFIG_FILENAME = "feed.yaml"


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: AppConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def load_file(self) -> dict[str, Any]:
        """Load the YAML configuration file; a missing file means no overrides."""
        config_file = self.config_dir / CONFIG_FILENAME

        if not config_file.exists():
            return {}

        try:
            with open(config_file) as f:
                file_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e

        if file_config is None:
            return {}
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"{config_file} must contain a mapping at the top level")

        return file_config

    def merge_config(self, overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Explicit overrides, e.g. command-line flags (highest priority)
        2. feed.yaml in the config directory
        3. Built-in defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)
        config = self._deep_merge(config, self.load_file())

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def load(self, overrides: Optional[dict[str, Any]] = None) -> AppConfig:
        """Merge, validate and build the typed configuration."""
        config = self.merge_config(overrides)

        errors = ConfigValidator.validate_config(config)
        if errors:
            details = "; ".join(f"{err.field}: {err.message} (got: {err.value!r})" for err in errors)
            raise ConfigurationError(f"Invalid configuration: {details}", errors=errors)

        return build_config(config)

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name in obj.__dataclass_fields__:
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                elif isinstance(value, tuple):
                    result[field_name] = list(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result


def build_config(config: dict[str, Any]) -> AppConfig:
    """Build an AppConfig from a merged configuration dictionary."""
    try:
        feed = dict(config.get("feed", {}))
        if "symbols" in feed:
            feed["symbols"] = tuple(feed["symbols"])

        return AppConfig(
            feed=FeedParams(**feed),
            auth=AuthParams(**config.get("auth", {})),
            transport=TransportParams(**config.get("transport", {})),
            logging=LoggingParams(**config.get("logging", {})),
            output=OutputParams(**config.get("output", {})),
        )
    except TypeError as e:
        raise ConfigurationError(f"Unknown configuration key: {e}") from e
