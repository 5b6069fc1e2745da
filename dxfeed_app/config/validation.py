"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_OUTPUT_FORMATS = ("json", "pretty")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_feed_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate feed session parameters."""
        errors = []

        if "url" in params:
            value = params["url"]
            if not isinstance(value, str) or not value.startswith(("ws://", "wss://")):
                errors.append(ValidationError(
                    field="feed.url",
                    message="Must be a ws:// or wss:// URL",
                    value=value
                ))

        # Channel 0 is reserved for connection-level messages
        if "channel" in params:
            value = params["channel"]
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                errors.append(ValidationError(
                    field="feed.channel",
                    message="Must be a positive integer",
                    value=value
                ))

        if "symbols" in params:
            value = params["symbols"]
            if (not isinstance(value, (list, tuple))
                    or not all(isinstance(symbol, str) and symbol for symbol in value)):
                errors.append(ValidationError(
                    field="feed.symbols",
                    message="Must be a list of non-empty strings",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_auth_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate authentication parameters."""
        errors = []

        if "base_url" in params:
            value = params["base_url"]
            if not isinstance(value, str) or not value.startswith(("http://", "https://")):
                errors.append(ValidationError(
                    field="auth.base_url",
                    message="Must be an http:// or https:// URL",
                    value=value
                ))

        if "timeout_seconds" in params:
            value = params["timeout_seconds"]
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                errors.append(ValidationError(
                    field="auth.timeout_seconds",
                    message="Must be a positive number",
                    value=value
                ))

        if "remember_me" in params:
            value = params["remember_me"]
            if not isinstance(value, bool):
                errors.append(ValidationError(
                    field="auth.remember_me",
                    message="Must be a boolean",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_transport_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate WebSocket transport parameters."""
        errors = []

        for name in ("open_timeout", "close_timeout"):
            if name in params:
                value = params[name]
                if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                    errors.append(ValidationError(
                        field=f"transport.{name}",
                        message="Must be a positive number",
                        value=value
                    ))

        if params.get("ping_interval") is not None:
            value = params["ping_interval"]
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                errors.append(ValidationError(
                    field="transport.ping_interval",
                    message="Must be a positive number or null",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []

        for section in ("feed", "auth", "transport", "logging", "output"):
            if section in config and not isinstance(config[section], dict):
                errors.append(ValidationError(
                    field=section,
                    message="Must be a mapping",
                    value=config[section]
                ))
        if errors:
            return errors

        if "feed" in config:
            errors.extend(ConfigValidator.validate_feed_params(config["feed"]))

        if "auth" in config:
            errors.extend(ConfigValidator.validate_auth_params(config["auth"]))

        if "transport" in config:
            errors.extend(ConfigValidator.validate_transport_params(config["transport"]))

        level = config.get("logging", {}).get("level")
        if level is not None and (not isinstance(level, str) or level.upper() not in _LOG_LEVELS):
            errors.append(ValidationError(
                field="logging.level",
                message=f"Must be one of {', '.join(_LOG_LEVELS)}",
                value=level
            ))

        output_format = config.get("output", {}).get("format")
        if output_format is not None and output_format not in _OUTPUT_FORMATS:
            errors.append(ValidationError(
                field="output.format",
                message=f"Must be one of {', '.join(_OUTPUT_FORMATS)}",
                value=output_format
            ))

        return errors
