"""
Configuration loading and validation
- YAML parsing
- Type and range checks
- Clear error messages
- Default value injection
"""
import logging
from pathlib import Path
from typing import Any, Dict, List

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/power_agent.yaml"

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ConfigValidationError(Exception):
    """Configuration validation error"""
    pass


class ConfigValidator:
    """
    Validates power agent configuration

    Backend-specific keys are checked by the backend registry when the
    backend is built; this class only checks the shape of the file.
    """

    DEFAULTS = {
        "monitor": {
            "timeout_seconds": 180,
            "min_interval_seconds": 5,
            "max_interval_seconds": 40,
            "curve_shift": 1.5,
            "factor": 1.5,
        },
        "logging": {
            "level": "INFO",
            "dir": None,
            "rotation": {
                "max_bytes": 10485760,
                "backup_count": 5,
            },
        },
        "notifications": {
            "cute_messages": False,
            "telegram": {
                "enabled": False,
                "allowed_chat_ids": [],
                "poll_timeout_seconds": 30,
            },
        },
        "api": {
            "enabled": True,
            "host": "0.0.0.0",
            "port": 8080,
        },
    }

    @classmethod
    def load_and_validate(cls, config_path: str) -> Dict[str, Any]:
        """
        Load configuration file and validate

        Raises:
            ConfigValidationError: If the file is missing, unreadable or invalid
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise ConfigValidationError(f"Configuration file not found: {config_path}")

        if not config_path.is_file():
            raise ConfigValidationError(f"Configuration path is not a file: {config_path}")

        try:
            with open(config_path, "r") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"Invalid YAML syntax in {config_path}: {e}")
        except OSError as e:
            raise ConfigValidationError(f"Failed to load configuration: {e}")

        return cls.from_dict(config)

    @classmethod
    def from_dict(cls, config: Any) -> Dict[str, Any]:
        if not isinstance(config, dict):
            raise ConfigValidationError("Configuration must be a dictionary")

        validator = cls()
        config = validator.inject_defaults(config)
        validator.validate(config)

        logger.debug("Configuration validated successfully")
        return config

    def validate(self, config: Dict[str, Any]):
        # the per-section checks below assume every section is a mapping
        errors = self._validate_sections(config)
        if not errors:
            errors.extend(self._validate_backend(config))
            errors.extend(self._validate_monitor(config))
            errors.extend(self._validate_logging(config))
            errors.extend(self._validate_notifications(config))
            errors.extend(self._validate_api(config))

        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            raise ConfigValidationError(error_msg)

    def _validate_sections(self, config: Dict[str, Any]) -> List[str]:
        errors = []
        for path in ("monitor", "logging", "logging.rotation", "notifications",
                     "notifications.telegram", "api"):
            value = config
            for key in path.split("."):
                value = value.get(key) if isinstance(value, dict) else None
            if not isinstance(value, dict):
                errors.append(f"{path} must be a mapping")
        return errors

    def _validate_backend(self, config: Dict[str, Any]) -> List[str]:
        backend = config.get("backend")
        if not isinstance(backend, dict):
            return ["Missing required section: 'backend'"]

        name = backend.get("name")
        if not isinstance(name, str) or not name:
            return ["backend.name must be non-empty string"]

        section = backend.get(name, {})
        if not isinstance(section, dict):
            return [f"backend.{name} must be a mapping"]
        return []

    def _validate_monitor(self, config: Dict[str, Any]) -> List[str]:
        errors = []
        monitor = config["monitor"]
        for key in ("timeout_seconds", "min_interval_seconds", "max_interval_seconds", "curve_shift"):
            value = monitor.get(key)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                errors.append(f"monitor.{key} must be a number")
            elif value <= 0:
                errors.append(f"monitor.{key} must be > 0")

        if not errors and monitor["max_interval_seconds"] < monitor["min_interval_seconds"]:
            errors.append("monitor.max_interval_seconds must be >= monitor.min_interval_seconds")

        factor = monitor.get("factor")
        if isinstance(factor, bool) or not isinstance(factor, (int, float)):
            errors.append("monitor.factor must be a number")
        return errors

    def _validate_logging(self, config: Dict[str, Any]) -> List[str]:
        level = str(config["logging"].get("level", "INFO")).upper()
        if level not in LOG_LEVELS:
            return [f"logging.level must be one of {LOG_LEVELS}"]
        return []

    def _validate_notifications(self, config: Dict[str, Any]) -> List[str]:
        errors = []
        tcfg = config["notifications"]["telegram"]
        if tcfg.get("enabled"):
            if not tcfg.get("bot_token"):
                errors.append("notifications.telegram.bot_token is required when telegram is enabled")
            chat_ids = tcfg.get("allowed_chat_ids")
            if not isinstance(chat_ids, list) or not chat_ids:
                errors.append("notifications.telegram.allowed_chat_ids must be a non-empty list")
        return errors

    def _validate_api(self, config: Dict[str, Any]) -> List[str]:
        port = config["api"].get("port")
        if isinstance(port, bool) or not isinstance(port, int) or not (0 < port < 65536):
            return ["api.port must be an integer between 1 and 65535"]
        return []

    def inject_defaults(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Inject default values for missing optional keys"""
        return self._deep_merge(self.DEFAULTS, config)

    def _deep_merge(self, base: Dict, override: Dict) -> Dict:
        """Deep merge two dictionaries, override takes precedence"""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            elif value is None and isinstance(result.get(key), dict):
                # empty section in YAML: keep the defaults
                continue
            else:
                result[key] = value

        return result


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    return ConfigValidator.load_and_validate(config_path)
