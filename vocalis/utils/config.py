"""
Configuration management for the Vocalis analysis engine.

Loads configuration from YAML files with environment variable
interpolation, layered over built-in defaults.
"""

import copy
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from vocalis.utils.errors import ConfigurationError


class ConfigManager:
    """
    Manages configuration loaded from YAML files.

    Features:
    - YAML configuration loading
    - Environment variable interpolation (${VAR_NAME}); a value that is
      exactly one ${VAR_NAME} takes the YAML type of the variable, so
      numeric settings can come from the environment
    - Nested key access with dot notation
    - Type validation against a simple schema
    """

    _env_pattern = re.compile(r'\$\{([^}]+)\}')

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        self._config: Dict[str, Any] = config_dict or {}

    @classmethod
    def from_file(cls, file_path: Path) -> "ConfigManager":
        """
        Create ConfigManager from YAML file.

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {file_path}",
                config_key=str(file_path)
            )

        try:
            with open(file_path, 'r') as f:
                config_dict = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Failed to parse YAML configuration: {e}",
                config_key=str(file_path)
            ) from e

        if not isinstance(config_dict, dict):
            raise ConfigurationError(
                f"Configuration root must be a mapping: {file_path}",
                config_key=str(file_path)
            )

        manager = cls(config_dict)
        manager._config = manager._interpolate(manager._config)
        return manager

    def _interpolate(self, value: Any) -> Any:
        """Recursively replace ${ENV_VAR} patterns in strings."""
        if isinstance(value, dict):
            return {key: self._interpolate(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._interpolate(item) for item in value]
        if isinstance(value, str):
            whole = self._env_pattern.fullmatch(value)
            if whole and whole.group(1) in os.environ:
                return self._typed_env(os.environ[whole.group(1)])
            return self._env_pattern.sub(self._replace_env, value)
        return value

    @staticmethod
    def _typed_env(raw: str) -> Any:
        """Parse an environment value as a YAML scalar ("8" -> 8, "0.2" -> 0.2)."""
        try:
            parsed = yaml.safe_load(raw)
        except yaml.YAMLError:
            return raw
        if parsed is None or isinstance(parsed, (dict, list)):
            return raw
        return parsed

    @staticmethod
    def _replace_env(match: re.Match) -> str:
        value = os.environ.get(match.group(1))
        # Unset variables are left as-is
        return match.group(0) if value is None else value

    def get(
        self,
        key: str,
        default: Any = None,
        required: bool = False
    ) -> Any:
        """
        Get configuration value using dot notation.

        Example:
            config.get("pitch.window_size", default=2048)
            config.get("cache.capacity", required=True)

        Raises:
            ConfigurationError: If required key is not found
        """
        value: Any = self._config

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                if required:
                    raise ConfigurationError(
                        f"Required configuration key not found: {key}",
                        config_key=key
                    )
                return default

        return value

    def get_section(self, key: str) -> Dict[str, Any]:
        """Return a configuration section, or an empty dict if absent."""
        value = self.get(key, default={})
        if not isinstance(value, dict):
            return {}
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value using dot notation."""
        keys = key.split('.')
        current = self._config

        for k in keys[:-1]:
            current = current.setdefault(k, {})

        current[keys[-1]] = value

    def to_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary."""
        return copy.deepcopy(self._config)

    def validate(self, schema: Dict[str, Any]) -> None:
        """
        Validate configuration against a schema.

        Schema format:
            {
                "cache.capacity": {"type": int, "required": True},
                "pitch.threshold": {"type": (int, float)},
            }

        Raises:
            ConfigurationError: If validation fails
        """
        for key, rules in schema.items():
            value = self.get(key)
            expected_type = rules.get("type")

            if value is None:
                if rules.get("required", False):
                    raise ConfigurationError(
                        f"Required configuration missing: {key}",
                        config_key=key
                    )
                continue

            # bool is an int subclass; never accept it for numeric settings
            if expected_type and (
                not isinstance(value, expected_type)
                or (isinstance(value, bool) and expected_type is not bool)
            ):
                expected = getattr(expected_type, "__name__", str(expected_type))
                raise ConfigurationError(
                    f"Invalid type for {key}: expected {expected}, "
                    f"got {type(value).__name__}",
                    config_key=key
                )


CONFIG_SCHEMA: Dict[str, Any] = {
    "pitch.window_size": {"type": int},
    "pitch.hop_interval": {"type": (int, float)},
    "pitch.min_frequency": {"type": (int, float)},
    "pitch.max_frequency": {"type": (int, float)},
    "pitch.threshold": {"type": (int, float)},
    "pitch.silence_threshold": {"type": (int, float)},
    "spectrogram.window_size": {"type": int},
    "spectrogram.hop_interval": {"type": (int, float)},
    "spectrogram.bin_count": {"type": int},
    "spectrogram.max_frequency": {"type": (int, float)},
    "cache.capacity": {"type": int},
    "performance.max_workers": {"type": int},
    "logging.level": {"type": str},
    "logging.format": {"type": str},
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from file, layered over the defaults.

    Args:
        config_path: Optional path to config file.
                    If None, tries "config/config.yaml" and "config.yaml"

    Returns:
        Dict[str, Any]: Configuration dictionary
    """
    if config_path is None:
        for path in (Path("config/config.yaml"), Path("config.yaml")):
            if path.exists():
                config_path = str(path)
                break

    if config_path is None:
        return get_default_config()

    manager = ConfigManager.from_file(Path(config_path))
    manager.validate(CONFIG_SCHEMA)
    return _merge(get_default_config(), manager.to_dict())


def get_default_config() -> Dict[str, Any]:
    """Return default configuration values."""
    return {
        "audio": {
            "supported_formats": [
                ".wav", ".aiff", ".aif", ".mp3", ".flac", ".m4a", ".caf"
            ],
            "max_file_size": 524288000,  # 500MB
            "target_sample_rate": 44100,
        },
        "pitch": {
            "window_size": 2048,
            "hop_interval": 0.05,
            "min_frequency": 80.0,
            "max_frequency": 1000.0,
            "threshold": 0.25,
            "silence_threshold": 0.0001,
        },
        "spectrogram": {
            "window_size": 8192,
            "hop_interval": 0.05,
            "bin_count": 1200,
            "max_frequency": 6000.0,
        },
        "cache": {
            "capacity": 10,
        },
        "logging": {
            "level": "INFO",
            "format": "text",
        },
        "performance": {
            "max_workers": 2,
        },
    }
