"""
Configuration loading and saving utilities.

Configuration is layered: dataclass defaults, then an optional YAML or JSON
file, then environment variables (a ``.env`` file is read first).
"""

import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv

from .models import RelayConfig


def _parse_bool(value: str) -> bool:
    return value.lower() in ('true', '1', 'yes', 'on', 'enabled')


def _millis(value: str) -> float:
    return int(value) / 1000.0


EnvMapping = Dict[str, Tuple[str, Callable[[str], Any]]]

# Variable names understood by earlier deployments of the relay
LEGACY_ENV: EnvMapping = {
    "PORT": ("server.port", int),
    "UPLOAD_DIR": ("storage.upload_directory", str),
    "N8N_WEBHOOK_URL": ("downstream.webhook_url", str),
    "N8N_AUTH_TOKEN": ("downstream.auth_token", str),
    "SESSION_TIMEOUT_MS": ("session.inactivity_timeout", _millis),
}


class ConfigLoader:
    """Configuration loader supporting files and environment variables."""

    def __init__(self, env_prefix: str = "RELAY_", load_env_file: bool = True) -> None:
        self._env_prefix = env_prefix
        self._load_env_file = load_env_file

    def load_config(self, config_file: Optional[str] = None) -> RelayConfig:
        """
        Load configuration from file and environment variables.

        Args:
            config_file: Path to configuration file (optional)

        Returns:
            Loaded and validated configuration
        """
        if self._load_env_file:
            load_dotenv()

        config_data: Dict[str, Any] = {}
        if config_file:
            config_data = self._load_from_file(config_file)

        env_overrides = self._load_from_environment()
        config_data = self._merge_configs(config_data, env_overrides)

        config = RelayConfig.from_dict(config_data)
        config.config_file_path = config_file
        return config

    def save_config(self, config: RelayConfig, file_path: str, format: str = "yaml") -> None:
        """
        Save configuration to file.

        Args:
            config: Configuration to save
            file_path: Output file path
            format: File format (yaml or json)
        """
        config_data = config.to_dict()
        config_data.pop("config_file_path", None)

        if format.lower() == "yaml":
            with open(file_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(config_data, f, default_flow_style=False, indent=2)
        elif format.lower() == "json":
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(config_data, f, indent=2)
        else:
            raise ValueError(f"Unsupported format: {format}")

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        suffix = path.suffix.lower()
        try:
            with open(path, 'r', encoding='utf-8') as f:
                if suffix in ('.yaml', '.yml'):
                    return yaml.safe_load(f) or {}
                if suffix == '.json':
                    return json.load(f)  # type: ignore[no-any-return]
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ValueError(f"Invalid configuration in {file_path}: {e}") from e

        raise ValueError(f"Unsupported configuration file format: {path.suffix}")

    def _prefixed_env(self) -> EnvMapping:
        p = self._env_prefix
        return {
            f"{p}DEBUG": ("debug", _parse_bool),
            f"{p}ENVIRONMENT": ("environment", str),
            f"{p}HOST": ("server.host", str),
            f"{p}PORT": ("server.port", int),
            f"{p}UPLOAD_DIR": ("storage.upload_directory", str),
            f"{p}RETENTION": ("storage.retention_seconds", float),
            f"{p}MAX_FILE_SIZE": ("limits.max_file_size", int),
            f"{p}MAX_FILES": ("limits.max_files_per_session", int),
            f"{p}SESSION_TIMEOUT": ("session.inactivity_timeout", float),
            f"{p}WEBHOOK_URL": ("downstream.webhook_url", str),
            f"{p}AUTH_TOKEN": ("downstream.auth_token", str),
            f"{p}SEND_TIMEOUT": ("downstream.send_timeout", float),
            f"{p}LOG_LEVEL": ("logging.level", str),
            f"{p}LOG_DIR": ("logging.log_directory", str),
        }

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load overrides; prefixed variables are applied last so they win."""
        config: Dict[str, Any] = {}

        for mapping in (LEGACY_ENV, self._prefixed_env()):
            for env_var, (config_path, converter) in mapping.items():
                value = os.getenv(env_var)
                if value is None:
                    continue
                try:
                    self._set_nested_value(config, config_path, converter(value))
                except (ValueError, TypeError) as e:
                    raise ValueError(f"Invalid value for {env_var}: {value} ({e})") from e

        return config

    def _set_nested_value(self, config: Dict[str, Any], path: str, value: Any) -> None:
        """Set a nested configuration value using dot notation."""
        keys = path.split('.')
        current = config

        for key in keys[:-1]:
            current = current.setdefault(key, {})

        current[keys[-1]] = value

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge two configuration dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result
