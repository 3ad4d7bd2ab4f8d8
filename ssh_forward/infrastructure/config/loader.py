"""
Configuration loading and saving utilities.

This module loads the forwarder configuration from TOML, YAML or JSON files
and applies overrides from environment variables.
"""

import json
import os
import tomllib
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import yaml

from ...core.exceptions import ConfigurationError
from .models import ApplicationConfig, DEFAULT_CONFIG_FILE, _normalize_key


class ConfigLoader:
    """Configuration loader supporting multiple formats and sources."""

    def __init__(self, env_prefix: str = "SSH_FORWARD_") -> None:
        self._env_prefix = env_prefix

    def load_config(self, config_file: Optional[str] = DEFAULT_CONFIG_FILE) -> ApplicationConfig:
        """
        Load configuration from file and environment variables.

        Args:
            config_file: Path to configuration file (None loads defaults only)

        Returns:
            Loaded configuration

        Raises:
            ConfigurationError: If the file is missing, malformed or invalid
        """
        config_data: Dict[str, Any] = {}

        if config_file:
            config_data = self._canonical_sections(self._load_from_file(config_file))

        env_overrides = self._load_from_environment()
        config_data = self._merge_configs(config_data, env_overrides)

        try:
            config = ApplicationConfig.from_dict(config_data)
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration in {config_file}: {e}")
        config.config_file_path = config_file

        return config

    def save_config(self, config: ApplicationConfig, file_path: str, format: str = "yaml") -> None:
        """
        Save configuration to file.

        Args:
            config: Configuration to save
            file_path: Output file path
            format: File format (yaml or json)
        """
        config_data = config.to_dict()

        if format.lower() == "yaml":
            self._save_yaml(config_data, file_path)
        elif format.lower() == "json":
            self._save_json(config_data, file_path)
        else:
            raise ConfigurationError(f"Unsupported format: {format}")

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from file."""
        path = Path(file_path)

        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {file_path}")

        suffix = path.suffix.lower()
        if suffix == '.toml':
            data = self._load_toml(file_path)
        elif suffix in ['.yaml', '.yml']:
            data = self._load_yaml(file_path)
        elif suffix == '.json':
            data = self._load_json(file_path)
        else:
            raise ConfigurationError(f"Unsupported configuration file format: {path.suffix}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration root in {file_path} must be a mapping")
        return data

    def _load_toml(self, file_path: str) -> Dict[str, Any]:
        """Load TOML configuration file."""
        try:
            with open(file_path, 'rb') as f:
                return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {file_path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error reading {file_path}: {e}")

    def _load_yaml(self, file_path: str) -> Dict[str, Any]:
        """Load YAML configuration file."""
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {file_path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error reading {file_path}: {e}")

    def _load_json(self, file_path: str) -> Dict[str, Any]:
        """Load JSON configuration file."""
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return json.load(f)  # type: ignore[no-any-return]
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {file_path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error reading {file_path}: {e}")

    def _save_yaml(self, data: Dict[str, Any], file_path: str) -> None:
        """Save configuration as YAML."""
        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(data, f, default_flow_style=False, indent=2, sort_keys=False)
        except OSError as e:
            raise ConfigurationError(f"Error writing YAML to {file_path}: {e}")

    def _save_json(self, data: Dict[str, Any], file_path: str) -> None:
        """Save configuration as JSON."""
        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Error writing JSON to {file_path}: {e}")

    def _canonical_sections(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Normalize top-level section names so file and env overrides merge."""
        return {_normalize_key(key): value for key, value in data.items()}

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load configuration overrides from environment variables."""
        config: Dict[str, Any] = {}

        env_mappings: Dict[str, Tuple[str, Callable[[str], Any]]] = {
            f"{self._env_prefix}SSH_ADDR": ("ssh.address", str),
            f"{self._env_prefix}SSH_USER": ("ssh.user", str),
            f"{self._env_prefix}SSH_PASSWORD": ("ssh.password", str),
            f"{self._env_prefix}SSH_KEY_PATH": ("ssh.key_path", str),
            f"{self._env_prefix}SSH_KNOWN_HOSTS": ("ssh.known_hosts", str),
            f"{self._env_prefix}LISTEN_HOST": ("forwarding.listen_host", str),
            f"{self._env_prefix}MAX_CONNECTIONS": ("forwarding.max_connections", int),
            f"{self._env_prefix}DIAL_TIMEOUT": ("forwarding.dial_timeout", float),
            f"{self._env_prefix}ISOLATE_FAILURES": ("forwarding.isolate_failures", self._parse_bool),
            f"{self._env_prefix}LOG_LEVEL": ("logging.level", str),
            f"{self._env_prefix}LOG_DIR": ("logging.log_directory", str),
        }

        for env_var, (config_path, converter) in env_mappings.items():
            value = os.getenv(env_var)
            if value is not None:
                try:
                    self._set_nested_value(config, config_path, converter(value))
                except (ValueError, TypeError) as e:
                    raise ConfigurationError(f"Invalid value for {env_var}: {value} ({e})")

        return config

    def _parse_bool(self, value: str) -> bool:
        """Parse boolean value from string."""
        return value.lower() in ('true', '1', 'yes', 'on', 'enabled')

    def _set_nested_value(self, config: Dict[str, Any], path: str, value: Any) -> None:
        """Set a nested configuration value using dot notation."""
        keys = path.split('.')
        current = config

        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

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
