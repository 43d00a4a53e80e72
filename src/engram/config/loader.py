"""
Memory Configuration Loader

This module loads Engram settings from an optional YAML file, merges them onto
the defaults, applies ``ENGRAM_*`` environment overrides and validates the
result into a ``MemoryConfig``.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import ValidationError

from engram.config.settings import MemoryConfig
from engram.core.exceptions import ConfigurationError

# Configure logger
logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "ENGRAM_CONFIG_PATH"

# Environment variable -> dot path of the setting it overrides
ENV_OVERRIDES: Dict[str, str] = {
    "ENGRAM_ROOT": "root_dir",
    "ENGRAM_CONTEXT_TOKEN_THRESHOLD": "context_token_threshold",
    "ENGRAM_STM_TOKEN_THRESHOLD": "stm_token_threshold",
    "ENGRAM_ORGANIZATION_INTERVAL": "organization_interval_seconds",
    "ENGRAM_TOKENIZER_ENCODING": "tokenizer_encoding",
}


class ConfigurationLoader:
    """
    Loader for memory engine configuration.

    Configuration is assembled from three sources in increasing priority:
    built-in defaults, a YAML file, and environment variables. Values may sit
    at the top level of the file or under a ``memory`` section.
    """

    def __init__(self, config_path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None):
        """
        Initialize the configuration loader.

        Args:
            config_path: Path to a YAML configuration file. Falls back to
                         ``ENGRAM_CONFIG_PATH`` when omitted.
            environ: Environment mapping to read overrides from. Defaults to
                     ``os.environ``.
        """
        self.environ = os.environ if environ is None else environ
        self.config_path = config_path or self.environ.get(CONFIG_PATH_ENV)
        self.config: Dict[str, Any] = {}
        self.loaded_files: List[str] = []

        logger.debug(f"Initialized ConfigurationLoader with config_path: {self.config_path}")

    def load_config_file(self, file_path: str) -> Dict[str, Any]:
        """
        Load a configuration file.

        Args:
            file_path: Path of the YAML file to load.

        Returns:
            Configuration dictionary.

        Raises:
            ConfigurationError: If the configuration file cannot be loaded.
        """
        try:
            with open(file_path, 'r', encoding="utf-8") as file:
                config = yaml.safe_load(file)
        except FileNotFoundError:
            logger.error(f"Configuration file not found: {file_path}")
            raise ConfigurationError(f"Configuration file not found: {file_path}")
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML in {file_path}: {str(e)}")
            raise ConfigurationError(f"Error parsing YAML in {file_path}: {str(e)}")

        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ConfigurationError(f"Invalid configuration format in {file_path}")

        if isinstance(config.get("memory"), dict):
            config = config["memory"]

        logger.debug(f"Loaded configuration from {file_path}")
        self.loaded_files.append(str(file_path))
        return config

    def environment_overrides(self) -> Dict[str, Any]:
        """Collect overrides from ``ENGRAM_*`` environment variables."""
        overrides: Dict[str, Any] = {}
        for env_name, key_path in ENV_OVERRIDES.items():
            value = self.environ.get(env_name)
            if value:
                _set_dotted(overrides, key_path, value)
        return overrides

    def load(self, overrides: Optional[Mapping[str, Any]] = None) -> MemoryConfig:
        """
        Load, merge and validate configuration.

        Args:
            overrides: Explicit values taking priority over every other source.

        Returns:
            Validated ``MemoryConfig``.

        Raises:
            ConfigurationError: If a source cannot be read or validation fails.
        """
        merged: Dict[str, Any] = {}
        if self.config_path:
            _deep_merge_dicts(merged, self.load_config_file(self.config_path))
        _deep_merge_dicts(merged, self.environment_overrides())
        if overrides:
            _deep_merge_dicts(merged, dict(overrides))

        try:
            settings = MemoryConfig(**merged)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid memory configuration: {e}",
                context={"sources": list(self.loaded_files)},
            )

        self.config = settings.as_dict()
        logger.info(f"Loaded memory configuration rooted at {settings.root_dir}")
        return settings

    def get_value(self, key_path: str, default: Any = None) -> Any:
        """
        Get a configuration value using a dot-separated path.

        Args:
            key_path: Dot-separated path to the configuration value.
            default: Default value to return if the key is not found.

        Returns:
            Configuration value, or default if not found.
        """
        if not self.config:
            logger.warning("No configuration loaded when trying to access: " + key_path)
            return default

        config_section: Any = self.config
        for key in key_path.split('.'):
            if not isinstance(config_section, dict) or key not in config_section:
                return default
            config_section = config_section[key]

        return config_section


def load_config(config_path: Optional[str] = None, **overrides: Any) -> MemoryConfig:
    """Convenience wrapper returning validated settings."""
    return ConfigurationLoader(config_path).load(overrides)


def _set_dotted(target: Dict[str, Any], key_path: str, value: Any) -> None:
    keys = key_path.split('.')
    for key in keys[:-1]:
        target = target.setdefault(key, {})
    target[keys[-1]] = value


def _deep_merge_dicts(target: Dict[str, Any], source: Dict[str, Any]) -> None:
    """
    Deep merge source dictionary into target dictionary.

    Args:
        target: Target dictionary to merge into (modified in-place).
        source: Source dictionary to merge from.
    """
    for key, value in source.items():
        if key in target and isinstance(target[key], dict) and isinstance(value, dict):
            _deep_merge_dicts(target[key], value)
        else:
            target[key] = value
