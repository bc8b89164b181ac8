"""
Configuration Module for Fapiao Extraction System.

This module provides centralized configuration management using YAML files.
All system parameters should be controlled through configuration, not hard-coded.

The parser itself never reads configuration globally: callers load a
ConfigurationManager once and hand the derived ParserSettings to the
pipeline entry point.
"""

import yaml
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .parser_settings import ParserSettings


class ConfigurationManager:
    """
    Configuration loader for the fapiao extraction system.

    This class handles loading and providing access to all configuration
    parameters defined in settings.yaml. Each instance owns its own copy
    of the configuration, so tests and batch runs can use different files
    side by side.

    Attributes:
        config_path (Path): Path to the configuration file.

    Example:
        >>> config = ConfigurationManager()
        >>> config.get("logging.level")
        'INFO'
        >>> settings = config.parser_settings()
    """

    def __init__(self, config_path: Optional[str] = None) -> None:
        """
        Initialize the configuration manager.

        Args:
            config_path: Optional path to configuration file.
                        Defaults to config/settings.yaml.
        """
        if config_path is None:
            self.config_path = Path(__file__).parent / "settings.yaml"
        else:
            self.config_path = Path(config_path)

        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """
        Load configuration from YAML file.

        Raises:
            FileNotFoundError: If configuration file doesn't exist.
            yaml.YAMLError: If configuration file is invalid.
        """
        if not self.config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self.config_path}"
            )

        with open(self.config_path, 'r', encoding='utf-8') as f:
            self._config = yaml.safe_load(f) or {}

        self._resolve_paths()

    def _resolve_paths(self) -> None:
        """
        Resolve relative paths in configuration to absolute paths.
        Uses project root as base directory.
        """
        project_root = Path(__file__).parent.parent

        if 'paths' in self._config:
            for key, value in self._config['paths'].items():
                if value and not Path(value).is_absolute():
                    self._config['paths'][key] = str(project_root / value)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key: Configuration key in dot notation (e.g., "logging.level").
            default: Default value if key doesn't exist.

        Returns:
            Configuration value or default.

        Example:
            >>> config.get("parser.batch_size")
            10
            >>> config.get("nonexistent.key", "default_value")
            'default_value'
        """
        keys = key.split('.')
        value = self._config

        try:
            for k in keys:
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def get_all(self) -> Dict[str, Any]:
        """
        Get the complete configuration dictionary.

        Returns:
            Complete configuration dictionary.
        """
        return self._config.copy()

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    def parser_settings(self) -> ParserSettings:
        """
        Build the immutable parser settings from the ``parser`` section.

        Returns:
            ParserSettings instance.
        """
        return ParserSettings.from_mapping(self.get("parser", {}))


def load_settings(config_path: Optional[str] = None) -> Tuple[ConfigurationManager, ParserSettings]:
    """
    Load configuration and derive parser settings in one step.

    Args:
        config_path: Optional path to configuration file.

    Returns:
        Tuple of (ConfigurationManager, ParserSettings).
    """
    config = ConfigurationManager(config_path)
    return config, config.parser_settings()


# Export public API
__all__ = ['ConfigurationManager', 'ParserSettings', 'load_settings']
