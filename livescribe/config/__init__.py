"""Simple YAML configuration loader for LiveScribe."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from .settings import SessionSettings, SettingsStore

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "livescribe.yaml"

__all__ = ["LiveScribeConfig", "SessionSettings", "SettingsStore", "DEFAULT_CONFIG_FILE"]


class LiveScribeConfig:
    """LiveScribe configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, uses livescribe.yaml
                        in the current directory.
        """
        self.config_file = Path(config_path or DEFAULT_CONFIG_FILE)

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")
        except OSError as e:
            raise ValueError(f"Failed to load configuration: {e}")

        if not config:
            raise ValueError("Configuration file is empty")

        # Resolve relative paths
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        for section, key in (
            ('storage', 'data_directory'),
            ('storage', 'settings_file'),
            ('logging', 'file_path'),
            ('whisper', 'binary_path'),
            ('whisper', 'model_path'),
        ):
            if section in config and config[section] and key in config[section]:
                path = config[section][key]
                if path and not os.path.isabs(path):
                    config[section][key] = str(config_dir / path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'whisper.model_path').

        Args:
            key_path: Dot-separated key path (e.g., 'storage.data_directory')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'session.segment_seconds')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        # Set the final value
        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_data_directory(self) -> str:
        """Get data directory path."""
        data_dir = self.get('storage.data_directory', 'data')
        return str(Path(data_dir).absolute())

    def get_settings_path(self) -> str:
        """Get the path of the persisted session settings file."""
        settings_file = self.get('storage.settings_file')
        if settings_file:
            return str(Path(settings_file).absolute())
        return str(Path(self.get_data_directory()) / "settings.yaml")

    def get_whisper_paths(self) -> Dict[str, Optional[str]]:
        """Get whisper binary and model paths - CRASHES if the binary is not configured."""
        binary_path = self.get('whisper.binary_path')
        if not binary_path:
            raise ValueError("Whisper binary path not configured in livescribe.yaml")

        return {
            "binary_path": binary_path,
            "model_path": self.get('whisper.model_path'),
        }

    def create_settings_store(self) -> SettingsStore:
        """Create the settings store, seeded with the config's session section."""
        return SettingsStore(self.get_settings_path(), defaults=self.get('session', {}) or {})
