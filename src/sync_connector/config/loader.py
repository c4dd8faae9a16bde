"""Configuration loader for object registry files in JSON or YAML."""

import json
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from .schema import RegistryConfig
from ..utils.logging import get_logger


class ConfigurationError(Exception):
    """Raised when configuration loading fails."""
    pass


class ConfigLoader:
    """Loads and validates registry configuration."""

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    def load_from_file(self, file_path: Union[str, Path]) -> RegistryConfig:
        """Load registry configuration from a JSON or YAML file.

        Raises:
            ConfigurationError: If the file cannot be loaded or validated
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise ConfigurationError(f"Configuration file not found: {file_path}")

        self.logger.info("Loading registry from file", file_path=str(file_path))

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                if file_path.suffix.lower() in ['.yaml', '.yml']:
                    data = yaml.safe_load(f)
                elif file_path.suffix.lower() == '.json':
                    data = json.load(f)
                else:
                    raise ConfigurationError(f"Unsupported file format: {file_path.suffix}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML format: {e}")
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON format: {e}")

        return self.load_from_dict(data)

    def load_from_dict(self, data: Dict[str, Any]) -> RegistryConfig:
        """Validate registry configuration from a dictionary."""
        if not isinstance(data, dict):
            raise ConfigurationError("Registry configuration must be a mapping")

        try:
            config = RegistryConfig(**data)
        except ValueError as e:
            raise ConfigurationError(f"Invalid registry configuration: {e}")

        self.logger.info("Registry configuration loaded", objects_count=len(config.objects))
        return config

