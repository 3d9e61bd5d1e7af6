"""
Settings loading and management for Training Manager.

This module handles loading application settings (Galaxy connection, training
role, logging) from a YAML file and environment variables, with validation
and defaults. The training schedule itself lives in a separate TOML document,
see training_manager.schedule.
"""

import os
import yaml
import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = 'settings.yaml'
SETTINGS_PATH_ENV = 'TRAINING_MANAGER_SETTINGS'
DEFAULT_GALAXY_URL = 'https://usegalaxy.ca'
DEFAULT_TRAINING_ROLE = 'training'


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing required fields."""
    pass


class ConfigLoader:
    """Handles loading and validation of application settings."""

    # Environment variable mappings for sensitive or deployment-specific fields
    ENV_OVERRIDES = {
        'galaxy.api_key': 'GALAXY_ADMIN_API_KEY',
        'galaxy.url': 'GALAXY_URL',
    }

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize settings loader.

        Args:
            config_path: Path to settings file. If None, uses TRAINING_MANAGER_SETTINGS
                env var or 'settings.yaml'
        """
        env_path = os.getenv(SETTINGS_PATH_ENV)
        self.explicit = bool(config_path or env_path)
        self.config_path = config_path or env_path or DEFAULT_SETTINGS_PATH
        self.config = {}

    def load(self) -> Dict[str, Any]:
        """
        Load settings from file and apply environment overrides.

        A missing settings file is only an error when its path was given
        explicitly; otherwise the defaults plus environment are used.

        Returns:
            Parsed and validated settings dictionary

        Raises:
            ConfigurationError: If settings file not found or validation fails
        """
        try:
            with open(self.config_path, 'r') as f:
                self.config = yaml.safe_load(f) or {}
            logger.debug(f"Read settings file {self.config_path}")
        except FileNotFoundError:
            if self.explicit:
                raise ConfigurationError(f"Settings file not found: {self.config_path}")
            logger.debug(f"No settings file at {self.config_path}, using defaults")
            self.config = {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in settings file: {e}")

        if not isinstance(self.config, dict):
            raise ConfigurationError(f"Settings file must contain a mapping: {self.config_path}")

        self._apply_env_overrides()
        self._apply_defaults()
        self._validate()

        logger.info(f"Settings loaded successfully from {self.config_path}")
        return self.config

    def _apply_env_overrides(self):
        """Apply environment variable overrides."""
        for config_key, env_var in self.ENV_OVERRIDES.items():
            env_value = os.getenv(env_var)
            if env_value:
                self._set_nested_value(self.config, config_key, env_value)
                logger.debug(f"Applied environment override for {config_key}")

    def _set_nested_value(self, config: Dict, key_path: str, value: Any):
        """Set a nested configuration value using dot notation."""
        keys = key_path.split('.')
        current = config
        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]
        current[keys[-1]] = value

    def _apply_defaults(self):
        """Apply default values for optional settings."""
        galaxy_defaults = {
            'url': DEFAULT_GALAXY_URL,
            'verify_ssl': True,
            'timeout_seconds': 30,
            'truststore_type': 'PEM',
        }
        galaxy_config = self._section('galaxy')
        for key, value in galaxy_defaults.items():
            galaxy_config.setdefault(key, value)

        training_defaults = {
            'role_name': DEFAULT_TRAINING_ROLE,
            'role_description': '',
            'max_workers': 4,
        }
        training_config = self._section('training')
        for key, value in training_defaults.items():
            training_config.setdefault(key, value)

        logging_defaults = {
            'level': 'INFO',
            'log_dir': 'logs',
            'rotation': 'daily',
            'retention_days': 7,
            'console_output': True,
            'console_level': 'INFO',
        }
        logging_config = self._section('logging')
        for key, value in logging_defaults.items():
            logging_config.setdefault(key, value)

    def _section(self, name: str) -> Dict[str, Any]:
        section = self.config.get(name)
        if section is None:
            section = self.config[name] = {}
        elif not isinstance(section, dict):
            raise ConfigurationError(f"Settings section '{name}' must be a mapping")
        return section

    def _validate(self):
        """Validate required settings fields."""
        errors = []

        galaxy_config = self.config['galaxy']
        if not galaxy_config.get('api_key'):
            errors.append("Missing Galaxy API key: set galaxy.api_key or GALAXY_ADMIN_API_KEY")

        url = str(galaxy_config.get('url', ''))
        if not url.startswith(('http://', 'https://')):
            errors.append(f"Invalid galaxy.url (must be http or https): {url!r}")

        timeout = galaxy_config.get('timeout_seconds')
        if not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0:
            errors.append(f"galaxy.timeout_seconds must be a positive number: {timeout!r}")

        truststore_type = str(galaxy_config.get('truststore_type', 'PEM')).upper()
        if truststore_type not in ('PEM', 'PKCS12'):
            errors.append(f"Unsupported galaxy.truststore_type: {truststore_type}")

        training_config = self.config['training']
        if not training_config.get('role_name'):
            errors.append("training.role_name must not be empty")

        max_workers = training_config.get('max_workers')
        if not isinstance(max_workers, int) or isinstance(max_workers, bool) or max_workers < 1:
            errors.append(f"training.max_workers must be an integer >= 1: {max_workers!r}")

        logging_config = self.config['logging']
        level = str(logging_config.get('level', '')).upper()
        if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            errors.append(f"Invalid logging.level: {logging_config.get('level')!r}")

        if errors:
            raise ConfigurationError("Settings validation failed:\n" + "\n".join(f"  - {error}" for error in errors))


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Convenience function to load settings.

    Args:
        config_path: Path to settings file

    Returns:
        Loaded settings dictionary
    """
    loader = ConfigLoader(config_path)
    return loader.load()
