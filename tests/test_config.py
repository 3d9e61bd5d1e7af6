#!/usr/bin/env python3
"""
Unit tests for settings loading.

This module tests settings file loading, defaults, validation and
environment variable overrides.
"""

import os
import sys
import tempfile
import yaml
import unittest
from unittest.mock import patch

# Add the project directory to the path so we can import our modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from training_manager.config import ConfigLoader, ConfigurationError, load_config


class TestConfigLoader(unittest.TestCase):
    """Test cases for ConfigLoader class."""

    def setUp(self):
        """Set up test fixtures."""
        self.valid_config = {
            'galaxy': {
                'url': 'https://galaxy.example.org',
                'api_key': 'file-api-key',
                'verify_ssl': True,
                'timeout_seconds': 10,
            },
            'training': {
                'role_name': 'training',
                'role_description': 'Training access',
                'max_workers': 2,
            },
            'logging': {
                'level': 'DEBUG',
                'log_dir': 'logs',
            },
        }
        self.temp_dir = tempfile.mkdtemp(prefix='training_manager_config_')
        self.env = patch.dict(os.environ, {}, clear=True)
        self.env.start()

    def tearDown(self):
        """Clean up test fixtures."""
        self.env.stop()
        for name in os.listdir(self.temp_dir):
            os.unlink(os.path.join(self.temp_dir, name))
        os.rmdir(self.temp_dir)

    def _write(self, data, name='settings.yaml'):
        path = os.path.join(self.temp_dir, name)
        with open(path, 'w') as f:
            if isinstance(data, str):
                f.write(data)
            else:
                yaml.dump(data, f)
        return path

    def test_load_valid_config(self):
        """Test loading a valid settings file."""
        config = ConfigLoader(self._write(self.valid_config)).load()

        self.assertEqual(config['galaxy']['url'], 'https://galaxy.example.org')
        self.assertEqual(config['galaxy']['api_key'], 'file-api-key')
        self.assertEqual(config['training']['max_workers'], 2)
        self.assertEqual(config['logging']['level'], 'DEBUG')

    def test_defaults_applied(self):
        """Test default values for optional fields."""
        config = ConfigLoader(self._write({'galaxy': {'api_key': 'k'}})).load()

        self.assertEqual(config['galaxy']['url'], 'https://usegalaxy.ca')
        self.assertTrue(config['galaxy']['verify_ssl'])
        self.assertEqual(config['galaxy']['timeout_seconds'], 30)
        self.assertEqual(config['training']['role_name'], 'training')
        self.assertEqual(config['training']['role_description'], '')
        self.assertEqual(config['training']['max_workers'], 4)
        self.assertEqual(config['logging']['retention_days'], 7)
        self.assertEqual(config['logging']['rotation'], 'daily')

    def test_env_override_api_key(self):
        """Test GALAXY_ADMIN_API_KEY overrides the file."""
        os.environ['GALAXY_ADMIN_API_KEY'] = 'env-api-key'
        config = ConfigLoader(self._write(self.valid_config)).load()
        self.assertEqual(config['galaxy']['api_key'], 'env-api-key')

    def test_env_override_url(self):
        os.environ['GALAXY_URL'] = 'http://localhost:8080'
        config = ConfigLoader(self._write(self.valid_config)).load()
        self.assertEqual(config['galaxy']['url'], 'http://localhost:8080')

    def test_env_only_without_file(self):
        """Test the implicit default path may be absent."""
        os.environ['GALAXY_ADMIN_API_KEY'] = 'env-api-key'
        with patch('training_manager.config.DEFAULT_SETTINGS_PATH',
                   os.path.join(self.temp_dir, 'absent.yaml')):
            config = ConfigLoader().load()
        self.assertEqual(config['galaxy']['api_key'], 'env-api-key')
        self.assertEqual(config['galaxy']['url'], 'https://usegalaxy.ca')

    def test_settings_path_from_env(self):
        path = self._write(self.valid_config, 'from_env.yaml')
        os.environ['TRAINING_MANAGER_SETTINGS'] = path
        loader = ConfigLoader()
        self.assertEqual(loader.config_path, path)
        self.assertEqual(loader.load()['galaxy']['api_key'], 'file-api-key')

    def test_explicit_missing_file(self):
        """Test an explicitly named settings file must exist."""
        with self.assertRaises(ConfigurationError) as ctx:
            ConfigLoader(os.path.join(self.temp_dir, 'missing.yaml')).load()
        self.assertIn("not found", str(ctx.exception))

    def test_missing_api_key(self):
        with self.assertRaises(ConfigurationError) as ctx:
            ConfigLoader(self._write({'galaxy': {'url': 'https://galaxy.example.org'}})).load()
        self.assertIn("API key", str(ctx.exception))

    def test_invalid_yaml(self):
        with self.assertRaises(ConfigurationError):
            ConfigLoader(self._write("galaxy: [unclosed")).load()

    def test_non_mapping_document(self):
        with self.assertRaises(ConfigurationError):
            ConfigLoader(self._write("- just\n- a list\n")).load()

    def test_section_must_be_mapping(self):
        with self.assertRaises(ConfigurationError):
            ConfigLoader(self._write({'galaxy': {'api_key': 'k'}, 'training': 'yes'})).load()

    def test_validation_collects_all_errors(self):
        """Test every problem is reported at once."""
        bad = {
            'galaxy': {'url': 'ftp://galaxy.example.org', 'timeout_seconds': 0},
            'training': {'max_workers': 0, 'role_name': ''},
            'logging': {'level': 'LOUD'},
        }
        with self.assertRaises(ConfigurationError) as ctx:
            ConfigLoader(self._write(bad)).load()

        message = str(ctx.exception)
        self.assertIn("API key", message)
        self.assertIn("galaxy.url", message)
        self.assertIn("timeout_seconds", message)
        self.assertIn("max_workers", message)
        self.assertIn("role_name", message)
        self.assertIn("logging.level", message)

    def test_unsupported_truststore_type(self):
        config = dict(self.valid_config)
        config['galaxy'] = dict(config['galaxy'], truststore_type='JKS')
        with self.assertRaises(ConfigurationError):
            ConfigLoader(self._write(config)).load()

    def test_load_config_function(self):
        """Test the convenience function."""
        config = load_config(self._write(self.valid_config))
        self.assertIn('galaxy', config)
        self.assertIn('training', config)
        self.assertIn('logging', config)


if __name__ == '__main__':
    unittest.main()
