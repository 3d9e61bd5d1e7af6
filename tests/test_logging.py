#!/usr/bin/env python3
"""
Tests for the logging infrastructure.

Covers file output, console output, rotation handler selection, retention
cleanup and scrubbing of API keys in the written log file.
"""

import os
import sys
import time
import shutil
import logging
import logging.handlers
import tempfile
import unittest

# Add the project directory to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from training_manager.logging_setup import (
    remove_expired_logs,
    reset_logging,
    setup_logging,
)


class TestLoggingSetup(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp(prefix='training_manager_logs_')
        self.config = {
            'level': 'DEBUG',
            'log_dir': self.temp_dir,
            'rotation': 'daily',
            'retention_days': 3,
            'console_output': False,
        }
        reset_logging()

    def tearDown(self):
        reset_logging()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def read_log(self):
        for handler in logging.getLogger().handlers:
            handler.flush()
        with open(os.path.join(self.temp_dir, 'app.log'), encoding='utf-8') as f:
            return f.read()

    def test_writes_app_log(self):
        """Test messages at every level reach the log file."""
        setup_logging(self.config)

        logger = logging.getLogger('training_manager.test')
        logger.debug("debug message")
        logger.info("info message")
        logger.error("error message")

        content = self.read_log()
        self.assertIn("debug message", content)
        self.assertIn("info message", content)
        self.assertIn("[ERROR] training_manager.test", content)

    def test_level_filters_file_output(self):
        self.config['level'] = 'WARNING'
        setup_logging(self.config)

        logger = logging.getLogger('training_manager.test')
        logger.info("quiet")
        logger.warning("loud")

        content = self.read_log()
        self.assertNotIn("quiet", content)
        self.assertIn("loud", content)

    def test_api_key_is_scrubbed_in_file(self):
        setup_logging(self.config)
        logging.getLogger('training_manager.test').info("headers {'x-api-key': 'super-secret'}")
        content = self.read_log()
        self.assertNotIn("super-secret", content)
        self.assertIn("****", content)

    def test_daily_rotation_uses_timed_handler(self):
        setup_logging(self.config)
        handlers = logging.getLogger().handlers
        self.assertEqual(len(handlers), 1)
        self.assertIsInstance(handlers[0], logging.handlers.TimedRotatingFileHandler)
        self.assertEqual(handlers[0].backupCount, 3)

    def test_no_rotation_uses_plain_file_handler(self):
        self.config['rotation'] = 'none'
        setup_logging(self.config)
        handler = logging.getLogger().handlers[0]
        self.assertIs(type(handler), logging.FileHandler)

    def test_console_output(self):
        self.config['console_output'] = True
        self.config['console_level'] = 'WARNING'
        setup_logging(self.config)

        console = [h for h in logging.getLogger().handlers if type(h) is logging.StreamHandler]
        self.assertEqual(len(console), 1)
        self.assertEqual(console[0].level, logging.WARNING)

    def test_setup_is_applied_once(self):
        setup_logging(self.config)
        setup_logging(dict(self.config, level='ERROR'))
        self.assertEqual(logging.getLogger().level, logging.DEBUG)

    def test_creates_missing_log_dir(self):
        nested = os.path.join(self.temp_dir, 'nested', 'logs')
        setup_logging(dict(self.config, log_dir=nested))
        self.assertTrue(os.path.isdir(nested))
        self.assertTrue(os.path.isfile(os.path.join(nested, 'app.log')))


class TestRetention(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp(prefix='training_manager_retention_')

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def touch(self, name, age_days):
        path = os.path.join(self.temp_dir, name)
        with open(path, 'w') as f:
            f.write('old\n')
        stamp = time.time() - age_days * 86400
        os.utime(path, (stamp, stamp))
        return path

    def test_old_rotated_logs_removed(self):
        old = self.touch('app.log.2023-01-01', 10)
        recent = self.touch('app.log.2023-01-09', 1)
        current = self.touch('app.log', 30)

        removed = remove_expired_logs(self.temp_dir, 7)

        self.assertEqual(removed, [old])

        self.assertFalse(os.path.exists(old))
        self.assertTrue(os.path.exists(recent))
        self.assertTrue(os.path.exists(current))

    def test_zero_retention_keeps_everything(self):
        old = self.touch('app.log.2023-01-01', 100)
        self.assertEqual(remove_expired_logs(self.temp_dir, 0), [])
        self.assertTrue(os.path.exists(old))


if __name__ == '__main__':
    unittest.main()
