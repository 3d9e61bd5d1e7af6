"""
Logging setup and configuration for Training Manager.

One run of the tool writes to `<log_dir>/app.log` (rotated at midnight unless
rotation is 'none') and, for cron and container runs, to the console. Galaxy
API keys are scrubbed from every message before it reaches either handler.
"""

import os
import re
import glob
import logging
import logging.handlers
from typing import Dict, Any, List
from datetime import datetime, timedelta

LOG_FILE_NAME = 'app.log'

FILE_FORMAT = '%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s'
CONSOLE_FORMAT = '%(asctime)s [%(levelname)s] %(message)s'


class SensitiveDataFilter(logging.Filter):
    """Filter to scrub sensitive data from log messages."""

    SENSITIVE_KEYWORDS = [
        'x-api-key', 'api_key', 'apikey', 'key', 'password', 'truststore_password',
        'token', 'secret', 'authorization',
    ]

    def filter(self, record):
        """Filter out sensitive data from log records."""
        if hasattr(record, 'msg'):
            msg = str(record.msg)

            # key=value
            for keyword in self.SENSITIVE_KEYWORDS:
                pattern1 = rf'({keyword}\s*=\s*)[^\s,}}\]]+(\s|,|$)'
                msg = re.sub(pattern1, r'\1****\2', msg, flags=re.IGNORECASE)

            # "key": "value" and "key": value in JSON
            for keyword in self.SENSITIVE_KEYWORDS:
                pattern2 = rf'("{keyword}"\s*:\s*")[^"]*(")'
                msg = re.sub(pattern2, r'\1****\2', msg, flags=re.IGNORECASE)

                pattern3 = rf'("{keyword}"\s*:\s*)([^",}}\s]+)(\s*[,}}\]])'
                msg = re.sub(pattern3, r'\1****\3', msg, flags=re.IGNORECASE)

            # 'key': 'value' as printed for Python dicts
            for keyword in self.SENSITIVE_KEYWORDS:
                pattern4 = rf"('{keyword}'\s*:\s*')[^']*(')"
                msg = re.sub(pattern4, r'\1****\2', msg, flags=re.IGNORECASE)

            # HTTP header form, e.g. "x-api-key: abc123"
            msg = re.sub(r'(x-api-key:\s*)[^\s,}\]]+', r'\1****', msg, flags=re.IGNORECASE)

            record.msg = msg

        return True


def _level(name: Any) -> int:
    return getattr(logging, str(name).upper(), logging.INFO)


class LoggingManager:
    """Installs the run's log handlers on the root logger, once per process."""

    def __init__(self):
        self.configured = False

    def setup_logging(self, config: Dict[str, Any]) -> None:
        """
        Configure the root logger from the 'logging' settings section.

        Calling it again has no effect until reset() is called.
        """
        if self.configured:
            return

        settings = config or {}
        log_dir = self._prepare_log_dir(settings.get('log_dir', 'logs'))
        retention_days = settings.get('retention_days', 7)
        rotation = str(settings.get('rotation', 'daily')).lower()
        level = _level(settings.get('level', 'INFO'))

        root_logger = logging.getLogger()
        root_logger.setLevel(level)
        root_logger.handlers.clear()

        scrubber = SensitiveDataFilter()
        for handler in self._build_handlers(settings, log_dir, rotation, retention_days, level):
            handler.addFilter(scrubber)
            root_logger.addHandler(handler)

        removed = remove_expired_logs(log_dir, retention_days)

        self.configured = True

        logger = logging.getLogger(__name__)
        logger.info(f"Logging to {os.path.join(log_dir, LOG_FILE_NAME)} "
                    f"(level={logging.getLevelName(level)}, rotation={rotation}, "
                    f"retention={retention_days} days)")
        for path in removed:
            logger.debug(f"Removed expired log file {path}")

    def reset(self) -> None:
        """Remove the handlers installed by setup_logging so it can run again."""
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()
        self.configured = False

    @staticmethod
    def _prepare_log_dir(log_dir: str) -> str:
        try:
            os.makedirs(log_dir, exist_ok=True)
        except OSError as e:
            print(f"Warning: cannot create log directory {log_dir} ({e}), logging to the current directory")
            return '.'
        return log_dir

    @staticmethod
    def _build_handlers(settings: Dict[str, Any], log_dir: str, rotation: str,
                        retention_days: int, level: int) -> List[logging.Handler]:
        log_file = os.path.join(log_dir, LOG_FILE_NAME)
        if rotation in ('daily', 'midnight'):
            file_handler = logging.handlers.TimedRotatingFileHandler(
                log_file, when='midnight', backupCount=retention_days, encoding='utf-8'
            )
            file_handler.suffix = '%Y-%m-%d'
        else:
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        handlers = [file_handler]

        if settings.get('console_output', True):
            console_handler = logging.StreamHandler()
            console_handler.setLevel(_level(settings.get('console_level', 'INFO')))
            console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
            handlers.append(console_handler)

        return handlers


def remove_expired_logs(log_dir: str, retention_days: int) -> List[str]:
    """
    Delete rotated log files last modified more than `retention_days` ago.

    The live app.log is never removed. Returns the removed paths.
    """
    if retention_days <= 0:
        return []

    cutoff = (datetime.now() - timedelta(days=retention_days)).timestamp()
    removed = []
    for path in glob.glob(os.path.join(log_dir, LOG_FILE_NAME + '.*')):
        try:
            if os.path.getmtime(path) < cutoff:
                os.remove(path)
                removed.append(path)
        except OSError as e:
            print(f"Warning: could not remove old log file {path}: {e}")
    return removed


# Global logging manager instance
_logging_manager = LoggingManager()


def setup_logging(config: Dict[str, Any]) -> None:
    """
    Convenience function to set up logging.

    Args:
        config: The 'logging' settings section
    """
    _logging_manager.setup_logging(config)


def reset_logging() -> None:
    _logging_manager.reset()
