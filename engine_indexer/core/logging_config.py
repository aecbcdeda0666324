# engine_indexer/core/logging_config.py
"""
Centralized logging configuration for the engine indexer.

Provides:
- EngineLogger: Global logging configuration
- LoggingMixin: Consistent logging behavior for classes
- Utility functions: Context logging helpers
"""

import logging
import sys
import json
from logging import DEBUG, INFO, WARNING, ERROR, CRITICAL
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import datetime


CONTEXT_ATTRS = ['block_number', 'tx_id', 'contract', 'action', 'node',
                 'endpoint', 'method', 'attempt', 'last_block', 'error']


class EngineFormatter(logging.Formatter):
    """Structured formatter that appends known context attributes"""

    def __init__(self, include_context: bool = True, as_json: bool = False):
        self.include_context = include_context
        self.as_json = as_json
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]

        context = {}
        if self.include_context:
            for attr in CONTEXT_ATTRS:
                if hasattr(record, attr):
                    context[attr] = getattr(record, attr)

        if self.as_json:
            log_entry = {
                'timestamp': timestamp,
                'level': record.levelname,
                'logger': record.name,
                'message': record.getMessage(),
            }
            if context:
                log_entry['context'] = context
            if record.exc_info:
                log_entry['exception'] = self.formatException(record.exc_info)
            return json.dumps(log_entry, separators=(',', ':'), default=str)

        base_msg = f"{timestamp} - {record.name} - {record.levelname} - {record.getMessage()}"
        if context:
            parts = ' '.join(f"{key}={value}" for key, value in context.items())
            base_msg = f"{base_msg} | {parts}"
        if record.exc_info:
            base_msg = f"{base_msg}\n{self.formatException(record.exc_info)}"
        return base_msg


class EngineLogger:
    """Global logging configuration and management"""

    _configured = False
    _log_dir: Optional[Path] = None
    _log_level = logging.INFO
    _console_enabled = True
    _file_enabled = True

    @classmethod
    def configure(cls,
                  log_dir: Optional[Path] = None,
                  log_level: str = "INFO",
                  console_enabled: bool = True,
                  file_enabled: bool = True,
                  structured_format: bool = True,
                  json_format: bool = False) -> None:

        if cls._configured:
            return

        cls._log_dir = log_dir
        cls._log_level = getattr(logging, log_level.upper(), logging.INFO)
        cls._console_enabled = console_enabled
        cls._file_enabled = file_enabled

        if file_enabled and log_dir:
            log_dir.mkdir(parents=True, exist_ok=True)

        root_logger = logging.getLogger('engine_indexer')
        root_logger.setLevel(cls._log_level)

        root_logger.handlers.clear()

        if console_enabled:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(cls._log_level)

            if structured_format:
                console_formatter = EngineFormatter(include_context=True, as_json=json_format)
            else:
                console_formatter = logging.Formatter(
                    '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
                )
            console_handler.setFormatter(console_formatter)
            root_logger.addHandler(console_handler)

        if file_enabled and log_dir:
            # Main log file
            file_handler = logging.FileHandler(log_dir / 'engine_indexer.log')
            file_handler.setLevel(cls._log_level)
            file_formatter = EngineFormatter(include_context=True, as_json=json_format)
            file_handler.setFormatter(file_formatter)
            root_logger.addHandler(file_handler)

            # Error log file
            error_handler = logging.FileHandler(log_dir / 'engine_indexer_errors.log')
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(file_formatter)
            root_logger.addHandler(error_handler)

        cls._configured = True

    @classmethod
    def reset(cls) -> None:
        """Drop handlers so the next configure() call takes effect"""
        logging.getLogger('engine_indexer').handlers.clear()
        cls._configured = False

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if not cls._configured:
            cls.configure()

        if not name.startswith('engine_indexer'):
            name = f'engine_indexer.{name}'

        return logging.getLogger(name)


# === Utility Functions ===

def get_class_logger(cls_instance) -> logging.Logger:
    module = cls_instance.__class__.__module__
    class_name = cls_instance.__class__.__name__

    if module.startswith('engine_indexer.'):
        module = module[len('engine_indexer.'):]

    logger_name = f"{module}.{class_name}"
    return EngineLogger.get_logger(logger_name)


def log_with_context(logger: logging.Logger, level: int, message: str, **context) -> None:
    if logger.isEnabledFor(level):
        record = logger.makeRecord(
            logger.name, level, "", 0, message, (), None
        )
        for key, value in context.items():
            setattr(record, key, value)
        logger.handle(record)


# === LoggingMixin for Classes ===

class LoggingMixin:
    """
    Mixin to add consistent logging behavior to any class.

    Provides convenient logging methods that automatically:
    - Create class-specific loggers
    - Support structured context logging
    """

    @property
    def logger(self) -> logging.Logger:
        """Get logger for this class"""
        if not hasattr(self, '_logger'):
            self._logger = get_class_logger(self)
        return self._logger

    def log_debug(self, message: str, **context) -> None:
        log_with_context(self.logger, logging.DEBUG, message, **context)

    def log_info(self, message: str, **context) -> None:
        log_with_context(self.logger, logging.INFO, message, **context)

    def log_warning(self, message: str, **context) -> None:
        log_with_context(self.logger, logging.WARNING, message, **context)

    def log_error(self, message: str, **context) -> None:
        log_with_context(self.logger, logging.ERROR, message, **context)

    def log_block_context(self, block_number: int, **additional_context) -> Dict[str, Any]:
        context = {'block_number': block_number}
        context.update(additional_context)
        return context
