"""
Logging configuration with structured logging and optional file handlers.
"""
import logging
import logging.handlers
import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional
import traceback


ENV_PREFIX = "SCALARGRAD_"


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        # Add exception info if present
        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        # Add extra fields
        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data)


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(ENV_PREFIX + name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class LoggerFactory:
    """Factory for creating configured loggers."""

    _loggers: Dict[str, logging.Logger] = {}
    _configured = False
    # Set while only the on-import defaults are in place
    _implicit = False

    @classmethod
    def configure(
        cls,
        log_dir: Optional[str] = None,
        log_level: Optional[str] = None,
        enable_console: bool = True,
        enable_file: Optional[bool] = None,
        enable_structured: bool = False,
        max_bytes: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5,
        force: bool = False
    ):
        """
        Configure global logging settings.

        Unset arguments fall back to the ``SCALARGRAD_LOG_DIR``,
        ``SCALARGRAD_LOG_LEVEL`` and ``SCALARGRAD_LOG_FILE`` environment
        variables. File logging stays off unless requested.

        The defaults applied when a module first asks for a logger never
        block a later explicit call; repeated explicit calls need ``force``.
        """
        if cls._configured and not force and not cls._implicit:
            return

        log_dir = log_dir or os.environ.get(ENV_PREFIX + "LOG_DIR", "logs")
        log_level = log_level or os.environ.get(ENV_PREFIX + "LOG_LEVEL", "WARNING")
        if enable_file is None:
            enable_file = _env_flag("LOG_FILE", False)

        level = getattr(logging, log_level.upper(), None)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {log_level}")

        # Only the package loggers are touched, never the root logger
        package_logger = logging.getLogger("scalargrad")
        package_logger.setLevel(level)
        for handler in list(package_logger.handlers):
            package_logger.removeHandler(handler)
            handler.close()

        # Console handler
        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level)
            if enable_structured:
                console_handler.setFormatter(StructuredFormatter())
            else:
                console_handler.setFormatter(
                    logging.Formatter(
                        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
                    )
                )
            package_logger.addHandler(console_handler)

        if enable_file:
            log_path = Path(log_dir)
            log_path.mkdir(parents=True, exist_ok=True)

            # File handler with rotation
            file_handler = logging.handlers.RotatingFileHandler(
                log_path / "scalargrad.log",
                maxBytes=max_bytes,
                backupCount=backup_count
            )
            file_handler.setLevel(logging.DEBUG)
            if enable_structured:
                file_handler.setFormatter(StructuredFormatter())
            else:
                file_handler.setFormatter(
                    logging.Formatter(
                        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
                    )
                )
            package_logger.addHandler(file_handler)

            # Error file handler
            error_handler = logging.handlers.RotatingFileHandler(
                log_path / "errors.log",
                maxBytes=max_bytes,
                backupCount=backup_count
            )
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(
                logging.Formatter(
                    '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
                )
            )
            package_logger.addHandler(error_handler)

        cls._configured = True
        cls._implicit = False

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get or create a logger nested under the ``scalargrad`` namespace."""
        if not cls._configured:
            cls.configure()
            cls._implicit = True

        if not name.startswith("scalargrad"):
            name = f"scalargrad.{name}"

        if name not in cls._loggers:
            cls._loggers[name] = logging.getLogger(name)

        return cls._loggers[name]


class LogContext:
    """Context manager for adding extra fields to logs."""

    def __init__(self, logger: logging.Logger, **extra_fields):
        self.logger = logger
        self.extra_fields = extra_fields
        self.old_factory = None

    def __enter__(self):
        old_factory = logging.getLogRecordFactory()

        def record_factory(*args, **kwargs):
            record = old_factory(*args, **kwargs)
            record.extra_fields = self.extra_fields
            return record

        logging.setLogRecordFactory(record_factory)
        self.old_factory = old_factory
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.old_factory:
            logging.setLogRecordFactory(self.old_factory)


# Convenience function
def get_logger(name: str) -> logging.Logger:
    """Get a configured logger."""
    return LoggerFactory.get_logger(name)
