# autosync/utils/logger.py

"""
Logging configuration for autosync
"""
import logging
import sys
from pathlib import Path
from typing import Optional, Dict, Any, MutableMapping, Tuple
from datetime import datetime, timezone
import json

LOG_FORMATS = ('json', 'text', 'color')

# Attributes every LogRecord carries; anything else came in through `extra`
_RECORD_ATTRS = frozenset(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {
    'message', 'asctime', 'taskName',
}


def record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields attached to a record through `extra=`"""
    return {
        key: value for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith('_')
    }


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            'time': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'msg': record.getMessage(),
        }

        # Add extra fields if present
        log_record.update(record_extras(record))

        # Add exception info if present
        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


class TextFormatter(logging.Formatter):
    """Plain text formatter that appends extra fields as key=value pairs"""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = record_extras(record)
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in extras.items())
        return line


class ColorFormatter(TextFormatter):
    """Color formatter for console output"""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[41m',   # Red background
        'RESET': '\033[0m',       # Reset
    }

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        color = self.COLORS.get(record.levelname)
        if color:
            return f"{color}{line}{self.COLORS['RESET']}"
        return line


def parse_level(log_level: str) -> int:
    """
    Convert a level name to a logging level

    Raises:
        ValueError: If the name is not a logging level
    """
    level = logging.getLevelName(str(log_level).upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level: {log_level}")
    return level


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Setup logging configuration

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Format of logs (json, text, or color)
        log_file: Path to log file (if None, only console logging)
        max_file_size: Maximum size of log file before rotation
        backup_count: Number of backup files to keep

    Raises:
        ValueError: On an unknown level or format
    """
    level = parse_level(log_level)
    log_format = log_format.lower()
    if log_format not in LOG_FORMATS:
        raise ValueError(f"unknown log format: {log_format}")

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    text_fmt = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    date_fmt = '%Y-%m-%d %H:%M:%S'

    console_handler = logging.StreamHandler(sys.stdout)
    if log_format == "json":
        console_handler.setFormatter(JsonFormatter())
    elif log_format == "color":
        console_handler.setFormatter(ColorFormatter(fmt=text_fmt, datefmt=date_fmt))
    else:
        console_handler.setFormatter(TextFormatter(fmt=text_fmt, datefmt=date_fmt))
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        from logging.handlers import RotatingFileHandler
        file_handler = RotatingFileHandler(
            filename=log_path,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        if log_format == "json":
            file_handler.setFormatter(JsonFormatter())
        else:
            file_handler.setFormatter(TextFormatter(fmt=text_fmt, datefmt=date_fmt))
        file_handler.setLevel(level)
        root_logger.addHandler(file_handler)

    # watchdog is chatty at DEBUG
    logging.getLogger('watchdog').setLevel(max(level, logging.INFO))

    return root_logger


class PipelineLogger(logging.LoggerAdapter):
    """
    Logger adapter that stamps fixed fields (e.g. the watched dir) on every
    record, merged with any `extra` given at the call site
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs['extra'] = {**self.extra, **kwargs.get('extra', {})}
        return msg, kwargs


def get_logger(name: str = None, extra: Optional[Dict[str, Any]] = None) -> PipelineLogger:
    """
    Get logger with optional extra fields for structured logging

    Args:
        name: Logger name (usually __name__)
        extra: Extra fields to include in log records
    """
    return PipelineLogger(logging.getLogger(name), extra or {})
