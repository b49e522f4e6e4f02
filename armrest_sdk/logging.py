"""
Logging configuration for the ARM REST SDK.

This module provides structured logging setup with correlation IDs and
configurable output destinations. The SDK itself never installs handlers on
import; applications call ``setup_logging`` when they want the SDK formatters.
"""

import logging
import logging.handlers
import json
import sys
import uuid
from typing import Dict, Any, Optional
from datetime import datetime, timezone
from pathlib import Path
import contextvars

from .config import LoggingConfig
from .exceptions import InvalidConfigurationError


SDK_LOGGER_NAME = 'armrest_sdk'

correlation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'armrest_correlation_id', default=None
)

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset({
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'exc_info', 'exc_text', 'stack_info',
    'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'taskName',
    'message', 'asctime', 'correlation_id',
})


class CorrelationFilter(logging.Filter):
    """Logging filter that adds the current correlation ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    One JSON object per line, including any ``extra`` fields passed to the
    logging call.
    """

    def __init__(self, include_caller_info: bool = False):
        super().__init__()
        self.include_caller_info = include_caller_info

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'correlation_id': getattr(record, 'correlation_id', '-')
        }

        if self.include_caller_info:
            log_entry.update({
                'module': record.module,
                'function': record.funcName,
                'line': record.lineno,
            })

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith('_'):
                log_entry[key] = value

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter for console output."""

    def __init__(self, include_caller_info: bool = False):
        format_string = '%(asctime)s [%(levelname)s] %(name)s'

        if include_caller_info:
            format_string += ' [%(module)s:%(funcName)s:%(lineno)d]'

        format_string += ' [%(correlation_id)s] %(message)s'

        super().__init__(fmt=format_string, datefmt='%Y-%m-%d %H:%M:%S')


class ArmrestLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter for the SDK.

    Merges the adapter's context fields with per-call ``extra`` fields.
    """

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple:
        if 'extra' in kwargs:
            kwargs['extra'] = {**self.extra, **kwargs['extra']}
        else:
            kwargs['extra'] = dict(self.extra)

        return msg, kwargs


def setup_logging(config: LoggingConfig) -> None:
    """
    Set up logging for the SDK logger hierarchy.

    Handlers are attached to the ``armrest_sdk`` logger, not the root logger,
    so host applications keep control of their own logging.

    Args:
        config: Logging configuration

    Raises:
        InvalidConfigurationError: If logging configuration is invalid
    """
    sdk_logger = logging.getLogger(SDK_LOGGER_NAME)
    sdk_logger.handlers.clear()
    sdk_logger.setLevel(getattr(logging, config.level))
    sdk_logger.propagate = False

    if config.format == "json":
        formatter: logging.Formatter = JSONFormatter(
            include_caller_info=config.include_caller_info
        )
    else:
        formatter = TextFormatter(
            include_caller_info=config.include_caller_info
        )

    handlers = []

    if config.output in ("console", "both"):
        handlers.append(logging.StreamHandler(sys.stdout))

    if config.output in ("file", "both"):
        if not config.file_path:
            raise InvalidConfigurationError(
                "file_path is required when output includes 'file'",
                config_key="file_path"
            )

        log_path = Path(config.file_path)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.handlers.RotatingFileHandler(
                filename=config.file_path,
                maxBytes=_parse_size(config.max_file_size),
                backupCount=config.backup_count,
                encoding='utf-8'
            ))
        except OSError as e:
            raise InvalidConfigurationError(
                f"Failed to open log file: {e}",
                config_key="file_path",
                config_value=config.file_path
            ) from e

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(CorrelationFilter())
        sdk_logger.addHandler(handler)

    for name in ('urllib3', 'azure'):
        logging.getLogger(name).setLevel(getattr(logging, config.http_log_level))

    sdk_logger.debug(
        "Logging configured",
        extra={'log_format': config.format, 'log_output': config.output}
    )


def get_logger(name: str, **extra: Any) -> ArmrestLoggerAdapter:
    """
    Get a logger adapter for an SDK component.

    Args:
        name: Logger name (typically __name__)
        **extra: Extra fields to include in all log records

    Returns:
        Logger adapter with SDK context
    """
    from . import __version__

    sdk_extra = {
        'sdk_version': __version__,
        'component': name.replace(f'{SDK_LOGGER_NAME}.', ''),
        **extra
    }

    return ArmrestLoggerAdapter(logging.getLogger(name), sdk_extra)


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Set correlation ID for request tracing; generates a UUID if None."""
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())

    correlation_id_var.set(correlation_id)
    return correlation_id


def get_correlation_id() -> Optional[str]:
    return correlation_id_var.get()


def clear_correlation_id() -> None:
    correlation_id_var.set(None)


def _parse_size(size_str: str) -> int:
    """
    Parse size string to bytes.

    Args:
        size_str: Size string (e.g., "100MB", "1GB")

    Returns:
        Size in bytes

    Raises:
        InvalidConfigurationError: If size format is invalid
    """
    size_str = size_str.upper().strip()

    # Longest suffixes first so "MB" is not read as "B"
    size_units = (
        ('TB', 1024 ** 4),
        ('GB', 1024 ** 3),
        ('MB', 1024 ** 2),
        ('KB', 1024),
        ('B', 1),
    )

    for unit, multiplier in size_units:
        if size_str.endswith(unit):
            try:
                return int(float(size_str[:-len(unit)]) * multiplier)
            except ValueError:
                break

    try:
        return int(size_str)
    except ValueError:
        raise InvalidConfigurationError(
            f"Invalid size format: {size_str}. Expected formats: 100MB, 1GB, etc.",
            config_key="max_file_size",
            config_value=size_str
        )


class LoggingContextManager:
    """
    Context manager that scopes a correlation ID to one operation.

    Logs the start, completion or failure of ``operation`` when a logger is
    given, then restores the previous correlation ID.
    """

    def __init__(
        self,
        correlation_id: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        operation: Optional[str] = None
    ):
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self.logger = logger
        self.operation = operation
        self.start_time: Optional[datetime] = None
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = correlation_id_var.set(self.correlation_id)
        self.start_time = datetime.now(timezone.utc)

        if self.logger and self.operation:
            self.logger.info(
                f"Starting {self.operation}",
                extra={'operation': self.operation}
            )

        return self.correlation_id

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.logger and self.operation and self.start_time:
            duration = (datetime.now(timezone.utc) - self.start_time).total_seconds()

            if exc_type is None:
                self.logger.info(
                    f"Completed {self.operation}",
                    extra={
                        'operation': self.operation,
                        'duration_seconds': duration,
                        'success': True
                    }
                )
            else:
                self.logger.error(
                    f"Failed {self.operation}: {exc_val}",
                    extra={
                        'operation': self.operation,
                        'duration_seconds': duration,
                        'success': False,
                        'error_type': exc_type.__name__
                    }
                )

        if self._token is not None:
            correlation_id_var.reset(self._token)
            self._token = None


def logging_context(
    correlation_id: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
    operation: Optional[str] = None
) -> LoggingContextManager:
    """Create a LoggingContextManager."""
    return LoggingContextManager(correlation_id, logger, operation)
