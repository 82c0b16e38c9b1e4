# otp_common/utils/logging_config.py
import logging
import json
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from functools import wraps
import inspect
from contextlib import contextmanager

# Per-request log context. A ContextVar keeps fields of concurrent requests apart.
_log_context: ContextVar[Dict[str, Any]] = ContextVar("otp_log_context", default={})

# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED_ATTRS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'exc_info', 'exc_text', 'stack_info', 'lineno', 'funcName',
    'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'message', 'taskName',
])


class StructuredLogger(logging.Logger):
    """Custom logger that adds structured logging capabilities"""

    def _log(self, level, msg, args, exc_info=None, extra=None, stack_info=False, stacklevel=1):
        merged = dict(_log_context.get())
        if extra:
            merged.update(extra)

        # Add timestamp in ISO format
        merged['timestamp'] = datetime.now(timezone.utc).isoformat()

        # Add service name if set
        if hasattr(self, '_service_name'):
            merged['service'] = self._service_name

        super()._log(level, msg, args, exc_info, merged, stack_info, stacklevel + 1)


class JSONFormatter(logging.Formatter):
    """Custom formatter that outputs logs in JSON format"""

    def format(self, record):
        log_record = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'name': record.name,
            'level': record.levelname,
            'message': record.getMessage(),
            'service': getattr(record, 'service', 'unknown')
        }

        # Add exception info if present
        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)

        # Add any extra fields
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_record:
                log_record[key] = value

        return json.dumps(log_record, default=str)


def setup_logging(
        service_name: str,
        log_level: str = 'INFO',
        log_format: str = 'json'  # 'json' or 'text'
) -> logging.Logger:
    """
    Set up logging configuration for a service

    Args:
        service_name: Name of the service
        log_level: Logging level
        log_format: Format to use ('json' or 'text')

    Returns:
        Configured logger
    """
    logging.setLoggerClass(StructuredLogger)
    logger = logging.getLogger(service_name)
    logging.setLoggerClass(logging.Logger)

    logger.setLevel(getattr(logging, log_level.upper()))
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, log_level.upper()))

    if log_format == 'json':
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    logger._service_name = service_name

    # Prevent propagation to root logger
    logger.propagate = False

    return logger


@contextmanager
def log_context(logger: logging.Logger, **kwargs):
    """
    Context manager for adding contextual information to logs

    Args:
        logger: Logger instance (kept for call-site symmetry; context is per execution context)
        **kwargs: Context key-value pairs
    """
    new_context = dict(_log_context.get())
    new_context.update(kwargs)
    token = _log_context.set(new_context)
    try:
        yield
    finally:
        _log_context.reset(token)


def mask_email(email: Optional[str]) -> str:
    """Mask the local part of an address for log output"""
    if not email or '@' not in email:
        return (email or '')[:3] + '...'
    local, domain = email.split('@', 1)
    return f"{local[:2]}***@{domain}"


def log_operation(operation_name: str, logger: Optional[logging.Logger] = None):
    """
    Decorator for logging function entry and exit

    Args:
        operation_name: Name of the operation being performed
        logger: Logger to use; falls back to the instance's `logger` attribute
    """

    def _resolve_logger(args):
        if logger is not None:
            return logger
        if args and hasattr(args[0], 'logger'):
            return args[0].logger
        return logging.getLogger(__name__)

    def decorator(func):
        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            op_logger = _resolve_logger(args)

            with log_context(op_logger, operation=operation_name):
                op_logger.debug(f"Starting {operation_name}")
                try:
                    result = func(*args, **kwargs)
                    op_logger.debug(f"Completed {operation_name}")
                    return result
                except Exception as e:
                    op_logger.exception(f"Error in {operation_name}: {e}")
                    raise

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            op_logger = _resolve_logger(args)

            with log_context(op_logger, operation=operation_name):
                op_logger.debug(f"Starting {operation_name}")
                try:
                    result = await func(*args, **kwargs)
                    op_logger.debug(f"Completed {operation_name}")
                    return result
                except Exception as e:
                    op_logger.exception(f"Error in {operation_name}: {e}")
                    raise

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


class LogAggregator:
    """
    Aggregates multiple log entries into a single summary log
    """

    def __init__(self, logger: logging.Logger, operation: str):
        self.logger = logger
        self.operation = operation
        self.items = []
        self.start_time = datetime.now(timezone.utc)

    def add_item(self, item: Dict[str, Any], success: bool = True):
        """Add an item to the aggregation"""
        self.items.append({'item': item, 'success': success})

    def summary(self) -> Dict[str, Any]:
        duration = (datetime.now(timezone.utc) - self.start_time).total_seconds()
        successful = sum(1 for item in self.items if item['success'])
        return {
            'operation': self.operation,
            'duration_seconds': duration,
            'total_items': len(self.items),
            'successful_items': successful,
            'failed_items': len(self.items) - successful
        }

    def log_summary(self, level: int = logging.INFO):
        """Log the aggregated summary"""
        self.logger.log(level, f"{self.operation} completed", extra=self.summary())
