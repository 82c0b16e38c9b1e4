# otp_common/utils/log_management.py
import os
import logging
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler

from otp_common.config import IS_PRODUCTION
from otp_common.utils.logging_config import JSONFormatter

LOG_ROOT = os.getenv("LOG_DIR", "/app/logs")
TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _formatter(json_format: bool) -> logging.Formatter:
    return JSONFormatter() if json_format else logging.Formatter(TEXT_FORMAT)


def setup_file_logging(
        logger: logging.Logger,
        log_dir: str = LOG_ROOT,
        max_bytes: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5,
        when: str = 'midnight',
        json_format: bool = True
) -> None:
    """
    Attach rotating file handlers to a logger

    Errors go to `<service>_error.log` rotated by size; everything from INFO up
    goes to `<service>.log` rotated daily.

    Args:
        logger: Logger instance
        log_dir: Directory for log files
        max_bytes: Maximum size of the error log before rotation
        backup_count: Number of rotated files to keep
        when: Time-based rotation unit for the general log
        json_format: Write JSON lines instead of plain text
    """
    os.makedirs(log_dir, exist_ok=True)

    service_name = getattr(logger, '_service_name', logger.name)
    formatter = _formatter(json_format)

    error_handler = RotatingFileHandler(
        os.path.join(log_dir, f"{service_name}_error.log"),
        maxBytes=max_bytes,
        backupCount=backup_count
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)

    general_handler = TimedRotatingFileHandler(
        os.path.join(log_dir, f"{service_name}.log"),
        when=when,
        backupCount=backup_count,
        utc=True
    )
    general_handler.setLevel(logging.INFO)
    general_handler.setFormatter(formatter)

    logger.addHandler(error_handler)
    logger.addHandler(general_handler)


def setup_production_file_logging(logger: logging.Logger, name: str) -> None:
    """Write `name` component logs under LOG_DIR/<name> when running in production"""
    if IS_PRODUCTION:
        setup_file_logging(logger, log_dir=os.path.join(LOG_ROOT, name))
