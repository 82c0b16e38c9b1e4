# system/maintenance.py

import time
from datetime import datetime
from typing import Any, Dict, Optional

from otp_common.celery_app import celery_app
from otp_common.utils.logging_config import setup_logging, log_operation, log_context
from otp_common.utils.log_management import setup_production_file_logging
from otp_common.verification.cleanup import sweep

# Initialize system logger
logger = setup_logging('system_maintenance', log_level='INFO', log_format='text')
setup_production_file_logging(logger, 'system')


@celery_app.task(name='system.maintenance.cleanup_expired_otp_tokens')
@log_operation("cleanup_expired_otp_tokens", logger=logger)
def cleanup_expired_otp_tokens(now: Optional[str] = None) -> Dict[str, Any]:
    """
    Remove verification codes whose expiry has passed.

    Args:
        now: Optional ISO-8601 cutoff (UTC); defaults to the current time

    Returns:
        Dictionary with the status and count of deleted tokens
    """
    start_time = time.time()

    with log_context(logger, task="cleanup_expired_otp_tokens"):
        try:
            cutoff = datetime.fromisoformat(now) if now else None
            deleted = sweep(cutoff)

            execution_time = time.time() - start_time
            logger.info("Cleaned up expired verification codes", extra={
                'tokens_deleted': deleted,
                'execution_time': execution_time
            })

            return {
                "status": "success",
                "tokens_deleted": deleted,
                "execution_time_seconds": execution_time
            }
        except Exception as e:
            logger.error("Error cleaning up expired verification codes", exc_info=True, extra={
                'error_type': type(e).__name__
            })
            return {
                "status": "error",
                "tokens_deleted": 0,
                "error": str(e),
                "execution_time_seconds": time.time() - start_time
            }
