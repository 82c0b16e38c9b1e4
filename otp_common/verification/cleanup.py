# otp_common/verification/cleanup.py
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import sessionmaker

from otp_common.db.session import db_session
from otp_common.db.repositories.email_otp_repository import EmailOtpRepository
from otp_common.utils.logging_config import log_operation, log_context, LogAggregator
from otp_common.utils.time_utils import utc_now

# Import the common verification logger
from . import logger


@log_operation("sweep_expired_otp_tokens", logger=logger)
def sweep(now: Optional[datetime] = None, session_factory: Optional[sessionmaker] = None) -> int:
    """
    Delete every token whose expiry is strictly before `now`.

    Safe to run alongside issuance and verification: a token removed by a
    concurrent verification simply does not count.

    Returns:
        Number of tokens this sweep removed
    """
    now = now or utc_now()
    aggregator = LogAggregator(logger, "sweep_expired_otp_tokens")

    with log_context(logger, cutoff=now.isoformat()):
        with db_session(session_factory) as db:
            token_ids = [token.id for token in EmailOtpRepository.find_expired(db, now)]

            deleted = 0
            for token_id in token_ids:
                removed = EmailOtpRepository.delete(db, token_id)
                if removed:
                    deleted += 1
                aggregator.add_item({'token_id': token_id}, success=removed)

        aggregator.log_summary()
        logger.info("Swept expired verification codes", extra={
            'expired_found': len(token_ids),
            'deleted_count': deleted
        })
        return deleted
