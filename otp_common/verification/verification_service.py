# otp_common/verification/verification_service.py
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from otp_common.db.session import db_session
from otp_common.db.repositories.email_otp_repository import EmailOtpRepository
from otp_common.utils.logging_config import log_operation, log_context, mask_email
from otp_common.utils.time_utils import utc_now
from otp_common.verification.code_generator import is_valid_code_format
from otp_common.verification.issuance_service import normalize_email
from otp_common.verification.outcomes import (
    VerifyOutcome, VerifyStatus, Messages, error_details, unexpected_error_details
)

# Import the common verification logger
from . import logger


class VerificationService:
    """
    Checks a submitted code against stored tokens and consumes it.

    Outcomes are VERIFIED, NOT_FOUND or EXPIRED once input validation passes.
    A matched token is deleted whether it verifies or has expired.
    """

    def __init__(
            self,
            session_factory: Optional[sessionmaker] = None,
            clock: Callable[[], datetime] = utc_now,
    ):
        self.logger = logger
        self.session_factory = session_factory
        self.clock = clock

    @log_operation("verify_otp")
    def verify(self, email, code) -> VerifyOutcome:
        if not email or not code or not isinstance(email, str) or not email.strip():
            logger.warning("Verification rejected: missing email or code")
            return VerifyOutcome(False, VerifyStatus.MISSING_FIELDS, Messages.FIELDS_REQUIRED)

        if not is_valid_code_format(code):
            logger.warning("Verification rejected: malformed code")
            return VerifyOutcome(False, VerifyStatus.INVALID_CODE, Messages.CODE_INVALID_FORMAT)

        email = normalize_email(email)
        with log_context(logger, email=mask_email(email)):
            try:
                return self._check_and_consume(email, code)
            except SQLAlchemyError as e:
                logger.error("Storage error while verifying code", exc_info=True, extra={
                    'error_type': type(e).__name__
                })
                return VerifyOutcome(
                    False, VerifyStatus.STORAGE_FAILED, Messages.VERIFY_FAILED,
                    error_type="STORAGE_ERROR",
                    error_details=error_details(e),
                )
            except Exception as e:
                logger.error("Unexpected error verifying code", exc_info=True, extra={
                    'error_type': type(e).__name__
                })
                return VerifyOutcome(
                    False, VerifyStatus.UNEXPECTED_ERROR, Messages.UNEXPECTED,
                    error_type="UNEXPECTED_ERROR",
                    error_details=unexpected_error_details(e),
                )

    def _check_and_consume(self, email: str, code: str) -> VerifyOutcome:
        with db_session(self.session_factory) as db:
            matches = EmailOtpRepository.find_by_email_and_code(db, email, code)

            if not matches:
                logger.info("Verification code not found")
                return VerifyOutcome(False, VerifyStatus.NOT_FOUND, Messages.CODE_NOT_FOUND)

            token_id = matches[0].id
            expires_at = matches[0].expires_at
            now = self.clock()

            if now > expires_at:
                # An expired match is consumed so it cannot be retried
                EmailOtpRepository.delete(db, token_id)
                logger.info("Verification code expired", extra={
                    'token_id': token_id,
                    'expired_at': expires_at.isoformat()
                })
                return VerifyOutcome(False, VerifyStatus.EXPIRED, Messages.CODE_EXPIRED)

            if not EmailOtpRepository.consume(db, token_id, email, code):
                # Another request consumed the token between lookup and delete
                logger.warning("Verification code already consumed", extra={
                    'token_id': token_id
                })
                return VerifyOutcome(False, VerifyStatus.NOT_FOUND, Messages.CODE_NOT_FOUND)

            logger.info("Verification code accepted", extra={'token_id': token_id})
            return VerifyOutcome(True, VerifyStatus.VERIFIED, Messages.VERIFIED)
