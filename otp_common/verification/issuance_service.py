# otp_common/verification/issuance_service.py
import re
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from otp_common.config import OTP_CONFIG
from otp_common.db.session import db_session
from otp_common.db.repositories.email_otp_repository import EmailOtpRepository
from otp_common.utils.logging_config import log_operation, log_context, mask_email
from otp_common.utils.time_utils import utc_now
from otp_common.verification.code_generator import generate_code
from otp_common.verification.delivery import DeliveryChannel, build_delivery_channel
from otp_common.verification.errors import DeliveryError
from otp_common.verification.outcomes import (
    IssueOutcome, IssueStatus, Messages, error_details, unexpected_error_details
)
from otp_common.verification.templates import otp_email_subject, render_otp_email

# Import the common verification logger
from . import logger

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


class IssuanceService:
    """
    Issues one-time codes: validate, generate, persist, then deliver once.

    A delivery failure does not roll back the stored token; it stays valid
    until it expires or is consumed.
    """

    def __init__(
            self,
            session_factory: Optional[sessionmaker] = None,
            delivery_channel: Optional[DeliveryChannel] = None,
            clock: Callable[[], datetime] = utc_now,
            code_generator: Callable[[], str] = generate_code,
            allow_dev_mode: bool = OTP_CONFIG["allow_dev_mode"],
            invalidate_previous: bool = OTP_CONFIG["invalidate_previous"],
            expiry: timedelta = timedelta(minutes=OTP_CONFIG["expiry_minutes"]),
    ):
        self.logger = logger
        self.session_factory = session_factory
        self.delivery_channel = delivery_channel or build_delivery_channel()
        self.clock = clock
        self.code_generator = code_generator
        self.allow_dev_mode = allow_dev_mode
        self.invalidate_previous = invalidate_previous
        self.expiry = expiry

    @log_operation("issue_otp")
    def issue(self, email) -> IssueOutcome:
        if email is None or (isinstance(email, str) and not email.strip()):
            logger.warning("Issuance rejected: missing email")
            return IssueOutcome(False, IssueStatus.MISSING_EMAIL, Messages.EMAIL_REQUIRED)

        if not isinstance(email, str):
            logger.warning("Issuance rejected: email is not a string")
            return IssueOutcome(False, IssueStatus.INVALID_EMAIL, Messages.EMAIL_INVALID)

        email = normalize_email(email)
        with log_context(logger, email=mask_email(email)):
            if not is_valid_email(email):
                logger.warning("Issuance rejected: malformed email")
                return IssueOutcome(False, IssueStatus.INVALID_EMAIL, Messages.EMAIL_INVALID)

            try:
                code = self.code_generator()
                try:
                    self._persist(email, code)
                except SQLAlchemyError as e:
                    logger.error("Failed to store verification code", exc_info=True, extra={
                        'error_type': type(e).__name__
                    })
                    return IssueOutcome(
                        False, IssueStatus.STORAGE_FAILED, Messages.STORAGE_FAILED,
                        error_type="STORAGE_ERROR",
                        error_details=error_details(e),
                    )

                return self._deliver(email, code)
            except Exception as e:
                logger.error("Unexpected error issuing verification code", exc_info=True, extra={
                    'error_type': type(e).__name__
                })
                return IssueOutcome(
                    False, IssueStatus.UNEXPECTED_ERROR, Messages.UNEXPECTED,
                    error_type="UNEXPECTED_ERROR",
                    error_details=unexpected_error_details(e),
                )

    def _persist(self, email: str, code: str) -> str:
        created_at = self.clock()
        expires_at = created_at + self.expiry

        with db_session(self.session_factory) as db:
            if self.invalidate_previous:
                EmailOtpRepository.delete_for_email(db, email)
            token_id = EmailOtpRepository.insert(db, email, code, created_at, expires_at)

        logger.info("Verification code stored", extra={
            'token_id': token_id,
            'expires_at': expires_at.isoformat()
        })
        return token_id

    def _deliver(self, email: str, code: str) -> IssueOutcome:
        channel = self.delivery_channel

        if not channel.configured:
            if not self.allow_dev_mode:
                logger.error("Email delivery is not configured and dev mode is disabled")
                return IssueOutcome(
                    False, IssueStatus.DELIVERY_FAILED, Messages.DELIVERY_NOT_CONFIGURED,
                    error_type="EMAIL_NOT_CONFIGURED",
                )

            logger.warning("DEVELOPMENT MODE - email not sent", extra={
                'code': code,
                'valid_minutes': int(self.expiry.total_seconds() // 60)
            })
            return IssueOutcome(True, IssueStatus.DELIVERY_SKIPPED, Messages.DEV_MODE, dev_otp=code)

        html, text = render_otp_email(code)
        try:
            receipt = channel.send(email, otp_email_subject(), html, text)
        except DeliveryError as e:
            logger.error("Failed to send verification email", exc_info=True, extra={
                'provider': e.provider,
                'error_code': e.error_code,
                'status_code': e.status_code
            })
            if e.is_auth_error:
                message = Messages.DELIVERY_AUTH_FAILED
            elif e.is_rate_limited:
                message = Messages.DELIVERY_RATE_LIMITED
            else:
                message = Messages.DELIVERY_FAILED
            return IssueOutcome(
                False, IssueStatus.DELIVERY_FAILED, message,
                error_type="EMAIL_SEND_ERROR",
                error_code=e.error_code,
                error_details=error_details(e),
            )

        logger.info("Verification email sent", extra={
            'provider': receipt.provider,
            'message_id': receipt.message_id
        })
        return IssueOutcome(True, IssueStatus.DELIVERED, Messages.CODE_SENT, email_id=receipt.message_id)
