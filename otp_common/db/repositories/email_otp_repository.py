# otp_common/db/repositories/email_otp_repository.py

import uuid
from datetime import datetime
from typing import List

from sqlalchemy.orm import Session

from otp_common.db.models.email_otp import EmailOtpToken
from otp_common.db.repositories.base_repository import BaseRepository
from otp_common.utils.logging_config import log_operation, log_context, mask_email

# Import the repository logger
from . import logger


class EmailOtpRepository(BaseRepository[EmailOtpToken]):
    """Data access for the email_otps collection.

    Callers pass an already normalized (lower-cased) email. Persistence errors
    are raised as SQLAlchemyError and never swallowed here.
    """

    @staticmethod
    @log_operation("insert_otp_token", logger=logger)
    def insert(db: Session, email: str, code: str, created_at: datetime, expires_at: datetime) -> str:
        """Append a token record and return its id"""
        with log_context(logger, email=mask_email(email)):
            token_id = str(uuid.uuid4())
            db.add(EmailOtpToken(
                id=token_id,
                email=email,
                code=code,
                created_at=created_at,
                expires_at=expires_at
            ))
            db.commit()

            logger.info("Created OTP token", extra={
                'token_id': token_id,
                'expires_at': expires_at.isoformat()
            })

            return token_id

    @staticmethod
    @log_operation("find_otp_tokens", logger=logger)
    def find_by_email_and_code(db: Session, email: str, code: str) -> List[EmailOtpToken]:
        """Tokens matching both fields, newest first"""
        with log_context(logger, email=mask_email(email)):
            tokens = db.query(EmailOtpToken).filter(
                EmailOtpToken.email == email,
                EmailOtpToken.code == code
            ).order_by(
                EmailOtpToken.created_at.desc(),
                EmailOtpToken.id.asc()
            ).all()

            logger.debug("Looked up OTP tokens", extra={
                'match_count': len(tokens)
            })

            return tokens

    @staticmethod
    def delete(db: Session, token_id: str) -> bool:
        """Remove a token by id. Idempotent: returns False if it was already gone."""
        return BaseRepository.delete_by_id(db, EmailOtpToken, token_id)

    @staticmethod
    @log_operation("consume_otp_token", logger=logger)
    def consume(db: Session, token_id: str, email: str, code: str) -> bool:
        """
        Atomically delete the token if it still exists and still matches.

        Returns True only for the caller whose DELETE removed the row, so two
        concurrent verifications of the same code cannot both succeed.
        """
        with log_context(logger, token_id=token_id):
            deleted = db.query(EmailOtpToken).filter(
                EmailOtpToken.id == token_id,
                EmailOtpToken.email == email,
                EmailOtpToken.code == code
            ).delete(synchronize_session=False)
            db.commit()

            logger.debug("Conditional delete of OTP token", extra={
                'consumed': deleted > 0
            })

            return deleted > 0

    @staticmethod
    @log_operation("find_expired_otp_tokens", logger=logger)
    def find_expired(db: Session, now: datetime) -> List[EmailOtpToken]:
        """Tokens whose expiry lies strictly before `now`"""
        tokens = db.query(EmailOtpToken).filter(
            EmailOtpToken.expires_at < now
        ).all()

        logger.debug("Found expired OTP tokens", extra={
            'expired_count': len(tokens),
            'cutoff': now.isoformat()
        })

        return tokens

    @staticmethod
    @log_operation("delete_otp_tokens_for_email", logger=logger)
    def delete_for_email(db: Session, email: str) -> int:
        """
        Remove every outstanding token of an address.

        Only flushes: the caller commits, so a failed insert that follows rolls
        the removal back as well.
        """
        with log_context(logger, email=mask_email(email)):
            deleted = db.query(EmailOtpToken).filter(
                EmailOtpToken.email == email
            ).delete(synchronize_session=False)
            db.flush()

            logger.info("Deleted OTP tokens for email", extra={
                'deleted_count': deleted
            })

            return deleted
