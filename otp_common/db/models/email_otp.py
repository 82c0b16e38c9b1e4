# otp_common/db/models/email_otp.py

import uuid
from sqlalchemy import Column, String, DateTime, Index
from otp_common.db.base import Base


class EmailOtpToken(Base):
    """A one-time code bound to an email address until it expires or is consumed"""
    __tablename__ = "email_otps"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, nullable=False)  # lower-cased, not unique
    code = Column(String(6), nullable=False)
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)

    __table_args__ = (
        Index("ix_email_otps_email_code", "email", "code"),
    )

    def __repr__(self):
        return f"<EmailOtpToken id={self.id} expires_at={self.expires_at}>"
