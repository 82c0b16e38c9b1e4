# otp_common/db/models/__init__.py
# Import all models to ensure they're registered with SQLAlchemy
from otp_common.db.base import Base
from otp_common.db.models.email_otp import EmailOtpToken

__all__ = ['Base', 'EmailOtpToken']
