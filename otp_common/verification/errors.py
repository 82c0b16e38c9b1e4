# otp_common/verification/errors.py
from typing import Optional


class OtpError(Exception):
    """Base class for errors raised by the one-time code subsystem"""


class DeliveryError(OtpError):
    """The delivery provider rejected or failed to accept a message"""

    def __init__(self, message: str, provider: str,
                 error_code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.error_code = error_code
        self.status_code = status_code

    @property
    def is_auth_error(self) -> bool:
        return ("api key" in self.message.lower()
                or self.status_code in (401, 403)
                or self.error_code == "SMTPAuthenticationError")

    @property
    def is_rate_limited(self) -> bool:
        return "rate limit" in self.message.lower() or self.status_code == 429
