# otp_common/verification/outcomes.py
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from otp_common.config import IS_DEVELOPMENT, IS_PRODUCTION


class IssueStatus(str, Enum):
    DELIVERED = "delivered"
    DELIVERY_SKIPPED = "delivery_skipped"
    DELIVERY_FAILED = "delivery_failed"
    MISSING_EMAIL = "missing_email"
    INVALID_EMAIL = "invalid_email"
    STORAGE_FAILED = "storage_failed"
    UNEXPECTED_ERROR = "unexpected_error"


class VerifyStatus(str, Enum):
    VERIFIED = "verified"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    MISSING_FIELDS = "missing_fields"
    INVALID_CODE = "invalid_code"
    STORAGE_FAILED = "storage_failed"
    UNEXPECTED_ERROR = "unexpected_error"


# User-facing messages
class Messages:
    EMAIL_REQUIRED = "Email is required"
    EMAIL_INVALID = "Invalid email format"
    CODE_SENT = "A verification code has been sent to your email. Please check your inbox or spam folder."
    DEV_MODE = ("DEVELOPMENT MODE: email delivery is not configured. "
                "The verification code is included in this response for testing.")
    STORAGE_FAILED = "Failed to store the verification code. Please try again."
    DELIVERY_FAILED = "Failed to send the verification email. Please try again or contact the administrator."
    DELIVERY_AUTH_FAILED = "Failed to send the verification email. Email configuration is invalid, contact the administrator."
    DELIVERY_RATE_LIMITED = "Failed to send the verification email. Too many requests, please try again in a few minutes."
    DELIVERY_NOT_CONFIGURED = "Failed to send the verification email. Email delivery is not configured."
    FIELDS_REQUIRED = "Email and verification code are required"
    CODE_INVALID_FORMAT = "Invalid verification code format. It must be 6 digits."
    CODE_NOT_FOUND = "Verification code is incorrect or not found"
    CODE_EXPIRED = "Verification code has expired. Please request a new one."
    VERIFIED = "Email verified successfully!"
    VERIFY_FAILED = "Failed to verify the code. Please try again."
    UNEXPECTED = "An unexpected error occurred. Please try again."
    INVALID_JSON = "Invalid JSON in request body"


def error_details(exc: BaseException) -> Optional[str]:
    """Internal error detail, exposed to callers only outside production"""
    return None if IS_PRODUCTION else str(exc)


def unexpected_error_details(exc: BaseException) -> Optional[str]:
    """Detail of an unanticipated failure, exposed only in development"""
    return str(exc) if IS_DEVELOPMENT else None


def _without_none(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


@dataclass
class IssueOutcome:
    success: bool
    status: IssueStatus
    message: str
    dev_otp: Optional[str] = None
    email_id: Optional[str] = None
    error_type: Optional[str] = None
    error_code: Optional[str] = None
    error_details: Optional[str] = None

    @property
    def is_client_error(self) -> bool:
        return self.status in (IssueStatus.MISSING_EMAIL, IssueStatus.INVALID_EMAIL)

    def to_response(self) -> Dict[str, Any]:
        return _without_none({
            "success": self.success,
            "message": self.message,
            "devMode": True if self.status == IssueStatus.DELIVERY_SKIPPED else None,
            "devOtp": self.dev_otp,
            "emailId": self.email_id,
            "error_type": self.error_type,
            "error_code": self.error_code,
            "error_details": self.error_details,
        })


@dataclass
class VerifyOutcome:
    verified: bool
    status: VerifyStatus
    message: str
    error_type: Optional[str] = None
    error_details: Optional[str] = None

    @property
    def is_server_error(self) -> bool:
        return self.status in (VerifyStatus.STORAGE_FAILED, VerifyStatus.UNEXPECTED_ERROR)

    def to_response(self) -> Dict[str, Any]:
        return _without_none({
            "verified": self.verified,
            "message": self.message,
            "error_type": self.error_type,
            "error_details": self.error_details,
        })
