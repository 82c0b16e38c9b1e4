# tests/test_issuance_service.py

import pytest
from datetime import timedelta
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from otp_common.db.models import EmailOtpToken
from otp_common.db.repositories import EmailOtpRepository
from otp_common.verification.delivery import DisabledDeliveryChannel
from otp_common.verification.errors import DeliveryError
from otp_common.verification.issuance_service import IssuanceService, is_valid_email
from otp_common.verification.outcomes import IssueStatus, Messages


def _tokens(session_factory):
    session = session_factory()
    try:
        return [(t.email, t.code, t.created_at, t.expires_at) for t in session.query(EmailOtpToken).all()]
    finally:
        session.close()


@pytest.mark.parametrize("email", [None, "", "   "])
def test_issue_missing_email(issuance_service, delivery_channel, count_tokens, email):
    outcome = issuance_service.issue(email)

    assert outcome.success is False
    assert outcome.status == IssueStatus.MISSING_EMAIL
    assert outcome.message == Messages.EMAIL_REQUIRED
    assert outcome.is_client_error
    assert count_tokens() == 0
    assert delivery_channel.sent == []


@pytest.mark.parametrize("email", ["not-an-email", "user@example", "user@@example.com", "us er@example.com",
                                   42, ["user@example.com"]])
def test_issue_invalid_email(issuance_service, delivery_channel, count_tokens, email):
    outcome = issuance_service.issue(email)

    assert outcome.status == IssueStatus.INVALID_EMAIL
    assert outcome.message == Messages.EMAIL_INVALID
    assert count_tokens() == 0
    assert delivery_channel.sent == []


def test_is_valid_email():
    assert is_valid_email("user@example.com")
    assert is_valid_email("first.last+tag@sub.example.org")
    assert not is_valid_email("user@example")


def test_issue_delivers_code(issuance_service, delivery_channel, session_factory, clock):
    """A delivered code is stored with a five minute lifetime and sent once"""
    outcome = issuance_service.issue("  User@Example.com ")

    assert outcome.success is True
    assert outcome.status == IssueStatus.DELIVERED
    assert outcome.message == Messages.CODE_SENT
    assert outcome.dev_otp is None
    assert outcome.email_id == "msg_1"

    tokens = _tokens(session_factory)
    assert len(tokens) == 1
    email, code, created_at, expires_at = tokens[0]
    assert email == "user@example.com"
    assert created_at == clock.now
    assert expires_at - created_at == timedelta(minutes=5)

    assert len(delivery_channel.sent) == 1
    sent = delivery_channel.sent[0]
    assert sent["recipient"] == "user@example.com"
    assert code in sent["html"]
    assert code in sent["text"]


def test_issue_response_hides_code(issuance_service):
    response = issuance_service.issue("user@example.com").to_response()

    assert response["success"] is True
    assert "devOtp" not in response
    assert "devMode" not in response
    assert response["emailId"] == "msg_1"


def test_issue_dev_mode_returns_code(dev_issuance_service, session_factory):
    outcome = dev_issuance_service.issue("user@example.com")

    assert outcome.success is True
    assert outcome.status == IssueStatus.DELIVERY_SKIPPED
    assert outcome.message == Messages.DEV_MODE

    tokens = _tokens(session_factory)
    assert len(tokens) == 1
    assert outcome.dev_otp == tokens[0][1]

    response = outcome.to_response()
    assert response["devMode"] is True
    assert response["devOtp"] == outcome.dev_otp


def test_issue_dev_mode_disallowed(session_factory, clock, count_tokens):
    """Without credentials and without dev mode the code is stored but never exposed"""
    service = IssuanceService(
        session_factory=session_factory,
        delivery_channel=DisabledDeliveryChannel(),
        clock=clock,
        allow_dev_mode=False,
    )

    outcome = service.issue("user@example.com")

    assert outcome.success is False
    assert outcome.status == IssueStatus.DELIVERY_FAILED
    assert outcome.message == Messages.DELIVERY_NOT_CONFIGURED
    assert outcome.dev_otp is None
    assert "devOtp" not in outcome.to_response()
    assert count_tokens() == 1


def test_issue_delivery_failure_keeps_token(session_factory, clock, count_tokens, verification_service, make_channel):
    channel = make_channel(error=DeliveryError("Service unavailable", provider="recording",
                                              status_code=503))
    service = IssuanceService(
        session_factory=session_factory,
        delivery_channel=channel,
        clock=clock,
        code_generator=lambda: "135790",
    )

    outcome = service.issue("user@example.com")

    assert outcome.success is False
    assert outcome.status == IssueStatus.DELIVERY_FAILED
    assert outcome.message == Messages.DELIVERY_FAILED
    assert outcome.error_type == "EMAIL_SEND_ERROR"
    assert outcome.error_details == "Service unavailable"
    assert not outcome.is_client_error

    # The stored token remains usable
    assert count_tokens() == 1
    assert verification_service.verify("user@example.com", "135790").verified is True


@pytest.mark.parametrize("error,message", [
    (DeliveryError("API key is invalid", provider="resend", error_code="validation_error", status_code=401),
     Messages.DELIVERY_AUTH_FAILED),
    (DeliveryError("Forbidden", provider="resend", status_code=403), Messages.DELIVERY_AUTH_FAILED),
    (DeliveryError("Too many requests", provider="resend", status_code=429), Messages.DELIVERY_RATE_LIMITED),
    (DeliveryError("Rate limit exceeded", provider="resend"), Messages.DELIVERY_RATE_LIMITED),
])
def test_issue_delivery_failure_messages(session_factory, clock, make_channel, error, message):
    service = IssuanceService(
        session_factory=session_factory,
        delivery_channel=make_channel(error=error),
        clock=clock,
    )

    outcome = service.issue("user@example.com")

    assert outcome.status == IssueStatus.DELIVERY_FAILED
    assert outcome.message == message
    assert outcome.error_code == error.error_code


def test_issue_storage_failure(issuance_service, delivery_channel):
    """A failed write is reported and nothing is sent"""
    db_error = OperationalError("INSERT INTO email_otps", {}, Exception("database is locked"))
    with patch.object(EmailOtpRepository, "insert", side_effect=db_error):
        outcome = issuance_service.issue("user@example.com")

    assert outcome.success is False
    assert outcome.status == IssueStatus.STORAGE_FAILED
    assert outcome.message == Messages.STORAGE_FAILED
    assert outcome.error_type == "STORAGE_ERROR"
    assert delivery_channel.sent == []


def test_issue_unexpected_error(session_factory, delivery_channel, clock, count_tokens):
    def broken_generator():
        raise RuntimeError("entropy source unavailable")

    service = IssuanceService(
        session_factory=session_factory,
        delivery_channel=delivery_channel,
        clock=clock,
        code_generator=broken_generator,
    )

    outcome = service.issue("user@example.com")

    assert outcome.status == IssueStatus.UNEXPECTED_ERROR
    assert outcome.message == Messages.UNEXPECTED
    assert outcome.error_details is None
    assert count_tokens() == 0



def test_issue_unexpected_error_details_in_development(session_factory, delivery_channel, clock):
    def broken_generator():
        raise RuntimeError("entropy source unavailable")

    service = IssuanceService(
        session_factory=session_factory,
        delivery_channel=delivery_channel,
        clock=clock,
        code_generator=broken_generator,
    )

    with patch("otp_common.verification.outcomes.IS_DEVELOPMENT", True):
        outcome = service.issue("user@example.com")

    assert outcome.status == IssueStatus.UNEXPECTED_ERROR
    assert outcome.error_details == "entropy source unavailable"


def test_issue_keeps_previous_codes(issuance_service, count_tokens):
    issuance_service.issue("user@example.com")
    issuance_service.issue("user@example.com")

    assert count_tokens("user@example.com") == 2


def test_issue_invalidate_previous(session_factory, delivery_channel, clock, count_tokens, verification_service):
    codes = iter(["111111", "222222"])
    service = IssuanceService(
        session_factory=session_factory,
        delivery_channel=delivery_channel,
        clock=clock,
        code_generator=lambda: next(codes),
        invalidate_previous=True,
    )

    service.issue("user@example.com")
    service.issue("user@example.com")

    assert count_tokens("user@example.com") == 1
    assert verification_service.verify("user@example.com", "111111").verified is False
    assert verification_service.verify("user@example.com", "222222").verified is True


def test_issue_invalidate_previous_failed_insert_keeps_old_code(session_factory, delivery_channel, clock,
                                                                count_tokens, verification_service):
    """A failed write of the new code leaves earlier codes untouched"""
    IssuanceService(
        session_factory=session_factory,
        delivery_channel=delivery_channel,
        clock=clock,
        code_generator=lambda: "111111",
    ).issue("user@example.com")

    service = IssuanceService(
        session_factory=session_factory,
        delivery_channel=delivery_channel,
        clock=clock,
        code_generator=lambda: "222222",
        invalidate_previous=True,
    )
    db_error = OperationalError("INSERT INTO email_otps", {}, Exception("database is locked"))
    with patch.object(EmailOtpRepository, "insert", side_effect=db_error):
        outcome = service.issue("user@example.com")

    assert outcome.status == IssueStatus.STORAGE_FAILED
    assert count_tokens("user@example.com") == 1
    assert len(delivery_channel.sent) == 1
    assert verification_service.verify("user@example.com", "111111").verified is True
