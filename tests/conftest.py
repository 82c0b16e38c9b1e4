# tests/conftest.py

import os
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before the package reads its configuration
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("OTP_CREATE_TABLES", "false")
os.environ.setdefault("OTP_ALLOW_DEV_MODE", "true")
os.environ.setdefault("OTP_EXPIRY_MINUTES", "5")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")

from otp_common.db.models import Base, EmailOtpToken  # noqa: E402
from otp_common.verification.delivery import DeliveryChannel, DeliveryReceipt, DisabledDeliveryChannel  # noqa: E402
from otp_common.verification.issuance_service import IssuanceService  # noqa: E402
from otp_common.verification.verification_service import VerificationService  # noqa: E402


class MutableClock:
    """Callable clock that tests can move forward"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingDeliveryChannel(DeliveryChannel):
    """Delivery channel that keeps sent messages in memory"""

    provider = "recording"

    def __init__(self, error: Exception = None):
        self.sent = []
        self.error = error

    def send(self, recipient, subject, html, text):
        if self.error is not None:
            raise self.error
        self.sent.append({"recipient": recipient, "subject": subject, "html": html, "text": text})
        return DeliveryReceipt(provider=self.provider, message_id=f"msg_{len(self.sent)}")


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return MutableClock(datetime(2024, 5, 1, 12, 0, 0))


@pytest.fixture
def delivery_channel():
    return RecordingDeliveryChannel()


@pytest.fixture
def issuance_service(session_factory, delivery_channel, clock):
    return IssuanceService(
        session_factory=session_factory,
        delivery_channel=delivery_channel,
        clock=clock,
        allow_dev_mode=True,
        invalidate_previous=False,
    )


@pytest.fixture
def dev_issuance_service(session_factory, clock):
    """Issuance without email credentials: codes come back in the outcome"""
    return IssuanceService(
        session_factory=session_factory,
        delivery_channel=DisabledDeliveryChannel(),
        clock=clock,
        allow_dev_mode=True,
        invalidate_previous=False,
    )


@pytest.fixture
def verification_service(session_factory, clock):
    return VerificationService(session_factory=session_factory, clock=clock)


@pytest.fixture
def count_tokens(session_factory):
    """Return a helper counting stored tokens, optionally for one email"""

    def _count(email=None):
        session = session_factory()
        try:
            query = session.query(EmailOtpToken)
            if email is not None:
                query = query.filter(EmailOtpToken.email == email)
            return query.count()
        finally:
            session.close()

    return _count


@pytest.fixture
def make_channel():
    """Factory for recording channels, optionally failing with `error`"""

    def _make(error: Exception = None):
        return RecordingDeliveryChannel(error=error)

    return _make
