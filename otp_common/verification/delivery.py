# otp_common/verification/delivery.py

import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import requests

from otp_common.config import (
    EMAIL_CONFIG,
    ENVIRONMENT,
    is_smtp_configured,
    is_valid_resend_api_key,
)
from otp_common.utils.logging_config import log_operation, log_context, mask_email
from otp_common.verification.errors import DeliveryError

# Import the common verification logger
from . import logger


@dataclass
class DeliveryReceipt:
    provider: str
    message_id: Optional[str] = None


class DeliveryChannel(ABC):
    """
    Outbound channel for verification codes.

    Implementations make exactly one attempt per call and raise DeliveryError
    when the provider does not accept the message.
    """

    provider = "none"

    @property
    def configured(self) -> bool:
        return True

    @abstractmethod
    def send(self, recipient: str, subject: str, html: str, text: str) -> DeliveryReceipt:
        """
        Send a message to a single recipient.

        Args:
            recipient: Destination email address
            subject: Message subject
            html: HTML body
            text: Plain text body

        Returns:
            Receipt with the provider message id when the provider returns one
        """


class DisabledDeliveryChannel(DeliveryChannel):
    """No credentials available; issuance falls back to degraded mode"""

    provider = "disabled"

    @property
    def configured(self) -> bool:
        return False

    def send(self, recipient: str, subject: str, html: str, text: str) -> DeliveryReceipt:
        raise DeliveryError("Email delivery is not configured", provider=self.provider)


class ResendDeliveryChannel(DeliveryChannel):
    """Resend transactional email HTTP API"""

    provider = "resend"

    def __init__(self, api_key: str, from_email: str,
                 api_url: str = EMAIL_CONFIG["resend_api_url"],
                 timeout: float = EMAIL_CONFIG["timeout_seconds"],
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.from_email = from_email
        self.api_url = api_url
        self.timeout = timeout
        self.session = session or requests.Session()

    @log_operation("send_via_resend", logger=logger)
    def send(self, recipient: str, subject: str, html: str, text: str) -> DeliveryReceipt:
        with log_context(logger, recipient=mask_email(recipient), provider=self.provider):
            payload = {
                "from": self.from_email,
                "to": [recipient],
                "subject": subject,
                "html": html,
                "text": text,
                "tags": [
                    {"name": "category", "value": "otp"},
                    {"name": "environment", "value": ENVIRONMENT},
                ],
            }

            try:
                resp = self.session.post(
                    self.api_url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                raise DeliveryError(str(e), provider=self.provider, error_code=type(e).__name__) from e

            if resp.status_code >= 300:
                try:
                    body = resp.json()
                except ValueError:
                    body = {}
                if not isinstance(body, dict):
                    body = {}
                raise DeliveryError(
                    body.get("message") or f"Resend send failed ({resp.status_code}): {resp.text[:200]}",
                    provider=self.provider,
                    error_code=body.get("name"),
                    status_code=resp.status_code,
                )

            # Accepted even when the body carries no usable id
            try:
                body = resp.json()
            except ValueError:
                body = {}
            message_id = body.get("id") if isinstance(body, dict) else None

            logger.info("Sent verification email via Resend", extra={
                'message_id': message_id
            })
            return DeliveryReceipt(provider=self.provider, message_id=message_id)


class SmtpDeliveryChannel(DeliveryChannel):
    """Plain SMTP with STARTTLS and login"""

    provider = "smtp"

    def __init__(self, host: str, port: int, username: str, password: str, from_email: str,
                 timeout: float = EMAIL_CONFIG["timeout_seconds"]):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.timeout = timeout

    @log_operation("send_via_smtp", logger=logger)
    def send(self, recipient: str, subject: str, html: str, text: str) -> DeliveryReceipt:
        with log_context(logger, recipient=mask_email(recipient), provider=self.provider):
            msg = MIMEMultipart("alternative")
            msg["From"] = self.from_email
            msg["To"] = recipient
            msg["Subject"] = subject
            msg.attach(MIMEText(text, "plain"))
            msg.attach(MIMEText(html, "html"))

            try:
                with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                    server.starttls()
                    server.login(self.username, self.password)
                    server.send_message(msg)
            except smtplib.SMTPAuthenticationError as e:
                raise DeliveryError("SMTP authentication failed",
                                    provider=self.provider, error_code=type(e).__name__,
                                    status_code=e.smtp_code) from e
            except (smtplib.SMTPException, OSError) as e:
                raise DeliveryError(str(e), provider=self.provider, error_code=type(e).__name__) from e

            logger.info("Sent verification email via SMTP", extra={
                'smtp_host': self.host,
                'smtp_port': self.port
            })
            return DeliveryReceipt(provider=self.provider)


def build_delivery_channel() -> DeliveryChannel:
    """
    Choose the delivery channel from configuration.

    Falls back to DisabledDeliveryChannel when the selected provider has no
    usable credentials, which puts issuance into degraded (dev) mode.
    """
    provider = EMAIL_CONFIG["provider"]

    with log_context(logger, provider=provider):
        if provider == "resend":
            if is_valid_resend_api_key(EMAIL_CONFIG["resend_api_key"]):
                return ResendDeliveryChannel(
                    api_key=EMAIL_CONFIG["resend_api_key"],
                    from_email=EMAIL_CONFIG["from_email"],
                )
        elif provider == "smtp":
            if is_smtp_configured():
                return SmtpDeliveryChannel(
                    host=EMAIL_CONFIG["smtp_host"],
                    port=EMAIL_CONFIG["smtp_port"],
                    username=EMAIL_CONFIG["smtp_username"],
                    password=EMAIL_CONFIG["smtp_password"],
                    from_email=EMAIL_CONFIG["from_email"],
                )
        else:
            logger.error("Unknown email provider", extra={'provider': provider})

        logger.warning("Email delivery not configured, verification codes will not be sent")
        return DisabledDeliveryChannel()
