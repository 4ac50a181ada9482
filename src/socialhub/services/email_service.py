"""
Outbound email for one-time codes.

The auth service only depends on ``EmailSender``; deployments inject a real
transport. ``LoggingEmailSender`` is the default and writes messages to the
log instead of delivering them.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    body: str


def verification_message(email: str, code: str, ttl_minutes: int) -> EmailMessage:
    return EmailMessage(
        to=email,
        subject="Verify Your Email - SocialHub",
        body=(
            f"Your verification code is: {code}\n\n"
            f"This code will expire in {ttl_minutes} minutes.\n"
            "If you didn't request this verification, please ignore this email."
        ),
    )


def password_reset_message(email: str, code: str, ttl_minutes: int) -> EmailMessage:
    return EmailMessage(
        to=email,
        subject="Reset Your Password - SocialHub",
        body=(
            f"Your password reset code is: {code}\n\n"
            f"This code will expire in {ttl_minutes} minutes.\n"
            "If you didn't request a password reset, please ignore this email."
        ),
    )


class EmailSender(ABC):
    """Delivery interface for outgoing messages."""

    @abstractmethod
    async def send(self, message: EmailMessage) -> None:
        """Deliver ``message``; raise if delivery fails."""


class LoggingEmailSender(EmailSender):
    """Sender that logs messages instead of delivering them."""

    async def send(self, message: EmailMessage) -> None:
        logger.info(f"Email to {message.to}: {message.subject}")
        logger.debug(message.body)
