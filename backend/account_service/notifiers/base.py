"""Abstract base class and types for account notifiers.

A notifier delivers password reset and email verification links to the
account's email address. Adapters only implement transport (deliver());
message composition lives here so every transport sends the same text.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import quote, urlencode

from account_service.core.formatting import format_duration


class NotificationError(Exception):
    """Delivery failed.

    Raised by adapters when the transport rejects or cannot reach the
    message destination. Callers decide whether the failure is fatal.
    """


@dataclass(frozen=True)
class NotifierConfig:
    """Link and expiry settings shared by all notifiers.

    Attributes:
        frontend_url: Base URL of the web app hosting the link pages.
        reset_token_ttl: Lifetime of reset links (shown in the email).
        verification_token_ttl: Lifetime of verification links.
    """

    frontend_url: str
    reset_token_ttl: timedelta
    verification_token_ttl: timedelta


@dataclass(frozen=True)
class EmailMessage:
    """Plain-text email ready for delivery."""

    to: str
    subject: str
    text: str


def _link(base_url: str, path: str, token: str) -> str:
    query = urlencode({"token": token}, quote_via=quote)
    return f"{base_url.rstrip('/')}/{path}?{query}"


class Notifier(ABC):
    """Abstract base class for notifiers.

    WHY AN INTERFACE:
    - Auth flows must be testable without sending email
    - Transport can change (HTTP API, logging) without touching services
    """

    def __init__(self, config: NotifierConfig) -> None:
        """Initialize with link configuration.

        Args:
            config: Frontend URL and token lifetimes.
        """
        self.config = config

    async def send_verification_email(self, email: str, token: str) -> None:
        """Send an email verification link.

        Args:
            email: Recipient address.
            token: Plain (unhashed) verification token.

        Raises:
            NotificationError: If delivery fails.
        """
        url = _link(self.config.frontend_url, "verify-email", token)
        expires_in = format_duration(self.config.verification_token_ttl)
        await self.deliver(
            EmailMessage(
                to=email,
                subject="Verify your email address",
                text=(
                    f"Confirm your email address by opening this link:\n\n{url}\n\n"
                    f"This link expires in {expires_in}. "
                    "If you didn't create an account, you can safely ignore this email."
                ),
            )
        )

    async def send_reset_password_email(self, email: str, token: str) -> None:
        """Send a password reset link.

        Args:
            email: Recipient address.
            token: Plain (unhashed) reset token.

        Raises:
            NotificationError: If delivery fails.
        """
        url = _link(self.config.frontend_url, "reset-password", token)
        expires_in = format_duration(self.config.reset_token_ttl)
        await self.deliver(
            EmailMessage(
                to=email,
                subject="Reset your password",
                text=(
                    "You are receiving this email because a password reset was "
                    f"requested for your account.\n\n{url}\n\n"
                    f"This link expires in {expires_in}. "
                    "If you didn't request a reset, you can safely ignore this email."
                ),
            )
        )

    @abstractmethod
    async def deliver(self, message: EmailMessage) -> None:
        """Deliver a composed message.

        Args:
            message: Message to send.

        Raises:
            NotificationError: If delivery fails.
        """
        ...
