"""Mock notifier for testing.

MockNotifier enables testing auth flows without sending email.
"""

from datetime import timedelta
from typing import Any

from account_service.notifiers.base import (
    EmailMessage,
    NotificationError,
    Notifier,
    NotifierConfig,
)

_DEFAULT_CONFIG = NotifierConfig(
    frontend_url="http://localhost:8080",
    reset_token_ttl=timedelta(hours=1),
    verification_token_ttl=timedelta(days=1),
)


class MockNotifier(Notifier):
    """Mock notifier that records calls instead of sending.

    Attributes:
        calls: Record of send_* invocations (method, email, token).
        messages: Composed messages that would have been delivered.
        fail: When True, deliver() raises NotificationError.
    """

    def __init__(self, config: NotifierConfig | None = None) -> None:
        super().__init__(config or _DEFAULT_CONFIG)
        self.calls: list[dict[str, Any]] = []
        self.messages: list[EmailMessage] = []
        self.fail = False

    async def send_verification_email(self, email: str, token: str) -> None:
        self.calls.append(
            {"method": "send_verification_email", "email": email, "token": token}
        )
        await super().send_verification_email(email, token)

    async def send_reset_password_email(self, email: str, token: str) -> None:
        self.calls.append(
            {"method": "send_reset_password_email", "email": email, "token": token}
        )
        await super().send_reset_password_email(email, token)

    async def deliver(self, message: EmailMessage) -> None:
        if self.fail:
            raise NotificationError("Mock delivery failure")
        self.messages.append(message)

    def last_token(self, method: str) -> str:
        """Return the token from the most recent call to ``method``.

        Raises:
            AssertionError: If the method was never called.
        """
        for call in reversed(self.calls):
            if call["method"] == method:
                return call["token"]
        raise AssertionError(f"{method} was not called")
