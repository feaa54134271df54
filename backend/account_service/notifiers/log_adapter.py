"""Notifier that only logs (local development).

Security: the message body contains the plain token, so only the recipient
and subject are logged.
"""

import logging

from account_service.notifiers.base import EmailMessage, Notifier

logger = logging.getLogger(__name__)


class LogNotifier(Notifier):
    """Notifier that records deliveries in the application log."""

    async def deliver(self, message: EmailMessage) -> None:
        logger.info(
            "Email not sent (log backend): to=%s subject=%s",
            message.to,
            message.subject,
        )
