"""Email delivery via the Resend API.

Simple HTTP POST to Resend with a plain-text body.
"""

import logging

import httpx
from pydantic import SecretStr

from account_service.notifiers.base import (
    EmailMessage,
    NotificationError,
    Notifier,
    NotifierConfig,
)

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0


class ResendNotifier(Notifier):
    """Notifier that posts messages to the Resend HTTP API.

    Args:
        config: Link configuration.
        api_key: Resend API key.
        sender: From address.
    """

    def __init__(
        self,
        config: NotifierConfig,
        *,
        api_key: SecretStr,
        sender: str,
    ) -> None:
        super().__init__(config)
        self._api_key = api_key
        self._sender = sender

    async def deliver(self, message: EmailMessage) -> None:
        """POST the message to Resend.

        Raises:
            NotificationError: On transport errors or non-2xx responses.
        """
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    _RESEND_API_URL,
                    headers={
                        "Authorization": f"Bearer {self._api_key.get_secret_value()}",
                    },
                    json={
                        "from": self._sender,
                        "to": message.to,
                        "subject": message.subject,
                        "text": message.text,
                    },
                    timeout=_RESEND_TIMEOUT,
                )
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Failed to send email via Resend", exc_info=True)
            raise NotificationError("Email delivery failed") from exc
