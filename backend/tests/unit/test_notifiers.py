"""Tests for notifiers: message composition, adapters, and factory."""

import logging
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from pydantic import SecretStr

from account_service.core.config import Settings
from account_service.notifiers import (
    LogNotifier,
    MockNotifier,
    NotificationError,
    NotifierConfig,
    ResendNotifier,
    factory,
    get_notifier,
    reset_notifier,
)

_TOKEN = "ab" * 32  # nosec B105
_EMAIL = "alice@example.com"
_CONFIG = NotifierConfig(
    frontend_url="https://app.example.com/",
    reset_token_ttl=timedelta(hours=1),
    verification_token_ttl=timedelta(days=1),
)


class TestMessageComposition:
    """Notifier.send_* compose the same text for every transport."""

    async def test_verification_email_links_to_verify_page(self):
        notifier = MockNotifier(_CONFIG)
        await notifier.send_verification_email(_EMAIL, _TOKEN)

        message = notifier.messages[0]
        assert message.to == _EMAIL
        assert message.subject == "Verify your email address"
        assert f"https://app.example.com/verify-email?token={_TOKEN}" in message.text
        assert "expires in 1 day" in message.text

    async def test_reset_email_links_to_reset_page(self):
        notifier = MockNotifier(_CONFIG)
        await notifier.send_reset_password_email(_EMAIL, _TOKEN)

        message = notifier.messages[0]
        assert message.subject == "Reset your password"
        assert f"https://app.example.com/reset-password?token={_TOKEN}" in message.text
        assert "expires in 1 hour" in message.text


class TestMockNotifier:
    async def test_records_calls(self):
        notifier = MockNotifier()
        await notifier.send_verification_email(_EMAIL, _TOKEN)

        assert notifier.calls == [
            {"method": "send_verification_email", "email": _EMAIL, "token": _TOKEN}
        ]
        assert notifier.last_token("send_verification_email") == _TOKEN

    async def test_fail_flag_raises(self):
        notifier = MockNotifier()
        notifier.fail = True
        with pytest.raises(NotificationError):
            await notifier.send_reset_password_email(_EMAIL, _TOKEN)
        assert notifier.messages == []

    def test_last_token_without_call_raises(self):
        with pytest.raises(AssertionError):
            MockNotifier().last_token("send_reset_password_email")


class TestLogNotifier:
    async def test_logs_recipient_but_not_token(self, caplog):
        notifier = LogNotifier(_CONFIG)
        with caplog.at_level(logging.INFO):
            await notifier.send_reset_password_email(_EMAIL, _TOKEN)

        assert _EMAIL in caplog.text
        assert _TOKEN not in caplog.text


def _mock_client(response: MagicMock | None = None, error: Exception | None = None):
    client = AsyncMock()
    if error is not None:
        client.post.side_effect = error
    else:
        client.post.return_value = response
    client.__aenter__.return_value = client
    client.__aexit__.return_value = None
    return client


class TestResendNotifier:
    """Tests for ResendNotifier.deliver()."""

    def _notifier(self) -> ResendNotifier:
        return ResendNotifier(
            _CONFIG,
            api_key=SecretStr("re_test_key"),
            sender="noreply@example.com",
        )

    async def test_posts_message_to_resend(self):
        response = MagicMock()
        response.raise_for_status.return_value = None
        client = _mock_client(response)

        with patch(
            "account_service.notifiers.resend_adapter.httpx.AsyncClient",
            return_value=client,
        ):
            await self._notifier().send_verification_email(_EMAIL, _TOKEN)

        client.post.assert_awaited_once()
        kwargs = client.post.call_args.kwargs
        assert kwargs["headers"]["Authorization"] == "Bearer re_test_key"
        assert kwargs["json"]["to"] == _EMAIL
        assert kwargs["json"]["from"] == "noreply@example.com"
        assert _TOKEN in kwargs["json"]["text"]

    async def test_transport_error_raises_notification_error(self):
        client = _mock_client(error=httpx.ConnectError("unreachable"))

        with (
            patch(
                "account_service.notifiers.resend_adapter.httpx.AsyncClient",
                return_value=client,
            ),
            pytest.raises(NotificationError),
        ):
            await self._notifier().send_reset_password_email(_EMAIL, _TOKEN)

    async def test_http_error_status_raises_notification_error(self):
        request = httpx.Request("POST", "https://api.resend.com/emails")
        response = MagicMock()
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "422", request=request, response=httpx.Response(422, request=request)
        )
        client = _mock_client(response)

        with (
            patch(
                "account_service.notifiers.resend_adapter.httpx.AsyncClient",
                return_value=client,
            ),
            pytest.raises(NotificationError),
        ):
            await self._notifier().send_reset_password_email(_EMAIL, _TOKEN)


class TestNotifierFactory:
    """Tests for get_notifier() / reset_notifier()."""

    @pytest.fixture(autouse=True)
    def _reset(self):
        reset_notifier()
        yield
        reset_notifier()

    def test_log_backend(self):
        notifier = get_notifier(Settings(email_backend="log"))
        assert isinstance(notifier, LogNotifier)

    def test_resend_backend(self):
        notifier = get_notifier(
            Settings(email_backend="resend", resend_api_key="re_test_key")
        )
        assert isinstance(notifier, ResendNotifier)

    def test_returns_singleton(self):
        first = get_notifier(Settings(email_backend="log"))
        assert get_notifier() is first

    def test_config_derived_from_settings(self):
        notifier = get_notifier(
            Settings(
                frontend_url="https://accounts.example.com",
                reset_password_token_ttl_ms=1_800_000,
            )
        )
        assert notifier.config.frontend_url == "https://accounts.example.com"
        assert notifier.config.reset_token_ttl == timedelta(minutes=30)

    def test_reset_clears_singleton(self):
        get_notifier(Settings(email_backend="log"))
        reset_notifier()
        assert factory._notifier is None

    def test_unknown_backend_raises(self):
        bogus = MagicMock(spec=Settings)
        bogus.email_backend = "pigeon"
        bogus.frontend_url = "http://localhost:8080"
        bogus.reset_password_token_ttl_ms = 1000
        bogus.email_verification_token_ttl_ms = 1000
        with pytest.raises(ValueError, match="Unknown email backend"):
            get_notifier(bogus)
