"""Notifier factory functions.

Singleton pattern for the notifier instance.
"""

from datetime import timedelta

from account_service.core.config import Settings, settings
from account_service.notifiers.base import Notifier, NotifierConfig
from account_service.notifiers.log_adapter import LogNotifier
from account_service.notifiers.resend_adapter import ResendNotifier

_notifier: Notifier | None = None


def notifier_config_from_settings(app_settings: Settings) -> NotifierConfig:
    """Derive link configuration from application settings."""
    return NotifierConfig(
        frontend_url=app_settings.frontend_url,
        reset_token_ttl=timedelta(
            milliseconds=app_settings.reset_password_token_ttl_ms
        ),
        verification_token_ttl=timedelta(
            milliseconds=app_settings.email_verification_token_ttl_ms
        ),
    )


def get_notifier(app_settings: Settings | None = None) -> Notifier:
    """Get or create the notifier singleton.

    Args:
        app_settings: Optional settings. Defaults to the process settings.

    Returns:
        Notifier selected by EMAIL_BACKEND.

    Raises:
        ValueError: If the configured backend is unknown.
    """
    global _notifier

    if _notifier is None:
        app_settings = app_settings or settings
        config = notifier_config_from_settings(app_settings)

        if app_settings.email_backend == "resend":
            _notifier = ResendNotifier(
                config,
                api_key=app_settings.resend_api_key,
                sender=app_settings.email_from,
            )
        elif app_settings.email_backend == "log":
            _notifier = LogNotifier(config)
        else:
            raise ValueError(f"Unknown email backend: {app_settings.email_backend}")

    return _notifier


def reset_notifier() -> None:
    """Reset the singleton (tests inject their own instance)."""
    global _notifier
    _notifier = None
