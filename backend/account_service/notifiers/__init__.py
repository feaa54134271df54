"""Notifier abstraction layer.

Exports:
    Notifier, NotifierConfig, EmailMessage, NotificationError
    LogNotifier, MockNotifier, ResendNotifier adapters
    Factory functions for the notifier instance
"""

from account_service.notifiers.base import (
    EmailMessage,
    NotificationError,
    Notifier,
    NotifierConfig,
)
from account_service.notifiers.factory import get_notifier, reset_notifier
from account_service.notifiers.log_adapter import LogNotifier
from account_service.notifiers.mock_adapter import MockNotifier
from account_service.notifiers.resend_adapter import ResendNotifier

__all__ = [
    "EmailMessage",
    "LogNotifier",
    "MockNotifier",
    "NotificationError",
    "Notifier",
    "NotifierConfig",
    "ResendNotifier",
    "get_notifier",
    "reset_notifier",
]
