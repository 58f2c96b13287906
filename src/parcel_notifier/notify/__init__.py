"""Outbound notification channel."""

from parcel_notifier.notify.slack import (
    DEFAULT_USERNAME,
    NotificationError,
    SlackWebhookNotifier,
)

__all__ = ["DEFAULT_USERNAME", "NotificationError", "SlackWebhookNotifier"]
