"""Slack incoming-webhook notifier."""

from __future__ import annotations
from typing import Optional

import requests

from parcel_notifier.logging import logger


DEFAULT_USERNAME = "YAMATO"
DEFAULT_TIMEOUT = 10


class NotificationError(Exception):
    """Raised when the webhook does not accept a notification."""
    pass


class SlackWebhookNotifier:
    """
    Posts plain-text messages to a Slack incoming webhook.

    Payload is `{"text": ..., "username": ...}`. Delivery is attempted once;
    any failure raises NotificationError so the caller can abort the cycle
    instead of losing the notification.
    """

    def __init__(
        self,
        webhook_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.webhook_url = webhook_url
        self.session = session or requests.Session()
        self.timeout = timeout

    def post(self, text: str, username: str = DEFAULT_USERNAME) -> None:
        payload = {"text": text, "username": username}
        try:
            response = self.session.post(self.webhook_url, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.error("Failed to post Slack notification: request timed out")
            raise NotificationError("Slack webhook timed out") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to post Slack notification: {e}")
            raise NotificationError(f"Slack webhook request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            error_msg = f"HTTP {response.status_code}: {response.text[:200]}"
            logger.error(f"Failed to post Slack notification: {error_msg}")
            raise NotificationError(f"Slack webhook rejected notification: {error_msg}")

        logger.info(f"Posted Slack notification as {username!r} ({len(text)} chars)")
