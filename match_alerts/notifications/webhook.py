from __future__ import annotations

import httpx
from loguru import logger

from match_alerts.config import get_settings
from match_alerts.notifications.base import SEND_MESSAGE_TIMEOUT, BaseSender
from match_alerts.notifications.record import NotificationRecord


class WebhookSender(BaseSender):
    """POST the full notification record as JSON, e.g. to a push gateway."""

    channel = "webhook"

    def __init__(self):
        settings = get_settings()
        self.webhook_url = settings.webhook_url

    @classmethod
    def is_configured(cls) -> bool:
        settings = get_settings()
        return bool(settings.webhook_url)

    def deliver(self, record: NotificationRecord) -> bool:
        try:
            with httpx.Client(timeout=SEND_MESSAGE_TIMEOUT) as client:
                response = client.post(self.webhook_url, json=record.to_payload())
                response.raise_for_status()

            logger.info(f"Webhook notification sent: {record.tag}")
            return True
        except httpx.HTTPStatusError as e:
            logger.error(f"Webhook error: {e.response.status_code} - {e.response.text}")
            return False
        except httpx.RequestError as e:
            logger.error(f"Webhook request failed: {e}")
            return False
