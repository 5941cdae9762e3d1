from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from match_alerts.config import get_settings
from match_alerts.notifications.base import SEND_MESSAGE_TIMEOUT, BaseSender
from match_alerts.notifications.formatter import format_discord_embed
from match_alerts.notifications.record import NotificationRecord


class DiscordSender(BaseSender):
    """Send messages via Discord Webhook."""

    channel = "discord"

    def __init__(self):
        settings = get_settings()
        self.webhook_url = settings.discord_webhook_url

    @classmethod
    def is_configured(cls) -> bool:
        """Check if Discord webhook URL is set."""
        settings = get_settings()
        return bool(settings.discord_webhook_url)

    def deliver(self, record: NotificationRecord) -> bool:
        return self.send("", embeds=[format_discord_embed(record)])

    def send(self, text: str, embeds: Optional[List[Dict[str, Any]]] = None) -> bool:
        """Post to the configured webhook.

        Returns:
            True if sent successfully, False otherwise.
        """
        payload: Dict[str, Any] = {}
        if text:
            payload["content"] = text
        if embeds:
            payload["embeds"] = embeds

        if not payload:
            logger.warning("Discord send called with no content")
            return False

        try:
            with httpx.Client(timeout=SEND_MESSAGE_TIMEOUT) as client:
                response = client.post(self.webhook_url, json=payload)
                response.raise_for_status()

            logger.info("Discord webhook message sent")
            return True
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Discord webhook error: {e.response.status_code} - {e.response.text}"
            )
            return False
        except httpx.RequestError as e:
            logger.error(f"Discord webhook request failed: {e}")
            return False
