from __future__ import annotations

import httpx
from loguru import logger

from match_alerts.config import get_settings
from match_alerts.notifications.base import SEND_MESSAGE_TIMEOUT, BaseSender
from match_alerts.notifications.formatter import format_telegram
from match_alerts.notifications.record import NotificationRecord

TELEGRAM_API_BASE = "https://api.telegram.org"


class TelegramSender(BaseSender):
    """Send messages via Telegram Bot API."""

    channel = "telegram"

    def __init__(self):
        settings = get_settings()
        self.bot_token = settings.telegram_bot_token
        self.chat_id = settings.telegram_chat_id

    @classmethod
    def is_configured(cls) -> bool:
        """Check if Telegram credentials are set."""
        settings = get_settings()
        return bool(settings.telegram_bot_token and settings.telegram_chat_id)

    def deliver(self, record: NotificationRecord) -> bool:
        # Alerts that need a tap (match went live) ring; the rest arrive silently
        return self.send(
            format_telegram(record), disable_notification=not record.require_interaction
        )

    def send(self, text: str, disable_notification: bool = False) -> bool:
        """Send a message to the configured Telegram chat.

        Args:
            text: Message text in MarkdownV2 format.
            disable_notification: Deliver without sound.

        Returns:
            True if sent successfully, False otherwise.
        """
        url = f"{TELEGRAM_API_BASE}/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "MarkdownV2",
            "disable_notification": disable_notification,
        }

        try:
            with httpx.Client(timeout=SEND_MESSAGE_TIMEOUT) as client:
                response = client.post(url, json=payload)
                response.raise_for_status()

            logger.info(f"Telegram message sent to chat {self.chat_id}")
            return True
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Telegram API error: {e.response.status_code} - {e.response.text}"
            )
            return False
        except httpx.RequestError as e:
            logger.error(f"Telegram request failed: {e}")
            return False
