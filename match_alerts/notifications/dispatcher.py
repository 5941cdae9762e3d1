from __future__ import annotations

from typing import List, Optional, Sequence, Type

from loguru import logger

from match_alerts.exceptions import DeliveryError
from match_alerts.notifications.base import BaseSender
from match_alerts.notifications.discord import DiscordSender
from match_alerts.notifications.record import NotificationRecord
from match_alerts.notifications.telegram import TelegramSender
from match_alerts.notifications.webhook import WebhookSender

SENDER_CLASSES: Sequence[Type[BaseSender]] = (WebhookSender, TelegramSender, DiscordSender)


class NotificationDispatcher:
    """Delivers one notification to every configured channel."""

    def __init__(self, senders: Optional[Sequence[BaseSender]] = None):
        if senders is None:
            senders = [cls() for cls in SENDER_CLASSES if cls.is_configured()]
        self.senders = list(senders)

    @property
    def channels(self) -> List[str]:
        return [sender.channel for sender in self.senders]

    def deliver(self, record: NotificationRecord) -> List[str]:
        """Send ``record`` through every channel.

        Returns:
            Names of the channels that accepted it.

        Raises:
            DeliveryError: No channel is configured, or every channel failed.
        """
        if not self.senders:
            raise DeliveryError(f"No delivery channel configured for {record.tag}")

        delivered = []
        for sender in self.senders:
            try:
                ok = sender.deliver(record)
            except Exception as e:
                logger.error(f"{sender.channel}: unexpected error sending {record.tag}: {e}")
                ok = False
            if ok:
                delivered.append(sender.channel)
            else:
                logger.warning(f"{sender.channel}: failed to send {record.tag}")

        if not delivered:
            raise DeliveryError(
                f"All channels failed for {record.tag}: {', '.join(self.channels)}"
            )
        return delivered
