from __future__ import annotations

from abc import ABC, abstractmethod

from match_alerts.notifications.record import NotificationRecord

SEND_MESSAGE_TIMEOUT = 10  # seconds


class BaseSender(ABC):
    channel: str = ""

    @classmethod
    @abstractmethod
    def is_configured(cls) -> bool:
        """Whether the credentials/URL for this channel are set."""
        ...

    @abstractmethod
    def deliver(self, record: NotificationRecord) -> bool:
        """Send one alert; True only if the channel accepted it."""
        ...
