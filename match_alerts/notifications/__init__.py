from match_alerts.notifications.dispatcher import NotificationDispatcher
from match_alerts.notifications.record import NotificationAction, NotificationRecord

__all__ = [
    "NotificationAction",
    "NotificationDispatcher",
    "NotificationRecord",
]
