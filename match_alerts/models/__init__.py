from match_alerts.models.app_state import AppState
from match_alerts.models.notification_log import NotificationLog

__all__ = [
    "AppState",
    "NotificationLog",
]
