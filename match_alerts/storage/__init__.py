from match_alerts.storage.dedup import DedupKey, DedupStore
from match_alerts.storage.settings import NotificationSettings, SettingsStore

__all__ = [
    "DedupKey",
    "DedupStore",
    "NotificationSettings",
    "SettingsStore",
]
