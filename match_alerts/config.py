from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Environment
    environment: str = "development"  # "development" or "production"

    # Database
    database_url: str = "sqlite:///./data/match_alerts.db"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False

    # Match feed
    feed_url: str = ""
    feed_timeout_seconds: float = 10.0

    # Scheduler
    check_interval_seconds: int = 60
    initial_check_delay_seconds: int = 5
    dedup_retention_hours: int = 24
    default_duration_minutes: int = 360
    # Drop the dedup key when every channel rejected the alert, so the next tick retries
    retract_on_failure: bool = False

    # Notification content
    app_base_url: str = "/"
    icon_url: str = "/icon-192.png"
    badge_url: str = "/icon-192.png"

    # Delivery channels
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    discord_webhook_url: str = ""
    webhook_url: str = ""
    notification_enabled: bool = True

    # CORS (comma-separated origins, empty means localhost only)
    cors_origins: str = ""

    # Admin
    admin_api_key: str = ""

    # Logging
    log_level: str = "INFO"
    log_file: str = ""

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
