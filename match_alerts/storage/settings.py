from __future__ import annotations

from typing import Any, Dict, FrozenSet, Mapping, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from match_alerts.exceptions import PersistenceError
from match_alerts.milestones import Milestone
from match_alerts.models.app_state import AppState

SETTINGS_KEY = "notification_settings"


class NotificationSettings(BaseModel):
    """Runtime switches, changeable while the scheduler is running."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    enabled: bool = True
    notify_pre_start_far: bool = Field(default=True, alias="notifyPreStartFar")
    notify_pre_start_near: bool = Field(default=True, alias="notifyPreStartNear")
    notify_start: bool = Field(default=True, alias="notifyStart")
    notify_end: bool = Field(default=True, alias="notifyEnd")

    def enabled_milestones(self) -> FrozenSet[Milestone]:
        flags = {
            Milestone.pre_start_far: self.notify_pre_start_far,
            Milestone.pre_start_near: self.notify_pre_start_near,
            Milestone.started: self.notify_start,
            Milestone.ended: self.notify_end,
        }
        return frozenset(kind for kind, on in flags.items() if on)

    def merged(self, partial: Mapping[str, Any]) -> "NotificationSettings":
        """New settings with the recognised keys of ``partial`` applied (camelCase or snake_case)."""
        data = self.model_dump()
        data.update(partial)
        return NotificationSettings.model_validate(data)

    def to_public(self) -> Dict[str, bool]:
        return self.model_dump(by_alias=True)


class SettingsStore:
    """Reads and writes the settings object as one whole JSON value."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def load(self, default: Optional[NotificationSettings] = None) -> NotificationSettings:
        default = default or NotificationSettings()
        try:
            with self.session_factory() as session:
                row = session.get(AppState, SETTINGS_KEY)
                value = row.value if row is not None else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load settings: {e}") from e

        if value is None:
            return default
        try:
            return NotificationSettings.model_validate(value)
        except ValidationError as e:
            logger.warning(f"Stored settings are invalid, using defaults: {e}")
            return default

    def save(self, settings: NotificationSettings) -> None:
        try:
            with self.session_factory() as session:
                row = session.get(AppState, SETTINGS_KEY)
                if row is None:
                    session.add(AppState(key=SETTINGS_KEY, value=settings.to_public()))
                else:
                    row.value = settings.to_public()
                session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save settings: {e}") from e
