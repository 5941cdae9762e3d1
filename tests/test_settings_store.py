import pytest
from pydantic import ValidationError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from match_alerts.db.database import Base
from match_alerts.milestones import Milestone
from match_alerts.models import AppState
from match_alerts.storage.settings import SETTINGS_KEY, NotificationSettings, SettingsStore


@pytest.fixture
def session_factory():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    Base.metadata.drop_all(engine)


class TestNotificationSettings:
    def test_defaults_enable_everything(self):
        settings = NotificationSettings()
        assert settings.enabled is True
        assert settings.enabled_milestones() == frozenset(Milestone)

    def test_camel_case_aliases(self):
        settings = NotificationSettings.model_validate(
            {"notifyPreStartFar": False, "notifyEnd": False}
        )
        assert settings.enabled_milestones() == frozenset(
            {Milestone.pre_start_near, Milestone.started}
        )

    def test_merged_applies_partial(self):
        settings = NotificationSettings().merged({"notifyStart": False})
        assert settings.notify_start is False
        assert settings.notify_end is True

    def test_merged_accepts_snake_case(self):
        settings = NotificationSettings().merged({"enabled": False, "notify_end": False})
        assert settings.enabled is False
        assert Milestone.ended not in settings.enabled_milestones()

    def test_merged_ignores_unknown_keys(self):
        settings = NotificationSettings().merged({"backgroundCheck": True})
        assert settings == NotificationSettings()

    def test_merged_rejects_bad_values(self):
        with pytest.raises(ValidationError):
            NotificationSettings().merged({"enabled": "sometimes"})

    def test_to_public_uses_camel_case(self):
        assert NotificationSettings().to_public() == {
            "enabled": True,
            "notifyPreStartFar": True,
            "notifyPreStartNear": True,
            "notifyStart": True,
            "notifyEnd": True,
        }


class TestSettingsStore:
    def test_load_default_when_missing(self, session_factory):
        store = SettingsStore(session_factory)
        default = NotificationSettings(enabled=False)
        assert store.load(default) == default

    def test_save_and_load(self, session_factory):
        store = SettingsStore(session_factory)
        store.save(NotificationSettings().merged({"notifyEnd": False}))
        store.save(NotificationSettings().merged({"notifyStart": False}))

        loaded = store.load()
        assert loaded.notify_start is False
        assert loaded.notify_end is True

        with session_factory() as session:
            assert session.query(AppState).count() == 1

    def test_invalid_stored_value_falls_back(self, session_factory):
        with session_factory() as session:
            session.add(AppState(key=SETTINGS_KEY, value={"enabled": "maybe"}))
            session.commit()

        assert SettingsStore(session_factory).load() == NotificationSettings()
