from datetime import datetime, timezone

import pytest

from match_alerts.feed.base import Event
from match_alerts.milestones import Milestone
from match_alerts.notifications.formatter import (
    COLOR_TEST,
    MILESTONE_COLORS,
    build_milestone_notification,
    build_test_notification,
    escape_markdown_v2,
    format_discord_embed,
    format_telegram,
)

START = datetime(2026, 3, 1, 14, 0, tzinfo=timezone.utc)


@pytest.fixture
def event():
    return Event(
        team1="India",
        team2="Pakistan",
        start=START,
        icon_url="https://cdn.example.com/ind.png",
    )


class TestEscapeMarkdownV2:
    def test_escape_special_chars(self):
        text = "Hello_World! Price: $100.00 (50% off)"
        escaped = escape_markdown_v2(text)
        assert escaped == r"Hello\_World\! Price: $100\.00 \(50% off\)"

    def test_no_escape_needed(self):
        assert escape_markdown_v2("Hello World") == "Hello World"


class TestBuildMilestoneNotification:
    def test_pre_start_far(self, event):
        record = build_milestone_notification(event, Milestone.pre_start_far)

        assert record.title == "🏏 Match Starting Soon!"
        assert record.body == "India vs Pakistan starts in 15 minutes"
        assert record.tag == f"match-pre_start_far-{event.event_id}"
        assert record.icon == "https://cdn.example.com/ind.png"
        assert record.require_interaction is False
        assert record.data["eventId"] == event.event_id
        assert record.data["milestone"] == "pre_start_far"

    def test_pre_start_near(self, event):
        record = build_milestone_notification(event, Milestone.pre_start_near)
        assert record.body == "India vs Pakistan starts in 5 minutes"

    def test_started_requires_interaction(self, event):
        record = build_milestone_notification(event, Milestone.started)

        assert record.title == "🔴 LIVE NOW!"
        assert record.require_interaction is True
        assert [a.action for a in record.actions] == ["watch", "close"]
        assert record.url.endswith("#live")

    def test_ended(self, event):
        record = build_milestone_notification(event, Milestone.ended)
        assert record.title == "🏁 Match Finished"
        assert record.body == "India vs Pakistan has ended"
        assert [a.action for a in record.actions] == ["view", "close"]

    def test_tags_differ_per_milestone(self, event):
        tags = {build_milestone_notification(event, m).tag for m in Milestone}
        assert len(tags) == 4

    def test_default_icon(self):
        event = Event(team1="A", team2="B", start=START)
        record = build_milestone_notification(event, Milestone.started)
        assert record.icon == "/icon-192.png"


class TestBuildTestNotification:
    def test_plain(self):
        record = build_test_notification()
        assert record.tag == "test-notification"
        assert record.data == {"test": True}

    def test_milestone_preview(self):
        now = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
        record = build_test_notification(Milestone.started, now)

        assert record.title == "🔴 LIVE NOW!"
        assert "India vs Pakistan" in record.body
        assert record.tag == f"test-started-{int(now.timestamp())}"
        assert record.data["test"] is True


class TestChannelFormats:
    def test_telegram(self, event):
        record = build_milestone_notification(event, Milestone.ended)
        text = format_telegram(record)
        assert text.startswith("*🏁 Match Finished*")
        assert "India vs Pakistan has ended" in text

    def test_discord_embed(self, event):
        record = build_milestone_notification(event, Milestone.started)
        embed = format_discord_embed(record)

        assert embed["title"] == "🔴 LIVE NOW!"
        assert embed["color"] == MILESTONE_COLORS[Milestone.started]
        assert embed["thumbnail"] == {"url": "https://cdn.example.com/ind.png"}
        assert "url" not in embed  # relative deep link

    def test_discord_embed_for_test_notification(self):
        embed = format_discord_embed(build_test_notification())
        assert embed["color"] == COLOR_TEST

    def test_payload_shape(self, event):
        payload = build_milestone_notification(event, Milestone.started).to_payload()

        assert payload["requireInteraction"] is True
        assert payload["actions"][0] == {"action": "watch", "title": "Watch Now"}
        assert payload["data"]["milestone"] == "started"
