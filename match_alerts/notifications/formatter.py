from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from urllib.parse import urljoin

from match_alerts.config import get_settings
from match_alerts.feed.base import Event
from match_alerts.milestones import MILESTONE_RULES, Milestone
from match_alerts.notifications.record import NotificationAction, NotificationRecord

# Telegram MarkdownV2 requires escaping these characters
_TELEGRAM_ESCAPE_CHARS = re.compile(r"([_*\[\]()~`>#+\-=|{}.!\\])")

# Discord embed colors by milestone
MILESTONE_COLORS = {
    Milestone.pre_start_far: 0x3399FF,  # blue
    Milestone.pre_start_near: 0xFF9900,  # orange
    Milestone.started: 0xE74C3C,  # red
    Milestone.ended: 0x95A5A6,  # grey
}
COLOR_TEST = 0x00CC66  # green

VIEW_ACTIONS = [NotificationAction("view", "View Match"), NotificationAction("close", "Dismiss")]
WATCH_ACTIONS = [NotificationAction("watch", "Watch Now"), NotificationAction("close", "Close")]


def escape_markdown_v2(text: str) -> str:
    """Escape special characters for Telegram MarkdownV2 format."""
    return _TELEGRAM_ESCAPE_CHARS.sub(r"\\\1", text)


def _minutes_before_start(milestone: Milestone) -> int:
    return int(-MILESTONE_RULES[milestone].offset.total_seconds() // 60)


def _headline(event: Event, milestone: Milestone) -> tuple:
    if milestone is Milestone.pre_start_far:
        return (
            "🏏 Match Starting Soon!",
            f"{event.title} starts in {_minutes_before_start(milestone)} minutes",
        )
    if milestone is Milestone.pre_start_near:
        return (
            "⚡ Match Starting Very Soon!",
            f"{event.title} starts in {_minutes_before_start(milestone)} minutes",
        )
    if milestone is Milestone.started:
        return "🔴 LIVE NOW!", f"{event.title} has started! Watch now!"
    return "🏁 Match Finished", f"{event.title} has ended"


def build_milestone_notification(event: Event, milestone: Milestone) -> NotificationRecord:
    """Build the alert for one (event, milestone) pair."""
    settings = get_settings()
    title, body = _headline(event, milestone)
    is_live = milestone is Milestone.started
    return NotificationRecord(
        title=title,
        body=body,
        tag=f"match-{milestone.value}-{event.event_id}",
        url=urljoin(settings.app_base_url, "#live") if is_live else settings.app_base_url,
        icon=event.icon_url or settings.icon_url,
        badge=settings.badge_url,
        require_interaction=is_live,
        actions=list(WATCH_ACTIONS if is_live else VIEW_ACTIONS),
        data={
            "eventId": event.event_id,
            "milestone": milestone.value,
            "teams": event.title,
            "start": event.start.isoformat(),
        },
    )


def build_test_notification(
    milestone: Optional[Milestone] = None, now: Optional[datetime] = None
) -> NotificationRecord:
    """A test alert, or a preview of one milestone's alert for a sample match."""
    settings = get_settings()
    now = now or datetime.now(timezone.utc)
    if milestone is None:
        return NotificationRecord(
            title="🔔 Notifications Ready!",
            body="You will receive alerts for upcoming matches",
            tag="test-notification",
            url=settings.app_base_url,
            icon=settings.icon_url,
            badge=settings.badge_url,
            actions=list(VIEW_ACTIONS),
            data={"test": True},
        )

    sample = Event(team1="India", team2="Pakistan", start=now + timedelta(minutes=15))
    preview = build_milestone_notification(sample, milestone)
    return NotificationRecord(
        title=preview.title,
        body=preview.body,
        tag=f"test-{milestone.value}-{int(now.timestamp())}",
        url=preview.url,
        icon=settings.icon_url,
        badge=preview.badge,
        require_interaction=preview.require_interaction,
        actions=preview.actions,
        data={**preview.data, "test": True},
    )


def format_telegram(record: NotificationRecord) -> str:
    """MarkdownV2 text: bold title, body, and the deep link."""
    lines = [f"*{escape_markdown_v2(record.title)}*", escape_markdown_v2(record.body)]
    if record.url and record.url.startswith("http"):
        lines.append(escape_markdown_v2(record.url))
    return "\n".join(lines)


def format_discord_embed(record: NotificationRecord) -> Dict[str, Any]:
    milestone = record.data.get("milestone")
    try:
        color = MILESTONE_COLORS[Milestone(milestone)]
    except ValueError:
        color = COLOR_TEST

    embed: Dict[str, Any] = {
        "title": record.title,
        "description": record.body,
        "color": color,
        "footer": {"text": record.tag},
    }
    if record.url and record.url.startswith("http"):
        embed["url"] = record.url
    if record.icon and record.icon.startswith("http"):
        embed["thumbnail"] = {"url": record.icon}
    return embed
