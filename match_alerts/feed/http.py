from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any, List, Optional, Union

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from match_alerts.config import get_settings
from match_alerts.exceptions import FeedNetworkError, FeedParseError
from match_alerts.feed.base import DEFAULT_DURATION_MINUTES, BaseEventFeed, Event

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

# A five-day Test plus a rest day and reserve day
MAX_DURATION_MINUTES = 7 * 24 * 60


def parse_duration(value: Any, fallback: int = DEFAULT_DURATION_MINUTES) -> int:
    """Minutes from a number or a string with leading digits ("90 mins" -> 90).

    Missing, non-numeric, non-finite, non-positive and longer-than-a-week
    values use the fallback.
    """
    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, float) and not math.isfinite(value):
        return fallback
    if isinstance(value, (int, float)):
        minutes = int(value)
    else:
        match = _LEADING_INT.match(str(value))
        if not match:
            return fallback
        minutes = int(match.group(1))
    return minutes if 0 < minutes <= MAX_DURATION_MINUTES else fallback


def parse_match_time(value: str) -> datetime:
    """ISO-8601 timestamp as an aware UTC datetime; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value.strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class MatchRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    team1: str = Field(alias="Team1", min_length=1)
    team2: str = Field(alias="Team2", min_length=1)
    match_time: datetime = Field(alias="MatchTime")
    match_duration: Optional[Union[int, float, str]] = Field(default=None, alias="MatchDuration")
    team1_logo: Optional[str] = Field(default=None, alias="Team1Logo")

    @field_validator("match_time", mode="before")
    @classmethod
    def _parse_time(cls, value: Any) -> datetime:
        if isinstance(value, datetime):
            return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        if not isinstance(value, str):
            raise ValueError(f"MatchTime must be a string, got {type(value).__name__}")
        return parse_match_time(value)

    def to_event(self, fallback_duration: int = DEFAULT_DURATION_MINUTES) -> Event:
        return Event(
            team1=self.team1.strip(),
            team2=self.team2.strip(),
            start=self.match_time,
            duration_minutes=parse_duration(self.match_duration, fallback_duration),
            icon_url=self.team1_logo or None,
        )


def parse_matches(document: Any, fallback_duration: int = DEFAULT_DURATION_MINUTES) -> List[Event]:
    """Decode a feed document; the first malformed record fails the whole document."""
    if not isinstance(document, dict) or not isinstance(document.get("matches"), list):
        raise FeedParseError("Feed document has no 'matches' list")

    events = []
    for index, raw in enumerate(document["matches"]):
        try:
            record = MatchRecord.model_validate(raw)
        except ValidationError as e:
            raise FeedParseError(f"Invalid match record at index {index}: {e}") from e
        try:
            events.append(record.to_event(fallback_duration))
        except (ValueError, OverflowError) as e:
            raise FeedParseError(f"Invalid match record at index {index}: {e}") from e
    return events


class HttpEventFeed(BaseEventFeed):
    """Reads the match list from a JSON endpoint."""

    source = "http"

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        fallback_duration: Optional[int] = None,
    ):
        settings = get_settings()
        self.url = url or settings.feed_url
        self.timeout = timeout if timeout is not None else settings.feed_timeout_seconds
        self.fallback_duration = fallback_duration or settings.default_duration_minutes
        self.client = httpx.Client(timeout=self.timeout, headers={"Accept": "application/json"})

    def fetch(self) -> List[Event]:
        if not self.url:
            raise FeedNetworkError("Feed URL is not configured")

        try:
            resp = self.client.get(self.url)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FeedNetworkError(
                f"Feed returned {e.response.status_code} for {self.url}"
            ) from e
        except httpx.RequestError as e:
            raise FeedNetworkError(f"Feed request failed: {e!r}") from e

        try:
            document = resp.json()
        except ValueError as e:
            raise FeedParseError(f"Feed response is not valid JSON: {e}") from e

        events = parse_matches(document, self.fallback_duration)
        logger.debug(f"Fetched {len(events)} matches from {self.url}")
        return events

    def close(self) -> None:
        self.client.close()
