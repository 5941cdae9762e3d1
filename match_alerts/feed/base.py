from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

DEFAULT_DURATION_MINUTES = 360


def make_event_id(team1: str, team2: str, start: datetime) -> str:
    """Stable id for a match: same teams and start instant always hash to the same id."""
    names = "|".join(" ".join(name.split()).casefold() for name in (team1, team2))
    digest = hashlib.sha1(f"{names}|{start.isoformat()}".encode("utf-8"))
    return digest.hexdigest()[:16]


@dataclass(frozen=True)
class Event:
    team1: str
    team2: str
    start: datetime
    duration_minutes: int = DEFAULT_DURATION_MINUTES
    icon_url: Optional[str] = None

    @property
    def event_id(self) -> str:
        return make_event_id(self.team1, self.team2, self.start)

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)

    @property
    def title(self) -> str:
        return f"{self.team1} vs {self.team2}"


class BaseEventFeed(ABC):
    source: str = ""

    @abstractmethod
    def fetch(self) -> List[Event]:
        """取得目前所有比賽的快照；失敗時拋出 FetchError"""
        ...
