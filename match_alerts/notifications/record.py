from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class NotificationAction:
    action: str
    title: str


@dataclass(frozen=True)
class NotificationRecord:
    title: str
    body: str
    tag: str
    url: str = "/"
    icon: Optional[str] = None
    badge: Optional[str] = None
    require_interaction: bool = False
    actions: List[NotificationAction] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict in the shape browser/push notification APIs expect."""
        payload = asdict(self)
        payload["requireInteraction"] = payload.pop("require_interaction")
        return payload
