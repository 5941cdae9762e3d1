from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from match_alerts.db.database import Base


class NotificationLog(Base):
    """One row per (event, milestone) alert that has been dispatched."""

    __tablename__ = "notification_logs"
    __table_args__ = (
        UniqueConstraint(
            "event_id",
            "milestone",
            name="uq_notification_dedup",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    event_id: Mapped[str] = mapped_column(String(64), nullable=False)
    milestone: Mapped[str] = mapped_column(String(32), nullable=False)
    event_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    window_closes_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    delivered: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<NotificationLog {self.event_id}:{self.milestone} delivered={self.delivered}>"
