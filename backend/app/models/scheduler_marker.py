"""Persisted progress markers for recurring background jobs."""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import Date, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class SchedulerMarker(Base):
    """
    Latest week a recurring job has completed, keyed by job name.

    Read at every tick so a process restart does not lose the marker.
    """

    __tablename__ = "scheduler_markers"

    name: Mapped[str] = mapped_column(String(100), primary_key=True)
    week_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now_utc, onupdate=_now_utc
    )
