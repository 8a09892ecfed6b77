"""Per-member weekly quota counters."""

from __future__ import annotations

from datetime import date, datetime, timezone

import sqlalchemy as sa
from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column
import ulid

from app.database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class WeeklyUsage(Base):
    """
    One row per (user, Monday week start).

    ``sessions_limit_snapshot`` is copied from the tier when the row is first
    materialized and is afterwards only changed by admin overrides.
    """

    __tablename__ = "weekly_usage"

    __table_args__ = (
        sa.UniqueConstraint("user_id", "week_start_date", name="uq_weekly_usage_user_week"),
        sa.CheckConstraint("sessions_used >= 0", name="ck_weekly_usage_used_non_negative"),
        sa.CheckConstraint(
            "sessions_limit_snapshot >= 0", name="ck_weekly_usage_limit_non_negative"
        ),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("users.id"), nullable=False, index=True
    )
    week_start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    sessions_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sessions_limit_snapshot: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_now_utc,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=_now_utc
    )

    @property
    def sessions_remaining(self) -> int:
        return max(0, self.sessions_limit_snapshot - self.sessions_used)

    def __repr__(self) -> str:
        return (
            f"<WeeklyUsage {self.user_id} week={self.week_start_date} "
            f"used={self.sessions_used}/{self.sessions_limit_snapshot}>"
        )
