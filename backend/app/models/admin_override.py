"""Append-only record of privileged member changes."""

from __future__ import annotations

from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column
import ulid

from app.database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class AdminOverride(Base):
    """Written before the override takes effect; never updated or deleted."""

    __tablename__ = "admin_overrides"

    __table_args__ = (
        sa.Index("ix_admin_overrides_user_created", "user_id", "created_at"),
        sa.CheckConstraint(
            "change_type IN ('add_sessions', 'remove_sessions', 'suspend', 'reactivate')",
            name="ck_admin_overrides_change_type",
        ),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"), nullable=False)
    admin_user_id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"), nullable=False)
    change_type: Mapped[str] = mapped_column(String(30), nullable=False)
    session_delta: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_now_utc,
        server_default=func.now(),
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "admin_user_id": self.admin_user_id,
            "change_type": self.change_type,
            "session_delta": self.session_delta,
            "reason": self.reason,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
