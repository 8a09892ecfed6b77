# backend/app/models/booking.py
"""
Booking model for the studio booking engine.

A booking references a member and, for slot bookings, the session slot it
holds a seat in. ``booking_date`` is the instant the session starts and is
what the cancellation cutoff is measured against.

The partial unique index on (user_id, session_slot_id) over non-cancelled
rows is the storage-level guard against double-booking a slot.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import BookingStatus
from ..database import Base

logger = logging.getLogger(__name__)


class Booking(Base):
    """A member's reservation of a session."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    session_slot_id = Column(String(26), ForeignKey("session_slots.id"), nullable=True, index=True)
    service_type_id = Column(String(26), ForeignKey("service_types.id"), nullable=False)
    booking_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    notes = Column(Text, nullable=True)
    stripe_payment_intent_id = Column(String(255), nullable=True)
    # Week the booking was counted against; None for bookings outside the quota
    quota_week_start_date = Column(Date, nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=True,
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = relationship("User", back_populates="bookings")
    session_slot = relationship("SessionSlot", lazy="joined")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed', 'no_show')",
            name="ck_bookings_status",
        ),
        Index(
            "uq_bookings_user_slot_active",
            "user_id",
            "session_slot_id",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: user={self.user_id}, slot={self.session_slot_id}, "
            f"date={self.booking_date}, status={self.status}>"
        )

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED.value

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""

        def _iso(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "id": self.id,
            "user_id": self.user_id,
            "session_slot_id": self.session_slot_id,
            "service_type_id": self.service_type_id,
            "booking_date": _iso(self.booking_date),
            "status": self.status,
            "notes": self.notes,
            "confirmed_at": _iso(self.confirmed_at),
            "cancelled_at": _iso(self.cancelled_at),
            "cancellation_reason": self.cancellation_reason,
            "created_at": _iso(self.created_at),
        }
