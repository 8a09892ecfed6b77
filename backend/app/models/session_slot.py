# backend/app/models/session_slot.py
"""
Service types and bookable session slots.

A slot's ``booked_count`` is only ever changed by the conditional updates in
``SessionSlotRepository``; application code never writes it directly.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.constants import DEFAULT_SLOT_CAPACITY
from ..database import Base


class ServiceType(Base):
    """A kind of session offered by the studio (sauna, cold plunge, class...)."""

    __tablename__ = "service_types"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=60)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )


class SessionSlot(Base):
    """A fixed time window with finite seating capacity."""

    __tablename__ = "session_slots"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    service_type_id = Column(String(26), ForeignKey("service_types.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    starts_at_utc = Column(DateTime(timezone=True), nullable=False, index=True)
    ends_at_utc = Column(DateTime(timezone=True), nullable=False)
    capacity = Column(Integer, nullable=False, default=DEFAULT_SLOT_CAPACITY)
    booked_count = Column(Integer, nullable=False, default=0)
    trainer_name = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    service_type = relationship("ServiceType", lazy="joined")

    __table_args__ = (
        CheckConstraint("capacity >= 1", name="ck_session_slots_capacity_positive"),
        CheckConstraint(
            "booked_count >= 0 AND booked_count <= capacity",
            name="ck_session_slots_booked_within_capacity",
        ),
        CheckConstraint("starts_at_utc < ends_at_utc", name="ck_session_slots_time_order"),
    )

    @property
    def seats_remaining(self) -> int:
        return max(0, int(self.capacity) - int(self.booked_count))

    def __repr__(self) -> str:
        return (
            f"<SessionSlot {self.id}: {self.name} starts={self.starts_at_utc} "
            f"booked={self.booked_count}/{self.capacity}>"
        )
