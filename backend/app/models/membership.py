# backend/app/models/membership.py
"""
Membership tiers and legacy one-off memberships.

A tier defines the weekly session allowance shared by subscriptions and
legacy memberships. ``sessions_per_week == 0`` means unlimited.
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

from ..core.enums import MembershipStatus
from ..database import Base


class MembershipTier(Base):
    """A purchasable plan and its weekly allowance."""

    __tablename__ = "membership_tiers"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    duration = Column(String(20), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    sessions_per_week = Column(Integer, nullable=False, default=0)
    stripe_price_id = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    __table_args__ = (
        CheckConstraint("sessions_per_week >= 0", name="ck_membership_tiers_sessions_non_negative"),
        CheckConstraint(
            "duration IN ('weekly', 'monthly', 'quarterly', 'annual')",
            name="ck_membership_tiers_duration",
        ),
    )

    def __repr__(self) -> str:
        return f"<MembershipTier {self.id}: {self.name} sessions/week={self.sessions_per_week}>"


class Membership(Base):
    """Pre-subscription style membership bought as a single payment."""

    __tablename__ = "memberships"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    tier_id = Column(String(26), ForeignKey("membership_tiers.id"), nullable=False)
    status = Column(String(20), nullable=False, default=MembershipStatus.PENDING.value)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    stripe_payment_intent_id = Column(String(255), nullable=True, index=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    tier = relationship("MembershipTier", lazy="joined")

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'expired', 'cancelled', 'pending')",
            name="ck_memberships_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Membership {self.id}: user={self.user_id} status={self.status}>"
