# backend/app/models/subscription.py
"""
Recurring subscriptions billed through the payment provider.

At most one ``active`` subscription per user is maintained by the webhook
processor (it cancels older active rows before inserting a new one); there
is no database constraint for it.
"""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import SubscriptionStatus
from ..database import Base


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    tier_id = Column(String(26), ForeignKey("membership_tiers.id"), nullable=False)
    status = Column(String(20), nullable=False, default=SubscriptionStatus.PENDING.value)
    payment_provider = Column(String(50), nullable=False, default="stripe")
    provider_subscription_id = Column(String(255), nullable=True, unique=True)
    provider_customer_id = Column(String(255), nullable=True)
    current_period_start = Column(DateTime(timezone=True), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    suspended_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
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

    user = relationship("User", back_populates="subscriptions")
    tier = relationship("MembershipTier", lazy="joined")

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'past_due', 'suspended', 'cancelled', 'pending', 'unpaid')",
            name="ck_subscriptions_status",
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE.value

    def __repr__(self) -> str:
        return f"<Subscription {self.id}: user={self.user_id} status={self.status}>"
