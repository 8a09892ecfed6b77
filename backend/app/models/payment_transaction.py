# backend/app/models/payment_transaction.py
"""Payment transaction ledger (best-effort record of provider payments)."""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.sql import func
import ulid

from ..database import Base


class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(26), ForeignKey("users.id"), nullable=True, index=True)
    amount = Column(Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(10), nullable=False, default="aud")
    transaction_type = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False)
    stripe_payment_intent_id = Column(String(255), nullable=True)
    stripe_invoice_id = Column(String(255), nullable=True)
    subscription_id = Column(String(26), ForeignKey("subscriptions.id"), nullable=True)
    membership_id = Column(String(26), ForeignKey("memberships.id"), nullable=True)
    booking_id = Column(String(26), ForeignKey("bookings.id"), nullable=True)
    gift_voucher_id = Column(String(26), ForeignKey("gift_vouchers.id"), nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    __table_args__ = (
        CheckConstraint(
            "transaction_type IN ('membership', 'booking', 'gift_voucher', 'subscription', 'refund')",
            name="ck_payment_transactions_type",
        ),
        CheckConstraint(
            "status IN ('succeeded', 'failed', 'pending', 'refunded')",
            name="ck_payment_transactions_status",
        ),
    )
