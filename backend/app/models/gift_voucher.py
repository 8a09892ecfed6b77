# backend/app/models/gift_voucher.py
"""Gift vouchers bought through checkout."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.sql import func
import ulid

from ..core.enums import GiftVoucherStatus
from ..database import Base


class GiftVoucher(Base):
    __tablename__ = "gift_vouchers"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    code = Column(String(32), nullable=False, unique=True)
    purchaser_user_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    recipient_name = Column(String(255), nullable=True)
    recipient_email = Column(String(320), nullable=True)
    message = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=GiftVoucherStatus.ACTIVE.value)
    stripe_payment_intent_id = Column(String(255), nullable=True, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    redeemed_at = Column(DateTime(timezone=True), nullable=True)
    redeemed_by_user_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
