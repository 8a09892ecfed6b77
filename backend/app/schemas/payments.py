# backend/app/schemas/payments.py
"""Checkout, webhook and gift voucher schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import EmailStr, Field

from ..core.constants import MAX_NOTES_LENGTH
from ._strict_base import ORMResponseModel, StrictModel, StrictRequestModel


class CheckoutRequest(StrictRequestModel):
    """Fields used depend on the purchase type in the path."""

    tier_id: Optional[str] = None
    voucher_amount: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    recipient_name: Optional[str] = Field(None, max_length=255)
    recipient_email: Optional[EmailStr] = None
    message: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)
    service_type_id: Optional[str] = None
    booking_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)


class CheckoutResponse(StrictModel):
    session_id: str
    url: Optional[str] = None


class WebhookResponse(StrictModel):
    received: Optional[bool] = None
    duplicate: Optional[bool] = None
    verified: Optional[bool] = None


class GiftVoucherResponse(ORMResponseModel):
    code: str
    amount: Decimal
    status: str
    recipient_name: Optional[str] = None
    expires_at: datetime
    redeemed_at: Optional[datetime] = None


class GiftVoucherRedeemResponse(StrictModel):
    success: bool
    amount: Decimal
