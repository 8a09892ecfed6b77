# backend/app/schemas/__init__.py
"""
Pydantic schemas for the studio booking API.

Request models forbid unknown fields; response models are built from ORM
rows or plain dicts.
"""

from .admin import (
    AdminOverrideRecord,
    AdminOverrideRequest,
    AdminOverrideResponse,
    MemberDetailResponse,
    SlotActiveUpdate,
    SlotCreate,
    SlotResponse,
)
from .booking import (
    BookingCancel,
    BookingCancelResponse,
    BookingCreate,
    BookingCreateResponse,
    BookingListResponse,
    BookingResponse,
    BookingStatusUpdate,
    WeeklySummaryResponse,
)
from .main_responses import HealthResponse, RootResponse
from .payments import (
    CheckoutRequest,
    CheckoutResponse,
    GiftVoucherRedeemResponse,
    GiftVoucherResponse,
    WebhookResponse,
)

__all__ = [
    # Booking schemas
    "BookingCreate",
    "BookingCreateResponse",
    "BookingCancel",
    "BookingCancelResponse",
    "BookingResponse",
    "BookingListResponse",
    "BookingStatusUpdate",
    "WeeklySummaryResponse",
    # Admin schemas
    "AdminOverrideRequest",
    "AdminOverrideResponse",
    "AdminOverrideRecord",
    "MemberDetailResponse",
    "SlotCreate",
    "SlotActiveUpdate",
    "SlotResponse",
    # Payments
    "CheckoutRequest",
    "CheckoutResponse",
    "WebhookResponse",
    "GiftVoucherResponse",
    "GiftVoucherRedeemResponse",
    # Service
    "HealthResponse",
    "RootResponse",
]
