# backend/app/schemas/booking.py
"""
Booking schemas for the studio booking engine.

A slot booking is fully described by the slot it holds a seat in; the
request carries no times of its own.
"""

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import Field

from ..core.constants import MAX_NOTES_LENGTH, MAX_REASON_LENGTH
from ._strict_base import ORMResponseModel, StrictModel, StrictRequestModel


class BookingCreate(StrictRequestModel):
    """Book one seat in a session slot."""

    slot_id: str = Field(..., min_length=1, description="Session slot to book")
    service_type_id: str = Field(..., min_length=1, description="Service offered in the slot")
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)


class BookingCreateResponse(StrictModel):
    booking_id: str


class BookingCancel(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=MAX_REASON_LENGTH)


class BookingCancelResponse(StrictModel):
    success: bool
    refund_eligible: bool


class WeeklySummaryResponse(StrictModel):
    """Current-week quota position for the dashboard."""

    week_start: date
    sessions_used: int
    sessions_remaining: int
    weekly_limit: int
    tier_name: str
    subscription_status: str
    has_active_subscription: bool
    can_book: bool


class BookingResponse(ORMResponseModel):
    id: str
    user_id: str
    session_slot_id: Optional[str] = None
    service_type_id: str
    booking_date: datetime
    status: str
    notes: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None


class BookingListResponse(StrictModel):
    items: List[BookingResponse]
    total: int


class BookingStatusUpdate(StrictRequestModel):
    """Admin status edit; cancellation goes through the cancel endpoint."""

    status: Literal["confirmed", "completed", "no_show"]
