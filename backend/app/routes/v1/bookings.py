# backend/app/routes/v1/bookings.py
"""
Member booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingService.

Endpoints:
    GET /summary - Current-week quota position
    GET / - List the member's bookings
    POST / - Book a seat in a session slot
    POST /{booking_id}/cancel - Cancel a booking
"""

import asyncio
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.params import Path

from ...api.dependencies import get_booking_service, get_current_active_user
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.booking import (
    BookingCancel,
    BookingCancelResponse,
    BookingCreate,
    BookingCreateResponse,
    BookingListResponse,
    BookingResponse,
    WeeklySummaryResponse,
)
from ...services.booking_service import BookingService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get("/summary", response_model=WeeklySummaryResponse)
async def get_booking_summary(
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> WeeklySummaryResponse:
    """Sessions used and remaining this studio week."""
    try:
        summary = await asyncio.to_thread(booking_service.get_summary, current_user.id)
        return WeeklySummaryResponse(**summary)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=BookingListResponse)
async def list_my_bookings(
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    try:
        bookings = await asyncio.to_thread(booking_service.list_bookings_for_user, current_user.id)
        items = [BookingResponse.model_validate(booking) for booking in bookings]
        return BookingListResponse(items=items, total=len(items))
    except DomainException as e:
        handle_domain_exception(e)


@router.post("", response_model=BookingCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate = Body(...),
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingCreateResponse:
    """
    Book one seat in a session slot.

    Error codes: NO_ACTIVE_SUBSCRIPTION (402), SLOT_NOT_FOUND (404),
    SLOT_PAST (422), ALREADY_BOOKED (409), QUOTA_EXCEEDED (422),
    SLOT_FULL_CONCURRENT (409).
    """
    try:
        booking = await asyncio.to_thread(
            booking_service.create_booking,
            current_user.id,
            booking_data.slot_id,
            booking_data.service_type_id,
            booking_data.notes,
        )
        return BookingCreateResponse(booking_id=booking.id)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking(
    booking_id: str = Path(..., description="Booking ULID"),
    cancel_data: Optional[BookingCancel] = Body(None),
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingCancelResponse:
    try:
        result = await asyncio.to_thread(
            booking_service.cancel_booking,
            booking_id,
            current_user.id,
            cancel_data.reason if cancel_data else None,
        )
        return BookingCancelResponse(**result)
    except DomainException as e:
        handle_domain_exception(e)
