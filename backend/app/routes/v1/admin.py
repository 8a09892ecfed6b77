# backend/app/routes/v1/admin.py
"""
Admin routes - API v1

Endpoints:
    POST /overrides - Apply an audited override to a member
    GET /members/{user_id} - Member drill-down
    GET /members/{user_id}/overrides - Override history
    PATCH /bookings/{booking_id}/status - Status edit (confirm, complete, no-show)
    POST /slots - Publish a session slot
    POST /slots/{slot_id}/active - Activate or deactivate a slot
"""

import asyncio
import logging
from typing import List, NoReturn

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.params import Path

from ...api.dependencies import (
    get_admin_override_service,
    get_booking_service,
    get_slot_admin_service,
    require_admin,
)
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.admin import (
    AdminOverrideRecord,
    AdminOverrideRequest,
    AdminOverrideResponse,
    MemberDetailResponse,
    SlotActiveUpdate,
    SlotCreate,
    SlotResponse,
)
from ...schemas.booking import BookingResponse, BookingStatusUpdate
from ...services.admin_override_service import AdminOverrideService
from ...services.booking_service import BookingService
from ...services.slot_admin_service import SlotAdminService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("/overrides", response_model=AdminOverrideResponse)
async def apply_override(
    payload: AdminOverrideRequest = Body(...),
    admin: User = Depends(require_admin),
    service: AdminOverrideService = Depends(get_admin_override_service),
) -> AdminOverrideResponse:
    """The override row is recorded before the change is applied."""
    try:
        result = await asyncio.to_thread(
            service.apply_override,
            payload.user_id,
            admin.id,
            payload.change_type.value,
            payload.reason,
            payload.session_delta,
        )
        return AdminOverrideResponse(**result)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/members/{user_id}", response_model=MemberDetailResponse)
async def get_member_detail(
    user_id: str = Path(...),
    _admin: User = Depends(require_admin),
    service: AdminOverrideService = Depends(get_admin_override_service),
) -> MemberDetailResponse:
    try:
        detail = await asyncio.to_thread(service.get_member_detail, user_id)
        return MemberDetailResponse(**detail)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/members/{user_id}/overrides", response_model=List[AdminOverrideRecord])
async def list_member_overrides(
    user_id: str = Path(...),
    _admin: User = Depends(require_admin),
    service: AdminOverrideService = Depends(get_admin_override_service),
) -> List[AdminOverrideRecord]:
    overrides = await asyncio.to_thread(service.list_overrides_for_user, user_id)
    return [AdminOverrideRecord.model_validate(row) for row in overrides]


@router.patch("/bookings/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: str = Path(...),
    payload: BookingStatusUpdate = Body(...),
    admin: User = Depends(require_admin),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            booking_service.update_status, booking_id, payload.status, admin_user_id=admin.id
        )
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/slots", response_model=SlotResponse, status_code=status.HTTP_201_CREATED)
async def create_slot(
    payload: SlotCreate = Body(...),
    admin: User = Depends(require_admin),
    service: SlotAdminService = Depends(get_slot_admin_service),
) -> SlotResponse:
    try:
        slot = await asyncio.to_thread(
            lambda: service.create_slot(**payload.model_dump(), admin_user_id=admin.id)
        )
        return SlotResponse.model_validate(slot)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/slots/{slot_id}/active", response_model=SlotResponse)
async def set_slot_active(
    slot_id: str = Path(...),
    payload: SlotActiveUpdate = Body(...),
    admin: User = Depends(require_admin),
    service: SlotAdminService = Depends(get_slot_admin_service),
) -> SlotResponse:
    try:
        slot = await asyncio.to_thread(
            service.set_active, slot_id, payload.is_active, admin_user_id=admin.id
        )
        return SlotResponse.model_validate(slot)
    except DomainException as e:
        handle_domain_exception(e)
