# backend/app/routes/v1/slots.py
"""Public listing of upcoming bookable slots - API v1."""

import asyncio
from typing import List

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_current_active_user, get_slot_admin_service
from ...models.user import User
from ...schemas.admin import SlotResponse
from ...services.slot_admin_service import SlotAdminService

router = APIRouter(tags=["slots-v1"])


@router.get("", response_model=List[SlotResponse])
async def list_upcoming_slots(
    days: int = Query(14, ge=1, le=60),
    _user: User = Depends(get_current_active_user),
    service: SlotAdminService = Depends(get_slot_admin_service),
) -> List[SlotResponse]:
    slots = await asyncio.to_thread(service.list_upcoming, days=days)
    return [SlotResponse.model_validate(slot) for slot in slots]
