# backend/app/routes/v1/checkout.py
"""
Checkout routes - API v1

POST /{purchase_type} - Create a Stripe Checkout session and return its URL
"""

import asyncio
import logging
from typing import NoReturn

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.params import Path

from ...api.dependencies import get_checkout_service, get_current_active_user
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.payments import CheckoutRequest, CheckoutResponse
from ...services.checkout_service import CheckoutService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["checkout-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("/{purchase_type}", response_model=CheckoutResponse)
async def create_checkout(
    purchase_type: str = Path(..., description="subscription, membership, gift_voucher or booking"),
    payload: CheckoutRequest = Body(...),
    current_user: User = Depends(get_current_active_user),
    service: CheckoutService = Depends(get_checkout_service),
) -> CheckoutResponse:
    try:
        result = await asyncio.to_thread(
            lambda: service.create_checkout(
                current_user,
                purchase_type,
                tier_id=payload.tier_id,
                voucher_amount=str(payload.voucher_amount)
                if payload.voucher_amount is not None
                else None,
                recipient_name=payload.recipient_name,
                recipient_email=payload.recipient_email,
                message=payload.message,
                service_type_id=payload.service_type_id,
                booking_date=payload.booking_date,
                notes=payload.notes,
            )
        )
        return CheckoutResponse(**result)
    except DomainException as e:
        handle_domain_exception(e)
