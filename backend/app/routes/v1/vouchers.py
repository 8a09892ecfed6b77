# backend/app/routes/v1/vouchers.py
"""
Gift voucher routes - API v1

GET  /{code}        - Look up a voucher (public, used on the redeem page)
POST /{code}/redeem - Redeem a voucher for the calling member
"""

import asyncio
import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.params import Path

from ...api.dependencies import get_current_active_user, get_gift_voucher_service
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.payments import GiftVoucherRedeemResponse, GiftVoucherResponse
from ...services.gift_voucher_service import GiftVoucherService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["vouchers-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get("/{code}", response_model=GiftVoucherResponse)
async def get_voucher(
    code: str = Path(..., min_length=1, max_length=32),
    service: GiftVoucherService = Depends(get_gift_voucher_service),
) -> GiftVoucherResponse:
    try:
        voucher = await asyncio.to_thread(service.get_by_code, code)
        return GiftVoucherResponse.model_validate(voucher)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{code}/redeem", response_model=GiftVoucherRedeemResponse)
async def redeem_voucher(
    code: str = Path(..., min_length=1, max_length=32),
    current_user: User = Depends(get_current_active_user),
    service: GiftVoucherService = Depends(get_gift_voucher_service),
) -> GiftVoucherRedeemResponse:
    try:
        voucher = await asyncio.to_thread(service.redeem, code, current_user.id)
        return GiftVoucherRedeemResponse(success=True, amount=voucher.amount)
    except DomainException as e:
        handle_domain_exception(e)
