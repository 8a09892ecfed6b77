# backend/app/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.admin_override_service import AdminOverrideService
from ...services.booking_service import BookingService
from ...services.checkout_service import CheckoutService
from ...services.gift_voucher_service import GiftVoucherService
from ...services.stripe_webhook_service import StripeWebhookService
from ...services.slot_admin_service import SlotAdminService
from .database import get_db

logger = logging.getLogger(__name__)


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Get BookingService instance with its repositories bound to the request session."""
    return BookingService(db)


def get_admin_override_service(db: Session = Depends(get_db)) -> AdminOverrideService:
    return AdminOverrideService(db)


def get_slot_admin_service(db: Session = Depends(get_db)) -> SlotAdminService:
    return SlotAdminService(db)


def get_stripe_webhook_service(db: Session = Depends(get_db)) -> StripeWebhookService:
    return StripeWebhookService(db)


def get_checkout_service(db: Session = Depends(get_db)) -> CheckoutService:
    return CheckoutService(db)


def get_gift_voucher_service(db: Session = Depends(get_db)) -> GiftVoucherService:
    return GiftVoucherService(db)
