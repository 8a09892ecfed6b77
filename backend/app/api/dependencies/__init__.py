# backend/app/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import get_current_active_user, get_current_user, require_admin
from .database import get_db
from .services import (
    get_admin_override_service,
    get_booking_service,
    get_checkout_service,
    get_gift_voucher_service,
    get_slot_admin_service,
    get_stripe_webhook_service,
)

__all__ = [
    # Auth
    "get_current_user",
    "get_current_active_user",
    "require_admin",
    # Database
    "get_db",
    # Services
    "get_booking_service",
    "get_admin_override_service",
    "get_slot_admin_service",
    "get_stripe_webhook_service",
    "get_checkout_service",
    "get_gift_voucher_service",
]
