# backend/app/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import admin, bookings, checkout, health, prometheus, slots, vouchers, webhooks

__all__ = [
    "admin",
    "bookings",
    "checkout",
    "health",
    "prometheus",
    "slots",
    "vouchers",
    "webhooks",
]
