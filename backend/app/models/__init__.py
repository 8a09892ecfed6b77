"""
Database models for the studio booking engine.

The models are organized by functionality:
- Members and their entitlements (users, tiers, memberships, subscriptions)
- Capacity and quota counters (session slots, weekly usage)
- Bookings
- Ledgers (admin overrides, webhook events, payment transactions, audit log)
"""

from .admin_override import AdminOverride
from .audit_log import AuditLog
from .booking import Booking
from .gift_voucher import GiftVoucher
from .membership import Membership, MembershipTier
from .payment_transaction import PaymentTransaction
from .scheduler_marker import SchedulerMarker
from .session_slot import ServiceType, SessionSlot
from .subscription import Subscription
from .user import User
from .webhook_event import WebhookEvent
from .weekly_usage import WeeklyUsage

__all__ = [
    "AdminOverride",
    "AuditLog",
    "Booking",
    "GiftVoucher",
    "Membership",
    "MembershipTier",
    "PaymentTransaction",
    "SchedulerMarker",
    "ServiceType",
    "SessionSlot",
    "Subscription",
    "User",
    "WebhookEvent",
    "WeeklyUsage",
]
