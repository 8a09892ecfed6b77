# backend/app/core/enums.py
"""
Core enums for the studio booking engine.

These values are persisted as plain strings, so the enum members double as
the canonical column vocabulary.
"""

from enum import Enum


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class UserStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class BookingStatus(str, Enum):
    """Booking lifecycle. CANCELLED is terminal."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    PAST_DUE = "past_due"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"
    PENDING = "pending"
    UNPAID = "unpaid"


class MembershipStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    PENDING = "pending"


class TierDuration(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


class OverrideChangeType(str, Enum):
    """Privileged mutations an admin can apply to a member."""

    ADD_SESSIONS = "add_sessions"
    REMOVE_SESSIONS = "remove_sessions"
    SUSPEND = "suspend"
    REACTIVATE = "reactivate"

    @property
    def requires_delta(self) -> bool:
        return self in (OverrideChangeType.ADD_SESSIONS, OverrideChangeType.REMOVE_SESSIONS)


class WebhookEventStatus(str, Enum):
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"


class PurchaseType(str, Enum):
    SUBSCRIPTION = "subscription"
    MEMBERSHIP = "membership"
    GIFT_VOUCHER = "gift_voucher"
    BOOKING = "booking"


class TransactionType(str, Enum):
    MEMBERSHIP = "membership"
    BOOKING = "booking"
    GIFT_VOUCHER = "gift_voucher"
    SUBSCRIPTION = "subscription"
    REFUND = "refund"


class TransactionStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    PENDING = "pending"
    REFUNDED = "refunded"


class GiftVoucherStatus(str, Enum):
    ACTIVE = "active"
    REDEEMED = "redeemed"
    EXPIRED = "expired"
