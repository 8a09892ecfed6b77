# backend/app/repositories/__init__.py
"""
Repository Pattern Implementation for the studio booking engine

This package provides the repository layer for data access,
separating business logic from database queries.

Key Components:
- BaseRepository: Foundation for all repositories with generic CRUD operations
- RepositoryFactory: Factory for creating repository instances
- SessionSlotRepository: seat reservation and release
- WeeklyUsageRepository: per-member weekly quota counters
- WebhookEventRepository: idempotency ledger for provider events

Usage:
    from app.repositories import RepositoryFactory

    slots = RepositoryFactory.create_session_slot_repository(db)
    if slots.reserve_seat(slot_id):
        ...
"""

from .admin_override_repository import AdminOverrideRepository
from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .factory import RepositoryFactory
from .ledger_repository import (
    AuditLogRepository,
    GiftVoucherRepository,
    PaymentTransactionRepository,
)
from .scheduler_marker_repository import SchedulerMarkerRepository
from .session_slot_repository import SessionSlotRepository
from .subscription_repository import (
    MembershipRepository,
    MembershipTierRepository,
    SubscriptionRepository,
)
from .user_repository import UserRepository
from .webhook_event_repository import WebhookEventRepository
from .weekly_usage_repository import WeeklyUsageRepository

__all__ = [
    "AdminOverrideRepository",
    "AuditLogRepository",
    "BaseRepository",
    "BookingRepository",
    "GiftVoucherRepository",
    "MembershipRepository",
    "MembershipTierRepository",
    "PaymentTransactionRepository",
    "RepositoryFactory",
    "SchedulerMarkerRepository",
    "SessionSlotRepository",
    "SubscriptionRepository",
    "UserRepository",
    "WebhookEventRepository",
    "WeeklyUsageRepository",
]
