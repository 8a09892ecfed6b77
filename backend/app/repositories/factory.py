# backend/app/repositories/factory.py
"""
Repository Factory for the studio booking engine

Provides centralized creation of repository instances so services share one
construction path and tests can patch a single seam.
"""

from sqlalchemy.orm import Session

from .admin_override_repository import AdminOverrideRepository
from .booking_repository import BookingRepository
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


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_session_slot_repository(db: Session) -> SessionSlotRepository:
        return SessionSlotRepository(db)

    @staticmethod
    def create_weekly_usage_repository(db: Session) -> WeeklyUsageRepository:
        return WeeklyUsageRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> BookingRepository:
        return BookingRepository(db)

    @staticmethod
    def create_subscription_repository(db: Session) -> SubscriptionRepository:
        return SubscriptionRepository(db)

    @staticmethod
    def create_membership_repository(db: Session) -> MembershipRepository:
        return MembershipRepository(db)

    @staticmethod
    def create_membership_tier_repository(db: Session) -> MembershipTierRepository:
        return MembershipTierRepository(db)

    @staticmethod
    def create_user_repository(db: Session) -> UserRepository:
        return UserRepository(db)

    @staticmethod
    def create_admin_override_repository(db: Session) -> AdminOverrideRepository:
        return AdminOverrideRepository(db)

    @staticmethod
    def create_webhook_event_repository(db: Session) -> WebhookEventRepository:
        return WebhookEventRepository(db)

    @staticmethod
    def create_payment_transaction_repository(db: Session) -> PaymentTransactionRepository:
        return PaymentTransactionRepository(db)

    @staticmethod
    def create_gift_voucher_repository(db: Session) -> GiftVoucherRepository:
        return GiftVoucherRepository(db)

    @staticmethod
    def create_audit_log_repository(db: Session) -> AuditLogRepository:
        return AuditLogRepository(db)

    @staticmethod
    def create_scheduler_marker_repository(db: Session) -> SchedulerMarkerRepository:
        return SchedulerMarkerRepository(db)
