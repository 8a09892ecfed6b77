# backend/app/repositories/subscription_repository.py
"""
Subscription and legacy membership lookups.

These back the entitlement collaborators (active subscription, active
membership, tier by id) and the status writes driven by webhooks and admin
overrides. Status writes are plain keyed updates: concurrent conflicting
writers resolve last-write-wins.
"""

from datetime import datetime
import logging
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from ..core.enums import MembershipStatus, SubscriptionStatus
from ..models.membership import Membership, MembershipTier
from ..models.subscription import Subscription
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SubscriptionRepository(BaseRepository[Subscription]):
    def __init__(self, db: Session):
        super().__init__(db, Subscription)

    def get_active_for_user(self, user_id: str) -> Optional[Subscription]:
        query = (
            self._build_query()
            .filter(
                Subscription.user_id == user_id,
                Subscription.status == SubscriptionStatus.ACTIVE.value,
            )
            .order_by(Subscription.created_at.desc())
        )
        return query.first()

    def get_latest_suspended_for_user(self, user_id: str) -> Optional[Subscription]:
        query = (
            self._build_query()
            .filter(
                Subscription.user_id == user_id,
                Subscription.status == SubscriptionStatus.SUSPENDED.value,
            )
            .order_by(Subscription.suspended_at.desc())
        )
        return query.first()

    def get_by_provider_id(self, provider_subscription_id: str) -> Optional[Subscription]:
        return self.find_one_by(provider_subscription_id=provider_subscription_id)

    def list_active(self) -> List[Subscription]:
        return self.find_by(status=SubscriptionStatus.ACTIVE.value)

    def cancel_active_for_user(
        self, user_id: str, cancelled_at: datetime, *, exclude_id: Optional[str] = None
    ) -> int:
        criteria = [
            Subscription.user_id == user_id,
            Subscription.status == SubscriptionStatus.ACTIVE.value,
        ]
        if exclude_id is not None:
            criteria.append(Subscription.id != exclude_id)
        return self._conditional_update(
            *criteria,
            status=SubscriptionStatus.CANCELLED.value,
            cancelled_at=cancelled_at,
            updated_at=cancelled_at,
        )

    def set_status(self, subscription_id: str, status: str, **extra: Any) -> bool:
        affected = self._conditional_update(
            Subscription.id == subscription_id, status=status, **extra
        )
        return affected == 1


class MembershipRepository(BaseRepository[Membership]):
    def __init__(self, db: Session):
        super().__init__(db, Membership)

    def get_active_for_user(self, user_id: str, now: datetime) -> Optional[Membership]:
        query = (
            self._build_query()
            .filter(
                Membership.user_id == user_id,
                Membership.status == MembershipStatus.ACTIVE.value,
                Membership.end_date >= now,
            )
            .order_by(Membership.end_date.desc())
        )
        return query.first()

    def list_active(self, now: datetime) -> List[Membership]:
        query = self._build_query().filter(
            Membership.status == MembershipStatus.ACTIVE.value,
            Membership.end_date >= now,
        )
        return self._execute_query(query)

    def get_by_payment_intent(self, payment_intent_id: str) -> Optional[Membership]:
        return self.find_one_by(stripe_payment_intent_id=payment_intent_id)

    def cancel_active_for_user(self, user_id: str) -> int:
        return self._conditional_update(
            Membership.user_id == user_id,
            Membership.status == MembershipStatus.ACTIVE.value,
            status=MembershipStatus.CANCELLED.value,
        )


class MembershipTierRepository(BaseRepository[MembershipTier]):
    def __init__(self, db: Session):
        super().__init__(db, MembershipTier)

    def get_tier_by_id(self, tier_id: str) -> Optional[MembershipTier]:
        return self.get_by_id(tier_id)
