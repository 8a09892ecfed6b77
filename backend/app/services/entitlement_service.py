# backend/app/services/entitlement_service.py
"""
Entitlement resolution.

A member is entitled to book when they hold an active subscription, or
failing that an unexpired active legacy membership. The tier attached to
whichever record wins supplies the weekly session limit.
"""

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.enums import SubscriptionStatus
from ..core.timezone_utils import utc_now
from ..models.membership import Membership, MembershipTier
from ..models.subscription import Subscription
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

ENTITLEMENT_SOURCE_SUBSCRIPTION = "subscription"
ENTITLEMENT_SOURCE_MEMBERSHIP = "membership"


@dataclass(frozen=True)
class Entitlement:
    source: str
    status: str
    tier: Optional[MembershipTier]
    subscription: Optional[Subscription] = None
    membership: Optional[Membership] = None

    @property
    def weekly_limit(self) -> int:
        """Tier sessions per week; 0 means unlimited (or no tier on record)."""
        if self.tier is None:
            return 0
        return int(self.tier.sessions_per_week or 0)

    @property
    def tier_name(self) -> Optional[str]:
        return self.tier.name if self.tier is not None else None

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE.value


class EntitlementService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.subscription_repository = RepositoryFactory.create_subscription_repository(db)
        self.membership_repository = RepositoryFactory.create_membership_repository(db)
        self.tier_repository = RepositoryFactory.create_membership_tier_repository(db)

    def get_active_subscription(self, user_id: str) -> Optional[Subscription]:
        return self.subscription_repository.get_active_for_user(user_id)

    def get_active_membership(
        self, user_id: str, now: Optional[datetime] = None
    ) -> Optional[Membership]:
        return self.membership_repository.get_active_for_user(user_id, now or utc_now())

    def get_membership_tier_by_id(self, tier_id: Optional[str]) -> Optional[MembershipTier]:
        if not tier_id:
            return None
        return self.tier_repository.get_tier_by_id(tier_id)

    def resolve(self, user_id: str, now: Optional[datetime] = None) -> Optional[Entitlement]:
        """Return the member's current entitlement, or None."""
        subscription = self.get_active_subscription(user_id)
        if subscription is not None:
            return Entitlement(
                source=ENTITLEMENT_SOURCE_SUBSCRIPTION,
                status=subscription.status,
                tier=self.get_membership_tier_by_id(subscription.tier_id),
                subscription=subscription,
            )

        membership = self.get_active_membership(user_id, now)
        if membership is not None:
            return Entitlement(
                source=ENTITLEMENT_SOURCE_MEMBERSHIP,
                status=membership.status,
                tier=self.get_membership_tier_by_id(membership.tier_id),
                membership=membership,
            )
        return None
