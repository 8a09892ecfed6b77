"""Builders for the rows booking-engine tests need: members, tiers, slots."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session
import ulid

from app.core.enums import (
    GiftVoucherStatus,
    MembershipStatus,
    SubscriptionStatus,
    TierDuration,
    UserRole,
    UserStatus,
)
from app.models.gift_voucher import GiftVoucher
from app.models.membership import Membership, MembershipTier
from app.models.session_slot import ServiceType, SessionSlot
from app.models.subscription import Subscription
from app.models.user import User


def _unique(prefix: str) -> str:
    return f"{prefix}-{str(ulid.ULID()).lower()}"


def create_user(
    session: Session,
    *,
    role: str = UserRole.USER.value,
    user_status: str = UserStatus.ACTIVE.value,
    email: Optional[str] = None,
) -> User:
    user = User(
        email=email or f"{_unique('member')}@example.com",
        name="Test Member",
        role=role,
        user_status=user_status,
    )
    session.add(user)
    session.flush()
    return user


def create_tier(
    session: Session,
    *,
    sessions_per_week: int = 3,
    duration: str = TierDuration.MONTHLY.value,
    price: Decimal = Decimal("99.00"),
    name: str = "Core",
) -> MembershipTier:
    tier = MembershipTier(
        name=name,
        duration=duration,
        price=price,
        sessions_per_week=sessions_per_week,
        is_active=True,
    )
    session.add(tier)
    session.flush()
    return tier


def create_subscription(
    session: Session,
    user: User,
    tier: MembershipTier,
    *,
    status: str = SubscriptionStatus.ACTIVE.value,
    provider_subscription_id: Optional[str] = None,
) -> Subscription:
    subscription = Subscription(
        user_id=user.id,
        tier_id=tier.id,
        status=status,
        payment_provider="stripe",
        provider_subscription_id=provider_subscription_id or _unique("sub"),
        current_period_start=datetime.now(timezone.utc),
    )
    session.add(subscription)
    session.flush()
    return subscription


def create_membership(
    session: Session,
    user: User,
    tier: MembershipTier,
    *,
    status: str = MembershipStatus.ACTIVE.value,
    days_remaining: int = 30,
) -> Membership:
    now = datetime.now(timezone.utc)
    membership = Membership(
        user_id=user.id,
        tier_id=tier.id,
        status=status,
        start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=days_remaining),
    )
    session.add(membership)
    session.flush()
    return membership


def create_service_type(session: Session, *, name: str = "Sauna") -> ServiceType:
    service_type = ServiceType(name=name, duration_minutes=60, price=Decimal("35.00"))
    session.add(service_type)
    session.flush()
    return service_type


def create_slot(
    session: Session,
    service_type: ServiceType,
    *,
    starts_at: Optional[datetime] = None,
    capacity: int = 6,
    booked_count: int = 0,
    is_active: bool = True,
) -> SessionSlot:
    start = starts_at or datetime.now(timezone.utc) + timedelta(days=1)
    slot = SessionSlot(
        service_type_id=service_type.id,
        name=f"{service_type.name} session",
        starts_at_utc=start,
        ends_at_utc=start + timedelta(hours=1),
        capacity=capacity,
        booked_count=booked_count,
        is_active=is_active,
    )
    session.add(slot)
    session.flush()
    return slot


def create_entitled_member(
    session: Session, *, sessions_per_week: int = 3
) -> tuple[User, MembershipTier, Subscription]:
    """Member with an active subscription on a fresh tier."""
    user = create_user(session)
    tier = create_tier(session, sessions_per_week=sessions_per_week)
    subscription = create_subscription(session, user, tier)
    return user, tier, subscription


def create_gift_voucher(
    session: Session,
    purchaser: User,
    *,
    code: Optional[str] = None,
    amount: Decimal = Decimal("50.00"),
    status: str = GiftVoucherStatus.ACTIVE.value,
    expires_at: Optional[datetime] = None,
) -> GiftVoucher:
    voucher = GiftVoucher(
        code=code or f"HEAL-{str(ulid.ULID())[-10:]}",
        purchaser_user_id=purchaser.id,
        amount=amount,
        status=status,
        expires_at=expires_at or datetime.now(timezone.utc) + timedelta(days=365),
    )
    session.add(voucher)
    session.flush()
    return voucher


def auth_headers(user: User) -> dict[str, str]:
    """Headers the upstream gateway would forward for ``user``."""
    return {"X-User-Id": user.id}
