# backend/app/services/checkout_service.py
"""
Outbound Stripe Checkout sessions.

Every session carries ``user_id`` and ``purchase_type`` metadata; the
webhook processor relies on both when the session completes.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session
import stripe

from ..core.config import settings
from ..core.constants import BRAND_NAME
from ..core.enums import PurchaseType, TierDuration
from ..core.exceptions import NotFoundException, ServiceException, ValidationException
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .booking_service import BookingService

logger = logging.getLogger(__name__)

# Tier duration -> (recurring interval, interval_count)
RECURRING_INTERVALS: Dict[str, tuple[str, int]] = {
    TierDuration.WEEKLY.value: ("week", 1),
    TierDuration.MONTHLY.value: ("month", 1),
    TierDuration.QUARTERLY.value: ("month", 3),
    TierDuration.ANNUAL.value: ("year", 1),
}


def to_minor_units(amount: Any) -> int:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValidationException(f"Invalid amount: {amount}", code="INVALID_AMOUNT")
    if value <= 0:
        raise ValidationException("Amount must be positive", code="INVALID_AMOUNT")
    return int((value * 100).quantize(Decimal("1")))


class CheckoutService(BaseService):
    def __init__(self, db: Session, booking_service: Optional[BookingService] = None):
        super().__init__(db)
        self.tier_repository = RepositoryFactory.create_membership_tier_repository(db)
        self.slot_repository = RepositoryFactory.create_session_slot_repository(db)
        self.booking_service = booking_service or BookingService(db)

        self.stripe_configured = False
        secret = settings.stripe_secret_key.get_secret_value()
        if secret:
            stripe.api_key = secret
            self.stripe_configured = True
        else:
            self.logger.warning("Stripe secret key not configured - checkout disabled")

    def _urls(self, success_path: str, cancel_path: str) -> Dict[str, str]:
        origin = settings.app_url.rstrip("/")
        return {"success_url": f"{origin}{success_path}", "cancel_url": f"{origin}{cancel_path}"}

    def _price_data(
        self, name: str, description: str, unit_amount: int, recurring: Optional[Dict] = None
    ) -> Dict[str, Any]:
        price_data: Dict[str, Any] = {
            "currency": settings.stripe_currency,
            "product_data": {"name": name, "description": description},
            "unit_amount": unit_amount,
        }
        if recurring:
            price_data["recurring"] = recurring
        return {"price_data": price_data, "quantity": 1}

    def _create_session(self, user: User, purchase_type: PurchaseType, **params: Any) -> Any:
        if not self.stripe_configured:
            raise ServiceException("Stripe is not configured", code="STRIPE_NOT_CONFIGURED")
        metadata = {"user_id": user.id, "purchase_type": purchase_type.value}
        metadata.update(params.pop("metadata", {}))
        try:
            return stripe.checkout.Session.create(
                customer_email=user.email or None,
                client_reference_id=user.id,
                metadata=metadata,
                allow_promotion_codes=True,
                **params,
            )
        except stripe.StripeError as e:
            self.logger.error(f"Stripe checkout creation failed: {str(e)}")
            raise ServiceException(f"Failed to create checkout session: {str(e)}")

    @BaseService.measure_operation("create_checkout")
    def create_checkout(
        self,
        user: User,
        purchase_type: str,
        *,
        tier_id: Optional[str] = None,
        voucher_amount: Optional[str] = None,
        recipient_name: Optional[str] = None,
        recipient_email: Optional[str] = None,
        message: Optional[str] = None,
        service_type_id: Optional[str] = None,
        booking_date: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> Dict[str, Optional[str]]:
        """Create a checkout session and return its id and redirect URL."""
        try:
            kind = PurchaseType(purchase_type)
        except ValueError:
            raise ValidationException(
                f"Unknown purchase type: {purchase_type}", code="INVALID_PURCHASE_TYPE"
            )

        if kind in (PurchaseType.SUBSCRIPTION, PurchaseType.MEMBERSHIP):
            session = self._tier_checkout(user, kind, tier_id)
        elif kind is PurchaseType.GIFT_VOUCHER:
            session = self._create_session(
                user,
                kind,
                mode="payment",
                line_items=[
                    self._price_data(
                        "Wellness Gift Voucher",
                        f"Redeemable for any service at {BRAND_NAME}",
                        to_minor_units(voucher_amount),
                    )
                ],
                metadata={
                    "voucher_amount": str(voucher_amount),
                    "recipient_name": recipient_name or "",
                    "recipient_email": recipient_email or "",
                    "message": message or "",
                },
                **self._urls(
                    "/dashboard?payment=success&type=voucher", "/gift-vouchers?payment=cancelled"
                ),
            )
        else:
            session = self._booking_checkout(user, service_type_id, booking_date, notes)

        self.logger.info(
            "Checkout session %s created for user %s (%s)", session.id, user.id, kind.value
        )
        return {"session_id": session.id, "url": session.url}

    def _tier_checkout(self, user: User, kind: PurchaseType, tier_id: Optional[str]) -> Any:
        tier = self.tier_repository.get_tier_by_id(tier_id) if tier_id else None
        if tier is None or not tier.is_active:
            raise NotFoundException("Membership tier not found", code="NOT_FOUND")

        if kind is PurchaseType.SUBSCRIPTION:
            interval, interval_count = RECURRING_INTERVALS.get(tier.duration, ("month", 1))
            line_item = (
                {"price": tier.stripe_price_id, "quantity": 1}
                if tier.stripe_price_id
                else self._price_data(
                    f"{tier.name} Membership",
                    f"{tier.duration} subscription - {tier.sessions_per_week} sessions/week",
                    to_minor_units(tier.price),
                    recurring={"interval": interval, "interval_count": interval_count},
                )
            )
            return self._create_session(
                user,
                kind,
                mode="subscription",
                line_items=[line_item],
                metadata={"tier_id": tier.id},
                **self._urls(
                    "/dashboard?payment=success&type=subscription",
                    "/memberships?payment=cancelled",
                ),
            )

        return self._create_session(
            user,
            kind,
            mode="payment",
            line_items=[
                self._price_data(
                    f"{tier.name} Membership",
                    f"{tier.duration} access to {BRAND_NAME}",
                    to_minor_units(tier.price),
                )
            ],
            metadata={"tier_id": tier.id},
            **self._urls("/dashboard?payment=success", "/memberships?payment=cancelled"),
        )

    def _booking_checkout(
        self,
        user: User,
        service_type_id: Optional[str],
        booking_date: Optional[datetime],
        notes: Optional[str],
    ) -> Any:
        service_type = (
            self.slot_repository.get_service_type(service_type_id) if service_type_id else None
        )
        if service_type is None or not service_type.is_active:
            raise NotFoundException("Service type not found", code="NOT_FOUND")
        if booking_date is None:
            raise ValidationException("booking_date is required", code="MISSING_BOOKING_DATE")

        booking = self.booking_service.create_pending_booking(
            user.id, service_type.id, booking_date, notes
        )
        return self._create_session(
            user,
            PurchaseType.BOOKING,
            mode="payment",
            line_items=[
                self._price_data(
                    service_type.name,
                    "Wellness service booking",
                    to_minor_units(service_type.price),
                )
            ],
            metadata={"booking_id": booking.id},
            **self._urls("/dashboard?payment=success&type=booking", "/book?payment=cancelled"),
        )
