# backend/app/services/stripe_webhook_service.py
"""
Stripe webhook processing.

Ingress is split in three steps:
1. ``verify_signature`` authenticates the raw payload before anything is
   written.
2. The webhook ledger claims the event id, so redeliveries are no-ops.
3. ``process_event`` applies the effect of the event in one transaction.

A failed processing attempt leaves the ledger row ``failed``; the next
redelivery of the same event may re-claim it.
"""

from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
import json
import logging
import secrets
import string
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session
import stripe

from ..core.config import settings
from ..core.constants import (
    GIFT_VOUCHER_CODE_LENGTH,
    GIFT_VOUCHER_PREFIX,
    GIFT_VOUCHER_VALIDITY_MONTHS,
    STRIPE_PROVIDER,
    STRIPE_TEST_EVENT_PREFIX,
)
from ..core.enums import (
    GiftVoucherStatus,
    MembershipStatus,
    PurchaseType,
    SubscriptionStatus,
    TierDuration,
    TransactionStatus,
    TransactionType,
)
from ..core.exceptions import ServiceException, ValidationException
from ..core.timezone_utils import add_months, from_epoch_seconds, utc_now
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .audit_service import AuditService, PaymentLedgerService
from .base import BaseService
from .booking_service import BookingService
from .webhook_ledger_service import WebhookLedgerService

logger = logging.getLogger(__name__)

# External subscription status -> internal status
STRIPE_SUBSCRIPTION_STATUS_MAP: Dict[str, str] = {
    "active": SubscriptionStatus.ACTIVE.value,
    "past_due": SubscriptionStatus.PAST_DUE.value,
    "unpaid": SubscriptionStatus.UNPAID.value,
    "canceled": SubscriptionStatus.CANCELLED.value,
    "incomplete": SubscriptionStatus.PENDING.value,
    "incomplete_expired": SubscriptionStatus.CANCELLED.value,
    "trialing": SubscriptionStatus.ACTIVE.value,
    "paused": SubscriptionStatus.SUSPENDED.value,
}

_VOUCHER_ALPHABET = string.ascii_uppercase + string.digits


def generate_voucher_code() -> str:
    suffix = "".join(secrets.choice(_VOUCHER_ALPHABET) for _ in range(GIFT_VOUCHER_CODE_LENGTH))
    return f"{GIFT_VOUCHER_PREFIX}{suffix}"


def membership_end_date(start: datetime, duration: str) -> datetime:
    """Expiry of a one-off membership bought at ``start``."""
    if duration == TierDuration.WEEKLY.value:
        return start + timedelta(days=7)
    if duration == TierDuration.MONTHLY.value:
        return add_months(start, 1)
    if duration == TierDuration.QUARTERLY.value:
        return add_months(start, 3)
    if duration == TierDuration.ANNUAL.value:
        return add_months(start, 12)
    raise ValidationException(
        f"Unknown membership duration: {duration}",
        code="INVALID_TIER_DURATION",
        details={"duration": duration},
    )


def _invoice_subscription_id(invoice: Dict[str, Any]) -> Optional[str]:
    # Newer API versions nest the subscription under parent.subscription_details
    if invoice.get("subscription"):
        return str(invoice["subscription"])
    parent = invoice.get("parent") or {}
    details = parent.get("subscription_details") or {}
    subscription_id = details.get("subscription")
    return str(subscription_id) if subscription_id else None


class StripeWebhookService(BaseService):
    """Verifies, de-duplicates and applies Stripe webhook events."""

    def __init__(
        self,
        db: Session,
        booking_service: Optional[BookingService] = None,
        ledger_service: Optional[WebhookLedgerService] = None,
        payment_ledger: Optional[PaymentLedgerService] = None,
        audit_service: Optional[AuditService] = None,
    ):
        super().__init__(db)
        self.subscription_repository = RepositoryFactory.create_subscription_repository(db)
        self.membership_repository = RepositoryFactory.create_membership_repository(db)
        self.tier_repository = RepositoryFactory.create_membership_tier_repository(db)
        self.voucher_repository = RepositoryFactory.create_gift_voucher_repository(db)
        self.booking_service = booking_service or BookingService(db)
        self.ledger_service = ledger_service or WebhookLedgerService(db)
        self.payment_ledger = payment_ledger or PaymentLedgerService(db)
        self.audit_service = audit_service or AuditService(db)

        self._handlers: Dict[str, Callable[[Dict[str, Any]], None]] = {
            "checkout.session.completed": self._handle_checkout_completed,
            "invoice.paid": self._handle_invoice_paid,
            "invoice.payment_failed": self._handle_invoice_payment_failed,
            "customer.subscription.updated": self._handle_subscription_updated,
            "customer.subscription.deleted": self._handle_subscription_deleted,
            "payment_intent.succeeded": self._handle_payment_intent_succeeded,
            "payment_intent.payment_failed": self._handle_payment_intent_failed,
        }

    def verify_signature(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Authenticate a raw webhook body and return the decoded event.

        Raises:
            ValidationException: missing or invalid signature
            ServiceException: webhook secret not configured
        """
        if not signature:
            self.logger.warning("Webhook received without signature")
            raise ValidationException("No signature", code="MISSING_SIGNATURE")

        secret = settings.stripe_webhook_secret_value()
        if not secret:
            self.logger.error("Stripe webhook secret not configured")
            raise ServiceException("Webhook configuration error", code="WEBHOOK_NOT_CONFIGURED")

        try:
            stripe.Webhook.construct_event(payload, signature, secret)
        except stripe.SignatureVerificationError as e:
            self.logger.warning(f"Invalid webhook signature: {str(e)}")
            raise ValidationException(f"Webhook Error: {str(e)}", code="INVALID_SIGNATURE")
        except ValueError as e:
            self.logger.warning(f"Invalid webhook payload: {str(e)}")
            raise ValidationException(f"Webhook Error: {str(e)}", code="INVALID_PAYLOAD")

        return json.loads(payload)

    @BaseService.measure_operation("stripe_webhook.handle")
    def handle_verified_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run one authenticated event through the ledger and the processor.

        Returns the response body for the provider. Raises ServiceException
        after marking the ledger row failed when processing errors.
        """
        event_id = str(event.get("id") or "")
        event_type = str(event.get("type") or "unknown")

        if event_id.startswith(STRIPE_TEST_EVENT_PREFIX):
            self.logger.info("Test event %s detected, returning verification response", event_id)
            prometheus_metrics.record_webhook_event(STRIPE_PROVIDER, "test")
            return {"verified": True}

        if not event_id:
            raise ValidationException("Webhook event has no id", code="INVALID_PAYLOAD")

        self.logger.info("Processing webhook event %s (%s)", event_type, event_id)
        ledger_row, is_new = self.ledger_service.claim(
            provider=STRIPE_PROVIDER,
            event_id=event_id,
            event_type=event_type,
            payload=(event.get("data") or {}).get("object") or {},
        )
        if not is_new or ledger_row is None:
            prometheus_metrics.record_webhook_event(STRIPE_PROVIDER, "duplicate")
            return {"received": True, "duplicate": True}

        try:
            self.process_event(event)
        except Exception as e:
            self.logger.error("Error processing webhook event %s: %s", event_id, str(e))
            self.ledger_service.mark_failed(ledger_row, error=str(e))
            prometheus_metrics.record_webhook_event(STRIPE_PROVIDER, "failed")
            raise ServiceException(
                "Webhook processing failed",
                code="WEBHOOK_PROCESSING_FAILED",
                details={"event_id": event_id, "event_type": event_type},
            ) from e

        self.ledger_service.mark_processed(ledger_row)
        prometheus_metrics.record_webhook_event(STRIPE_PROVIDER, "processed")
        return {"received": True}

    def process_event(self, event: Dict[str, Any]) -> bool:
        """
        Apply the effect of one event. Returns False for unhandled types.

        All writes for the event commit together.
        """
        event_type = event.get("type", "")
        handler = self._handlers.get(event_type)
        if handler is None:
            self.logger.info(f"Unhandled webhook event type: {event_type}")
            return False

        payload_object = (event.get("data") or {}).get("object") or {}
        with self.transaction():
            handler(payload_object)
        return True

    # Checkout

    def _handle_checkout_completed(self, session: Dict[str, Any]) -> None:
        metadata = session.get("metadata") or {}
        user_id = metadata.get("user_id")
        if not user_id:
            self.logger.warning("Checkout session %s missing user_id metadata", session.get("id"))
            return

        purchase_type = metadata.get("purchase_type")
        if purchase_type == PurchaseType.SUBSCRIPTION.value:
            self._create_subscription(user_id, session, metadata)
        elif purchase_type == PurchaseType.MEMBERSHIP.value:
            self._create_membership(user_id, session, metadata)
        elif purchase_type == PurchaseType.GIFT_VOUCHER.value:
            self._create_gift_voucher(user_id, session, metadata)
        elif purchase_type == PurchaseType.BOOKING.value:
            self._confirm_booking(user_id, session, metadata)
        else:
            self.logger.warning(
                "Checkout session %s has unknown purchase_type %r",
                session.get("id"),
                purchase_type,
            )

    def _create_subscription(
        self, user_id: str, session: Dict[str, Any], metadata: Dict[str, Any]
    ) -> None:
        provider_subscription_id = session.get("subscription")
        tier_id = metadata.get("tier_id")
        if not provider_subscription_id or not tier_id:
            self.logger.warning(
                "Subscription checkout %s missing subscription or tier_id", session.get("id")
            )
            return

        existing = self.subscription_repository.get_by_provider_id(provider_subscription_id)
        if existing is not None:
            self.logger.info(
                "Subscription %s already recorded as %s", provider_subscription_id, existing.id
            )
            return

        now = utc_now()
        replaced = self.subscription_repository.cancel_active_for_user(user_id, now)
        if replaced:
            self.logger.info("Cancelled %d prior subscription(s) for user %s", replaced, user_id)

        subscription = self.subscription_repository.create(
            user_id=user_id,
            tier_id=tier_id,
            status=SubscriptionStatus.ACTIVE.value,
            payment_provider=STRIPE_PROVIDER,
            provider_subscription_id=provider_subscription_id,
            provider_customer_id=session.get("customer"),
            current_period_start=now,
            current_period_end=None,
        )
        self.payment_ledger.record_transaction(
            user_id=user_id,
            transaction_type=TransactionType.SUBSCRIPTION.value,
            status=TransactionStatus.SUCCEEDED.value,
            amount_total=session.get("amount_total"),
            currency=session.get("currency"),
            stripe_payment_intent_id=session.get("payment_intent") or provider_subscription_id,
            subscription_id=subscription.id,
        )
        self.audit_service.record(
            "subscription.created",
            "subscription",
            subscription.id,
            actor_id=user_id,
            details={"tier_id": tier_id, "provider_subscription_id": provider_subscription_id},
        )
        self.logger.info("Subscription created for user %s tier %s", user_id, tier_id)

    def _create_membership(
        self, user_id: str, session: Dict[str, Any], metadata: Dict[str, Any]
    ) -> None:
        payment_intent_id = session.get("payment_intent")
        if payment_intent_id and self.membership_repository.get_by_payment_intent(
            payment_intent_id
        ):
            self.logger.info("Membership for payment %s already recorded", payment_intent_id)
            return

        tier = self.tier_repository.get_tier_by_id(metadata.get("tier_id") or "")
        if tier is None:
            self.logger.warning(
                "Membership checkout %s references unknown tier %r",
                session.get("id"),
                metadata.get("tier_id"),
            )
            return

        start = utc_now()
        membership = self.membership_repository.create(
            user_id=user_id,
            tier_id=tier.id,
            status=MembershipStatus.ACTIVE.value,
            start_date=start,
            end_date=membership_end_date(start, tier.duration),
            stripe_payment_intent_id=payment_intent_id,
        )
        self.payment_ledger.record_transaction(
            user_id=user_id,
            transaction_type=TransactionType.MEMBERSHIP.value,
            status=TransactionStatus.SUCCEEDED.value,
            amount_total=session.get("amount_total")
            if session.get("amount_total") is not None
            else int(Decimal(tier.price or 0) * 100),
            currency=session.get("currency"),
            stripe_payment_intent_id=payment_intent_id,
            membership_id=membership.id,
        )
        self.logger.info("Membership created for user %s tier %s", user_id, tier.id)

    def _create_gift_voucher(
        self, user_id: str, session: Dict[str, Any], metadata: Dict[str, Any]
    ) -> None:
        payment_intent_id = session.get("payment_intent")
        if payment_intent_id and self.voucher_repository.get_by_payment_intent(payment_intent_id):
            self.logger.info("Gift voucher for payment %s already issued", payment_intent_id)
            return

        try:
            amount = Decimal(str(metadata.get("voucher_amount")))
        except (InvalidOperation, ValueError):
            amount = PaymentLedgerService.amount_from_minor_units(session.get("amount_total"))

        now = utc_now()
        voucher = self.voucher_repository.create(
            code=generate_voucher_code(),
            purchaser_user_id=user_id,
            amount=amount,
            recipient_name=metadata.get("recipient_name"),
            recipient_email=metadata.get("recipient_email"),
            message=metadata.get("message"),
            status=GiftVoucherStatus.ACTIVE.value,
            stripe_payment_intent_id=payment_intent_id,
            expires_at=add_months(now, GIFT_VOUCHER_VALIDITY_MONTHS),
        )
        self.payment_ledger.record_transaction(
            user_id=user_id,
            transaction_type=TransactionType.GIFT_VOUCHER.value,
            status=TransactionStatus.SUCCEEDED.value,
            amount_total=int(amount * 100),
            currency=session.get("currency"),
            stripe_payment_intent_id=payment_intent_id,
            gift_voucher_id=voucher.id,
        )
        self.logger.info("Gift voucher %s issued to user %s", voucher.code, user_id)

    def _confirm_booking(
        self, user_id: str, session: Dict[str, Any], metadata: Dict[str, Any]
    ) -> None:
        booking_id = metadata.get("booking_id")
        if not booking_id:
            self.logger.warning("Booking checkout %s missing booking_id", session.get("id"))
            return

        payment_intent_id = session.get("payment_intent")
        self.booking_service.confirm_paid_booking(booking_id, payment_intent_id)
        self.payment_ledger.record_transaction(
            user_id=user_id,
            transaction_type=TransactionType.BOOKING.value,
            status=TransactionStatus.SUCCEEDED.value,
            amount_total=session.get("amount_total"),
            currency=session.get("currency"),
            stripe_payment_intent_id=payment_intent_id,
            booking_id=booking_id,
        )

    # Invoices

    def _handle_invoice_paid(self, invoice: Dict[str, Any]) -> None:
        provider_subscription_id = _invoice_subscription_id(invoice)
        if not provider_subscription_id:
            return
        subscription = self.subscription_repository.get_by_provider_id(provider_subscription_id)
        if subscription is None:
            self.logger.warning("invoice.paid for unknown subscription %s", provider_subscription_id)
            return

        now = utc_now()
        self.subscription_repository.set_status(
            subscription.id,
            SubscriptionStatus.ACTIVE.value,
            current_period_start=from_epoch_seconds(invoice.get("period_start")) or now,
            current_period_end=from_epoch_seconds(invoice.get("period_end")),
            updated_at=now,
        )
        self.payment_ledger.record_transaction(
            user_id=subscription.user_id,
            transaction_type=TransactionType.SUBSCRIPTION.value,
            status=TransactionStatus.SUCCEEDED.value,
            amount_total=invoice.get("amount_paid"),
            currency=invoice.get("currency"),
            stripe_payment_intent_id=invoice.get("payment_intent"),
            stripe_invoice_id=invoice.get("id"),
            subscription_id=subscription.id,
        )
        self.logger.info("Subscription renewed for user %s", subscription.user_id)

    def _handle_invoice_payment_failed(self, invoice: Dict[str, Any]) -> None:
        provider_subscription_id = _invoice_subscription_id(invoice)
        if not provider_subscription_id:
            return
        subscription = self.subscription_repository.get_by_provider_id(provider_subscription_id)
        if subscription is None:
            self.logger.warning(
                "invoice.payment_failed for unknown subscription %s", provider_subscription_id
            )
            return

        self.subscription_repository.set_status(
            subscription.id, SubscriptionStatus.PAST_DUE.value, updated_at=utc_now()
        )
        self.payment_ledger.record_transaction(
            user_id=subscription.user_id,
            transaction_type=TransactionType.SUBSCRIPTION.value,
            status=TransactionStatus.FAILED.value,
            amount_total=invoice.get("amount_due"),
            currency=invoice.get("currency"),
            stripe_payment_intent_id=invoice.get("payment_intent"),
            stripe_invoice_id=invoice.get("id"),
            subscription_id=subscription.id,
        )
        self.logger.warning(
            "Payment failed for subscription %s user %s", subscription.id, subscription.user_id
        )

    # Subscription lifecycle

    def _handle_subscription_updated(self, stripe_subscription: Dict[str, Any]) -> None:
        subscription = self.subscription_repository.get_by_provider_id(
            stripe_subscription.get("id") or ""
        )
        if subscription is None:
            return

        previous_status = subscription.status
        external_status = stripe_subscription.get("status")
        new_status = STRIPE_SUBSCRIPTION_STATUS_MAP.get(external_status or "", subscription.status)
        period_start = from_epoch_seconds(stripe_subscription.get("current_period_start"))
        period_end = from_epoch_seconds(stripe_subscription.get("current_period_end"))

        self.subscription_repository.set_status(
            subscription.id,
            new_status,
            current_period_start=period_start or subscription.current_period_start,
            current_period_end=period_end or subscription.current_period_end,
            updated_at=utc_now(),
        )
        self.logger.info(
            "Subscription %s updated: %s -> %s (external %s)",
            subscription.id,
            previous_status,
            new_status,
            external_status,
        )

    def _handle_subscription_deleted(self, stripe_subscription: Dict[str, Any]) -> None:
        subscription = self.subscription_repository.get_by_provider_id(
            stripe_subscription.get("id") or ""
        )
        if subscription is None:
            return

        now = utc_now()
        self.subscription_repository.set_status(
            subscription.id,
            SubscriptionStatus.CANCELLED.value,
            cancelled_at=now,
            updated_at=now,
        )
        self.logger.info(
            "Subscription %s cancelled for user %s", subscription.id, subscription.user_id
        )

    # Payment intents are informational only

    def _handle_payment_intent_succeeded(self, payment_intent: Dict[str, Any]) -> None:
        self.logger.info("Payment succeeded: %s", payment_intent.get("id"))

    def _handle_payment_intent_failed(self, payment_intent: Dict[str, Any]) -> None:
        self.logger.error("Payment failed: %s", payment_intent.get("id"))
