# backend/app/services/booking_service.py
"""
Booking Service for the studio booking engine

Handles the booking lifecycle against capacity-limited session slots:
- Booking a seat under the member's weekly quota
- Cancelling with the refund cutoff policy
- Summarizing the member's current week
- Admin status edits and payment confirmation of pending bookings

Booking runs as short phases rather than one long transaction:
    1. Read/validate (entitlement, slot, duplicate check)
    2. Materialize the week's quota row and pre-check the quota
    3. Reserve a seat with one conditional UPDATE (the authoritative gate)
    4. Insert the booking and count it against the quota

If phase 4 fails, the seat taken in phase 3 is handed back by an explicit
compensating release rather than relying on a shared rollback.
"""

from __future__ import annotations

from datetime import date, datetime
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import LATE_CANCELLATION_REASON, REFUND_CANCELLATION_REASON
from ..core.enums import BookingStatus
from ..core.exceptions import (
    AlreadyBookedException,
    AlreadyCancelledException,
    BookingNotFoundException,
    DomainException,
    InvalidStatusTransitionException,
    NoActiveSubscriptionException,
    QuotaExceededException,
    SlotFullException,
    SlotNotFoundException,
    SlotPastException,
)
from ..core.timezone_utils import ensure_utc, utc_now
from ..models.booking import Booking
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .audit_service import AuditService
from .base import BaseService
from .entitlement_service import EntitlementService
from .timezone_service import TimezoneService

logger = logging.getLogger(__name__)

# Admin-driven status edits, orthogonal to cancellation
ADMIN_STATUS_TRANSITIONS: Dict[str, List[str]] = {
    BookingStatus.CONFIRMED.value: [BookingStatus.PENDING.value],
    BookingStatus.NO_SHOW.value: [BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value],
    BookingStatus.COMPLETED.value: [BookingStatus.CONFIRMED.value],
}


class BookingService(BaseService):
    """Service layer for booking operations."""

    def __init__(
        self,
        db: Session,
        entitlement_service: Optional[EntitlementService] = None,
        audit_service: Optional[AuditService] = None,
        *,
        cancellation_cutoff_hours: Optional[float] = None,
        studio_timezone: Optional[str] = None,
    ):
        super().__init__(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.slot_repository = RepositoryFactory.create_session_slot_repository(db)
        self.usage_repository = RepositoryFactory.create_weekly_usage_repository(db)
        self.entitlement_service = entitlement_service or EntitlementService(db)
        self.audit_service = audit_service or AuditService(db)
        self.cancellation_cutoff_hours = (
            settings.cancellation_cutoff_hours
            if cancellation_cutoff_hours is None
            else cancellation_cutoff_hours
        )
        self.studio_timezone = studio_timezone or settings.studio_timezone

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        user_id: str,
        slot_id: str,
        service_type_id: str,
        notes: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> Booking:
        """
        Book one seat in a session slot for the member.

        Raises:
            NoActiveSubscriptionException: no active subscription or membership
            SlotNotFoundException: slot missing or inactive
            SlotPastException: slot already started
            AlreadyBookedException: member holds a live booking for the slot
            QuotaExceededException: weekly limit reached
            SlotFullException: lost the race for the last seat
        """
        try:
            booking = self._create_booking(user_id, slot_id, service_type_id, notes, now)
        except DomainException as exc:
            prometheus_metrics.record_booking_attempt(exc.code)
            raise
        prometheus_metrics.record_booking_attempt("booked")
        return booking

    def _create_booking(
        self,
        user_id: str,
        slot_id: str,
        service_type_id: str,
        notes: Optional[str],
        now: Optional[datetime],
    ) -> Booking:
        now = now or utc_now()

        # Phase 1: read/validate
        entitlement = self.entitlement_service.resolve(user_id, now)
        if entitlement is None:
            raise NoActiveSubscriptionException(details={"user_id": user_id})

        slot = self.slot_repository.get_slot_by_id(slot_id)
        if slot is None or not slot.is_active:
            raise SlotNotFoundException(slot_id)
        starts_at = ensure_utc(slot.starts_at_utc)
        if starts_at is None or starts_at <= now:
            raise SlotPastException(slot_id)

        if self.booking_repository.has_active_booking_for_slot(user_id, slot_id):
            raise AlreadyBookedException(slot_id)

        # Phase 2: quota row + pre-check
        weekly_limit = entitlement.weekly_limit
        week_start = TimezoneService.week_start_for(now, self.studio_timezone)
        with self.transaction():
            usage = self.usage_repository.ensure_row(user_id, week_start, weekly_limit)
            sessions_used = usage.sessions_used
            sessions_limit = usage.sessions_limit_snapshot

        if weekly_limit > 0 and sessions_used >= sessions_limit:
            raise QuotaExceededException(week_start.isoformat(), sessions_used, sessions_limit)

        # Phase 3: authoritative seat reservation
        with self.transaction():
            reserved = self.slot_repository.reserve_seat(slot_id)
        if not reserved:
            self.logger.info("Seat race lost on slot %s by user %s", slot_id, user_id)
            raise SlotFullException(slot_id)

        # Phase 4: booking row + usage, compensated on failure
        try:
            with self.transaction():
                booking = self._insert_booking(
                    user_id=user_id,
                    slot_id=slot_id,
                    service_type_id=service_type_id,
                    booking_date=starts_at,
                    notes=notes,
                    week_start=week_start,
                    now=now,
                )
                counted = self.usage_repository.increment_used(
                    user_id, week_start, enforce_limit=weekly_limit > 0
                )
                if not counted:
                    usage = self.usage_repository.get(user_id, week_start)
                    raise QuotaExceededException(
                        week_start.isoformat(),
                        usage.sessions_used if usage else 0,
                        usage.sessions_limit_snapshot if usage else 0,
                    )
                self.audit_service.record(
                    "booking.created",
                    "booking",
                    booking.id,
                    actor_id=user_id,
                    details={"slot_id": slot_id, "week_start": week_start.isoformat()},
                )
        except Exception:
            self._release_seat_after_failure(slot_id)
            raise

        self.logger.info(
            "Created booking %s for user %s on slot %s", booking.id, user_id, slot_id
        )
        return booking

    def _insert_booking(
        self,
        *,
        user_id: str,
        slot_id: str,
        service_type_id: str,
        booking_date: datetime,
        notes: Optional[str],
        week_start: date,
        now: datetime,
    ) -> Booking:
        try:
            with self.booking_repository.savepoint():
                return self.booking_repository.create_booking(
                    user_id=user_id,
                    session_slot_id=slot_id,
                    service_type_id=service_type_id,
                    booking_date=booking_date,
                    status=BookingStatus.CONFIRMED.value,
                    notes=notes,
                    quota_week_start_date=week_start,
                    confirmed_at=now,
                )
        except IntegrityError as exc:
            self.logger.info(
                "Duplicate booking insert for user %s on slot %s: %s", user_id, slot_id, exc
            )
            raise AlreadyBookedException(slot_id)

    def _release_seat_after_failure(self, slot_id: str) -> None:
        """Compensate a reservation whose booking could not be recorded."""
        try:
            with self.transaction():
                self.slot_repository.release_seat(slot_id)
        except Exception:
            self.logger.exception("Failed to release seat on slot %s after booking failure", slot_id)

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(
        self,
        booking_id: str,
        user_id: str,
        reason: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Cancel the member's booking.

        Cancelling at least ``cancellation_cutoff_hours`` before the session
        returns the weekly credit; later cancellations only free the seat.
        """
        now = now or utc_now()
        booking = self.booking_repository.get_by_id(booking_id)
        if booking is None or booking.user_id != user_id:
            raise BookingNotFoundException(booking_id)
        if booking.is_cancelled:
            raise AlreadyCancelledException(booking_id)

        slot_id = booking.session_slot_id
        charged_week = booking.quota_week_start_date
        booking_date = ensure_utc(booking.booking_date)
        assert booking_date is not None
        refund_eligible = (
            TimezoneService.hours_until(booking_date, now) >= self.cancellation_cutoff_hours
        )
        final_reason = reason or (
            REFUND_CANCELLATION_REASON if refund_eligible else LATE_CANCELLATION_REASON
        )

        with self.transaction():
            if not self.booking_repository.mark_cancelled(booking_id, now, final_reason):
                raise AlreadyCancelledException(booking_id)
            if slot_id:
                self.slot_repository.release_seat(slot_id)
            credit_returned = False
            if refund_eligible and charged_week is not None:
                credit_returned = self.usage_repository.decrement_used(user_id, charged_week)
            self.audit_service.record(
                "booking.cancelled",
                "booking",
                booking_id,
                actor_id=user_id,
                details={"refund_eligible": refund_eligible, "credit_returned": credit_returned},
            )

        prometheus_metrics.record_cancellation(refund_eligible)
        self.logger.info(
            "Cancelled booking %s for user %s (refund_eligible=%s)",
            booking_id,
            user_id,
            refund_eligible,
        )
        return {"success": True, "refund_eligible": refund_eligible}

    # ------------------------------------------------------------------
    # Summary and listing
    # ------------------------------------------------------------------

    @BaseService.measure_operation("get_summary")
    def get_summary(self, user_id: str, *, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Current-week usage snapshot. Pure read: never creates the usage row."""
        now = now or utc_now()
        week_start = TimezoneService.week_start_for(now, self.studio_timezone)
        entitlement = self.entitlement_service.resolve(user_id, now)

        weekly_limit = entitlement.weekly_limit if entitlement else 0
        tier_name = (entitlement.tier_name or "") if entitlement else ""
        status = entitlement.status if entitlement else "none"
        has_entitlement = entitlement is not None

        usage = self.usage_repository.get(user_id, week_start)
        sessions_used = usage.sessions_used if usage else 0
        effective_limit = usage.sessions_limit_snapshot if usage else weekly_limit

        return {
            "week_start": week_start.isoformat(),
            "sessions_used": sessions_used,
            "sessions_remaining": max(effective_limit - sessions_used, 0),
            "weekly_limit": effective_limit,
            "tier_name": tier_name,
            "subscription_status": status,
            "has_active_subscription": has_entitlement,
            "can_book": has_entitlement
            and (weekly_limit == 0 or sessions_used < effective_limit)
            and status == "active",
        }

    def list_bookings_for_user(self, user_id: str, limit: int = 100) -> List[Booking]:
        return self.booking_repository.list_for_user(user_id, limit=limit)

    # ------------------------------------------------------------------
    # Admin and payment driven transitions
    # ------------------------------------------------------------------

    @BaseService.measure_operation("update_status")
    def update_status(
        self, booking_id: str, status: str, *, admin_user_id: Optional[str] = None
    ) -> Booking:
        """
        Admin status edit (confirm, no-show, complete).

        These edits never touch seat or quota counters.
        """
        booking = self.booking_repository.get_by_id(booking_id)
        if booking is None:
            raise BookingNotFoundException(booking_id)

        allowed_from = ADMIN_STATUS_TRANSITIONS.get(status)
        current = booking.status
        if not allowed_from or current not in allowed_from:
            raise InvalidStatusTransitionException(booking_id, current, status)

        extra: Dict[str, Any] = {"updated_at": utc_now()}
        if status == BookingStatus.CONFIRMED.value:
            extra["confirmed_at"] = utc_now()

        with self.transaction():
            if not self.booking_repository.transition_status(
                booking_id, allowed_from, status, **extra
            ):
                refreshed = self.booking_repository.get_by_id(booking_id)
                raise InvalidStatusTransitionException(
                    booking_id, refreshed.status if refreshed else current, status
                )
            self.audit_service.record(
                "booking.status_changed",
                "booking",
                booking_id,
                actor_id=admin_user_id,
                details={"from": current, "to": status},
            )

        updated = self.booking_repository.get_by_id(booking_id)
        assert updated is not None
        return updated

    def create_pending_booking(
        self,
        user_id: str,
        service_type_id: str,
        booking_date: datetime,
        notes: Optional[str] = None,
    ) -> Booking:
        """Pay-per-session booking awaiting checkout; outside the weekly quota."""
        with self.transaction():
            booking = self.booking_repository.create_booking(
                user_id=user_id,
                session_slot_id=None,
                service_type_id=service_type_id,
                booking_date=ensure_utc(booking_date),
                status=BookingStatus.PENDING.value,
                notes=notes,
            )
        return booking

    def confirm_paid_booking(self, booking_id: str, payment_intent_id: Optional[str]) -> bool:
        """
        Confirm a pending booking after payment. Idempotent.

        The caller owns the transaction.
        """
        now = utc_now()
        if self.booking_repository.transition_status(
            booking_id,
            [BookingStatus.PENDING.value],
            BookingStatus.CONFIRMED.value,
            stripe_payment_intent_id=payment_intent_id,
            confirmed_at=now,
            updated_at=now,
        ):
            self.logger.info("Booking %s confirmed after payment", booking_id)
            return True

        booking = self.booking_repository.get_by_id(booking_id)
        if booking is None:
            self.logger.warning("Paid booking %s not found", booking_id)
        elif booking.status != BookingStatus.CONFIRMED.value:
            self.logger.warning(
                "Paid booking %s left in status %s", booking_id, booking.status
            )
        return False
