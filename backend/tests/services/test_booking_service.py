"""Booking lifecycle: seat admission, weekly quota, cancellation refunds."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import threading
from unittest.mock import patch

import pytest

from app.core.constants import LATE_CANCELLATION_REASON, REFUND_CANCELLATION_REASON
from app.core.enums import BookingStatus, SubscriptionStatus
from app.core.exceptions import (
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
from app.models.booking import Booking
from app.models.session_slot import SessionSlot
from app.repositories.booking_repository import BookingRepository
from app.repositories.weekly_usage_repository import WeeklyUsageRepository
from app.services.booking_service import BookingService
from app.services.timezone_service import TimezoneService
from tests.factories import booking_builders


def _usage(db, user_id, now):
    week_start = TimezoneService.week_start_for(now)
    return WeeklyUsageRepository(db).get(user_id, week_start)


def _slot(db, slot_id) -> SessionSlot:
    db.expire_all()
    return db.get(SessionSlot, slot_id)


class TestCreateBooking:
    def test_books_seat_and_counts_quota(self, db, member):
        slot = booking_builders.create_slot(db, member["service_type"], capacity=4)
        db.commit()
        service = BookingService(db)
        now = datetime.now(timezone.utc)

        booking = service.create_booking(
            member["user"].id, slot.id, member["service_type"].id, "first visit", now=now
        )

        assert booking.status == BookingStatus.CONFIRMED.value
        assert booking.quota_week_start_date == TimezoneService.week_start_for(now)
        assert booking.notes == "first visit"
        assert _slot(db, slot.id).booked_count == 1
        usage = _usage(db, member["user"].id, now)
        assert usage.sessions_used == 1
        assert usage.sessions_limit_snapshot == 3

    def test_requires_entitlement(self, db, member):
        stranger = booking_builders.create_user(db)
        slot = booking_builders.create_slot(db, member["service_type"])
        db.commit()

        with pytest.raises(NoActiveSubscriptionException) as exc_info:
            BookingService(db).create_booking(stranger.id, slot.id, member["service_type"].id)

        assert exc_info.value.code == "NO_ACTIVE_SUBSCRIPTION"
        assert exc_info.value.status_code == 402
        assert _slot(db, slot.id).booked_count == 0

    def test_legacy_membership_is_enough(self, db, member):
        user = booking_builders.create_user(db)
        tier = booking_builders.create_tier(db, sessions_per_week=2)
        booking_builders.create_membership(db, user, tier)
        slot = booking_builders.create_slot(db, member["service_type"])
        db.commit()

        booking = BookingService(db).create_booking(user.id, slot.id, member["service_type"].id)

        assert booking.status == BookingStatus.CONFIRMED.value

    def test_suspended_subscription_cannot_book(self, db, member):
        member["subscription"].status = SubscriptionStatus.SUSPENDED.value
        slot = booking_builders.create_slot(db, member["service_type"])
        db.commit()

        with pytest.raises(NoActiveSubscriptionException):
            BookingService(db).create_booking(
                member["user"].id, slot.id, member["service_type"].id
            )

    def test_unknown_or_inactive_slot(self, db, member):
        inactive = booking_builders.create_slot(db, member["service_type"], is_active=False)
        db.commit()
        service = BookingService(db)

        with pytest.raises(SlotNotFoundException) as exc_info:
            service.create_booking(member["user"].id, "missing-slot", member["service_type"].id)
        assert exc_info.value.code == "SLOT_NOT_FOUND"

        with pytest.raises(SlotNotFoundException):
            service.create_booking(member["user"].id, inactive.id, member["service_type"].id)

    def test_slot_in_the_past(self, db, member):
        started = booking_builders.create_slot(
            db,
            member["service_type"],
            starts_at=datetime.now(timezone.utc) - timedelta(minutes=10),
        )
        db.commit()

        with pytest.raises(SlotPastException) as exc_info:
            BookingService(db).create_booking(
                member["user"].id, started.id, member["service_type"].id
            )

        assert exc_info.value.code == "SLOT_PAST"
        assert _slot(db, started.id).booked_count == 0

    def test_rejects_second_booking_for_same_slot(self, db, member):
        slot = booking_builders.create_slot(db, member["service_type"])
        db.commit()
        service = BookingService(db)
        service.create_booking(member["user"].id, slot.id, member["service_type"].id)

        with pytest.raises(AlreadyBookedException) as exc_info:
            service.create_booking(member["user"].id, slot.id, member["service_type"].id)

        assert exc_info.value.code == "ALREADY_BOOKED"
        assert _slot(db, slot.id).booked_count == 1
        assert _usage(db, member["user"].id, datetime.now(timezone.utc)).sessions_used == 1

    def test_unique_index_conflict_releases_reserved_seat(self, db, member):
        slot = booking_builders.create_slot(db, member["service_type"])
        db.commit()
        service = BookingService(db)
        service.create_booking(member["user"].id, slot.id, member["service_type"].id)

        # Stale read: the duplicate is only caught by the partial unique index.
        with patch.object(
            BookingRepository, "has_active_booking_for_slot", return_value=False
        ):
            with pytest.raises(AlreadyBookedException) as exc_info:
                service.create_booking(member["user"].id, slot.id, member["service_type"].id)

        assert exc_info.value.code == "ALREADY_BOOKED"
        assert _slot(db, slot.id).booked_count == 1
        assert _usage(db, member["user"].id, datetime.now(timezone.utc)).sessions_used == 1
        active = db.query(Booking).filter(Booking.session_slot_id == slot.id).all()
        assert len(active) == 1

    def test_quota_exhausted(self, db):
        user, _tier, _sub = booking_builders.create_entitled_member(db, sessions_per_week=1)
        service_type = booking_builders.create_service_type(db)
        first = booking_builders.create_slot(db, service_type)
        second = booking_builders.create_slot(
            db, service_type, starts_at=datetime.now(timezone.utc) + timedelta(days=2)
        )
        db.commit()
        service = BookingService(db)
        service.create_booking(user.id, first.id, service_type.id)

        with pytest.raises(QuotaExceededException) as exc_info:
            service.create_booking(user.id, second.id, service_type.id)

        assert exc_info.value.code == "QUOTA_EXCEEDED"
        assert exc_info.value.details["sessions_used"] == 1
        assert exc_info.value.details["sessions_limit"] == 1
        assert _slot(db, second.id).booked_count == 0

    def test_zero_limit_tier_is_unlimited(self, db):
        user, _tier, _sub = booking_builders.create_entitled_member(db, sessions_per_week=0)
        service_type = booking_builders.create_service_type(db)
        slots = [
            booking_builders.create_slot(
                db, service_type, starts_at=datetime.now(timezone.utc) + timedelta(hours=6 + i)
            )
            for i in range(4)
        ]
        db.commit()
        service = BookingService(db)

        for slot in slots:
            service.create_booking(user.id, slot.id, service_type.id)

        assert _usage(db, user.id, datetime.now(timezone.utc)).sessions_used == 4

    def test_full_slot_reports_concurrent_failure(self, db, member):
        slot = booking_builders.create_slot(
            db, member["service_type"], capacity=1, booked_count=1
        )
        db.commit()

        with pytest.raises(SlotFullException) as exc_info:
            BookingService(db).create_booking(
                member["user"].id, slot.id, member["service_type"].id
            )

        assert exc_info.value.code == "SLOT_FULL_CONCURRENT"
        assert exc_info.value.status_code == 409
        assert _usage(db, member["user"].id, datetime.now(timezone.utc)).sessions_used == 0

    def test_seat_released_when_quota_increment_loses_race(self, db, member):
        slot = booking_builders.create_slot(db, member["service_type"], capacity=2)
        db.commit()
        service = BookingService(db)
        service.usage_repository.increment_used = lambda *args, **kwargs: False

        with pytest.raises(QuotaExceededException):
            service.create_booking(member["user"].id, slot.id, member["service_type"].id)

        assert _slot(db, slot.id).booked_count == 0
        assert db.query(Booking).filter(Booking.session_slot_id == slot.id).count() == 0

    def test_rebook_after_cancellation(self, db, member):
        slot = booking_builders.create_slot(db, member["service_type"])
        db.commit()
        service = BookingService(db)
        first = service.create_booking(member["user"].id, slot.id, member["service_type"].id)
        service.cancel_booking(first.id, member["user"].id)

        second = service.create_booking(member["user"].id, slot.id, member["service_type"].id)

        assert second.id != first.id
        assert _slot(db, slot.id).booked_count == 1


class TestConcurrentBooking:
    def test_capacity_never_exceeded(self, db, session_factory):
        service_type = booking_builders.create_service_type(db)
        slot = booking_builders.create_slot(db, service_type, capacity=2)
        members = [booking_builders.create_entitled_member(db)[0] for _ in range(3)]
        db.commit()

        barrier = threading.Barrier(len(members))
        outcomes: list[str] = []
        outcomes_lock = threading.Lock()

        def attempt(user_id: str) -> None:
            session = session_factory()
            try:
                barrier.wait(timeout=10)
                BookingService(session).create_booking(user_id, slot.id, service_type.id)
                result = "booked"
            except DomainException as exc:
                result = exc.code
            finally:
                session.close()
            with outcomes_lock:
                outcomes.append(result)

        threads = [threading.Thread(target=attempt, args=(user.id,)) for user in members]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        assert sorted(outcomes) == ["SLOT_FULL_CONCURRENT", "booked", "booked"]
        assert _slot(db, slot.id).booked_count == 2
        assert db.query(Booking).filter(Booking.session_slot_id == slot.id).count() == 2


class TestCancelBooking:
    def test_early_cancellation_returns_credit(self, db, member):
        slot = booking_builders.create_slot(db, member["service_type"])
        db.commit()
        service = BookingService(db)
        booking = service.create_booking(member["user"].id, slot.id, member["service_type"].id)

        result = service.cancel_booking(booking.id, member["user"].id)

        assert result == {"success": True, "refund_eligible": True}
        db.expire_all()
        cancelled = db.get(Booking, booking.id)
        assert cancelled.status == BookingStatus.CANCELLED.value
        assert cancelled.cancellation_reason == REFUND_CANCELLATION_REASON
        assert cancelled.cancelled_at is not None
        assert _slot(db, slot.id).booked_count == 0
        assert _usage(db, member["user"].id, datetime.now(timezone.utc)).sessions_used == 0

    def test_late_cancellation_frees_seat_but_keeps_credit_used(self, db, member):
        slot = booking_builders.create_slot(
            db,
            member["service_type"],
            starts_at=datetime.now(timezone.utc) + timedelta(hours=2),
        )
        db.commit()
        service = BookingService(db)
        booking = service.create_booking(member["user"].id, slot.id, member["service_type"].id)

        result = service.cancel_booking(booking.id, member["user"].id)

        assert result["refund_eligible"] is False
        db.expire_all()
        assert db.get(Booking, booking.id).cancellation_reason == LATE_CANCELLATION_REASON
        assert _slot(db, slot.id).booked_count == 0
        assert _usage(db, member["user"].id, datetime.now(timezone.utc)).sessions_used == 1

    def test_cutoff_boundary_is_inclusive(self, db, member):
        starts_at = datetime.now(timezone.utc).replace(microsecond=0) + timedelta(days=1)
        slot = booking_builders.create_slot(db, member["service_type"], starts_at=starts_at)
        db.commit()
        service = BookingService(db)
        booking = service.create_booking(
            member["user"].id,
            slot.id,
            member["service_type"].id,
            now=starts_at - timedelta(hours=6),
        )

        result = service.cancel_booking(
            booking.id, member["user"].id, now=starts_at - timedelta(hours=4)
        )

        assert result["refund_eligible"] is True

    def test_custom_cutoff(self, db, member):
        starts_at = datetime.now(timezone.utc) + timedelta(hours=10)
        slot = booking_builders.create_slot(db, member["service_type"], starts_at=starts_at)
        db.commit()
        service = BookingService(db, cancellation_cutoff_hours=12)
        booking = service.create_booking(member["user"].id, slot.id, member["service_type"].id)

        assert service.cancel_booking(booking.id, member["user"].id)["refund_eligible"] is False

    def test_refund_goes_to_the_week_that_was_charged(self, db, member):
        booked_at = datetime.now(timezone.utc)
        slot = booking_builders.create_slot(
            db, member["service_type"], starts_at=booked_at + timedelta(days=20)
        )
        db.commit()
        service = BookingService(db)
        booking = service.create_booking(
            member["user"].id, slot.id, member["service_type"].id, now=booked_at
        )

        service.cancel_booking(
            booking.id, member["user"].id, now=booked_at + timedelta(days=8)
        )

        assert _usage(db, member["user"].id, booked_at).sessions_used == 0
        assert _usage(db, member["user"].id, booked_at + timedelta(days=8)) is None

    def test_cancelling_twice(self, db, member):
        slot = booking_builders.create_slot(db, member["service_type"])
        db.commit()
        service = BookingService(db)
        booking = service.create_booking(member["user"].id, slot.id, member["service_type"].id)
        service.cancel_booking(booking.id, member["user"].id)

        with pytest.raises(AlreadyCancelledException) as exc_info:
            service.cancel_booking(booking.id, member["user"].id)

        assert exc_info.value.code == "ALREADY_CANCELLED"
        assert _slot(db, slot.id).booked_count == 0
        assert _usage(db, member["user"].id, datetime.now(timezone.utc)).sessions_used == 0

    def test_cannot_cancel_someone_elses_booking(self, db, member):
        other = booking_builders.create_user(db)
        slot = booking_builders.create_slot(db, member["service_type"])
        db.commit()
        service = BookingService(db)
        booking = service.create_booking(member["user"].id, slot.id, member["service_type"].id)

        with pytest.raises(BookingNotFoundException):
            service.cancel_booking(booking.id, other.id)
        with pytest.raises(BookingNotFoundException):
            service.cancel_booking("no-such-booking", member["user"].id)


class TestSummary:
    def test_summary_without_entitlement(self, db):
        user = booking_builders.create_user(db)
        db.commit()

        summary = BookingService(db).get_summary(user.id)

        assert summary["has_active_subscription"] is False
        assert summary["can_book"] is False
        assert summary["weekly_limit"] == 0
        assert summary["sessions_remaining"] == 0
        assert summary["subscription_status"] == "none"

    def test_summary_is_read_only(self, db, member):
        now = datetime.now(timezone.utc)

        summary = BookingService(db).get_summary(member["user"].id, now=now)

        assert summary["week_start"] == TimezoneService.week_start_for(now).isoformat()
        assert summary["sessions_used"] == 0
        assert summary["sessions_remaining"] == 3
        assert summary["weekly_limit"] == 3
        assert summary["tier_name"] == "Core"
        assert summary["can_book"] is True
        assert _usage(db, member["user"].id, now) is None

    def test_summary_after_booking(self, db, member):
        slot = booking_builders.create_slot(db, member["service_type"])
        db.commit()
        service = BookingService(db)
        service.create_booking(member["user"].id, slot.id, member["service_type"].id)

        summary = service.get_summary(member["user"].id)

        assert summary["sessions_used"] == 1
        assert summary["sessions_remaining"] == 2


class TestStatusTransitions:
    def test_admin_marks_completed(self, db, member, admin_user):
        slot = booking_builders.create_slot(db, member["service_type"])
        db.commit()
        service = BookingService(db)
        booking = service.create_booking(member["user"].id, slot.id, member["service_type"].id)

        updated = service.update_status(
            booking.id, BookingStatus.COMPLETED.value, admin_user_id=admin_user.id
        )

        assert updated.status == BookingStatus.COMPLETED.value
        assert _slot(db, slot.id).booked_count == 1

    def test_cancelled_booking_cannot_be_completed(self, db, member):
        slot = booking_builders.create_slot(db, member["service_type"])
        db.commit()
        service = BookingService(db)
        booking = service.create_booking(member["user"].id, slot.id, member["service_type"].id)
        service.cancel_booking(booking.id, member["user"].id)

        with pytest.raises(InvalidStatusTransitionException) as exc_info:
            service.update_status(booking.id, BookingStatus.COMPLETED.value)

        assert exc_info.value.code == "INVALID_STATUS_TRANSITION"

    def test_paid_booking_confirmation_is_idempotent(self, db, member):
        service = BookingService(db)
        pending = service.create_pending_booking(
            member["user"].id,
            member["service_type"].id,
            datetime.now(timezone.utc) + timedelta(days=3),
        )
        assert pending.status == BookingStatus.PENDING.value
        assert pending.quota_week_start_date is None

        assert service.confirm_paid_booking(pending.id, "pi_123") is True
        db.commit()
        assert service.confirm_paid_booking(pending.id, "pi_123") is False
        db.commit()

        db.expire_all()
        confirmed = db.get(Booking, pending.id)
        assert confirmed.status == BookingStatus.CONFIRMED.value
        assert confirmed.stripe_payment_intent_id == "pi_123"
